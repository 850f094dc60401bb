"""
Migration Lock Repository

Advisory cross-process lock stored in a dedicated MongoDB collection.

Collection:
    {lock_collection}  - at most one document {"lock": "lock"}; present = held

Mutual exclusion comes from a unique index on the "lock" field: of all
concurrent upserts of the token, exactly one inserts it. Everyone else either
matches the existing token or gets a DuplicateKeyError from the index, and
keeps polling. There are no leases, no heartbeats and no transactions.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from pymongo import ASCENDING
from pymongo import errors as mongo_errors

from mongo_state_store.core.exceptions import LockAcquisitionTimeoutError, StateStoreError
from mongo_state_store.core.logging import get_logger
from mongo_state_store.repositories.connection import MongoConnection

logger = get_logger("mongo_state_store.repositories.lock")

LOCK_FIELD = "lock"
LOCK_VALUE = "lock"


def _token() -> dict[str, str]:
    return {LOCK_FIELD: LOCK_VALUE}


class MongoLock:
    """Blocking lock backed by an atomic upsert on a uniquely indexed key."""

    def __init__(
        self,
        connection: MongoConnection,
        collection_name: str,
        poll_interval: float = 0.1,
        timeout: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.connection = connection
        self.collection_name = collection_name
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._sleep = sleep
        self._clock = clock

    def acquire(self) -> None:
        """
        Block until the lock token is inserted by this caller.

        Raises:
            StoreConnectionError: If MongoDB cannot be reached
            LockAcquisitionTimeoutError: If a timeout is configured and expires
        """
        with self.connection.open_database() as db:
            collection = db[self.collection_name]
            # Upserts are only atomic against a unique index
            collection.create_index([(LOCK_FIELD, ASCENDING)], unique=True)

            started = self._clock()
            show_message = True
            while not self._try_insert(collection):
                if show_message:
                    logger.info("Waiting for migration lock release ...")
                    show_message = False

                if self.timeout is not None and self._clock() - started >= self.timeout:
                    raise LockAcquisitionTimeoutError(
                        f"Migration lock not acquired within {self.timeout} seconds",
                        details={"collection": self.collection_name, "timeout": self.timeout},
                    )
                self._sleep(self.poll_interval)

        logger.debug(f"Acquired migration lock in {self.collection_name}")

    @staticmethod
    def _try_insert(collection) -> bool:
        try:
            result = collection.update_one(_token(), {"$set": _token()}, upsert=True)
        except mongo_errors.DuplicateKeyError:
            # Lost a concurrent upsert race on the unique index
            return False
        return result.upserted_id is not None

    def release(self) -> None:
        """Delete the lock token. Releasing a free lock is a no-op."""
        with self.connection.open_database() as db:
            result = db[self.collection_name].delete_one(_token())

        if result.deleted_count == 0:
            logger.debug(f"Migration lock in {self.collection_name} was already free")
        else:
            logger.debug(f"Released migration lock in {self.collection_name}")

    def release_quietly(self) -> None:
        """Release for cleanup paths; failures are logged, never raised."""
        try:
            self.release()
        except (StateStoreError, mongo_errors.PyMongoError) as e:
            logger.warning(f"Failed to release migration lock in {self.collection_name}: {e}")

    @contextmanager
    def hold(self) -> Iterator["MongoLock"]:
        """Acquire the lock and release it on every exit path."""
        self.acquire()
        try:
            yield self
        finally:
            self.release_quietly()

    def is_held(self) -> bool:
        with self.connection.open_database() as db:
            return db[self.collection_name].count_documents(_token()) > 0


class NullLock:
    """Stand-in used when no lock collection is configured."""

    collection_name = None

    def acquire(self) -> None:
        pass

    def release(self) -> None:
        pass

    def release_quietly(self) -> None:
        pass

    @contextmanager
    def hold(self) -> Iterator["NullLock"]:
        yield self

    def is_held(self) -> bool:
        return False
