"""
MongoDB State Repository

Persists the migration history of a migration runner as a single document.

Collections:
    {collection_name}       - exactly zero or one migration-set document
    {lock_collection_name}  - optional lock token (see lock_repo)
"""

from __future__ import annotations

from typing import Any, Mapping, Union

from pymongo import MongoClient

from mongo_state_store.core.config import LockMode, StateStoreConfig
from mongo_state_store.core.exceptions import MultipleStateDocumentsError
from mongo_state_store.core.logging import get_logger
from mongo_state_store.repositories.connection import ClientFactory, MongoConnection
from mongo_state_store.repositories.lock_repo import MongoLock, NullLock
from mongo_state_store.schemas.models import MigrationState

logger = get_logger("mongo_state_store.repositories.state")


class MongoStateStore:
    """State store for a migration runner, backed by one MongoDB document."""

    def __init__(
        self,
        config: StateStoreConfig,
        client_factory: ClientFactory = MongoClient,
    ) -> None:
        self._config = config
        self.connection = MongoConnection(config, client_factory=client_factory)

        if config.lock_collection_name:
            self._lock: Union[MongoLock, NullLock] = MongoLock(
                self.connection,
                config.lock_collection_name,
                poll_interval=config.lock_poll_interval,
                timeout=config.lock_timeout,
            )
        else:
            self._lock = NullLock()

    @classmethod
    def from_uri(cls, uri: str, **options: Any) -> "MongoStateStore":
        """Shortcut for MongoStateStore(StateStoreConfig(uri=uri, **options))."""
        client_factory = options.pop("client_factory", MongoClient)
        return cls(StateStoreConfig(uri=uri, **options), client_factory=client_factory)

    @property
    def config(self) -> StateStoreConfig:
        return self._config

    @property
    def collection_name(self) -> str:
        return self._config.collection_name

    @property
    def lock_collection_name(self) -> str | None:
        return self._config.lock_collection_name

    @property
    def lock(self) -> Union[MongoLock, NullLock]:
        return self._lock

    @property
    def _locks_load_save(self) -> bool:
        return self._config.locking_enabled and self._config.lock_mode == LockMode.LOAD_SAVE

    # =========================================================================
    # Runner-facing API
    # =========================================================================

    def load(self) -> dict[str, Any]:
        """
        Load the migration-set document.

        Returns:
            The stored document without its _id, or {} if no migration has run

        Raises:
            MultipleStateDocumentsError: If the collection holds more than one document
            StoreConnectionError: If MongoDB cannot be reached
        """
        if not self._locks_load_save:
            return self._read_state()

        self._lock.acquire()
        try:
            return self._read_state()
        except BaseException:
            # No state reaches the caller, so no save() will release the lock
            self._lock.release_quietly()
            raise

    def _read_state(self) -> dict[str, Any]:
        with self.connection.open_database() as db:
            docs = list(db[self.collection_name].find({}))

        if len(docs) > 1:
            logger.error(
                f"Collection {self.collection_name} holds {len(docs)} migration-set documents"
            )
            raise MultipleStateDocumentsError(
                len(docs), details={"collection": self.collection_name}
            )

        if not docs:
            logger.info("No migrations found, probably running the very first time")
            return {}

        doc = docs[0]
        doc.pop("_id", None)
        return doc

    def save(self, state: Union[Mapping[str, Any], MigrationState]) -> None:
        """
        Replace the migration-set document with the given state.

        Only "migrations" and "lastRun" are written; anything else in the
        stored document is discarded.

        Args:
            state: MigrationState or a mapping with "migrations" and "lastRun"

        Raises:
            StoreConnectionError: If MongoDB cannot be reached
        """
        if isinstance(state, MigrationState):
            document = state.to_document()
        else:
            document = {"migrations": state.get("migrations"), "lastRun": state.get("lastRun")}

        try:
            with self.connection.open_database() as db:
                db[self.collection_name].replace_one({}, document, upsert=True)
        finally:
            if self._locks_load_save:
                self._lock.release_quietly()

        logger.debug(f"Saved migration state to {self.collection_name}")
