"""
MongoDB Connection

Opens one client per logical operation and guarantees it is closed on every
exit path. Connection-level pymongo errors are translated to
StoreConnectionError.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Iterator

from pymongo import MongoClient
from pymongo import errors as mongo_errors
from pymongo.database import Database

from mongo_state_store.core.config import StateStoreConfig
from mongo_state_store.core.exceptions import StoreConnectionError
from mongo_state_store.core.logging import get_logger

logger = get_logger("mongo_state_store.repositories.connection")

ClientFactory = Callable[..., Any]

# pymongo OperationFailure code for a failed authentication
AUTHENTICATION_FAILED = 18


class MongoConnection:
    """Connection helper shared by the state repository and the lock."""

    def __init__(
        self,
        config: StateStoreConfig,
        client_factory: ClientFactory = MongoClient,
    ) -> None:
        self.config = config
        self._client_factory = client_factory

    @contextmanager
    def open_database(self) -> Iterator[Database]:
        """
        Connect, yield the configured database and close the client.

        Yields:
            The database named in the config, or the URI's default database

        Raises:
            StoreConnectionError: If the store cannot be reached or the URI
                cannot be used
        """
        client = None
        try:
            client = self._client_factory(
                self.config.uri,
                serverSelectionTimeoutMS=self.config.server_selection_timeout_ms,
            )
            if self.config.database_name:
                db = client[self.config.database_name]
            else:
                db = client.get_default_database()
            yield db
        except (mongo_errors.ConnectionFailure, mongo_errors.ConfigurationError) as e:
            logger.error(f"Failed to reach MongoDB: {e}")
            raise StoreConnectionError(
                f"Failed to connect to MongoDB: {e}",
                details={"error": str(e)},
            ) from e
        except mongo_errors.OperationFailure as e:
            if e.code != AUTHENTICATION_FAILED:
                raise
            logger.error(f"MongoDB authentication failed: {e}")
            raise StoreConnectionError(
                f"MongoDB authentication failed: {e}",
                details={"error": str(e), "code": e.code},
            ) from e
        finally:
            if client is not None:
                client.close()
