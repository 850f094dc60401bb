"""
Synchronized Migration Runs

Runs migrations under the MongoDB migration lock so that, in a cluster, only
one node migrates at a time. The lock is held across load, the caller's
migration logic and the state writes made by that logic, and is released on
every exit path.

Example:
    store = MongoStateStore(StateStoreConfig(
        uri="mongodb://localhost/db",
        lock_collection_name="migrationlock",
    ))
    synchronized_up(MigrationOptions(state_store=store, migrations_directory=Path("migrations")))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from mongo_state_store.core.config import LockMode
from mongo_state_store.core.exceptions import (
    InvalidStateStoreError,
    MissingLockConfigurationError,
)
from mongo_state_store.core.logging import LogContext, get_logger
from mongo_state_store.repositories.state_repo import MongoStateStore
from mongo_state_store.services.migration_set import FileMigrationSet, MigrationSet

logger = get_logger("mongo_state_store.services.sync")

T = TypeVar("T")


@dataclass
class MigrationOptions:
    """Options for a synchronized migration run."""

    state_store: Any
    migrations_directory: Optional[Path] = None
    load_set: Callable[["MigrationOptions"], MigrationSet] = field(default=FileMigrationSet.load)


def _validated_store(options: MigrationOptions) -> MongoStateStore:
    store = options.state_store
    if store is None:
        raise InvalidStateStoreError("No `state_store` in migration options")
    if not isinstance(store, MongoStateStore):
        raise InvalidStateStoreError(
            "Given `state_store` is not `MongoStateStore`",
            details={"type": type(store).__name__},
        )
    if not store.lock_collection_name:
        raise MissingLockConfigurationError("`lock_collection_name` in MongoStateStore is not set")
    if store.config.lock_mode == LockMode.LOAD_SAVE:
        raise InvalidStateStoreError(
            "Synchronized runs need lock_mode 'run'; 'load_save' would wait on its own lock",
            details={"lock_mode": store.config.lock_mode.value},
        )
    return store


def synchronized_migration(
    options: MigrationOptions,
    callback: Callable[[MigrationSet], T],
) -> T:
    """
    Load the migration set and run callback while holding the migration lock.

    Args:
        options: State store and migration set loader
        callback: Migration logic; runs on one node of the cluster at a time

    Returns:
        Whatever callback returns

    Raises:
        InvalidStateStoreError: If options carry no usable MongoStateStore
        MissingLockConfigurationError: If the store has no lock collection
        StoreConnectionError: If MongoDB cannot be reached
    """
    store = _validated_store(options)

    with LogContext(
        logger,
        "synchronized migration",
        lock_collection=store.lock_collection_name,
        state_collection=store.collection_name,
    ):
        with store.lock.hold():
            migration_set = options.load_set(options)
            return callback(migration_set)


def synchronized_up(options: MigrationOptions) -> None:
    """Run all pending migrations while holding the migration lock."""
    synchronized_migration(options, lambda migration_set: migration_set.up())
