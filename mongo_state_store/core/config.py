"""
State Store Configuration

A single explicit configuration object for the MongoDB state store and its
migration lock. Values are validated at construction so that a bad URI or an
empty collection name fails before any connection is attempted.

Environment variables (see StateStoreConfig.from_env):
    MIGRATE_MONGO_URI                 - MongoDB connection string (required)
    MIGRATE_MONGO_COLLECTION          - state collection, default "migrations"
    MIGRATE_MONGO_LOCK_COLLECTION     - enables the migration lock
    MIGRATE_MONGO_DATABASE            - database override
    MIGRATE_MONGO_LOCK_MODE           - "run" or "load_save"
    MIGRATE_MONGO_LOCK_POLL_INTERVAL  - seconds between lock attempts
    MIGRATE_MONGO_LOCK_TIMEOUT        - seconds before giving up on the lock
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from mongo_state_store.core.exceptions import ConfigurationError

DEFAULT_COLLECTION_NAME = "migrations"
DEFAULT_LOCK_POLL_INTERVAL = 0.1
URI_SCHEMES = ("mongodb://", "mongodb+srv://")


class LockMode(str, Enum):
    """Where the migration lock is taken."""

    # Whole migration run inside one guaranteed-release scope
    RUN = "run"
    # load() acquires, save() releases
    LOAD_SAVE = "load_save"


class StateStoreConfig(BaseModel):
    """Configuration for MongoStateStore and its migration lock."""

    model_config = ConfigDict(frozen=True)

    uri: str = Field(..., description="MongoDB connection string.")
    collection_name: str = Field(
        default=DEFAULT_COLLECTION_NAME,
        description="Collection holding the migration-set document.",
    )
    lock_collection_name: Optional[str] = Field(
        default=None,
        description="Collection used for the migration lock. Locking is disabled when unset.",
    )
    database_name: Optional[str] = Field(
        default=None,
        description="Database to use instead of the default database from the URI.",
    )
    lock_mode: LockMode = LockMode.RUN
    lock_poll_interval: float = DEFAULT_LOCK_POLL_INTERVAL
    lock_timeout: Optional[float] = None
    server_selection_timeout_ms: int = 30000

    @model_validator(mode="wrap")
    @classmethod
    def _as_configuration_error(cls, data, handler):
        try:
            return handler(data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid state store configuration: {e}",
                details={"errors": e.errors(include_url=False)},
            ) from e

    @field_validator("uri")
    @classmethod
    def _check_uri(cls, value: str) -> str:
        if not value.startswith(URI_SCHEMES):
            raise ConfigurationError(
                "MongoDB URI must start with mongodb:// or mongodb+srv://",
                details={"uri": value},
            )
        return value

    @field_validator("collection_name", "lock_collection_name", "database_name")
    @classmethod
    def _check_name(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ConfigurationError("Collection and database names must not be empty")
        return value

    @field_validator("lock_poll_interval", "lock_timeout", "server_selection_timeout_ms")
    @classmethod
    def _check_positive(cls, value):
        if value is not None and value <= 0:
            raise ConfigurationError(
                "Lock intervals and timeouts must be positive",
                details={"value": value},
            )
        return value

    @property
    def locking_enabled(self) -> bool:
        return self.lock_collection_name is not None

    @classmethod
    def from_env(
        cls,
        prefix: str = "MIGRATE_MONGO_",
        env_file: Path | None = None,
    ) -> "StateStoreConfig":
        """
        Build a configuration from environment variables.

        A .env file is loaded first (without overriding variables that are
        already set).

        Args:
            prefix: Prefix shared by all variables
            env_file: Explicit .env path, otherwise python-dotenv searches upwards

        Returns:
            Validated configuration

        Raises:
            ConfigurationError: If the URI is missing or a value is invalid
        """
        load_dotenv(env_file)

        uri = os.environ.get(f"{prefix}URI")
        if not uri:
            raise ConfigurationError(f"{prefix}URI is not set")

        values: dict[str, object] = {"uri": uri}
        optional = {
            "collection_name": "COLLECTION",
            "lock_collection_name": "LOCK_COLLECTION",
            "database_name": "DATABASE",
            "lock_mode": "LOCK_MODE",
            "lock_poll_interval": "LOCK_POLL_INTERVAL",
            "lock_timeout": "LOCK_TIMEOUT",
        }
        for field_name, suffix in optional.items():
            raw = os.environ.get(f"{prefix}{suffix}")
            if raw:
                values[field_name] = raw

        return cls(**values)
