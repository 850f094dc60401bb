"""Custom exceptions for the MongoDB migration state store."""

from __future__ import annotations


class StateStoreError(Exception):
    """Base exception for all state store errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(StateStoreError):
    """Raised when the state store configuration is invalid."""

    pass


class StoreConnectionError(StateStoreError):
    """Raised when the document store cannot be reached."""

    pass


class MultipleStateDocumentsError(StateStoreError):
    """Raised when the state collection holds more than one document."""

    def __init__(self, count: int, details: dict | None = None) -> None:
        super().__init__(
            f"Expected exactly one result, but got {count}",
            details={"count": count, **(details or {})},
        )
        self.count = count


class MissingLockConfigurationError(StateStoreError):
    """Raised when a synchronized run is requested without a lock collection."""

    pass


class InvalidStateStoreError(StateStoreError):
    """Raised when the synchronized entry point is given an unusable state store."""

    pass


class LockAcquisitionTimeoutError(StateStoreError):
    """Raised when the migration lock is not acquired before the deadline."""

    pass


class MigrationLoadError(StateStoreError):
    """Raised when a migration module cannot be loaded."""

    pass
