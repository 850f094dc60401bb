"""
Migration State Models

Pydantic models for the migration-set document stored in the state collection.

Document shape:
    {
        "migrations": [{"title": ..., "description": ..., "timestamp": ...}],
        "lastRun": "<title of the most recent migration>"
    }
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class MigrationRecord(BaseModel):
    """A single executed migration."""

    title: str = Field(..., description="Unique migration identifier, usually the file name.")
    description: Optional[str] = None
    timestamp: float = Field(..., description="Execution time in epoch milliseconds.")


class MigrationState(BaseModel):
    """The full migration history kept in one document."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    migrations: list[MigrationRecord] = []
    last_run: Optional[str] = Field(default=None, alias="lastRun")

    @classmethod
    def from_document(cls, doc: Mapping[str, Any] | None) -> "MigrationState":
        """Build state from a stored document; an empty document means never run."""
        return cls.model_validate(dict(doc or {}))

    def to_document(self) -> dict[str, Any]:
        return {
            "migrations": [record.model_dump() for record in self.migrations],
            "lastRun": self.last_run,
        }

    def titles(self) -> set[str]:
        return {record.title for record in self.migrations}

    def record(self, title: str, description: Optional[str], timestamp: float) -> MigrationRecord:
        """Append an executed migration and mark it as the last run."""
        entry = MigrationRecord(title=title, description=description, timestamp=timestamp)
        self.migrations.append(entry)
        self.last_run = title
        return entry
