"""
File-based Migration Set

A minimal migration set that lets the synchronized helpers run without an
external migration runner. Its state lives in a MongoStateStore.

Migration files are Python modules in one directory, executed in file-name
order. Names starting with "_" are skipped:

    migrations/
        1696851672239-add-users-index.py
        1696851690001-backfill-owner.py

Each module must define:
    up() -> None
and may define:
    down() -> None
    description: str
"""

from __future__ import annotations

import importlib.util
import time
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING, Callable, Optional, Protocol

from mongo_state_store.core.exceptions import MigrationLoadError
from mongo_state_store.core.logging import get_logger
from mongo_state_store.schemas.models import MigrationState

if TYPE_CHECKING:
    from mongo_state_store.services.sync_service import MigrationOptions

logger = get_logger("mongo_state_store.services.migration_set")


class MigrationSet(Protocol):
    """What the synchronized helpers need from a migration runner."""

    def up(self) -> None:
        ...


class StateStore(Protocol):
    def load(self) -> dict:
        ...

    def save(self, state: MigrationState) -> None:
        ...


@dataclass
class Migration:
    """A migration discovered on disk."""

    title: str
    up: Callable[[], None]
    down: Optional[Callable[[], None]] = None
    description: Optional[str] = None


def load_migration(file_path: Path) -> Migration:
    """Import a migration module and return its callables."""
    title = file_path.name
    module_spec = importlib.util.spec_from_file_location(f"_migration_{file_path.stem}", file_path)
    if module_spec is None or module_spec.loader is None:
        raise MigrationLoadError(f"Cannot import migration {title}", details={"path": str(file_path)})

    module: ModuleType = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)

    up = getattr(module, "up", None)
    if not callable(up):
        raise MigrationLoadError(
            f"Migration {title} has no 'up' function",
            details={"path": str(file_path)},
        )

    return Migration(
        title=title,
        up=up,
        down=getattr(module, "down", None),
        description=getattr(module, "description", None),
    )


def discover_migrations(migrations_dir: Path) -> list[Migration]:
    """Load all migrations from a directory, sorted by file name."""
    if not migrations_dir.is_dir():
        raise MigrationLoadError(
            f"Migrations directory not found: {migrations_dir}",
            details={"path": str(migrations_dir)},
        )
    files = sorted(p for p in migrations_dir.glob("*.py") if not p.name.startswith("_"))
    return [load_migration(p) for p in files]


@dataclass
class FileMigrationSet:
    """Migrations from a directory plus the state loaded from the store."""

    store: StateStore
    migrations: list[Migration]
    state: MigrationState = field(default_factory=MigrationState)

    @classmethod
    def load(cls, options: "MigrationOptions") -> "FileMigrationSet":
        """Loader used by synchronized_migration by default."""
        if options.migrations_directory is None:
            raise MigrationLoadError("No migrations_directory in migration options")

        migrations = discover_migrations(Path(options.migrations_directory))
        state = MigrationState.from_document(options.state_store.load())
        logger.debug(f"Loaded {len(migrations)} migrations, last run: {state.last_run}")
        return cls(store=options.state_store, migrations=migrations, state=state)

    @property
    def titles(self) -> list[str]:
        return [m.title for m in self.migrations]

    def pending(self) -> list[Migration]:
        executed = self.state.titles()
        return [m for m in self.migrations if m.title not in executed]

    def up(self) -> None:
        """Run all pending migrations, saving state after each one."""
        pending = self.pending()
        if not pending:
            logger.info("No pending migrations.")
            return

        logger.info(f"Found {len(pending)} pending migration(s)")
        for migration in pending:
            logger.info(f"Running migration: {migration.title}")
            try:
                migration.up()
            except Exception as e:
                logger.error(f"Error running {migration.title}: {e}")
                raise

            self.state.record(migration.title, migration.description, time.time() * 1000)
            self.store.save(self.state)
            logger.info(f"Completed: {migration.title}")
