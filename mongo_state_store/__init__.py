# MongoDB State Store
#
# Stores a migration runner's history in a single MongoDB document and
# provides a cluster-wide migration lock built on a unique index.
#
# Usage:
#   from mongo_state_store.core.config import StateStoreConfig
#   from mongo_state_store.core.logging import setup_logging
#   from mongo_state_store.repositories.state_repo import MongoStateStore
#   from mongo_state_store.services.sync_service import MigrationOptions, synchronized_up
#
#   setup_logging()  # optional: stdout handler for the mongo_state_store loggers
#   store = MongoStateStore(StateStoreConfig(uri=..., lock_collection_name="migrationlock"))
#   synchronized_up(MigrationOptions(state_store=store, migrations_directory=Path("migrations")))
