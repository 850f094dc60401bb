"""Pytest fixtures and configuration."""

from __future__ import annotations

import threading
from types import SimpleNamespace
from typing import Any, Callable

import mongomock
import pytest

from mongo_state_store.core.config import StateStoreConfig
from mongo_state_store.repositories.state_repo import MongoStateStore

MONGO_URI = "mongodb://localhost/migrate_test"


class ClientSpy:
    """Delegates to a shared mongomock client and records close() calls."""

    def __init__(self, client: mongomock.MongoClient) -> None:
        self._client = client
        self.closed = False

    def get_default_database(self):
        return self._client.get_default_database()

    def __getitem__(self, name: str):
        return self._client[name]

    def close(self) -> None:
        self.closed = True


class AtomicLockCollection:
    """Lock collection whose upsert is atomic under a mutex, like the server's unique index."""

    def __init__(self) -> None:
        self._mutex = threading.Lock()
        self._docs: list[dict[str, Any]] = []
        self.unique_fields: set[str] = set()
        self._next_id = 0

    def create_index(self, keys, unique: bool = False):
        if unique:
            self.unique_fields.update(field for field, _ in keys)

    def update_one(self, filter: dict, update: dict, upsert: bool = False):
        with self._mutex:
            if any(all(doc.get(k) == v for k, v in filter.items()) for doc in self._docs):
                return SimpleNamespace(upserted_id=None)
            self._next_id += 1
            self._docs.append({"_id": self._next_id, **update["$set"]})
            return SimpleNamespace(upserted_id=self._next_id)

    def delete_one(self, filter: dict):
        with self._mutex:
            for doc in self._docs:
                if all(doc.get(k) == v for k, v in filter.items()):
                    self._docs.remove(doc)
                    return SimpleNamespace(deleted_count=1)
            return SimpleNamespace(deleted_count=0)

    def count_documents(self, filter: dict) -> int:
        with self._mutex:
            return sum(1 for doc in self._docs if all(doc.get(k) == v for k, v in filter.items()))


class AtomicLockClient:
    def __init__(self, collection: AtomicLockCollection) -> None:
        self.collection = collection

    def get_default_database(self):
        return self

    def __getitem__(self, name: str) -> AtomicLockCollection:
        return self.collection

    def close(self) -> None:
        pass


class CriticalSectionProbe:
    """Counts how many callers are inside a guarded region at the same time."""

    def __init__(self) -> None:
        self._mutex = threading.Lock()
        self.inside = 0
        self.max_inside = 0
        self.entries = 0

    def enter(self) -> None:
        with self._mutex:
            self.inside += 1
            self.entries += 1
            self.max_inside = max(self.max_inside, self.inside)

    def exit(self) -> None:
        with self._mutex:
            self.inside -= 1


@pytest.fixture
def mongo_uri() -> str:
    return MONGO_URI


@pytest.fixture
def mongo_client() -> mongomock.MongoClient:
    """A fresh in-memory MongoDB shared by every client the store opens."""
    return mongomock.MongoClient(MONGO_URI)


@pytest.fixture
def test_db(mongo_client):
    return mongo_client.get_default_database()


@pytest.fixture
def opened_clients() -> list[ClientSpy]:
    return []


@pytest.fixture
def client_factory(mongo_client, opened_clients) -> Callable[..., ClientSpy]:
    def factory(uri: str, **kwargs: Any) -> ClientSpy:
        spy = ClientSpy(mongo_client)
        opened_clients.append(spy)
        return spy

    return factory


@pytest.fixture
def make_store(mongo_uri, client_factory) -> Callable[..., MongoStateStore]:
    def build(**options: Any) -> MongoStateStore:
        config = StateStoreConfig(uri=mongo_uri, **options)
        return MongoStateStore(config, client_factory=client_factory)

    return build


@pytest.fixture
def migration_doc() -> dict[str, Any]:
    return {
        "migrations": [
            {
                "title": "1587915479438-my-migration.py",
                "description": None,
                "timestamp": 1587919095301.0,
            }
        ],
        "lastRun": "1587915479438-my-migration.py",
    }


@pytest.fixture
def atomic_lock_collection() -> AtomicLockCollection:
    return AtomicLockCollection()


@pytest.fixture
def probe() -> CriticalSectionProbe:
    return CriticalSectionProbe()


@pytest.fixture
def atomic_client_factory(atomic_lock_collection) -> Callable[..., AtomicLockClient]:
    def factory(uri: str, **kwargs: Any) -> AtomicLockClient:
        return AtomicLockClient(atomic_lock_collection)

    return factory
