"""
Callback adapter for runners that expect completion callbacks.

    store = CallbackStateStore(MongoStateStore(config))
    store.load(lambda err, state: ...)
    store.save(state, lambda err: ...)

Errors raised by the wrapped store are passed to the callback instead of
being raised. Errors raised by the callback itself propagate.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from mongo_state_store.core.logging import get_logger
from mongo_state_store.repositories.state_repo import MongoStateStore

logger = get_logger("mongo_state_store.adapters.callbacks")

LoadCallback = Callable[[Optional[Exception], Optional[dict[str, Any]]], None]
SaveCallback = Callable[[Optional[Exception]], None]


class CallbackStateStore:
    def __init__(self, store: MongoStateStore) -> None:
        self.store = store

    def load(self, fn: LoadCallback) -> None:
        try:
            state = self.store.load()
        except Exception as e:
            logger.debug(f"Passing load error to callback: {e}")
            fn(e, None)
            return
        fn(None, state)

    def save(self, state: Mapping[str, Any], fn: SaveCallback) -> None:
        try:
            self.store.save(state)
        except Exception as e:
            logger.debug(f"Passing save error to callback: {e}")
            fn(e)
            return
        fn(None)
