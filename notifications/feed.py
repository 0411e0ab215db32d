"""
In-process publish/subscribe for table changes.

Subscribers register per table name, or for every table with `"*"`.
`subscribe` returns a callable that removes the subscription again.
"""
import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)

ALL_TABLES = '*'


class ChangeFeed:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers = {}

    def subscribe(self, table: str, callback: Callable[[dict], None]) -> Callable[[], None]:
        with self._lock:
            self._subscribers.setdefault(table, []).append(callback)

        def unsubscribe():
            with self._lock:
                callbacks = self._subscribers.get(table, [])
                if callback in callbacks:
                    callbacks.remove(callback)
                if not callbacks:
                    self._subscribers.pop(table, None)

        return unsubscribe

    def subscriber_count(self, table=None) -> int:
        with self._lock:
            if table is not None:
                return len(self._subscribers.get(table, []))
            return sum(len(callbacks) for callbacks in self._subscribers.values())

    def publish(self, event: dict) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(event['table'], []))
            callbacks += self._subscribers.get(ALL_TABLES, [])

        # Delivered outside the lock so callbacks may (un)subscribe
        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                logger.exception("Change subscriber failed on %s %s", event['event'], event['table'])


feed = ChangeFeed()
