"""Change notifications for observers (signage, ranking board, calling board).

Observers subscribe to entity classes ("entries", "settings") and are told that
something changed, never what the new data is: they re-pull the computed view.
An observer that reconnects re-pulls everything rather than replaying missed
events.
"""
from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterable

logger = logging.getLogger(__name__)

TABLES = ("entries", "settings")


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    version: int
    command: str | None = None


Callback = Callable[[ChangeEvent], None]


@dataclass(frozen=True)
class Subscription:
    id: int
    tables: frozenset[str]
    channel: "EventChannel"

    def unsubscribe(self) -> None:
        self.channel.unsubscribe(self)


class EventChannel:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._subscribers: Dict[int, tuple[frozenset[str], Callback]] = {}

    def subscribe(self, tables: Iterable[str], callback: Callback) -> Subscription:
        wanted = frozenset(tables)
        unknown = sorted(wanted - set(TABLES))
        if not wanted or unknown:
            raise ValueError(f"tables must be a non-empty subset of {TABLES}, got {sorted(wanted)}")
        with self._lock:
            sub_id = next(self._ids)
            self._subscribers[sub_id] = (wanted, callback)
        return Subscription(id=sub_id, tables=wanted, channel=self)

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscribers.pop(subscription.id, None)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: ChangeEvent) -> int:
        """Deliver ``event`` to matching subscribers; returns how many were called."""
        with self._lock:
            targets = [cb for tables, cb in self._subscribers.values() if event.table in tables]
        delivered = 0
        for callback in targets:
            try:
                callback(event)
                delivered += 1
            except Exception:
                # One broken observer must not stop the others; it re-pulls on reconnect
                logger.exception(f"Change subscriber failed for {event.table} v{event.version}")
        return delivered
