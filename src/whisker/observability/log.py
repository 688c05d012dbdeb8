"""Event log — queryable, thread-safe event store.

Keeps a bounded ring buffer of whisker events for the stats endpoint and
for tests.

Thread Safety:
    All methods are protected by a ``threading.Lock``.

"""

import threading
from collections import deque
from typing import Any

from whisker.observability.events import WhiskerEvent


class EventLog:
    """Bounded event store with query support.

    When the buffer is full, the oldest events are discarded.

    Args:
        max_events: Maximum number of events to retain.

    """

    __slots__ = ("_events", "_lock", "_max_events")

    def __init__(self, max_events: int = 10_000) -> None:
        self._max_events = max_events
        self._events: deque[WhiskerEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def append(self, event: WhiskerEvent) -> None:
        """Record an event in the log."""
        with self._lock:
            self._events.append(event)

    def query(
        self,
        *,
        event_type: type | None = None,
        session_id: str | None = None,
        limit: int = 100,
    ) -> list[WhiskerEvent]:
        """Return matching events, most recent first."""
        with self._lock:
            snapshot = list(self._events)

        results: list[WhiskerEvent] = []
        for event in reversed(snapshot):
            if len(results) >= limit:
                break
            if event_type is not None and not isinstance(event, event_type):
                continue
            if session_id is not None and event.session_id != session_id:
                continue
            results.append(event)
        return results

    def recent(self, n: int = 20) -> list[WhiskerEvent]:
        """Return the N most recent events, oldest first."""
        with self._lock:
            items = list(self._events)
        return items[-n:]

    def clear(self) -> int:
        """Clear all events and return the count that was cleared."""
        with self._lock:
            count = len(self._events)
            self._events.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def stats(self) -> dict[str, Any]:
        """Return summary statistics about stored events."""
        with self._lock:
            events = list(self._events)

        type_counts: dict[str, int] = {}
        for event in events:
            name = type(event).__name__
            type_counts[name] = type_counts.get(name, 0) + 1

        return {
            "total": len(events),
            "max_events": self._max_events,
            "by_type": type_counts,
        }
