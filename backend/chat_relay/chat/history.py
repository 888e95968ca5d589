"""Bounded, FIFO-evicting history log replayed to connecting clients."""
from collections import deque
from typing import Deque, Tuple

from .events import HistoryEvent

# Default number of events kept for late joiners
DEFAULT_HISTORY_CAPACITY = 100


class HistoryLog:
    """Append-only event log bounded to ``capacity`` entries.

    Insertion order is the authoritative event order; the ``timestamp``
    labels on events are only for display. When an append pushes the log past
    its capacity the oldest events are dropped first.

    Attributes:
        capacity: Maximum number of events retained.
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError(f"History capacity must be > 0, got {capacity}")
        self._capacity = capacity
        self._events: Deque[HistoryEvent] = deque()

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, event: HistoryEvent) -> HistoryEvent:
        """Add an event to the tail, evicting from the head on overflow.

        Returns:
            The same event (for chaining).
        """
        self._events.append(event)
        while len(self._events) > self._capacity:
            self._events.popleft()
        return event

    def snapshot(self) -> Tuple[HistoryEvent, ...]:
        """Return the current contents, oldest first, as an immutable copy."""
        return tuple(self._events)

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)
