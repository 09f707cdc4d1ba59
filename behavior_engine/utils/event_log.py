"""Thread-safe ring buffer of behavior transitions."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass

from behavior_engine.core.enums import BehaviorState


@dataclass(frozen=True, slots=True)
class TransitionEvent:
    """One state change observed at the end of a decision cycle."""

    tick: int
    entity: int
    from_state: BehaviorState
    to_state: BehaviorState
    source: str = ""        # rule label, "fuzzy", "handler" or "death"


class EventLog:
    """Bounded event log.  Writers append; readers snapshot a slice.

    The oldest events fall off once ``capacity`` is reached.  Thread-safe via
    a simple lock: writes happen once per tick batch and reads are copies.
    """

    __slots__ = ("_buffer", "_lock")

    def __init__(self, capacity: int = 1000) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._buffer: deque[TransitionEvent] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def append(self, event: TransitionEvent) -> None:
        with self._lock:
            self._buffer.append(event)

    def append_many(self, events: list[TransitionEvent]) -> None:
        with self._lock:
            self._buffer.extend(events)

    def since_tick(self, tick: int) -> list[TransitionEvent]:
        """Return all events with tick >= *tick*."""
        with self._lock:
            return [e for e in self._buffer if e.tick >= tick]

    def for_entity(self, entity: int) -> list[TransitionEvent]:
        with self._lock:
            return [e for e in self._buffer if e.entity == entity]

    def latest(self, count: int = 50) -> list[TransitionEvent]:
        """Return the *count* most recent events."""
        with self._lock:
            items = list(self._buffer)
        return items[-count:]

    def clear(self) -> None:
        with self._lock:
            self._buffer.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)
