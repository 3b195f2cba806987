"""
Bounded, append-only store of recent interaction events.

Ingestion is O(1) amortized and does no analysis: feature extraction and
classification run only on the caller's periodic cycle. Oldest events are
evicted FIFO once capacity is exceeded.
"""

import time
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from synapse.domain.models.interaction import EventType, InteractionEvent

log = structlog.get_logger(__name__)


def wall_clock_ms() -> float:
    """Current wall-clock time in epoch milliseconds."""
    return time.time() * 1000.0


class InteractionRecorder:
    """
    Recent interaction events for one session.

    Usage:
        recorder = InteractionRecorder(capacity=1000)
        recorder.ingest("keypress", {"key": "a"})
        window = recorder.query(30_000)
    """

    def __init__(
        self,
        capacity: int = 1000,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize recorder.

        Args:
            capacity: Maximum number of retained events
            clock: Millisecond clock; defaults to wall clock. Injected in tests.
        """
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self.clock = clock or wall_clock_ms
        self._events: Deque[InteractionEvent] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._events)

    def append(self, event: InteractionEvent) -> None:
        """Append an event, evicting the oldest once capacity is exceeded."""
        self._events.append(event)

    def ingest(
        self,
        event_type: str,
        payload: Optional[Dict[str, Any]] = None,
        timestamp: Optional[float] = None,
    ) -> Optional[InteractionEvent]:
        """
        Build an event from raw adapter input and append it.

        Unknown event types or invalid timestamps are logged and dropped so a
        misbehaving adapter never breaks ingestion.

        Args:
            event_type: One of EventType values (e.g. "keypress")
            payload: Event-specific data
            timestamp: Epoch milliseconds; defaults to the recorder clock

        Returns:
            The recorded event, or None if it was dropped
        """
        try:
            event = InteractionEvent(
                type=EventType(event_type),
                timestamp=self.clock() if timestamp is None else timestamp,
                payload=payload or {},
            )
        except (ValueError, PydanticValidationError) as e:
            log.warning(
                "interaction_event_dropped",
                event_type=str(event_type),
                error=str(e),
            )
            return None

        self.append(event)
        return event

    def query(self, window_ms: float, now: Optional[float] = None) -> List[InteractionEvent]:
        """
        Return events with ``now - timestamp <= window_ms`` in insertion order.

        Args:
            window_ms: Trailing window length in milliseconds
            now: Window end in epoch ms; defaults to the recorder clock

        Returns:
            List of events inside the window
        """
        end = self.clock() if now is None else now
        return [e for e in self._events if end - e.timestamp <= window_ms]

    def clear(self) -> None:
        """Drop all retained events."""
        self._events.clear()
