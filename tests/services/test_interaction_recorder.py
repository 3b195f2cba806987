"""Tests for InteractionRecorder."""

import pytest

from synapse.domain.models.interaction import EventType
from synapse.services.interaction_recorder import InteractionRecorder


class TestAppendAndEviction:
    """Tests for bounded FIFO retention."""

    def test_evicts_oldest_beyond_capacity(self, make_event, t0):
        recorder = InteractionRecorder(capacity=3)
        for i in range(5):
            recorder.append(make_event("keypress", t0 + i))

        remaining = recorder.query(window_ms=1e9, now=t0 + 10)

        assert len(recorder) == 3
        assert [e.timestamp for e in remaining] == [t0 + 2, t0 + 3, t0 + 4]

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            InteractionRecorder(capacity=0)

    def test_clear(self, make_event, t0):
        recorder = InteractionRecorder()
        recorder.append(make_event("click", t0))

        recorder.clear()

        assert len(recorder) == 0


class TestQuery:
    """Tests for trailing-window queries."""

    def test_excludes_events_older_than_window(self, make_event, t0):
        """Events older than the window are not returned."""
        recorder = InteractionRecorder()
        recorder.append(make_event("keypress", t0))
        recorder.append(make_event("keypress", t0 + 20_000))
        recorder.append(make_event("keypress", t0 + 40_000))

        window = recorder.query(window_ms=30_000, now=t0 + 40_000)

        assert [e.timestamp for e in window] == [t0 + 20_000, t0 + 40_000]

    def test_window_boundary_is_inclusive(self, make_event, t0):
        recorder = InteractionRecorder()
        recorder.append(make_event("blur", t0))

        assert len(recorder.query(window_ms=1000, now=t0 + 1000)) == 1
        assert len(recorder.query(window_ms=1000, now=t0 + 1000.5)) == 0

    def test_preserves_insertion_order(self, make_event, t0):
        recorder = InteractionRecorder()
        recorder.append(make_event("keypress", t0 + 5))
        recorder.append(make_event("click", t0 + 1))

        types = [e.type for e in recorder.query(window_ms=100, now=t0 + 10)]

        assert types == [EventType.KEYPRESS, EventType.CLICK]

    def test_defaults_to_recorder_clock(self, clock, make_event):
        recorder = InteractionRecorder(clock=clock)
        recorder.append(make_event("keypress", clock.now - 5_000))
        clock.advance(30_000)

        assert recorder.query(window_ms=30_000) == []


class TestIngest:
    """Tests for raw adapter ingestion."""

    def test_ingest_uses_clock_when_timestamp_missing(self, clock):
        recorder = InteractionRecorder(clock=clock)

        event = recorder.ingest("pointermove", {"x": 1, "y": 2})

        assert event is not None
        assert event.timestamp == clock.now
        assert len(recorder) == 1

    def test_unknown_event_type_dropped(self, clock):
        recorder = InteractionRecorder(clock=clock)

        assert recorder.ingest("swipe") is None
        assert len(recorder) == 0

    def test_invalid_timestamp_dropped(self, clock):
        recorder = InteractionRecorder(clock=clock)

        assert recorder.ingest("keypress", timestamp=float("nan")) is None
        assert recorder.ingest("keypress", timestamp=-5) is None
        assert len(recorder) == 0

    def test_none_payload_becomes_empty(self, clock):
        recorder = InteractionRecorder(clock=clock)

        event = recorder.ingest("blur", None)

        assert event.payload == {}
