"""Tests for interaction event models."""

import math

import pytest
from pydantic import ValidationError

from synapse.domain.models.interaction import EventType, InteractionEvent


class TestInteractionEvent:
    """Tests for InteractionEvent construction and payload access."""

    def test_event_is_immutable(self):
        event = InteractionEvent(type=EventType.KEYPRESS, timestamp=10.0)

        with pytest.raises(ValidationError):
            event.timestamp = 20.0

    def test_payload_detached_from_caller(self):
        """Mutating the caller's dict after creation does not change the event."""
        payload = {"x": 1}
        event = InteractionEvent(type=EventType.POINTERMOVE, timestamp=0.0, payload=payload)

        payload["x"] = 999

        assert event.number("x") == 1.0

    def test_non_dict_payload_becomes_empty(self):
        event = InteractionEvent(type=EventType.CLICK, timestamp=0.0, payload="garbage")

        assert event.payload == {}

    @pytest.mark.parametrize("timestamp", [-1.0, math.inf, math.nan])
    def test_invalid_timestamp_rejected(self, timestamp):
        with pytest.raises(ValidationError):
            InteractionEvent(type=EventType.BLUR, timestamp=timestamp)

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            InteractionEvent(type="swipe", timestamp=0.0)


class TestPayloadNumbers:
    """Tests for number() / has_number()."""

    def test_first_numeric_key_wins(self):
        event = InteractionEvent(
            type=EventType.SCROLL, timestamp=0.0, payload={"scrollY": 40, "scroll_y": 10}
        )

        assert event.number("scroll_y", "scrollY") == 10.0

    def test_falls_back_to_alias(self):
        event = InteractionEvent(type=EventType.SCROLL, timestamp=0.0, payload={"scrollY": 40})

        assert event.number("scroll_y", "scrollY") == 40.0

    @pytest.mark.parametrize("value", [None, "12", True, math.nan, math.inf])
    def test_non_numeric_values_default_to_zero(self, value):
        event = InteractionEvent(type=EventType.POINTERMOVE, timestamp=0.0, payload={"x": value})

        assert event.number("x") == 0.0
        assert not event.has_number("x")

    def test_missing_key(self):
        event = InteractionEvent(type=EventType.POINTERMOVE, timestamp=0.0)

        assert event.number("x") == 0.0
        assert not event.has_number("x")
