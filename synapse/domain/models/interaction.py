"""Interaction telemetry domain models.

Raw interaction events are forwarded by a thin adapter (browser extension,
desktop hook) and retained only inside the InteractionRecorder's bounded
window. Events are immutable once created.

Payload conventions (all keys optional, missing values default to 0):
    - keypress: {"key": str}
    - pointermove: {"x": float, "y": float}
    - scroll: {"scroll_y": float} (``scrollY`` accepted as an alias)
    - click / focus / blur: {}
"""

import math
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EventType(str, Enum):
    """Kinds of interaction telemetry."""

    KEYPRESS = "keypress"
    POINTERMOVE = "pointermove"
    SCROLL = "scroll"
    CLICK = "click"
    FOCUS = "focus"
    BLUR = "blur"


def _finite_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


class InteractionEvent(BaseModel):
    """A single interaction sample.

    Timestamps are epoch milliseconds, matching what browser adapters
    produce (``Date.now()``).
    """

    model_config = ConfigDict(frozen=True)

    type: EventType
    timestamp: float = Field(ge=0.0, allow_inf_nan=False, description="Epoch milliseconds")
    payload: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("payload", mode="before")
    @classmethod
    def _copy_payload(cls, v: Any) -> Dict[str, Any]:
        """Detach the payload from the caller's dict; non-dicts become empty."""
        if isinstance(v, dict):
            return dict(v)
        return {}

    def number(self, *keys: str) -> float:
        """Return the first finite numeric payload value among keys, else 0.0."""
        for key in keys:
            value = _finite_number(self.payload.get(key))
            if value is not None:
                return value
        return 0.0

    def has_number(self, *keys: str) -> bool:
        """True if any of the keys holds a finite numeric payload value."""
        return any(_finite_number(self.payload.get(key)) is not None for key in keys)
