"""Behavioral-state domain models.

Core Models:
    - FeatureVector: numeric summary of one interaction window (derived, never persisted)
    - CognitiveState: discrete state label with confidence and fired indicators

Contract:
    CognitiveState serializes to {state, confidence, indicators, timestamp}
    (plus per-candidate ``scores``) and is deterministic for an identical
    event window and timestamp.
"""

from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field


class StateLabel(str, Enum):
    """Inferred attentional state."""

    FOCUSED = "focused"
    RECEPTIVE = "receptive"
    DISTRACTED = "distracted"
    FATIGUED = "fatigued"
    NEUTRAL = "neutral"


class FeatureVector(BaseModel):
    """Numeric features for one trailing window of interaction events.

    Metric fields are finite and non-negative. The evidence counts record
    how much raw data backed each metric so the classifier can tell
    "measured as zero" apart from "not measured".
    """

    typing_speed: float = Field(default=0.0, ge=0.0, description="Keypresses per minute")
    typing_rhythm: float = Field(
        default=0.0, ge=0.0, description="Stddev of inter-keystroke interval (ms)"
    )
    pointer_velocity: float = Field(default=0.0, ge=0.0, description="Mean px per ms")
    scroll_pattern: float = Field(
        default=0.0, ge=0.0, description="Direction reversals per scrolled px"
    )
    focus_stability: float = Field(default=1.0, ge=0.0, le=1.0)
    task_switching: int = Field(default=0, ge=0, description="Blur events in window")

    # Evidence
    interaction_count: int = Field(default=0, ge=0)
    keypress_count: int = Field(default=0, ge=0)
    pointer_sample_count: int = Field(default=0, ge=0)
    scroll_sample_count: int = Field(default=0, ge=0)
    window_ms: float = Field(default=0.0, ge=0.0)


class CognitiveState(BaseModel):
    """Classifier output for one detection cycle."""

    state: StateLabel
    confidence: float = Field(ge=0.0, le=1.0)
    indicators: List[str] = Field(default_factory=list)
    timestamp: float = Field(ge=0.0, description="Epoch milliseconds of the window end")
    scores: Dict[str, float] = Field(default_factory=dict)

    def to_contract(self) -> dict:
        """Return the public output contract {state, confidence, indicators, timestamp}."""
        return {
            "state": self.state.value,
            "confidence": self.confidence,
            "indicators": list(self.indicators),
            "timestamp": self.timestamp,
        }
