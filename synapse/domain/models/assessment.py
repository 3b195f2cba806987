"""Cognitive-game assessment models.

The subscales are 0-100 heuristics carried over from the game scoring
rules; they are not a validated psychometric instrument.
"""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class GameType(str, Enum):
    """Supported cognitive games."""

    STROOP = "stroop-test"
    N_BACK = "n-back"
    ATTENTION_NETWORK = "attention-network"
    COGNITIVE_BATTERY = "cognitive-battery"


class AssessmentBand(str, Enum):
    """Overall-score band."""

    HIGHLY_FOCUSED = "highly-focused"
    FOCUSED = "focused"
    MODERATE_FOCUS = "moderate-focus"
    LOW_FOCUS = "low-focus"
    FATIGUED = "fatigued"


class AssessmentResult(BaseModel):
    """Scored outcome of one game session."""

    game_type: GameType
    state: AssessmentBand
    focus_level: float = Field(ge=0.0, le=100.0)
    attention_span: float = Field(ge=0.0, le=100.0)
    processing_speed: float = Field(ge=0.0, le=100.0)
    memory_performance: float = Field(ge=0.0, le=100.0)
    decision_making: float = Field(ge=0.0, le=100.0)
    overall_score: float = Field(ge=0.0, le=100.0)
    recommendations: List[str] = Field(default_factory=list)
