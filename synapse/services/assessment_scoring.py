"""
Cognitive-game assessment scoring.

Maps raw game results to five 0-100 subscales (focus, attention span,
processing speed, memory, decision making), an overall score, a banded
state and study recommendations.

The response-time and variability breakpoints are heuristics inherited
from the games' own scoring rules. They are not calibrated against
any psychometric norm.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import structlog
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from synapse.core.exceptions import ValidationError
from synapse.domain.models.assessment import AssessmentBand, AssessmentResult, GameType

log = structlog.get_logger(__name__)

# Subscale below which a targeted recommendation is added
WEAK_SUBSCALE = 40


# ============================================================================
# Game result payloads
# ============================================================================


class _GameResults(BaseModel):
    # Games post camelCase keys; snake_case is accepted too
    model_config = ConfigDict(populate_by_name=True, extra="ignore", allow_inf_nan=False)


class StroopResults(_GameResults):
    correct_answers: float = Field(ge=0, alias="correctAnswers")
    total_questions: float = Field(ge=0, alias="totalQuestions")
    avg_response_time: float = Field(ge=0, alias="avgResponseTime")
    response_variability: float = Field(default=0.0, ge=0, alias="responseVariability")
    interference_effect: Optional[float] = Field(default=None, alias="interferenceEffect")

    @model_validator(mode="before")
    @classmethod
    def lift_interference(cls, data: Any) -> Any:
        """Accept interferenceEffect nested under colorCongruency."""
        if isinstance(data, dict) and isinstance(data.get("colorCongruency"), dict):
            data = dict(data)
            data.setdefault("interferenceEffect", data["colorCongruency"].get("interferenceEffect"))
        return data


class NBackResults(_GameResults):
    n_level: float = Field(ge=0, alias="nLevel")
    accuracy: float = Field(ge=0)
    avg_reaction_time: float = Field(ge=0, alias="avgReactionTime")


class AttentionNetworkResults(_GameResults):
    alerting: float
    orienting: float
    executive_attention: float = Field(alias="executiveAttention")
    overall_accuracy: float = Field(alias="overallAccuracy")
    avg_response_time: Optional[float] = Field(default=None, ge=0, alias="avgResponseTime")


class CognitiveBatteryResults(_GameResults):
    focus_score: float = Field(default=0.0, alias="focusScore")
    attention_score: float = Field(default=0.0, alias="attentionScore")
    speed_score: float = Field(default=0.0, alias="speedScore")
    memory_score: float = Field(default=0.0, alias="memoryScore")
    decision_score: float = Field(default=0.0, alias="decisionScore")


# (focus, attention, speed, memory, decision)
Subscales = Tuple[float, float, float, float, float]


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


# ============================================================================
# Per-game scoring
# ============================================================================


def _score_stroop(r: StroopResults) -> Subscales:
    accuracy = (
        _clamp(r.correct_answers / r.total_questions * 100) if r.total_questions > 0 else 0.0
    )

    rt = r.avg_response_time
    if rt < 1000:
        speed = 100.0
    elif rt < 2000:
        speed = max(60.0, 100 - (rt - 1000) / 1000 * 40)
    elif rt < 3000:
        speed = max(20.0, 60 - (rt - 2000) / 1000 * 40)
    else:
        speed = max(0.0, 20 - (rt - 3000) / 1000 * 20)

    focus = accuracy
    if r.interference_effect:
        if r.interference_effect < 100:
            focus = min(100.0, focus + 10)
        elif r.interference_effect > 300:
            focus = max(0.0, focus - 5)

    var = r.response_variability
    if var < 300:
        attention = min(100.0, 90 + (300 - var) / 30)
    elif var < 600:
        attention = max(60.0, 90 - (var - 300) / 300 * 30)
    elif var < 1000:
        attention = max(30.0, 60 - (var - 600) / 400 * 30)
    else:
        attention = max(10.0, 30 - (var - 1000) / 1000 * 20)

    memory = (focus + attention) / 2
    decision = accuracy * 0.8 + speed * 0.2
    return focus, attention, speed, memory, decision


def _score_n_back(r: NBackResults) -> Subscales:
    memory = min(100.0, r.accuracy * (1 + r.n_level * 0.1))
    focus = min(100.0, r.accuracy)

    rt = r.avg_reaction_time
    if rt < 800:
        speed = 100.0
    elif rt < 1500:
        speed = max(60.0, 100 - (rt - 800) / 700 * 40)
    elif rt < 2000:
        speed = max(30.0, 60 - (rt - 1500) / 500 * 30)
    else:
        speed = max(0.0, 30 - (rt - 2000) / 1000 * 30)

    attention = min(100.0, memory * 0.9)
    return focus, attention, speed, memory, memory


def _score_attention_network(r: AttentionNetworkResults) -> Subscales:
    focus = min(100.0, r.overall_accuracy)
    executive = _clamp(r.executive_attention)
    attention = (_clamp(r.alerting) + _clamp(r.orienting) + executive) / 3

    rt = r.avg_response_time
    if not rt:
        speed = (focus + attention) / 2
    elif rt < 600:
        speed = 100.0
    elif rt < 1200:
        speed = max(60.0, 100 - (rt - 600) / 600 * 40)
    else:
        speed = max(20.0, 60 - (rt - 1200) / 800 * 40)

    decision = executive * 0.7 + focus * 0.3
    return focus, attention, speed, attention, decision


def _score_battery(r: CognitiveBatteryResults) -> Subscales:
    return r.focus_score, r.attention_score, r.speed_score, r.memory_score, r.decision_score


_SCORERS: Dict[GameType, Tuple[type, Callable[[Any], Subscales]]] = {
    GameType.STROOP: (StroopResults, _score_stroop),
    GameType.N_BACK: (NBackResults, _score_n_back),
    GameType.ATTENTION_NETWORK: (AttentionNetworkResults, _score_attention_network),
    GameType.COGNITIVE_BATTERY: (CognitiveBatteryResults, _score_battery),
}


# ============================================================================
# Bands and recommendations
# ============================================================================

BAND_RECOMMENDATIONS: Dict[AssessmentBand, List[str]] = {
    AssessmentBand.HIGHLY_FOCUSED: [
        "Perfect time for challenging tasks and complex learning",
        "Tackle your most difficult subjects",
        "Consider extending your study session",
        "Try advanced problem-solving exercises",
    ],
    AssessmentBand.FOCUSED: [
        "Good time for regular study activities",
        "Focus on active learning techniques",
        "Take notes and practice problems",
        "Continue with planned learning goals",
    ],
    AssessmentBand.MODERATE_FOCUS: [
        "Consider lighter learning activities",
        "Review previously learned material",
        "Use visual aids and interactive content",
        "Take more frequent breaks",
    ],
    AssessmentBand.LOW_FOCUS: [
        "Take a short break before continuing",
        "Try relaxation or mindfulness exercises",
        "Switch to easier review activities",
        "Consider physical exercise to boost alertness",
    ],
    AssessmentBand.FATIGUED: [
        "Take a longer break (15-30 minutes)",
        "Get some fresh air or light exercise",
        "Stay hydrated and have a healthy snack",
        "Consider ending the study session if fatigue persists",
    ],
}


def assessment_band(overall_score: float) -> AssessmentBand:
    """Band an overall 0-100 score."""
    if overall_score >= 80:
        return AssessmentBand.HIGHLY_FOCUSED
    if overall_score >= 60:
        return AssessmentBand.FOCUSED
    if overall_score >= 40:
        return AssessmentBand.MODERATE_FOCUS
    if overall_score >= 20:
        return AssessmentBand.LOW_FOCUS
    return AssessmentBand.FATIGUED


def score_assessment(game_type: str, results: Mapping[str, Any]) -> AssessmentResult:
    """
    Score one game session.

    Args:
        game_type: GameType value, e.g. "stroop-test"
        results: Raw game results (camelCase or snake_case keys)

    Returns:
        AssessmentResult with clamped subscales, band and recommendations

    Raises:
        ValidationError: Unknown game type or malformed results
    """
    try:
        game = GameType(game_type)
    except ValueError:
        raise ValidationError(f"Unknown game type: {game_type!r}") from None

    model_cls, scorer = _SCORERS[game]
    try:
        parsed = model_cls.model_validate(dict(results or {}))
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid {game.value} results: {e}") from e

    focus, attention, speed, memory, decision = (_clamp(v) for v in scorer(parsed))
    overall = (focus + attention + speed + memory + decision) / 5
    band = assessment_band(overall)

    recommendations = list(BAND_RECOMMENDATIONS[band])
    if speed < WEAK_SUBSCALE:
        recommendations.append("Slow down and focus on accuracy over speed")
    if memory < WEAK_SUBSCALE:
        recommendations.append("Use spaced repetition and memory techniques")
    if attention < WEAK_SUBSCALE:
        recommendations.append("Use the Pomodoro technique with shorter intervals")
    if focus < WEAK_SUBSCALE:
        recommendations.append("Eliminate distractions and find a quieter environment")

    log.debug(
        "assessment_scored",
        game_type=game.value,
        overall_score=round(overall, 2),
        band=band.value,
    )

    return AssessmentResult(
        game_type=game,
        state=band,
        focus_level=focus,
        attention_span=attention,
        processing_speed=speed,
        memory_performance=memory,
        decision_making=decision,
        overall_score=overall,
        recommendations=recommendations,
    )
