"""
Behavioral-state classification from a FeatureVector.

Each candidate state (focused, fatigued, distracted, receptive) gets an
independent score in [0, 1]: the sum of the weights of its threshold
predicates that fire. The highest score wins; ties go to the earlier state
in STATE_PRIORITY. When nothing fires the result is ``neutral``.

The thresholds are unvalidated heuristics, not a psychometric model.
Predicates are additive, so heavy tab switching does not always win: with
8 blurs in 30 s, three slow and uneven keypresses (slow_typing +
irregular_rhythm = 0.55) outscore frequent_task_switching (0.4) and the
window reads as fatigued. A single keypress carries no typing evidence and
the same window reads as distracted.

A predicate only fires when the metric it reads was actually measured in
the window (e.g. typing predicates need at least two keypresses), so an
empty window does not look like "slow typing" or "sluggish pointer".

Confidence:
    0.6 * data_adequacy + 0.4 * metric_consistency
    data_adequacy = min(interaction_count / 50, 1)
    metric_consistency = max(0, 1 - sqrt(var(normalized metrics)))
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
import structlog

from synapse.core.config import ClassifierConfig
from synapse.domain.models.cognitive_state import CognitiveState, FeatureVector, StateLabel

log = structlog.get_logger(__name__)


class Evidence(str, Enum):
    """What must have been observed for a predicate to be evaluated."""

    TYPING = "typing"  # >= 2 keypresses
    RHYTHM = "rhythm"  # >= 3 keypresses
    POINTER = "pointer"  # >= 2 pointermove samples
    SCROLL = "scroll"  # >= 2 scroll samples
    ACTIVITY = "activity"  # any event in the window


_EVIDENCE_CHECKS: Dict[Evidence, Callable[[FeatureVector], bool]] = {
    Evidence.TYPING: lambda f: f.keypress_count >= 2,
    Evidence.RHYTHM: lambda f: f.keypress_count >= 3,
    Evidence.POINTER: lambda f: f.pointer_sample_count >= 2,
    Evidence.SCROLL: lambda f: f.scroll_sample_count >= 2,
    Evidence.ACTIVITY: lambda f: f.interaction_count > 0,
}


@dataclass(frozen=True)
class StatePredicate:
    """One weighted threshold test contributing to a state's score."""

    state: StateLabel
    indicator: str
    weight: float
    evidence: Evidence
    test: Callable[[FeatureVector], bool]

    def fires(self, features: FeatureVector) -> bool:
        return _EVIDENCE_CHECKS[self.evidence](features) and self.test(features)


STATE_PRIORITY: Tuple[StateLabel, ...] = (
    StateLabel.FOCUSED,
    StateLabel.RECEPTIVE,
    StateLabel.DISTRACTED,
    StateLabel.FATIGUED,
)

PREDICATES: Tuple[StatePredicate, ...] = (
    # Focused
    StatePredicate(StateLabel.FOCUSED, "fast_typing", 0.3, Evidence.TYPING,
                   lambda f: f.typing_speed > 40),
    StatePredicate(StateLabel.FOCUSED, "steady_rhythm", 0.25, Evidence.RHYTHM,
                   lambda f: f.typing_rhythm < 100),
    StatePredicate(StateLabel.FOCUSED, "stable_focus", 0.25, Evidence.ACTIVITY,
                   lambda f: f.focus_stability > 0.8),
    StatePredicate(StateLabel.FOCUSED, "few_task_switches", 0.2, Evidence.ACTIVITY,
                   lambda f: f.task_switching < 3),
    # Fatigued
    StatePredicate(StateLabel.FATIGUED, "slow_typing", 0.3, Evidence.TYPING,
                   lambda f: f.typing_speed < 20),
    StatePredicate(StateLabel.FATIGUED, "irregular_rhythm", 0.25, Evidence.RHYTHM,
                   lambda f: f.typing_rhythm > 200),
    StatePredicate(StateLabel.FATIGUED, "sluggish_pointer", 0.25, Evidence.POINTER,
                   lambda f: f.pointer_velocity < 0.1),
    StatePredicate(StateLabel.FATIGUED, "erratic_scrolling", 0.2, Evidence.SCROLL,
                   lambda f: f.scroll_pattern > 0.1),
    # Distracted
    StatePredicate(StateLabel.DISTRACTED, "frequent_task_switching", 0.4, Evidence.ACTIVITY,
                   lambda f: f.task_switching > 5),
    StatePredicate(StateLabel.DISTRACTED, "unstable_focus", 0.3, Evidence.ACTIVITY,
                   lambda f: f.focus_stability < 0.5),
    StatePredicate(StateLabel.DISTRACTED, "highly_erratic_scrolling", 0.3, Evidence.SCROLL,
                   lambda f: f.scroll_pattern > 0.2),
    # Receptive
    StatePredicate(StateLabel.RECEPTIVE, "moderate_typing", 0.3, Evidence.TYPING,
                   lambda f: 20 < f.typing_speed < 60),
    StatePredicate(StateLabel.RECEPTIVE, "moderate_pointer", 0.3, Evidence.POINTER,
                   lambda f: 0.1 < f.pointer_velocity < 0.5),
    StatePredicate(StateLabel.RECEPTIVE, "fairly_stable_focus", 0.2, Evidence.ACTIVITY,
                   lambda f: f.focus_stability > 0.6),
    StatePredicate(StateLabel.RECEPTIVE, "limited_task_switching", 0.2, Evidence.ACTIVITY,
                   lambda f: f.task_switching < 4),
)


def metric_consistency(features: FeatureVector) -> float:
    """1 - stddev of a small set of normalized metrics, floored at 0."""
    normalized = np.array(
        [
            min(features.typing_speed / 100.0, 1.0),
            min(features.pointer_velocity, 1.0),
            features.focus_stability,
            max(0.0, 1.0 - features.task_switching / 10.0),
        ],
        dtype=float,
    )
    return float(max(0.0, 1.0 - np.sqrt(np.var(normalized))))


class StateClassifier:
    """
    Pure classifier from FeatureVector to CognitiveState.

    Usage:
        classifier = StateClassifier()
        state = classifier.classify(features, timestamp=now_ms)
    """

    def __init__(
        self,
        config: Optional[ClassifierConfig] = None,
        predicates: Tuple[StatePredicate, ...] = PREDICATES,
    ):
        """
        Initialize classifier.

        Args:
            config: Classifier configuration (defaults to ClassifierConfig())
            predicates: Threshold predicate table
        """
        self.config = config or ClassifierConfig()
        self.predicates = predicates

    def score_states(self, features: FeatureVector) -> Tuple[Dict[StateLabel, float], Dict[StateLabel, List[str]]]:
        """
        Score every candidate state.

        Returns:
            (scores, fired indicators) keyed by state, in STATE_PRIORITY order
        """
        scores: Dict[StateLabel, float] = {state: 0.0 for state in STATE_PRIORITY}
        fired: Dict[StateLabel, List[str]] = {state: [] for state in STATE_PRIORITY}

        for predicate in self.predicates:
            if predicate.fires(features):
                scores[predicate.state] += predicate.weight
                fired[predicate.state].append(predicate.indicator)

        scores = {state: round(min(score, 1.0), 6) for state, score in scores.items()}
        return scores, fired

    def confidence(self, features: FeatureVector) -> float:
        """Confidence in [0, 1] from data adequacy and metric consistency."""
        adequacy = min(
            features.interaction_count / self.config.full_confidence_interactions, 1.0
        )
        value = 0.6 * adequacy + 0.4 * metric_consistency(features)
        return float(min(1.0, max(0.0, value)))

    def classify(self, features: FeatureVector, timestamp: float = 0.0) -> CognitiveState:
        """
        Classify a feature vector.

        Args:
            features: Window features from compute_features()
            timestamp: Window end in epoch ms, copied into the result

        Returns:
            CognitiveState; ``neutral`` when no predicate fires
        """
        scores, fired = self.score_states(features)

        best = StateLabel.NEUTRAL
        best_score = 0.0
        for state in STATE_PRIORITY:
            # Strict comparison keeps the earlier state on ties
            if scores[state] > best_score:
                best, best_score = state, scores[state]

        if best == StateLabel.NEUTRAL:
            indicators = (
                ["insufficient_activity"]
                if features.interaction_count == 0
                else ["no_pattern_detected"]
            )
        else:
            indicators = fired[best]

        result = CognitiveState(
            state=best,
            confidence=self.confidence(features),
            indicators=indicators,
            timestamp=max(float(timestamp), 0.0),
            scores={state.value: score for state, score in scores.items()},
        )

        log.debug(
            "state_classified",
            state=result.state.value,
            confidence=round(result.confidence, 3),
            interaction_count=features.interaction_count,
            scores=result.scores,
        )

        return result


_default_classifier = StateClassifier()


def classify(features: FeatureVector, timestamp: float = 0.0) -> CognitiveState:
    """Classify with the default predicate table and configuration."""
    return _default_classifier.classify(features, timestamp)
