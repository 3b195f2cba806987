"""
Feature extraction for behavioral-state inference.

Turns one trailing window of interaction events into a FeatureVector. Pure
function of its input: no clock reads, no state, no I/O.

Metrics:
- typing_speed: keypresses / elapsed ms * 60000 (0 if < 2 keypresses)
- typing_rhythm: stddev of consecutive keypress deltas (0 if < 3 keypresses)
- pointer_velocity: mean px/ms between consecutive pointermove samples
- scroll_pattern: direction reversals / max(total scrolled px, 1)
- focus_stability: clamp(1 - blurs / window_seconds, 0, 1)
- task_switching: blur count

Degenerate input (no events, identical timestamps, missing coordinates)
yields zeros, never NaN or Infinity.
"""

from typing import Iterable, List, Sequence

import numpy as np

from synapse.domain.models.cognitive_state import FeatureVector
from synapse.domain.models.interaction import EventType, InteractionEvent

SCROLL_KEYS = ("scroll_y", "scrollY")


def _finite(value: float) -> float:
    value = float(value)
    if not np.isfinite(value) or value < 0.0:
        return 0.0
    return value


def _of_type(events: Sequence[InteractionEvent], event_type: EventType) -> List[InteractionEvent]:
    # Stable sort keeps insertion order for equal timestamps
    return sorted(
        (e for e in events if e.type == event_type), key=lambda e: e.timestamp
    )


def typing_speed(keypresses: Sequence[InteractionEvent]) -> float:
    """Keypresses per minute across the span of the keypresses."""
    if len(keypresses) < 2:
        return 0.0
    elapsed = keypresses[-1].timestamp - keypresses[0].timestamp
    if elapsed <= 0:
        return 0.0
    return _finite(len(keypresses) / elapsed * 60000.0)


def typing_rhythm(keypresses: Sequence[InteractionEvent]) -> float:
    """Standard deviation of inter-keystroke intervals; lower is steadier."""
    if len(keypresses) < 3:
        return 0.0
    intervals = np.diff(np.array([k.timestamp for k in keypresses], dtype=float))
    return _finite(np.std(intervals))


def pointer_velocity(moves: Sequence[InteractionEvent]) -> float:
    """Mean of per-pair pixel distance / elapsed ms.

    Pairs with a missing coordinate or non-positive dt contribute 0.
    """
    if len(moves) < 2:
        return 0.0

    velocities = []
    for prev, curr in zip(moves, moves[1:]):
        dt = curr.timestamp - prev.timestamp
        complete = all(
            e.has_number("x") and e.has_number("y") for e in (prev, curr)
        )
        if dt <= 0 or not complete:
            velocities.append(0.0)
            continue
        distance = np.hypot(
            curr.number("x") - prev.number("x"), curr.number("y") - prev.number("y")
        )
        velocities.append(distance / dt)

    return _finite(np.mean(velocities))


def scroll_pattern(scrolls: Sequence[InteractionEvent]) -> float:
    """Scroll-direction reversals normalized by total scrolled distance.

    Samples without a scroll position are skipped.
    """
    positioned = [s for s in scrolls if s.has_number(*SCROLL_KEYS)]
    if len(positioned) < 2:
        return 0.0

    positions = np.array([s.number(*SCROLL_KEYS) for s in positioned], dtype=float)
    deltas = np.diff(positions)
    total_distance = float(np.sum(np.abs(deltas)))
    reversals = int(np.sum(deltas[1:] * deltas[:-1] < 0)) if len(deltas) > 1 else 0

    return _finite(reversals / max(total_distance, 1.0))


def focus_stability(blur_count: int, window_ms: float) -> float:
    """1 - blurs per second of window, clamped to [0, 1]."""
    window_seconds = window_ms / 1000.0
    if window_seconds <= 0:
        return 0.0 if blur_count else 1.0
    return float(min(1.0, max(0.0, 1.0 - blur_count / window_seconds)))


def compute_features(events: Iterable[InteractionEvent], window_ms: float) -> FeatureVector:
    """
    Compute the feature vector for one window of events.

    Args:
        events: Events inside the window (e.g. InteractionRecorder.query output)
        window_ms: Length of the window the events were drawn from

    Returns:
        FeatureVector with finite, non-negative metrics and evidence counts
    """
    events = list(events)
    keypresses = _of_type(events, EventType.KEYPRESS)
    moves = _of_type(events, EventType.POINTERMOVE)
    scrolls = _of_type(events, EventType.SCROLL)
    blur_count = sum(1 for e in events if e.type == EventType.BLUR)
    window_ms = _finite(window_ms)

    return FeatureVector(
        typing_speed=typing_speed(keypresses),
        typing_rhythm=typing_rhythm(keypresses),
        pointer_velocity=pointer_velocity(moves),
        scroll_pattern=scroll_pattern(scrolls),
        focus_stability=focus_stability(blur_count, window_ms),
        task_switching=blur_count,
        interaction_count=len(events),
        keypress_count=len(keypresses),
        pointer_sample_count=len(moves),
        scroll_sample_count=len(scrolls),
        window_ms=window_ms,
    )
