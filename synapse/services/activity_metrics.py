"""Coarse activity-level and focus-score heuristics.

Page-level summaries used by adapters for at-a-glance indicators. They
work on aggregate counts rather than event windows and are independent of
the state classifier.
"""

ACTIVITY_LEVELS = ("idle", "low", "medium", "high")


def calculate_activity_level(
    pointer_moves: int, keystrokes: int, scroll_events: int, time_spent_ms: float
) -> str:
    """
    Bucket interaction rate into idle / low / medium / high.

    Rate = pointer/s + 2 * keystrokes/s + scrolls/s.

    Args:
        pointer_moves: Pointer-move count
        keystrokes: Keystroke count
        scroll_events: Scroll count
        time_spent_ms: Observation span in milliseconds

    Returns:
        Activity level name; "idle" for a non-positive span
    """
    seconds = time_spent_ms / 1000.0
    if seconds <= 0:
        return "idle"

    total_activity = (pointer_moves + keystrokes * 2 + scroll_events) / seconds

    if total_activity < 0.5:
        return "idle"
    if total_activity < 2:
        return "low"
    if total_activity < 5:
        return "medium"
    return "high"


def calculate_focus_score(activity_level: str, time_on_page_ms: float, tab_switches: int) -> int:
    """
    0-100 focus score from activity level, dwell time and tab switching.

    Starts at 50; activity adds +30 / +15 / -10 / -30 for high / medium /
    low / idle; dwell adds +20 past 10 min, +10 past 5 min, -20 under 1 min;
    tab switches subtract 25 above 10, 15 above 5, and add 10 at 2 or fewer.
    """
    score = 50
    score += {"high": 30, "medium": 15, "low": -10, "idle": -30}.get(activity_level, 0)

    minutes = time_on_page_ms / 60000.0
    if minutes > 10:
        score += 20
    elif minutes > 5:
        score += 10
    elif minutes < 1:
        score -= 20

    if tab_switches > 10:
        score -= 25
    elif tab_switches > 5:
        score -= 15
    elif tab_switches <= 2:
        score += 10

    return max(0, min(100, score))
