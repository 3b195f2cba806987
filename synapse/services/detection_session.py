"""
Per-session behavioral-state detection.

A CognitiveSession owns one InteractionRecorder and a rolling history of
classified states for a single user/browsing context. It has no timer:
the caller drives the sense -> classify -> emit cycle by calling tick()
on its own interval (typically every 2-5 s).

Event delivery is decoupled from any UI toolkit. An InteractionSource (a
browser-extension bridge, an OS hook, or LocalInteractionSource in tests)
calls the session's listener with raw (event_type, payload, timestamp).
start()/stop() are idempotent: restarting never duplicates a subscription.
"""

from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Protocol

import structlog

from synapse.core.config import DetectionConfig, detection_config
from synapse.domain.models.cognitive_state import CognitiveState, FeatureVector
from synapse.services.feature_extractor import compute_features
from synapse.services.interaction_recorder import InteractionRecorder
from synapse.services.state_classifier import StateClassifier

log = structlog.get_logger(__name__)

RawEventListener = Callable[[str, Dict[str, Any], Optional[float]], None]
StateListener = Callable[[CognitiveState], None]
Unsubscribe = Callable[[], None]


class InteractionSource(Protocol):
    """Anything that can push raw interaction events to a listener."""

    def subscribe(self, listener: RawEventListener) -> Unsubscribe:
        """Register listener; the returned callable deregisters it."""
        ...


class LocalInteractionSource:
    """
    In-process fan-out source.

    Adapters that receive events over their own transport call publish();
    every subscribed session receives the event.
    """

    def __init__(self) -> None:
        self._listeners: List[RawEventListener] = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: RawEventListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(
        self,
        event_type: str,
        payload: Optional[Dict[str, Any]] = None,
        timestamp: Optional[float] = None,
    ) -> None:
        for listener in list(self._listeners):
            listener(event_type, payload or {}, timestamp)


class CognitiveSession:
    """
    Detection state for one session (one user, one browsing context).

    Usage:
        session = CognitiveSession("tab-1")
        session.start(source)
        ...
        state = session.tick()   # on the caller's interval
        session.stop()
    """

    def __init__(
        self,
        session_id: str,
        config: Optional[DetectionConfig] = None,
        clock: Optional[Callable[[], float]] = None,
        classifier: Optional[StateClassifier] = None,
    ):
        """
        Initialize session.

        Args:
            session_id: Opaque session identifier (used in logs)
            config: Detection configuration (defaults to the global config)
            clock: Millisecond clock shared with the recorder
            classifier: State classifier (defaults to one built from config)
        """
        self.session_id = session_id
        self.config = config or detection_config
        self.recorder = InteractionRecorder(
            capacity=self.config.recorder.capacity, clock=clock
        )
        self.classifier = classifier or StateClassifier(self.config.classifier)
        self._history: Deque[CognitiveState] = deque(
            maxlen=self.config.classifier.history_size
        )
        self._state_listeners: List[StateListener] = []
        self._unsubscribe: Optional[Unsubscribe] = None

    # ==================== LIFECYCLE ====================

    @property
    def is_running(self) -> bool:
        return self._unsubscribe is not None

    def start(self, source: InteractionSource) -> None:
        """Subscribe to source. A second start() while running is a no-op."""
        if self._unsubscribe is not None:
            log.debug("detection_already_started", session_id=self.session_id)
            return
        self._unsubscribe = source.subscribe(self._on_raw_event)
        log.info("detection_started", session_id=self.session_id)

    def stop(self) -> None:
        """Deregister from the source. Safe to call repeatedly."""
        if self._unsubscribe is None:
            return
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        unsubscribe()
        log.info("detection_stopped", session_id=self.session_id)

    def _on_raw_event(
        self, event_type: str, payload: Dict[str, Any], timestamp: Optional[float]
    ) -> None:
        self.recorder.ingest(event_type, payload, timestamp)

    def ingest(
        self,
        event_type: str,
        payload: Optional[Dict[str, Any]] = None,
        timestamp: Optional[float] = None,
    ) -> None:
        """Record one raw event directly (no source subscription needed)."""
        self.recorder.ingest(event_type, payload, timestamp)

    # ==================== STATE LISTENERS ====================

    def on_state(self, listener: StateListener) -> Unsubscribe:
        """Register a listener for classified states (registered at most once)."""
        if listener not in self._state_listeners:
            self._state_listeners.append(listener)

        def remove() -> None:
            if listener in self._state_listeners:
                self._state_listeners.remove(listener)

        return remove

    # ==================== CYCLE ====================

    def features(self, now: Optional[float] = None) -> FeatureVector:
        """Features for the trailing window ending at now."""
        end = self.recorder.clock() if now is None else now
        window_ms = self.config.recorder.window_ms
        return compute_features(self.recorder.query(window_ms, now=end), window_ms)

    def tick(self, now: Optional[float] = None) -> CognitiveState:
        """
        Run one sense -> classify -> emit cycle.

        Args:
            now: Window end in epoch ms (defaults to the session clock)

        Returns:
            The classified CognitiveState (also appended to history)
        """
        end = self.recorder.clock() if now is None else now
        state = self.classifier.classify(self.features(end), timestamp=end)
        self._history.append(state)

        for listener in list(self._state_listeners):
            try:
                listener(state)
            except Exception:
                log.exception(
                    "state_listener_failed",
                    session_id=self.session_id,
                    state=state.state.value,
                )

        return state

    @property
    def latest(self) -> Optional[CognitiveState]:
        return self._history[-1] if self._history else None

    @property
    def history(self) -> List[CognitiveState]:
        return list(self._history)
