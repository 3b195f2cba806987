"""
Behavioral detection adapter.

Keeps one CognitiveSession per (user, browsing context), forwards raw
events into it, and records each evaluated state in the background.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

from synapse.core.config import DetectionConfig, detection_config
from synapse.domain.models.cognitive_state import CognitiveState
from synapse.services.background import BackgroundWriter
from synapse.services.detection_session import CognitiveSession
from synapse.services.protocols import InteractionStore

log = structlog.get_logger(__name__)

DEFAULT_CONTEXT = "default"


class DetectionService:
    """
    Session registry for behavioral-state detection.

    Usage:
        service = DetectionService(store=InteractionRepository(db))
        service.ingest("u1", "keypress", {"key": "a"})
        state = await service.evaluate("u1")
    """

    def __init__(
        self,
        store: Optional[InteractionStore] = None,
        config: Optional[DetectionConfig] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize service.

        Args:
            store: State storage; None disables recording
            config: Detection configuration for new sessions
            clock: Millisecond clock for new sessions
        """
        self.store = store
        self.config = config or detection_config
        self.clock = clock
        self.writer = BackgroundWriter()
        self._sessions: Dict[Tuple[str, str], CognitiveSession] = {}

    def session(self, user_id: str, context_id: str = DEFAULT_CONTEXT) -> CognitiveSession:
        """Get or create the session for (user_id, context_id)."""
        key = (user_id, context_id)
        session = self._sessions.get(key)
        if session is None:
            session = CognitiveSession(
                f"{user_id}:{context_id}", config=self.config, clock=self.clock
            )
            self._sessions[key] = session
            log.debug("detection_session_created", user_id=user_id, context_id=context_id)
        return session

    def ingest(
        self,
        user_id: str,
        event_type: str,
        payload: Optional[Dict[str, Any]] = None,
        timestamp: Optional[float] = None,
        context_id: str = DEFAULT_CONTEXT,
    ) -> None:
        """Forward one raw event to the session's recorder."""
        self.session(user_id, context_id).ingest(event_type, payload, timestamp)

    async def evaluate(
        self,
        user_id: str,
        context_id: str = DEFAULT_CONTEXT,
        now: Optional[float] = None,
    ) -> CognitiveState:
        """
        Classify the current window and record the state in the background.

        Returns:
            The classified state (independent of whether recording succeeds)
        """
        state = self.session(user_id, context_id).tick(now)

        if self.store is not None:
            self.writer.schedule(
                self.store.create_interaction_record(user_id, state, context_id),
                "state_persist",
                user_id=user_id,
                context_id=context_id,
            )

        return state

    def history(self, user_id: str, context_id: str = DEFAULT_CONTEXT) -> List[CognitiveState]:
        session = self._sessions.get((user_id, context_id))
        return session.history if session is not None else []

    def end_session(self, user_id: str, context_id: str = DEFAULT_CONTEXT) -> None:
        """Stop and forget a session. Unknown sessions are ignored."""
        session = self._sessions.pop((user_id, context_id), None)
        if session is not None:
            session.stop()
            log.debug("detection_session_ended", user_id=user_id, context_id=context_id)

    async def summary(self, user_id: str, since_ms: Optional[float] = None) -> Dict[str, Any]:
        """Aggregate recorded states from the store (empty without one)."""
        if self.store is None:
            return {}
        return await self.store.state_summary(user_id, since_ms)

    async def drain(self) -> None:
        """Wait for pending background writes."""
        await self.writer.drain()
