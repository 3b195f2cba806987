"""
Storage collaborator protocols.

Adapters depend on these interfaces rather than on the aiosqlite
repositories so any store with the same shape can be plugged in.
"""

from typing import Any, Dict, List, Optional, Protocol

from synapse.domain.models.cognitive_state import CognitiveState
from synapse.domain.models.knowledge_graph import ConceptNode


class ConceptStore(Protocol):
    """
    Protocol for concept node storage.

    Implementations keep (user_id, node id) unique, never lower a stored
    frequency and keep connection sets symmetric on write.
    """

    async def upsert(self, user_id: str, node: ConceptNode) -> ConceptNode:
        """Insert or update a node; returns it as stored."""
        ...

    async def find_by_user_and_concept(
        self, user_id: str, concept: str
    ) -> Optional[ConceptNode]:
        """Find one node by concept text."""
        ...

    async def list_by_user(
        self, user_id: str, domain: Optional[str] = None, limit: int = 100
    ) -> List[ConceptNode]:
        """List nodes by frequency then recency."""
        ...


class InteractionStore(Protocol):
    """Protocol for classified-state storage."""

    async def create_interaction_record(
        self,
        user_id: str,
        state: CognitiveState,
        context_id: Optional[str] = None,
    ) -> str:
        """Record one state; returns the record id."""
        ...

    async def state_summary(
        self, user_id: str, since_ms: Optional[float] = None
    ) -> Dict[str, Any]:
        """Aggregate counts per state."""
        ...
