"""
Repository for concept node persistence.

Handles CRUD operations on the concept_nodes table.
Uses aiosqlite for async SQLite access.

Connection sets are native sets on ConceptNode; they become JSON strings
only here. No business logic - that belongs in ConceptGraph.
"""

import json
from datetime import datetime, timezone
from typing import List, Optional

import aiosqlite
import structlog

from synapse.core.exceptions import PersistenceError
from synapse.domain.models.knowledge_graph import ConceptNode, normalize_concept_id

log = structlog.get_logger(__name__)


class ConceptRepository:
    """
    Repository for user-scoped concept nodes.

    Rows are keyed by (user_id, id). Upserts never lower a stored
    frequency and never drop a stored connection.
    """

    def __init__(self, db: aiosqlite.Connection):
        """
        Initialize concept repository.

        Args:
            db: aiosqlite connection
        """
        self.db = db

    # ==================== WRITE ====================

    async def upsert(self, user_id: str, node: ConceptNode) -> ConceptNode:
        """
        Insert or update one node.

        On conflict the stored row keeps the larger frequency and weight and
        the union of both connection sets; the other fields take the new
        node's values.

        Args:
            user_id: Opaque user id
            node: Node state from the in-memory graph

        Returns:
            The node as stored

        Raises:
            PersistenceError: If the write fails
        """
        try:
            existing = await self._get(user_id, node.id)
            connections = set(node.connections)
            frequency, weight = node.frequency, node.weight
            if existing is not None:
                connections |= existing.connections
                frequency = max(frequency, existing.frequency)
                weight = max(weight, existing.weight)

            now = datetime.now(timezone.utc).isoformat()
            await self.db.execute(
                """
                INSERT INTO concept_nodes (
                    user_id, id, concept, domain, weight, frequency,
                    connections, mastery, source_url, last_seen, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (user_id, id) DO UPDATE SET
                    concept = excluded.concept,
                    domain = excluded.domain,
                    weight = excluded.weight,
                    frequency = excluded.frequency,
                    connections = excluded.connections,
                    mastery = excluded.mastery,
                    source_url = COALESCE(excluded.source_url, concept_nodes.source_url),
                    last_seen = excluded.last_seen
                """,
                (
                    user_id,
                    node.id,
                    node.concept,
                    node.domain,
                    weight,
                    frequency,
                    json.dumps(sorted(connections)),
                    node.mastery,
                    node.source_url,
                    node.last_seen.isoformat(),
                    now,
                ),
            )
            await self.db.commit()
        except aiosqlite.Error as e:
            log.error("concept_upsert_failed", user_id=user_id, node_id=node.id, error=str(e))
            raise PersistenceError(f"Failed to upsert concept {node.id!r}: {e}") from e

        log.debug("concept_upserted", user_id=user_id, node_id=node.id, frequency=frequency)

        stored = await self._get(user_id, node.id)
        if stored is None:
            raise PersistenceError(f"Concept {node.id!r} not found after upsert")
        return stored

    # ==================== READ ====================

    async def find_by_user_and_concept(
        self, user_id: str, concept: str
    ) -> Optional[ConceptNode]:
        """
        Find a user's node by concept text (normalized to its id).

        Args:
            user_id: Opaque user id
            concept: Concept text, e.g. "Machine Learning"

        Returns:
            ConceptNode or None if not found
        """
        try:
            return await self._get(user_id, normalize_concept_id(concept))
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to read concept {concept!r}: {e}") from e

    async def list_by_user(
        self, user_id: str, domain: Optional[str] = None, limit: int = 100
    ) -> List[ConceptNode]:
        """
        List a user's nodes, most frequent first then most recently seen.

        Args:
            user_id: Opaque user id
            domain: Optional domain filter
            limit: Maximum rows returned

        Returns:
            List of ConceptNode objects
        """
        query = "SELECT * FROM concept_nodes WHERE user_id = ?"
        params: list = [user_id]
        if domain is not None:
            query += " AND domain = ?"
            params.append(domain)
        query += " ORDER BY frequency DESC, last_seen DESC LIMIT ?"
        params.append(limit)

        try:
            self.db.row_factory = aiosqlite.Row
            cursor = await self.db.execute(query, params)
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to list concepts for {user_id!r}: {e}") from e

        return [self._row_to_node(row) for row in rows]

    async def count_by_user(self, user_id: str) -> int:
        try:
            cursor = await self.db.execute(
                "SELECT COUNT(*) FROM concept_nodes WHERE user_id = ?", (user_id,)
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to count concepts for {user_id!r}: {e}") from e
        return row[0] if row else 0

    async def _get(self, user_id: str, node_id: str) -> Optional[ConceptNode]:
        self.db.row_factory = aiosqlite.Row
        cursor = await self.db.execute(
            "SELECT * FROM concept_nodes WHERE user_id = ? AND id = ?",
            (user_id, node_id),
        )
        row = await cursor.fetchone()
        if not row:
            return None
        return self._row_to_node(row)

    # ==================== HELPERS ====================

    def _row_to_node(self, row: aiosqlite.Row) -> ConceptNode:
        """Convert database row to ConceptNode.

        Raises:
            PersistenceError: If the row holds undecodable connections or fields
        """
        try:
            return ConceptNode(
                id=row["id"],
                concept=row["concept"],
                domain=row["domain"],
                weight=row["weight"],
                frequency=row["frequency"],
                connections=json.loads(row["connections"] or "[]"),
                mastery=row["mastery"],
                source_url=row["source_url"],
                last_seen=datetime.fromisoformat(row["last_seen"]),
            )
        except ValueError as e:
            # json.JSONDecodeError and pydantic.ValidationError are ValueErrors
            raise PersistenceError(f"Corrupt concept row {row['id']!r}: {e}") from e
