"""
Repository for detection and assessment records.

Handles inserts and aggregate queries on the cognitive_states and
assessments tables.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

import aiosqlite
import structlog

from synapse.core.exceptions import PersistenceError
from synapse.domain.models.assessment import AssessmentResult
from synapse.domain.models.cognitive_state import CognitiveState

log = structlog.get_logger(__name__)


class InteractionRepository:
    """Append-only store of classified states and scored assessments."""

    def __init__(self, db: aiosqlite.Connection):
        """
        Initialize interaction repository.

        Args:
            db: aiosqlite connection
        """
        self.db = db

    # ==================== COGNITIVE STATES ====================

    async def create_interaction_record(
        self,
        user_id: str,
        state: CognitiveState,
        context_id: Optional[str] = None,
    ) -> str:
        """
        Record one classified state.

        Args:
            user_id: Opaque user id
            state: Classifier output
            context_id: Browsing context / tab the state was computed for

        Returns:
            The new record id

        Raises:
            PersistenceError: If the write fails
        """
        record_id = str(uuid4())
        try:
            await self.db.execute(
                """
                INSERT INTO cognitive_states (
                    id, user_id, context_id, state, confidence,
                    indicators, timestamp_ms, recorded_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record_id,
                    user_id,
                    context_id,
                    state.state.value,
                    state.confidence,
                    json.dumps(state.indicators),
                    state.timestamp,
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            await self.db.commit()
        except aiosqlite.Error as e:
            log.error("state_record_failed", user_id=user_id, error=str(e))
            raise PersistenceError(f"Failed to record state for {user_id!r}: {e}") from e

        log.debug("state_recorded", record_id=record_id, state=state.state.value)
        return record_id

    async def state_summary(
        self, user_id: str, since_ms: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Aggregate a user's recorded states.

        Args:
            user_id: Opaque user id
            since_ms: Only include states with timestamp >= since_ms

        Returns:
            {"total": int, "by_state": {state: count},
             "average_confidence": float, "dominant_state": str | None}
        """
        where = "WHERE user_id = ?"
        params: list = [user_id]
        if since_ms is not None:
            where += " AND timestamp_ms >= ?"
            params.append(since_ms)

        try:
            cursor = await self.db.execute(
                f"""
                SELECT state, COUNT(*), AVG(confidence) FROM cognitive_states
                {where}
                GROUP BY state
                """,
                params,
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to summarize states for {user_id!r}: {e}") from e

        by_state = {row[0]: row[1] for row in rows}
        total = sum(by_state.values())
        confidence_sum = sum(row[1] * row[2] for row in rows)

        dominant = None
        if by_state:
            # Most frequent; ties go to the alphabetically first label
            dominant = sorted(by_state.items(), key=lambda kv: (-kv[1], kv[0]))[0][0]

        return {
            "total": total,
            "by_state": by_state,
            "average_confidence": confidence_sum / total if total else 0.0,
            "dominant_state": dominant,
        }

    # ==================== ASSESSMENTS ====================

    async def record_assessment(
        self,
        user_id: str,
        result: AssessmentResult,
        session_duration_ms: Optional[float] = None,
    ) -> str:
        """
        Record one scored game session.

        Returns:
            The new record id

        Raises:
            PersistenceError: If the write fails
        """
        record_id = str(uuid4())
        try:
            await self.db.execute(
                """
                INSERT INTO assessments (
                    id, user_id, game_type, state, focus_level, attention_span,
                    processing_speed, memory_performance, decision_making,
                    overall_score, recommendations, session_duration_ms, recorded_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record_id,
                    user_id,
                    result.game_type.value,
                    result.state.value,
                    result.focus_level,
                    result.attention_span,
                    result.processing_speed,
                    result.memory_performance,
                    result.decision_making,
                    result.overall_score,
                    json.dumps(result.recommendations),
                    session_duration_ms,
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            await self.db.commit()
        except aiosqlite.Error as e:
            log.error("assessment_record_failed", user_id=user_id, error=str(e))
            raise PersistenceError(f"Failed to record assessment for {user_id!r}: {e}") from e

        log.info(
            "assessment_recorded",
            record_id=record_id,
            game_type=result.game_type.value,
            state=result.state.value,
        )
        return record_id

    async def recent_assessments(self, user_id: str, limit: int = 20) -> List[AssessmentResult]:
        """Most recent assessments first."""
        try:
            self.db.row_factory = aiosqlite.Row
            cursor = await self.db.execute(
                """
                SELECT * FROM assessments WHERE user_id = ?
                ORDER BY recorded_at DESC, rowid DESC LIMIT ?
                """,
                (user_id, limit),
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to read assessments for {user_id!r}: {e}") from e

        return [
            AssessmentResult(
                game_type=row["game_type"],
                state=row["state"],
                focus_level=row["focus_level"],
                attention_span=row["attention_span"],
                processing_speed=row["processing_speed"],
                memory_performance=row["memory_performance"],
                decision_making=row["decision_making"],
                overall_score=row["overall_score"],
                recommendations=json.loads(row["recommendations"] or "[]"),
            )
            for row in rows
        ]
