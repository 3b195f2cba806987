"""Tests for concept repository."""

from datetime import datetime, timedelta, timezone

import aiosqlite
import pytest

from synapse.core.exceptions import PersistenceError
from synapse.domain.models.knowledge_graph import ConceptNode
from synapse.persistence.repositories.concept_repo import ConceptRepository

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _node(node_id: str, **overrides) -> ConceptNode:
    fields = dict(id=node_id, concept=node_id.replace("-", " "), last_seen=NOW)
    fields.update(overrides)
    return ConceptNode(**fields)


class TestUpsert:
    """Tests for insert/update semantics."""

    @pytest.mark.asyncio
    async def test_insert_round_trip(self, concept_repo):
        node = _node(
            "machine-learning",
            domain="Machine Learning",
            weight=3.5,
            frequency=2,
            connections={"neural-networks"},
            mastery=0.25,
            source_url="https://example.com",
        )

        stored = await concept_repo.upsert("u-1", node)

        assert stored == node

    @pytest.mark.asyncio
    async def test_connections_stored_as_json(self, concept_repo, db_connection):
        await concept_repo.upsert("u-1", _node("a", connections={"c", "b"}))

        cursor = await db_connection.execute(
            "SELECT connections FROM concept_nodes WHERE id = 'a'"
        )
        row = await cursor.fetchone()

        assert row[0] == '["b", "c"]'

    @pytest.mark.asyncio
    async def test_update_keeps_larger_frequency_and_unions_connections(self, concept_repo):
        await concept_repo.upsert("u-1", _node("a", frequency=5, connections={"b"}))

        stored = await concept_repo.upsert(
            "u-1", _node("a", frequency=2, connections={"c"}, mastery=0.5)
        )

        assert stored.frequency == 5
        assert stored.connections == {"b", "c"}
        assert stored.mastery == 0.5

    @pytest.mark.asyncio
    async def test_update_keeps_source_url_when_missing(self, concept_repo):
        await concept_repo.upsert("u-1", _node("a", source_url="https://first"))

        stored = await concept_repo.upsert("u-1", _node("a"))

        assert stored.source_url == "https://first"

    @pytest.mark.asyncio
    async def test_users_are_isolated(self, concept_repo):
        await concept_repo.upsert("u-1", _node("a", frequency=3))
        await concept_repo.upsert("u-2", _node("a", frequency=1))

        assert (await concept_repo.find_by_user_and_concept("u-1", "a")).frequency == 3
        assert (await concept_repo.find_by_user_and_concept("u-2", "a")).frequency == 1

    @pytest.mark.asyncio
    async def test_failure_raises_persistence_error(self):
        """A database without the schema surfaces PersistenceError."""
        async with aiosqlite.connect(":memory:") as db:
            repo = ConceptRepository(db)

            with pytest.raises(PersistenceError):
                await repo.upsert("u-1", _node("a"))


class TestQueries:
    """Tests for lookups and listings."""

    @pytest.mark.asyncio
    async def test_find_by_concept_text(self, concept_repo):
        await concept_repo.upsert("u-1", _node("machine-learning"))

        found = await concept_repo.find_by_user_and_concept("u-1", "Machine Learning")

        assert found is not None
        assert found.id == "machine-learning"

    @pytest.mark.asyncio
    async def test_find_missing(self, concept_repo):
        assert await concept_repo.find_by_user_and_concept("u-1", "nothing") is None

    @pytest.mark.asyncio
    async def test_list_orders_by_frequency_then_recency(self, concept_repo):
        await concept_repo.upsert("u-1", _node("old", frequency=2, last_seen=NOW - timedelta(days=1)))
        await concept_repo.upsert("u-1", _node("new", frequency=2))
        await concept_repo.upsert("u-1", _node("top", frequency=9))

        nodes = await concept_repo.list_by_user("u-1")

        assert [n.id for n in nodes] == ["top", "new", "old"]

    @pytest.mark.asyncio
    async def test_list_filters_domain_and_limits(self, concept_repo):
        await concept_repo.upsert("u-1", _node("a", domain="Science", frequency=3))
        await concept_repo.upsert("u-1", _node("b", domain="Science", frequency=2))
        await concept_repo.upsert("u-1", _node("c", domain="Mathematics"))

        nodes = await concept_repo.list_by_user("u-1", domain="Science", limit=1)

        assert [n.id for n in nodes] == ["a"]

    @pytest.mark.asyncio
    async def test_count_by_user(self, concept_repo):
        await concept_repo.upsert("u-1", _node("a"))
        await concept_repo.upsert("u-1", _node("b"))

        assert await concept_repo.count_by_user("u-1") == 2
        assert await concept_repo.count_by_user("u-2") == 0

    @pytest.mark.asyncio
    async def test_corrupt_connections_raise_persistence_error(self, concept_repo, db_connection):
        await concept_repo.upsert("u-1", _node("a"))
        await db_connection.execute(
            "UPDATE concept_nodes SET connections = 'not json' WHERE id = 'a'"
        )
        await db_connection.commit()

        with pytest.raises(PersistenceError):
            await concept_repo.list_by_user("u-1")
