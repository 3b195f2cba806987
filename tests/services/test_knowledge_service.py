"""Tests for KnowledgeService."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from synapse.core.exceptions import NodeNotFoundError, PersistenceError
from synapse.domain.models.knowledge_graph import ConceptNode
from synapse.services.knowledge_service import KnowledgeService

SCENARIO_TEXT = "Machine learning uses neural networks for deep learning tasks"


@pytest.fixture
def store():
    store = AsyncMock()
    store.list_by_user.return_value = []
    store.upsert.side_effect = lambda user_id, node: node
    return store


class TestAnalyzeContent:
    """Content analysis and graph updates."""

    @pytest.mark.asyncio
    async def test_in_memory_without_store(self):
        service = KnowledgeService()

        analysis = await service.analyze_content("u-1", SCENARIO_TEXT)

        assert "machine-learning" in analysis.created
        snapshot = await service.get_snapshot("u-1")
        assert snapshot.user_id == "u-1"
        assert {e.key for e in snapshot.edges} >= {("machine-learning", "neural-networks")}

    @pytest.mark.asyncio
    async def test_empty_text(self, store):
        service = KnowledgeService(store=store)

        analysis = await service.analyze_content("u-1", "")

        assert analysis.candidates == []
        store.upsert.assert_not_called()

    @pytest.mark.asyncio
    async def test_touched_nodes_persisted(self, store):
        service = KnowledgeService(store=store)

        analysis = await service.analyze_content("u-1", SCENARIO_TEXT, url="https://e.x")
        await service.drain()

        persisted = {call.args[1].id for call in store.upsert.await_args_list}
        assert persisted == set(analysis.created)
        assert all(call.args[0] == "u-1" for call in store.upsert.await_args_list)

    @pytest.mark.asyncio
    async def test_graphs_are_per_user(self):
        service = KnowledgeService()

        await service.analyze_content("u-1", SCENARIO_TEXT)

        assert len(await service.get_graph("u-2")) == 0

    @pytest.mark.asyncio
    async def test_persistence_failure_does_not_affect_result(self, store):
        """Storage errors are logged; the in-memory graph is still updated."""
        store.upsert.side_effect = PersistenceError("disk full")
        service = KnowledgeService(store=store)

        analysis = await service.analyze_content("u-1", SCENARIO_TEXT)
        await service.drain()

        assert analysis.created
        assert service.writer.failures == len(analysis.created)
        graph = await service.get_graph("u-1")
        assert "machine-learning" in graph


class TestGraphLoading:
    """Lazy loading from the store."""

    @pytest.mark.asyncio
    async def test_loads_once_from_store(self, store):
        store.list_by_user.return_value = [
            ConceptNode(id="python", concept="python", frequency=3)
        ]
        service = KnowledgeService(store=store)

        first = await service.get_graph("u-1")
        second = await service.get_graph("u-1")

        assert first is second
        assert first.get("python").frequency == 3
        store.list_by_user.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_existing_node_frequency_incremented(self, store):
        store.list_by_user.return_value = [
            ConceptNode(id="machine-learning", concept="machine learning", frequency=3)
        ]
        service = KnowledgeService(store=store)

        analysis = await service.analyze_content("u-1", SCENARIO_TEXT)

        assert "machine-learning" in analysis.updated
        graph = await service.get_graph("u-1")
        assert graph.get("machine-learning").frequency == 4

    @pytest.mark.asyncio
    async def test_load_failure_starts_empty(self, store):
        store.list_by_user.side_effect = PersistenceError("locked")
        service = KnowledgeService(store=store)

        graph = await service.get_graph("u-1")

        assert len(graph) == 0

    @pytest.mark.asyncio
    async def test_non_persistence_load_error_starts_empty(self, store):
        """Any store failure on load is contained; analysis still runs."""
        store.list_by_user.side_effect = ConnectionError("db unreachable")
        service = KnowledgeService(store=store)

        analysis = await service.analyze_content("u-1", SCENARIO_TEXT)

        assert "machine-learning" in analysis.created
        graph = await service.get_graph("u-1")
        assert "machine-learning" in graph

    @pytest.mark.asyncio
    async def test_concurrent_first_calls_share_one_graph(self, store):
        """Overlapping first calls for a user merge into the same graph."""

        async def slow_list(user_id, limit=100):
            await asyncio.sleep(0.01)
            return []

        store.list_by_user.side_effect = slow_list
        service = KnowledgeService(store=store)

        first, second = await asyncio.gather(
            service.analyze_content("u-1", "Python programming is a great software skill."),
            service.analyze_content("u-1", "Quantum chemistry explains molecular bonding well."),
        )

        graph = await service.get_graph("u-1")
        assert set(first.created) <= set(n.id for n in graph.nodes())
        assert set(second.created) <= set(n.id for n in graph.nodes())
        assert "python" in graph
        assert "quantum-chemistry-explains" in graph
        store.list_by_user.assert_awaited_once()


class TestMasteryAndQueries:
    @pytest.mark.asyncio
    async def test_update_mastery_persists(self, store):
        service = KnowledgeService(store=store)
        await service.analyze_content("u-1", SCENARIO_TEXT)
        await service.drain()
        store.upsert.reset_mock()

        node = await service.update_mastery("u-1", "machine-learning", 0.5)
        await service.drain()

        assert node.mastery == pytest.approx(0.5)
        store.upsert.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_mastery_unknown_node(self):
        service = KnowledgeService()

        with pytest.raises(NodeNotFoundError):
            await service.update_mastery("u-1", "missing", 0.1)

    @pytest.mark.asyncio
    async def test_find_related(self):
        service = KnowledgeService()
        await service.analyze_content("u-1", SCENARIO_TEXT)

        found = await service.find_related("u-1", "learning", limit=2)

        assert len(found) == 2
        assert all("learning" in n.concept.lower() for n in found)
