"""
Knowledge pipeline adapter.

Owns one ConceptGraph per user and runs text -> extract -> relate -> merge.
Graphs are loaded lazily from the ConceptStore on first use, once per
user even when first calls overlap. Every node a merge touches is written
back in the background. The returned result
reflects the in-memory graph whether or not storage succeeds.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import structlog

from synapse.domain.models.knowledge_graph import ConceptCandidate, ConceptEdge, ConceptNode, GraphSnapshot
from synapse.services.background import BackgroundWriter
from synapse.services.concept_extractor import ConceptExtractor
from synapse.services.graph_service import ConceptGraph
from synapse.services.protocols import ConceptStore
from synapse.services.relatedness import RelatednessScorer

log = structlog.get_logger(__name__)


@dataclass
class ContentAnalysis:
    """Result of analyzing one text for one user."""

    user_id: str
    candidates: List[ConceptCandidate] = field(default_factory=list)
    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    edges_added: List[ConceptEdge] = field(default_factory=list)


class KnowledgeService:
    """
    Per-user concept graphs with background persistence.

    Usage:
        service = KnowledgeService(store=ConceptRepository(db))
        analysis = await service.analyze_content("u1", page_text, url)
        snapshot = await service.get_snapshot("u1")
    """

    def __init__(
        self,
        store: Optional[ConceptStore] = None,
        extractor: Optional[ConceptExtractor] = None,
        scorer: Optional[RelatednessScorer] = None,
    ):
        """
        Initialize service.

        Args:
            store: Concept storage; None keeps graphs in memory only
            extractor: Concept extractor (defaults to the configured one)
            scorer: Relatedness scorer for new graphs
        """
        self.store = store
        self.extractor = extractor or ConceptExtractor()
        self.scorer = scorer or RelatednessScorer()
        self.writer = BackgroundWriter()
        self._graphs: Dict[str, ConceptGraph] = {}
        self._load_locks: Dict[str, asyncio.Lock] = {}

    async def get_graph(self, user_id: str) -> ConceptGraph:
        """
        Cached graph for user_id, loaded from the store on first access.

        A store failure of any kind is logged and the user starts with an
        empty graph.
        """
        graph = self._graphs.get(user_id)
        if graph is not None:
            return graph

        lock = self._load_locks.setdefault(user_id, asyncio.Lock())
        async with lock:
            # Another caller may have loaded it while we waited
            graph = self._graphs.get(user_id)
            if graph is not None:
                return graph

            nodes: List[ConceptNode] = []
            if self.store is not None:
                try:
                    nodes = await self.store.list_by_user(user_id, limit=10_000)
                except Exception as e:
                    log.warning(
                        "graph_load_failed",
                        user_id=user_id,
                        error=str(e),
                        error_type=type(e).__name__,
                    )

            graph = ConceptGraph.from_nodes(nodes, scorer=self.scorer)
            self._graphs[user_id] = graph

        log.debug("graph_loaded", user_id=user_id, nodes=len(graph))
        return graph

    async def analyze_content(
        self, user_id: str, text: str, url: Optional[str] = None
    ) -> ContentAnalysis:
        """
        Extract concepts from text and merge them into the user's graph.

        Args:
            user_id: Opaque user id
            text: Page or document text
            url: Optional source URL recorded on the nodes

        Returns:
            ContentAnalysis with the candidates and the merge outcome
        """
        candidates = self.extractor.extract_concepts(text, url)
        if not candidates:
            return ContentAnalysis(user_id=user_id)

        graph = await self.get_graph(user_id)
        result = graph.merge_candidates(candidates, text)

        self._persist(user_id, graph, result.touched)

        log.info(
            "content_analyzed",
            user_id=user_id,
            concepts=len(candidates),
            created=len(result.created),
            edges_added=len(result.edges_added),
        )

        return ContentAnalysis(
            user_id=user_id,
            candidates=candidates,
            created=result.created,
            updated=result.updated,
            edges_added=result.edges_added,
        )

    async def update_mastery(self, user_id: str, node_id: str, delta: float) -> ConceptNode:
        """Shift mastery for one node and persist it in the background."""
        graph = await self.get_graph(user_id)
        node = graph.update_mastery(node_id, delta)
        self._persist(user_id, graph, [node_id])
        return node

    async def find_related(self, user_id: str, query: str, limit: int = 5) -> List[ConceptNode]:
        graph = await self.get_graph(user_id)
        return graph.find_related(query, limit)

    async def get_snapshot(self, user_id: str) -> GraphSnapshot:
        graph = await self.get_graph(user_id)
        return graph.snapshot(user_id)

    def _persist(self, user_id: str, graph: ConceptGraph, node_ids: List[str]) -> None:
        if self.store is None:
            return
        for node_id in node_ids:
            node = graph.get(node_id)
            if node is None:
                continue
            self.writer.schedule(
                self.store.upsert(user_id, node.model_copy(deep=True)),
                "concept_persist",
                user_id=user_id,
                node_id=node_id,
            )

    async def drain(self) -> None:
        """Wait for pending background writes."""
        await self.writer.drain()
