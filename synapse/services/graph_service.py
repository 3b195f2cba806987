"""
In-memory concept graph for one user.

Responsibilities:
- Merge extracted candidates into nodes (create, or frequency++ / last_seen)
- Link related candidates with symmetric edges (relatedness > threshold)
- Keep edge creation idempotent: an existing pair is never linked twice
- Produce the {nodes, edges} output contract and visualization links

Persistence is delegated to an external collaborator (see
persistence.repositories.concept_repo); this module performs no I/O.

Two distinct pair scores exist:
- relatedness (services.relatedness): decides whether an edge is created
- connection_strength (here): ranks/draws existing links, never creates them
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

import structlog

from synapse.core.exceptions import GraphError, NodeNotFoundError
from synapse.domain.models.knowledge_graph import (
    ConceptCandidate,
    ConceptEdge,
    ConceptNode,
    EdgeType,
    GraphSnapshot,
    edge_key,
)
from synapse.services.relatedness import RelatednessScorer, tokenize

log = structlog.get_logger(__name__)

MASTERY_LINK_THRESHOLD = 0.7
# Strength assigned to links rebuilt from stored connection sets, whose
# creation-time relatedness is not stored
RESTORED_EDGE_STRENGTH = 1.0


def connection_strength(node_a: ConceptNode, node_b: ConceptNode) -> float:
    """
    Visualization/ranking strength of a link between two nodes.

    strength = domain similarity (1.0 same, 0.5 otherwise) * 0.4
               + mean mastery * 0.3 + mean importance * 0.3

    Not used for edge-creation decisions.
    """
    domain_similarity = 1.0 if node_a.domain == node_b.domain else 0.5
    mastery = (node_a.mastery + node_b.mastery) / 2
    importance = (node_a.importance + node_b.importance) / 2
    return domain_similarity * 0.4 + mastery * 0.3 + importance * 0.3


def connection_type(node_a: ConceptNode, node_b: ConceptNode) -> EdgeType:
    """Visualization link type: domain, mastery, or conceptual."""
    if node_a.domain == node_b.domain:
        return EdgeType.DOMAIN
    if node_a.mastery > MASTERY_LINK_THRESHOLD and node_b.mastery > MASTERY_LINK_THRESHOLD:
        return EdgeType.MASTERY
    return EdgeType.CONCEPTUAL


def _relatedness_edge_type(node_a: ConceptNode, node_b: ConceptNode) -> EdgeType:
    return EdgeType.CONTEXTUAL if node_a.domain == node_b.domain else EdgeType.SEMANTIC


@dataclass
class GraphMergeResult:
    """Outcome of merging one extraction batch.

    Attributes:
        created: Ids of nodes created by this batch
        updated: Ids of pre-existing nodes re-encountered
        edges_added: Edges created by this batch
    """

    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    edges_added: List[ConceptEdge] = field(default_factory=list)

    @property
    def touched(self) -> List[str]:
        """Ids of every node whose stored state changed."""
        return self.created + self.updated


class ConceptGraph:
    """
    User-scoped concept graph with symmetric, idempotent edges.

    Usage:
        graph = ConceptGraph()
        result = graph.merge_candidates(extractor.extract_concepts(text), text)
        snapshot = graph.snapshot(user_id)
    """

    def __init__(self, scorer: Optional[RelatednessScorer] = None):
        """
        Initialize an empty graph.

        Args:
            scorer: Relatedness scorer used for edge decisions
        """
        self.scorer = scorer or RelatednessScorer()
        self._nodes: Dict[str, ConceptNode] = {}
        self._edges: Dict[Tuple[str, str], ConceptEdge] = {}

    # ==================== ACCESS ====================

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def get(self, node_id: str) -> Optional[ConceptNode]:
        return self._nodes.get(node_id)

    def nodes(self) -> List[ConceptNode]:
        return list(self._nodes.values())

    def edges(self) -> List[ConceptEdge]:
        return list(self._edges.values())

    def has_edge(self, a: str, b: str) -> bool:
        return edge_key(a, b) in self._edges

    def _require(self, node_id: str) -> ConceptNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(f"Concept node {node_id!r} not found")
        return node

    # ==================== UPDATE PROTOCOL ====================

    def merge_candidates(
        self,
        candidates: Iterable[ConceptCandidate],
        source_text: str,
        now: Optional[datetime] = None,
    ) -> GraphMergeResult:
        """
        Merge one extraction batch into the graph.

        Steps:
        1. Stage node changes on copies (new node, or frequency++ / last_seen)
        2. Score every unordered pair in the batch within source_text
        3. Stage a symmetric edge for pairs above threshold with no edge yet
        4. Commit all staged nodes and edges together

        Nothing is applied if staging fails, so both sides of every new edge
        land together or not at all.

        Args:
            candidates: Output of ConceptExtractor.extract_concepts()
            source_text: Text the candidates were extracted from
            now: Encounter time (defaults to current UTC time)

        Returns:
            GraphMergeResult with created/updated ids and new edges
        """
        now = now or datetime.now(timezone.utc)
        result = GraphMergeResult()
        staged: Dict[str, ConceptNode] = {}

        for candidate in candidates:
            if candidate.id in staged:
                continue

            existing = self._nodes.get(candidate.id)
            if existing is not None:
                node = existing.model_copy(deep=True)
                node.frequency += 1
                node.last_seen = now
                node.weight = max(node.weight, candidate.weight)
                if candidate.source_url:
                    node.source_url = candidate.source_url
                result.updated.append(node.id)
            else:
                node = ConceptNode(
                    id=candidate.id,
                    concept=candidate.concept,
                    domain=candidate.domain,
                    weight=candidate.weight,
                    frequency=1,
                    last_seen=now,
                    source_url=candidate.source_url,
                )
                result.created.append(node.id)
            staged[node.id] = node

        batch = list(staged.values())
        tokens = tokenize(source_text) if isinstance(source_text, str) else []

        for i, node_a in enumerate(batch):
            for node_b in batch[i + 1 :]:
                key = edge_key(node_a.id, node_b.id)
                if key in self._edges or node_b.id in node_a.connections:
                    continue

                score = self.scorer.relatedness(
                    node_a.concept, node_b.concept, source_text, text_tokens=tokens
                )
                if not self.scorer.creates_edge(score):
                    continue

                node_a.connections.add(node_b.id)
                node_b.connections.add(node_a.id)
                result.edges_added.append(
                    ConceptEdge(
                        source=key[0],
                        target=key[1],
                        strength=score,
                        type=_relatedness_edge_type(node_a, node_b),
                    )
                )

        # Commit
        self._nodes.update(staged)
        for edge in result.edges_added:
            self._edges[edge.key] = edge

        log.info(
            "concepts_merged",
            nodes_created=len(result.created),
            nodes_updated=len(result.updated),
            edges_added=len(result.edges_added),
            total_nodes=len(self._nodes),
        )

        return result

    def add_connection(
        self,
        source_id: str,
        target_id: str,
        strength: float = RESTORED_EDGE_STRENGTH,
        edge_type: EdgeType = EdgeType.CONCEPTUAL,
    ) -> Optional[ConceptEdge]:
        """
        Link two existing nodes symmetrically.

        Returns:
            The new edge, or None if the pair was already linked

        Raises:
            NodeNotFoundError: If either node is missing
            GraphError: On a self-link
        """
        if source_id == target_id:
            raise GraphError(f"Cannot link concept {source_id!r} to itself")
        node_a = self._require(source_id)
        node_b = self._require(target_id)

        key = edge_key(source_id, target_id)
        if key in self._edges:
            return None

        edge = ConceptEdge(source=key[0], target=key[1], strength=strength, type=edge_type)
        node_a.connections.add(target_id)
        node_b.connections.add(source_id)
        self._edges[key] = edge
        return edge

    def update_mastery(self, node_id: str, delta: float) -> ConceptNode:
        """Shift a node's mastery by delta, clamped to [0, 1]."""
        node = self._require(node_id)
        node.mastery = max(0.0, min(1.0, node.mastery + delta))
        return node

    # ==================== QUERIES ====================

    def neighbors(self, node_id: str) -> List[ConceptNode]:
        node = self._require(node_id)
        return [self._nodes[c] for c in sorted(node.connections) if c in self._nodes]

    def find_related(self, query: str, limit: int = 5) -> List[ConceptNode]:
        """Nodes whose concept contains query (case-insensitive), most important first."""
        needle = query.lower().strip()
        if not needle:
            return []
        matches = [n for n in self._nodes.values() if needle in n.concept.lower()]
        matches.sort(key=lambda n: n.importance, reverse=True)
        return matches[:limit]

    def check_symmetry(self) -> List[Tuple[str, str]]:
        """
        Find (a, b) pairs where a lists b but b (present) does not list a.

        Connections to nodes not loaded into this graph are ignored.
        """
        violations = []
        for node in self._nodes.values():
            for other_id in node.connections:
                other = self._nodes.get(other_id)
                if other is not None and node.id not in other.connections:
                    violations.append((node.id, other_id))
        return sorted(violations)

    def visualization_links(self) -> List[ConceptEdge]:
        """Existing links re-scored with connection_strength / connection_type."""
        links = []
        for (a, b) in sorted(self._edges):
            node_a, node_b = self._nodes.get(a), self._nodes.get(b)
            if node_a is None or node_b is None:
                continue
            links.append(
                ConceptEdge(
                    source=a,
                    target=b,
                    strength=min(1.0, connection_strength(node_a, node_b)),
                    type=connection_type(node_a, node_b),
                )
            )
        return links

    # ==================== SERIALIZATION ====================

    def snapshot(self, user_id: Optional[str] = None) -> GraphSnapshot:
        """Graph output contract, nodes by weight then id, edges by key."""
        nodes = sorted(
            (n.model_copy(deep=True) for n in self._nodes.values()),
            key=lambda n: (-n.weight, n.id),
        )
        edges = [self._edges[k].model_copy() for k in sorted(self._edges)]
        return GraphSnapshot(user_id=user_id, nodes=nodes, edges=edges)

    @classmethod
    def from_snapshot(
        cls, snapshot: GraphSnapshot, scorer: Optional[RelatednessScorer] = None
    ) -> "ConceptGraph":
        """Rebuild a graph from a snapshot, keeping recorded edge strengths."""
        graph = cls.from_nodes(snapshot.nodes, scorer=scorer)
        for edge in snapshot.edges:
            if edge.source in graph._nodes and edge.target in graph._nodes:
                graph._edges[edge.key] = edge.model_copy()
        return graph

    @classmethod
    def from_nodes(
        cls, nodes: Iterable[ConceptNode], scorer: Optional[RelatednessScorer] = None
    ) -> "ConceptGraph":
        """
        Rebuild a graph from stored nodes.

        Connection sets are symmetrized (a one-sided link from an older
        store gains its missing side) and edges are restored from them.
        """
        graph = cls(scorer=scorer)
        for node in nodes:
            graph._nodes[node.id] = node.model_copy(deep=True)

        repaired = 0
        for node in list(graph._nodes.values()):
            for other_id in list(node.connections):
                other = graph._nodes.get(other_id)
                if other is None or other_id == node.id:
                    continue
                if node.id not in other.connections:
                    other.connections.add(node.id)
                    repaired += 1
                key = edge_key(node.id, other_id)
                if key not in graph._edges:
                    graph._edges[key] = ConceptEdge(
                        source=key[0],
                        target=key[1],
                        strength=RESTORED_EDGE_STRENGTH,
                        type=_relatedness_edge_type(node, other),
                    )

        if repaired:
            log.warning("asymmetric_connections_repaired", count=repaired)

        return graph
