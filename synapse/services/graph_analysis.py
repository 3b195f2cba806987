"""Graph analysis utilities for concept ranking and visualization.

Converts a ConceptGraph into a NetworkX graph and derives cluster and
centrality views. Used for ranking/drawing only; edge creation is decided
by relatedness in graph_service.
"""

from typing import Dict, List, Tuple

import networkx as nx
import structlog

from synapse.services.graph_service import ConceptGraph, connection_strength

log = structlog.get_logger(__name__)


def to_networkx(graph: ConceptGraph) -> nx.Graph:
    """Build an undirected NetworkX graph; edges carry visualization strength."""
    g = nx.Graph()
    for node in graph.nodes():
        g.add_node(
            node.id,
            concept=node.concept,
            domain=node.domain,
            weight=node.weight,
            frequency=node.frequency,
        )
    for edge in graph.edges():
        a, b = graph.get(edge.source), graph.get(edge.target)
        if a is None or b is None:
            continue
        g.add_edge(
            edge.source,
            edge.target,
            relatedness=edge.strength,
            strength=connection_strength(a, b),
        )
    return g


def concept_clusters(graph: ConceptGraph) -> Dict[str, int]:
    """
    Assign each node a cluster id via connected components.

    Clusters are numbered largest first; ties ordered by smallest node id.

    Returns:
        Dictionary mapping node id to cluster id
    """
    g = to_networkx(graph)
    components = sorted(
        (sorted(c) for c in nx.connected_components(g)),
        key=lambda c: (-len(c), c[0]),
    )
    partition = {}
    for cluster_id, members in enumerate(components):
        for node_id in members:
            partition[node_id] = cluster_id

    log.debug("concept_clusters_computed", clusters=len(components), nodes=len(partition))
    return partition


def rank_concepts(graph: ConceptGraph, limit: int = 10) -> List[Tuple[str, float]]:
    """
    Rank concepts by degree centrality, breaking ties by importance.

    Args:
        graph: Concept graph
        limit: Maximum entries returned

    Returns:
        [(node_id, centrality)] in descending rank order
    """
    g = to_networkx(graph)
    if g.number_of_nodes() == 0:
        return []
    centrality = nx.degree_centrality(g)

    def sort_key(node_id: str):
        node = graph.get(node_id)
        importance = node.importance if node is not None else 0.0
        return (-centrality[node_id], -importance, node_id)

    ranked = sorted(centrality, key=sort_key)
    return [(node_id, float(centrality[node_id])) for node_id in ranked[:limit]]


def graph_density(graph: ConceptGraph) -> float:
    """Edge density 2|E| / (|V|(|V|-1)); 0.0 for fewer than two nodes."""
    g = to_networkx(graph)
    if g.number_of_nodes() < 2:
        return 0.0
    return float(nx.density(g))
