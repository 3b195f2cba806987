"""Domain models for the user-scoped concept graph.

Core Models:
    - ConceptCandidate: weighted concept found in one text, before graph merge
    - ConceptNode: a concept the user has encountered (created once, then updated)
    - ConceptEdge: symmetric link between two nodes
    - GraphSnapshot: serializable {nodes, edges} output contract

Connections are a native set of node ids. Conversion to the JSON string
representation used by storage happens only in the persistence layer.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Set

from pydantic import BaseModel, Field, field_serializer, field_validator

MAX_WEIGHT = 10.0


def normalize_concept_id(concept: str) -> str:
    """Normalize concept text into a node id.

    Lowercase, whitespace runs become hyphens, remaining non-word characters
    (other than hyphens) are stripped.

    Examples:
        "Machine Learning" -> "machine-learning"
        "node.js" -> "nodejs"
    """
    slug = re.sub(r"\s+", "-", concept.strip().lower())
    return re.sub(r"[^\w-]", "", slug)


class EdgeType(str, Enum):
    """Relationship kinds between concept nodes."""

    DOMAIN = "domain"
    MASTERY = "mastery"
    CONCEPTUAL = "conceptual"
    SEMANTIC = "semantic"
    CONTEXTUAL = "contextual"
    TEMPORAL = "temporal"


class ConceptCandidate(BaseModel):
    """Concept extracted from one text, pre-merge.

    Lifecycle:
        1. Produced by ConceptExtractor (deduplicated within the text)
        2. Merged into a ConceptGraph as a new or updated ConceptNode
    """

    id: str = Field(description="Normalized concept id")
    concept: str = Field(description="Concept text as first seen")
    domain: str = Field(default="General")
    weight: float = Field(ge=0.0, le=MAX_WEIGHT)
    context: str = Field(default="", description="Source sentence(s), '; '-joined")
    source_url: Optional[str] = None
    extracted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ConceptNode(BaseModel):
    """A concept node in one user's graph.

    frequency never decreases. Nodes are never deleted by the core;
    retention is an external policy.
    """

    id: str
    concept: str
    domain: str = "General"
    weight: float = Field(default=1.0, ge=0.0, le=MAX_WEIGHT)
    frequency: int = Field(default=1, ge=1)
    connections: Set[str] = Field(default_factory=set)
    last_seen: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    mastery: float = Field(default=0.0, ge=0.0, le=1.0)
    source_url: Optional[str] = None

    model_config = {"from_attributes": True}

    @field_validator("connections", mode="before")
    @classmethod
    def _coerce_connections(cls, v):
        """Accept any iterable of ids (lists arrive from JSON)."""
        if v is None:
            return set()
        return set(v)

    @field_serializer("connections")
    def _serialize_connections(self, connections: Set[str]) -> List[str]:
        return sorted(connections)

    @property
    def importance(self) -> float:
        """Weight normalized to [0, 1]."""
        return self.weight / MAX_WEIGHT


class ConceptEdge(BaseModel):
    """A symmetric relationship between two concept nodes.

    source/target are stored in sorted order so an unordered pair has one
    canonical edge.
    """

    source: str
    target: str
    strength: float = Field(ge=0.0, le=1.0)
    type: EdgeType = EdgeType.CONTEXTUAL

    @property
    def key(self) -> tuple:
        return edge_key(self.source, self.target)


def edge_key(a: str, b: str) -> tuple:
    """Canonical key for the unordered pair (a, b)."""
    return (a, b) if a <= b else (b, a)


class GraphSnapshot(BaseModel):
    """Graph output contract: {nodes: [...], edges: [...]}."""

    user_id: Optional[str] = None
    nodes: List[ConceptNode] = Field(default_factory=list)
    edges: List[ConceptEdge] = Field(default_factory=list)
