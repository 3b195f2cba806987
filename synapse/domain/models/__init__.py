"""Domain models package."""

from .interaction import EventType, InteractionEvent
from .cognitive_state import CognitiveState, FeatureVector, StateLabel
from .knowledge_graph import (
    ConceptCandidate,
    ConceptEdge,
    ConceptNode,
    EdgeType,
    GraphSnapshot,
    normalize_concept_id,
)
from .assessment import AssessmentBand, AssessmentResult, GameType

__all__ = [
    "EventType",
    "InteractionEvent",
    "CognitiveState",
    "FeatureVector",
    "StateLabel",
    "ConceptCandidate",
    "ConceptEdge",
    "ConceptNode",
    "EdgeType",
    "GraphSnapshot",
    "normalize_concept_id",
    "AssessmentBand",
    "AssessmentResult",
    "GameType",
]
