"""Repository implementations."""

from synapse.persistence.repositories.concept_repo import ConceptRepository
from synapse.persistence.repositories.interaction_repo import InteractionRepository

__all__ = [
    "ConceptRepository",
    "InteractionRepository",
]
