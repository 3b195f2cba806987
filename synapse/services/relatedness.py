"""
Token-distance relatedness between two concepts within one source text.

Score:
- 0.0 if either concept does not occur in the text
- 1.0 at distance 0
- floor (0.1) at distance >= max_distance (20)
- otherwise max(floor, exp(-decay * distance)), decay 0.2

A concept occurs where its tokens appear in order; the last token may
carry a plural ending in the text ("network" in "networks").

Distance is the minimum gap between the starting token indices of any
occurrence of A and any occurrence of B. With the defaults, pairs at most
6 tokens apart clear the 0.3 edge threshold.

This score decides edge creation only. Visualization strength is a
separate function (see graph_service.connection_strength).
"""

import math
import re
from typing import List, Optional, Sequence

from synapse.core.config import RelatednessConfig

_TOKEN = re.compile(r"\w+")

# Plural endings accepted on the last token of a concept
_INFLECTIONS = ("s", "es")


def tokenize(text: str) -> List[str]:
    """Lowercased word tokens."""
    return _TOKEN.findall(text.lower())


def _matches_last(concept_token: str, text_token: str) -> bool:
    if text_token == concept_token:
        return True
    return text_token.startswith(concept_token) and text_token[len(concept_token) :] in _INFLECTIONS


def find_occurrences(concept_tokens: Sequence[str], text_tokens: Sequence[str]) -> List[int]:
    """
    Starting indices of every occurrence of the token sequence.

    Leading tokens must match exactly. The last token may carry a plural
    ending, so "neural network" occurs in "neural networks".
    """
    n = len(concept_tokens)
    if n == 0 or n > len(text_tokens):
        return []
    head = list(concept_tokens[:-1])
    last = concept_tokens[-1]
    return [
        i
        for i in range(len(text_tokens) - n + 1)
        if list(text_tokens[i : i + n - 1]) == head and _matches_last(last, text_tokens[i + n - 1])
    ]


def min_distance(positions_a: Sequence[int], positions_b: Sequence[int]) -> Optional[int]:
    """Minimum |i - j| over two ascending position lists (two-pointer walk)."""
    if not positions_a or not positions_b:
        return None
    i = j = 0
    best = abs(positions_a[0] - positions_b[0])
    while i < len(positions_a) and j < len(positions_b):
        best = min(best, abs(positions_a[i] - positions_b[j]))
        if best == 0:
            break
        if positions_a[i] < positions_b[j]:
            i += 1
        else:
            j += 1
    return best


class RelatednessScorer:
    """
    Scores concept-pair proximity and decides edge creation.

    Usage:
        scorer = RelatednessScorer()
        score = scorer.relatedness("machine learning", "neural networks", text)
        if scorer.creates_edge(score): ...
    """

    def __init__(self, config: Optional[RelatednessConfig] = None):
        """
        Initialize scorer.

        Args:
            config: Relatedness configuration (defaults to RelatednessConfig())
        """
        self.config = config or RelatednessConfig()

    def score_distance(self, distance: int) -> float:
        """Map a token distance to a score in [floor, 1]."""
        if distance <= 0:
            return 1.0
        if distance >= self.config.max_distance:
            return self.config.floor
        return max(self.config.floor, math.exp(-self.config.decay * distance))

    def relatedness(
        self,
        concept_a: str,
        concept_b: str,
        source_text: str,
        text_tokens: Optional[Sequence[str]] = None,
    ) -> float:
        """
        Relatedness of two concepts in one text.

        Args:
            concept_a: First concept text
            concept_b: Second concept text
            source_text: Text both concepts were extracted from
            text_tokens: Pre-tokenized source_text, to avoid re-tokenizing per pair

        Returns:
            Score in [0, 1]; 0 when either concept is absent
        """
        if not isinstance(source_text, str) or not source_text:
            return 0.0

        tokens = text_tokens if text_tokens is not None else tokenize(source_text)
        distance = min_distance(
            find_occurrences(tokenize(concept_a), tokens),
            find_occurrences(tokenize(concept_b), tokens),
        )
        if distance is None:
            return 0.0
        return self.score_distance(distance)

    def creates_edge(self, score: float) -> bool:
        """True when a score is strong enough to link two concepts."""
        return score > self.config.edge_threshold


_default_scorer = RelatednessScorer()


def relatedness(concept_a: str, concept_b: str, source_text: str) -> float:
    """Relatedness with the default configuration."""
    return _default_scorer.relatedness(concept_a, concept_b, source_text)
