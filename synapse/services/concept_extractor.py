"""
Concept extraction from viewed page text.

Pipeline:
1. Split text into sentences on . ! ? and drop short fragments
2. Per sentence, collect candidates from three sources:
   - technical dictionary terms found in the sentence (whole tokens, plurals allowed)
   - contiguous non-stopword token runs, chunked to at most 3 tokens
   - capitalized phrases (likely proper nouns / named concepts)
3. Weight each candidate (dictionary, frequency, position, capitalization)
4. Deduplicate by normalized id, keeping max weight and joining contexts
5. Return the top K by weight

Pure text processing: no network, no persistence.
"""

import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import structlog

from synapse.core.config import ExtractionConfig
from synapse.domain.models.knowledge_graph import (
    MAX_WEIGHT,
    ConceptCandidate,
    normalize_concept_id,
)
from synapse.services.relatedness import find_occurrences, tokenize

log = structlog.get_logger(__name__)

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "is", "are", "was", "were", "be", "been", "being",
        "have", "has", "had", "do", "does", "did", "will", "would", "could",
        "should", "may", "might", "can", "this", "that", "these", "those",
    }
)

TECHNICAL_TERMS: Tuple[str, ...] = (
    "algorithm",
    "machine learning",
    "artificial intelligence",
    "neural network",
    "deep learning",
    "data science",
    "programming",
    "software",
    "database",
    "api",
    "framework",
    "library",
    "javascript",
    "python",
    "react",
    "node.js",
    "typescript",
    "css",
    "html",
    "sql",
)
_TECHNICAL_SET = frozenset(TECHNICAL_TERMS)
_TECHNICAL_TOKENS: Tuple[Tuple[str, List[str]], ...] = tuple(
    (term, tokenize(term)) for term in TECHNICAL_TERMS
)

# Ordered: the first matching domain wins
DOMAIN_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "Computer Science": (
        "programming", "algorithm", "software", "code", "development", "api", "database",
    ),
    "Machine Learning": (
        "neural", "model", "training", "prediction", "classification", "regression",
    ),
    "Web Development": (
        "html", "css", "javascript", "react", "frontend", "backend", "framework",
    ),
    "Data Science": (
        "data", "analysis", "statistics", "visualization", "dataset", "analytics",
    ),
    "Mathematics": ("equation", "formula", "theorem", "proof", "calculation", "function"),
    "Science": ("research", "experiment", "hypothesis", "theory", "study", "analysis"),
}
DEFAULT_DOMAIN = "General"

DICTIONARY_BONUS = 2.0
POSITION_BONUS = 0.5
CAPITALIZATION_BONUS = 0.5

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_CAPITALIZED_PHRASE = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\b")
_NON_WORD = re.compile(r"[^\w]")


def classify_domain(concept: str, sentence_context: str) -> str:
    """
    Assign a knowledge domain from the fixed keyword table.

    A domain matches when any of its keywords occurs in the concept or in
    its sentence context. First matching domain wins.

    Args:
        concept: Concept text
        sentence_context: Sentence the concept was found in

    Returns:
        Domain name, or "General" when nothing matches
    """
    lower_concept = concept.lower()
    lower_context = sentence_context.lower()
    for domain, keywords in DOMAIN_KEYWORDS.items():
        if any(k in lower_context or k in lower_concept for k in keywords):
            return domain
    return DEFAULT_DOMAIN


class ConceptExtractor:
    """
    Extracts weighted, domain-tagged concept candidates from text.

    Usage:
        extractor = ConceptExtractor()
        candidates = extractor.extract_concepts(page_text, url=page_url)
    """

    def __init__(self, config: Optional[ExtractionConfig] = None):
        """
        Initialize extractor.

        Args:
            config: Extraction configuration (defaults to ExtractionConfig())
        """
        self.config = config or ExtractionConfig()

    def split_sentences(self, text: str) -> List[str]:
        """Split on . ! ? and keep fragments of at least min_sentence_length chars."""
        return [
            s.strip()
            for s in _SENTENCE_SPLIT.split(text)
            if len(s.strip()) >= self.config.min_sentence_length
        ]

    def _phrase_runs(self, sentence: str) -> List[str]:
        """Contiguous non-stopword token runs, chunked to max_phrase_tokens."""
        phrases: List[str] = []
        run: List[str] = []

        def flush() -> None:
            size = self.config.max_phrase_tokens
            for i in range(0, len(run), size):
                phrases.append(" ".join(run[i : i + size]))
            run.clear()

        for word in sentence.lower().split():
            clean = _NON_WORD.sub("", word)
            if clean in STOP_WORDS or len(clean) < 3:
                flush()
            else:
                run.append(clean)
        flush()

        return phrases

    def candidates_in_sentence(self, sentence: str) -> List[str]:
        """
        Raw candidate strings for one sentence, deduplicated, in discovery order.

        Sources: dictionary terms, non-stopword runs, capitalized phrases.
        """
        # Token matching shared with relatedness
        tokens = tokenize(sentence)
        found: List[str] = [
            term for term, term_tokens in _TECHNICAL_TOKENS if find_occurrences(term_tokens, tokens)
        ]
        found.extend(self._phrase_runs(sentence))
        found.extend(m for m in _CAPITALIZED_PHRASE.findall(sentence) if len(m) > 2)

        # dict preserves first-seen order
        return list(dict.fromkeys(found))

    def calculate_weight(self, concept: str, full_text: str) -> float:
        """
        Weight a candidate against the full text, capped at 10.

        weight = dictionary bonus (+2) + ln(frequency + 1)
                 + (1 - relative first position) * 0.5
                 + capitalization bonus (+0.5)
        """
        lower_text = full_text.lower()
        lower_concept = concept.lower()

        weight = DICTIONARY_BONUS if lower_concept in _TECHNICAL_SET else 0.0

        frequency = len(re.findall(re.escape(lower_concept), lower_text)) if lower_concept else 0
        weight += math.log(frequency + 1)

        position = lower_text.find(lower_concept)
        if position >= 0 and lower_text:
            weight += (1 - position / len(lower_text)) * POSITION_BONUS

        if concept[:1].isupper():
            weight += CAPITALIZATION_BONUS

        return min(weight, MAX_WEIGHT)

    def extract_concepts(self, text: Any, url: Optional[str] = None) -> List[ConceptCandidate]:
        """
        Extract the top-K concept candidates from text.

        Args:
            text: Page text; empty or non-string input yields []
            url: Optional source URL recorded on each candidate

        Returns:
            Candidates sorted by weight descending (stable for ties)
        """
        if not isinstance(text, str) or not text.strip():
            return []

        extracted_at = datetime.now(timezone.utc)
        merged: Dict[str, ConceptCandidate] = {}
        contexts: Dict[str, List[str]] = {}

        for sentence in self.split_sentences(text):
            for concept in self.candidates_in_sentence(sentence):
                concept_id = normalize_concept_id(concept)
                if not concept_id:
                    continue

                weight = self.calculate_weight(concept, text)
                existing = merged.get(concept_id)
                if existing is not None:
                    existing.weight = max(existing.weight, weight)
                    # "Python" and "python" in one sentence share one context entry
                    if sentence not in contexts[concept_id]:
                        contexts[concept_id].append(sentence)
                        existing.context = "; ".join(contexts[concept_id])
                    continue

                contexts[concept_id] = [sentence]
                merged[concept_id] = ConceptCandidate(
                    id=concept_id,
                    concept=concept,
                    domain=classify_domain(concept, sentence),
                    weight=weight,
                    context=sentence,
                    source_url=url,
                    extracted_at=extracted_at,
                )

        ranked = sorted(merged.values(), key=lambda c: c.weight, reverse=True)
        top = ranked[: self.config.top_k]

        log.debug(
            "concepts_extracted",
            text_length=len(text),
            unique_candidates=len(merged),
            returned=len(top),
        )

        return top
