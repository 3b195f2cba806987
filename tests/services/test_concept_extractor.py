"""Tests for ConceptExtractor."""

import math

import pytest

from synapse.core.config import ExtractionConfig
from synapse.services.concept_extractor import (
    DEFAULT_DOMAIN,
    ConceptExtractor,
    classify_domain,
)

SCENARIO_TEXT = "Machine learning uses neural networks for deep learning tasks"


@pytest.fixture
def extractor():
    return ConceptExtractor()


class TestEdgeInputs:
    """Empty and non-string input."""

    @pytest.mark.parametrize("text", ["", "   ", None, 42, ["machine learning"]])
    def test_returns_empty_list(self, extractor, text):
        assert extractor.extract_concepts(text) == []

    def test_only_short_fragments(self, extractor):
        """Fragments under 10 characters are discarded."""
        assert extractor.extract_concepts("Hi. Ok! Yes?") == []


class TestSentenceSplitting:
    def test_split_on_terminators(self, extractor):
        sentences = extractor.split_sentences(
            "Python is a language. Is it fast? Not always!"
        )

        assert sentences == ["Python is a language", "Is it fast", "Not always"]

    def test_fragment_under_ten_chars_dropped(self, extractor):
        assert extractor.split_sentences("Short one. This one is long enough.") == [
            "This one is long enough"
        ]

    def test_min_length_is_configurable(self):
        extractor = ConceptExtractor(ExtractionConfig(min_sentence_length=3))

        assert extractor.split_sentences("Cats. Dogs.") == ["Cats", "Dogs"]


class TestCandidates:
    """Candidate sources within a sentence."""

    def test_dictionary_terms(self, extractor):
        found = extractor.candidates_in_sentence(SCENARIO_TEXT)

        assert "machine learning" in found
        assert "deep learning" in found
        assert "neural network" in found

    def test_non_stopword_runs_are_chunked(self, extractor):
        found = extractor.candidates_in_sentence(SCENARIO_TEXT)

        assert "machine learning uses" in found
        assert "neural networks" in found
        assert "deep learning tasks" in found

    def test_stopwords_and_short_tokens_break_runs(self, extractor):
        found = extractor.candidates_in_sentence("graph of it walks the nodes quickly")

        assert "graph" in found
        assert "walks" in found
        assert "nodes quickly" in found

    def test_capitalized_phrases(self, extractor):
        found = extractor.candidates_in_sentence("We visited Grand Canyon National Park today")

        assert "Grand Canyon National Park" in found

    def test_dictionary_terms_match_whole_tokens(self, extractor):
        found = extractor.candidates_in_sentence("Neural networks run rapid algorithms")

        assert "neural network" in found
        assert "algorithm" in found
        assert "api" not in found

    def test_candidates_deduplicated_in_order(self, extractor):
        found = extractor.candidates_in_sentence("python python python is great")

        assert found.count("python") == 1
        assert found[0] == "python"


class TestWeights:
    """Tests for calculate_weight."""

    def test_dictionary_term_weight(self, extractor):
        weight = extractor.calculate_weight("machine learning", SCENARIO_TEXT)

        # +2 dictionary, ln(1+1) frequency, first position -> +0.5
        assert weight == pytest.approx(2 + math.log(2) + 0.5)

    def test_capitalized_bonus(self, extractor):
        lower = extractor.calculate_weight("machine", SCENARIO_TEXT)
        upper = extractor.calculate_weight("Machine", SCENARIO_TEXT)

        assert upper == pytest.approx(lower + 0.5)

    def test_weight_capped_at_ten(self, extractor):
        text = " ".join(["python"] * 100_000)

        assert extractor.calculate_weight("python", text) == 10.0

    def test_regex_metacharacters_are_literal(self, extractor):
        assert extractor.calculate_weight("c++", "I like c++ and c") > 0

    def test_later_position_weighs_less(self, extractor):
        text = "alpha beta gamma delta epsilon"

        assert extractor.calculate_weight("alpha", text) > extractor.calculate_weight(
            "epsilon", text
        )


class TestExtractConcepts:
    """End-to-end extraction."""

    def test_scenario_concepts_extracted(self, extractor):
        ids = {c.id for c in extractor.extract_concepts(SCENARIO_TEXT)}

        assert "machine-learning" in ids
        assert "neural-networks" in ids

    def test_sorted_by_weight(self, extractor):
        candidates = extractor.extract_concepts(SCENARIO_TEXT)
        weights = [c.weight for c in candidates]

        assert weights == sorted(weights, reverse=True)

    def test_url_recorded(self, extractor):
        candidates = extractor.extract_concepts(SCENARIO_TEXT, url="https://example.com")

        assert all(c.source_url == "https://example.com" for c in candidates)

    def test_duplicates_merge_contexts(self, extractor):
        text = "Python runs scripts quickly. Many teams write Python daily."

        python = next(c for c in extractor.extract_concepts(text) if c.id == "python")

        assert python.context == "Python runs scripts quickly; Many teams write Python daily"

    def test_top_k(self):
        extractor = ConceptExtractor(ExtractionConfig(top_k=3))

        assert len(extractor.extract_concepts(SCENARIO_TEXT)) == 3

    def test_ids_are_unique(self, extractor):
        candidates = extractor.extract_concepts(SCENARIO_TEXT + ". " + SCENARIO_TEXT)
        ids = [c.id for c in candidates]

        assert len(ids) == len(set(ids))

    def test_extraction_is_repeatable(self, extractor):
        first = [(c.id, c.weight) for c in extractor.extract_concepts(SCENARIO_TEXT)]
        second = [(c.id, c.weight) for c in extractor.extract_concepts(SCENARIO_TEXT)]

        assert first == second


class TestClassifyDomain:
    """Domain keyword table."""

    def test_first_matching_domain_wins(self):
        # "algorithm" (Computer Science) precedes "neural" (Machine Learning)
        assert classify_domain("neural algorithm", "") == "Computer Science"

    def test_context_can_decide(self):
        assert classify_domain("gradient", "training the model") == "Machine Learning"

    def test_default_domain(self):
        assert classify_domain("banana", "a yellow fruit") == DEFAULT_DOMAIN


def test_inflected_dictionary_term_is_linked():
    """A dictionary term found in plural form still gets an edge."""
    from synapse.services.graph_service import ConceptGraph

    text = "Neural networks power deep learning systems today."
    candidates = ConceptExtractor().extract_concepts(text)
    graph = ConceptGraph()

    graph.merge_candidates(candidates, text)

    assert "neural-network" in {c.id for c in candidates}
    assert graph.has_edge("neural-network", "deep-learning")
