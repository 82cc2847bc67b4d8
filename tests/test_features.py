"""Test the text feature extractor and distance helpers."""

import math
import random
import time

import numpy as np
import pytest

from promptgate.core.distance import calculate, cosine, jaccard, l2_normalize
from promptgate.core.errors import InputValidationError
from promptgate.core.features import entropy, extract_features, repetition_score, unusual_char_ratio
from promptgate.core.types import SimilarityMethod

SAMPLES = [
    "",
    "a",
    "aaaaaaaaaaaaaaaaaaaa",
    "Summarize this quarterly report in three bullet points.",
    "click here for free money now now now now",
    "¡Hola! ¿Cómo estás? 日本語のテキスト 🚀🚀🚀",
    "\x00\x01\x02 control chars",
    "the the the the the the the the the the the the",
    "!@#$%^&*" * 50,
]


def _reference_repetition(text):
    """Direct str.count version of the 3-character repetition measure."""
    words = text.lower().split()
    counts = {}
    for w in words:
        if len(w) > 2:
            counts[w] = counts.get(w, 0) + 1
    repeated = sum(c - 1 for c in counts.values() if c > 1)
    word_score = min(repeated / len(words), 1.0) if words else 0.0

    char_repetition = 0
    for i in range(len(text) - 3):
        count = text.count(text[i:i + 3])
        if count > 2:
            char_repetition += count - 2
    return max(word_score, min(char_repetition / len(text), 1.0) * 0.5)


class TestEntropy:

    def test_empty_is_zero(self):
        assert entropy("") == 0.0

    def test_single_symbol_is_zero(self):
        assert entropy("aaaa") == 0.0

    def test_two_equal_symbols_is_one_bit(self):
        assert entropy("abab") == pytest.approx(1.0)

    @pytest.mark.parametrize("text", SAMPLES)
    def test_non_negative(self, text):
        assert entropy(text) >= 0.0

    def test_uniform_alphabet(self):
        assert entropy("abcdefgh") == pytest.approx(math.log2(8))


class TestRepetitionScore:

    def test_short_input_is_zero(self):
        assert repetition_score("aaa aaa") == 0.0

    @pytest.mark.parametrize("text", SAMPLES)
    def test_bounded(self, text):
        assert 0.0 <= repetition_score(text) <= 1.0

    def test_repeated_words_score_high(self):
        assert repetition_score("spam spam spam spam spam spam spam spam") > 0.8

    def test_distinct_words_score_low(self):
        assert repetition_score("Summarize this quarterly report in three bullet points.") < 0.2

    def test_spam_sentence_repeats_words(self):
        assert repetition_score("click here for free money now now now now") > 0.3

    @pytest.mark.parametrize("text", ["aaaaaaaaaaaaaaaaaaaa", "abababababababab", "abcabcabcabc xyz",
                                      "aXaYaZa aXa aXa aXa aXa", "now now now now now"])
    def test_counts_sequences_without_overlap(self, text):
        assert repetition_score(text) == pytest.approx(_reference_repetition(text))

    def test_max_length_input_is_fast(self):
        rng = random.Random(7)
        text = "".join(chr(0x4E00 + rng.randrange(20_000)) for _ in range(100_000))

        started = time.perf_counter()
        repetition_score(text)

        assert time.perf_counter() - started < 1.0

    def test_max_length_alternating_input_is_fast(self):
        text = "".join("a" + chr(0x4E00 + i % 20_000) for i in range(50_000))

        started = time.perf_counter()
        score = repetition_score(text)

        assert time.perf_counter() - started < 1.0
        assert 0.0 <= score <= 1.0


class TestUnusualCharRatio:

    def test_empty_is_zero(self):
        assert unusual_char_ratio("") == 0.0

    def test_plain_text_is_zero(self):
        assert unusual_char_ratio("Hello, world! (it's fine) - ok?") == 0.0

    def test_symbols_only_is_one(self):
        assert unusual_char_ratio("@#$%") == 1.0

    @pytest.mark.parametrize("text", SAMPLES)
    def test_bounded(self, text):
        assert 0.0 <= unusual_char_ratio(text) <= 1.0


class TestExtractFeatures:

    def test_deterministic(self):
        text = "Some text with a few words, repeated words words."
        assert extract_features(text) == extract_features(text)

    def test_rejects_non_string(self):
        with pytest.raises(InputValidationError):
            extract_features(None)
        with pytest.raises(InputValidationError):
            entropy(123)


class TestDistance:

    def test_cosine_zero_vector(self):
        assert cosine(np.zeros(3), np.array([1.0, 0.0, 0.0])) == 0.0

    def test_cosine_dimension_mismatch(self):
        with pytest.raises(ValueError):
            cosine(np.ones(3), np.ones(4))

    def test_cosine_symmetric(self):
        rng = np.random.default_rng(7)
        a, b = rng.standard_normal(16), rng.standard_normal(16)
        assert cosine(a, b) == pytest.approx(cosine(b, a))

    @pytest.mark.parametrize("method", list(SimilarityMethod))
    def test_identical_vectors_score_one(self, method):
        v = l2_normalize(np.array([[0.3, -0.4, 0.5]]))[0]
        assert calculate(v, v, method).normalized == pytest.approx(1.0)

    @pytest.mark.parametrize("method", list(SimilarityMethod))
    def test_normalized_in_unit_interval(self, method):
        rng = np.random.default_rng(11)
        for _ in range(20):
            a, b = rng.standard_normal(8), rng.standard_normal(8)
            assert 0.0 <= calculate(a, b, method).normalized <= 1.0

    def test_euclidean_maps_distance(self):
        score = calculate(np.array([0.0, 0.0]), np.array([3.0, 4.0]), SimilarityMethod.EUCLIDEAN)
        assert score.score == pytest.approx(5.0)
        assert score.normalized == pytest.approx(1 / 6)

    def test_jaccard(self):
        assert jaccard(["a", "b"], ["b", "c"]) == pytest.approx(1 / 3)
        assert jaccard([], []) == 0.0
