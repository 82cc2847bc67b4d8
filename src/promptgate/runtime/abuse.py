"""Abuse detection combining regex patterns, text statistics and semantic distance."""

import asyncio
import re
from typing import List, Optional

import numpy as np

from ..core.abc import Embeddings, Logger, Meter
from ..core.distance import l2_normalize
from ..core.errors import EmbeddingUnavailableError, ensure_text
from ..core.features import extract_features
from ..core.logging import get_logger
from ..core.types import AbusePattern, AbuseVerdict, Action, TextFeatures
from ..policy.corpus import EMPTY_CORPUS, CorpusLoader, KnownAbuseCorpus
from ..policy.schema import AbuseOptions
from .safety import check_content_safety

KNOWN_ABUSE_PATTERNS = (
    re.compile(r"\b(?:spam|scam|phishing|fraud)", re.IGNORECASE),
    re.compile(r"\b(?:harass|threat|violence|hate)", re.IGNORECASE),
    # Common spam lures
    re.compile(r"\b(?:click here|free money|act now|limited time offer|wire transfer fee)\b",
               re.IGNORECASE),
)

SEMANTIC_CHECK = "semantic_similarity"


class AbuseDetector:
    """
    Per-call abuse verdicts with ordered short-circuiting.

    Known-abuse regexes run first and block immediately. Otherwise statistical
    features and semantic distance to the known-abuse corpus build an ML
    score, content safety is folded in, and the score decides the action.
    Embedding failures skip the semantic step (fail-open for that signal).
    """

    def __init__(self, *, options: Optional[AbuseOptions] = None,
                 embedder: Optional[Embeddings] = None,
                 corpus: Optional[CorpusLoader] = None,
                 embedding_timeout: float = 5.0,
                 logger: Optional[Logger] = None, meter: Optional[Meter] = None):
        self.options = options or AbuseOptions()
        self.embedder = embedder
        self.corpus = corpus
        self.embedding_timeout = embedding_timeout
        self.log = logger or get_logger(__name__)
        self.meter = meter

    async def check(self, text: str, options: Optional[AbuseOptions] = None) -> AbuseVerdict:
        """
        Score a text for abuse.

        Args:
            text: Prompt to check
            options: Per-call override of the detector's options

        Returns:
            AbuseVerdict: Verdict with action allow / warn / block
        """
        ensure_text(text)
        opts = options or self.options
        patterns: List[AbusePattern] = []

        # Step 1: known abuse regexes
        for pattern in KNOWN_ABUSE_PATTERNS:
            if pattern.search(text):
                patterns.append(AbusePattern("regex_pattern", opts.pattern_match_confidence,
                                             "Matched known abuse pattern"))
                verdict = AbuseVerdict(
                    is_abuse=True,
                    confidence=opts.pattern_match_confidence,
                    action=Action.BLOCK,
                    ml_score=opts.pattern_match_confidence,
                    abuse_type="pattern_match",
                    patterns=tuple(patterns),
                    features=extract_features(text),
                )
                return self._finish(verdict, text)

        ml_score = 0.0
        features: Optional[TextFeatures] = None
        semantic_similarity: Optional[float] = None
        matched_reference: Optional[str] = None
        degraded: List[str] = []

        if opts.use_ml_detection:
            # Step 2: statistical features
            features = extract_features(text)
            ml_score += self._score_features(features, opts, patterns)

            # Step 3: semantic distance to the known-abuse corpus
            if opts.check_semantic_similarity:
                corpus = await self._corpus()
                if len(corpus) > 0:
                    try:
                        semantic_similarity, matched_reference = await self._semantic_match(text, corpus)
                    except EmbeddingUnavailableError as e:
                        degraded.append(SEMANTIC_CHECK)
                        self.log.warn("Semantic abuse check skipped (degraded)", error=str(e))
                        if self.meter:
                            self.meter.inc("promptgate.abuse.degraded", check=SEMANTIC_CHECK)
                    else:
                        if semantic_similarity > opts.semantic_threshold:
                            patterns.append(AbusePattern(
                                "semantic_similarity", semantic_similarity,
                                f"Semantically similar to known abuse: {matched_reference}"))
                            ml_score += semantic_similarity * opts.semantic_weight

            # Step 4
            ml_score = min(max(ml_score, 0.0), 1.0)

        # Step 5: content safety
        safety = check_content_safety(text)
        if not safety.safe or safety.score < opts.unsafe_below or safety.has_severe:
            unsafety = 1.0 - safety.score
            kinds = ", ".join(v.kind for v in safety.violations)
            patterns.append(AbusePattern("content_safety", unsafety,
                                         f"Content safety violation: {kinds}"))
            combined = max(ml_score, unsafety)
            block = safety.has_severe or combined > opts.block_threshold
            verdict = AbuseVerdict(
                is_abuse=safety.has_severe or combined > opts.ml_threshold,
                confidence=combined,
                action=Action.BLOCK if block else Action.WARN,
                ml_score=combined,
                abuse_type="content_safety",
                patterns=tuple(patterns),
                features=features,
                semantic_similarity=semantic_similarity,
                matched_reference=matched_reference,
                degraded_checks=tuple(degraded),
            )
            return self._finish(verdict, text)

        # Step 6: final decision on the ML score
        is_abuse = ml_score > opts.ml_threshold
        if not is_abuse:
            action = Action.ALLOW
        elif ml_score > opts.block_threshold:
            action = Action.BLOCK
        else:
            action = Action.WARN

        verdict = AbuseVerdict(
            is_abuse=is_abuse,
            confidence=ml_score,
            action=action,
            ml_score=ml_score,
            abuse_type="ml_detection" if is_abuse else None,
            patterns=tuple(patterns),
            features=features,
            semantic_similarity=semantic_similarity,
            matched_reference=matched_reference,
            degraded_checks=tuple(degraded),
        )
        return self._finish(verdict, text)

    @staticmethod
    def _score_features(features: TextFeatures, opts: AbuseOptions,
                        patterns: List[AbusePattern]) -> float:
        score = 0.0

        if features.entropy > opts.entropy_threshold:
            entropy_score = min((features.entropy - opts.entropy_threshold) / opts.entropy_span, 1.0)
            patterns.append(AbusePattern("high_entropy", entropy_score * 0.6,
                                         f"High entropy detected: {features.entropy:.2f}"))
            score += entropy_score * opts.entropy_weight

        if features.repetition_score > opts.repetition_threshold:
            patterns.append(AbusePattern("high_repetition", features.repetition_score * 0.8,
                                         f"High repetition detected: {features.repetition_score * 100:.1f}%"))
            score += features.repetition_score * opts.repetition_weight

        if features.unusual_char_ratio > opts.unusual_char_threshold:
            patterns.append(AbusePattern("unusual_characters", features.unusual_char_ratio * 0.7,
                                         f"Unusual characters: {features.unusual_char_ratio * 100:.1f}%"))
            score += features.unusual_char_ratio * opts.unusual_char_weight

        return score

    async def _corpus(self) -> KnownAbuseCorpus:
        if self.corpus is None:
            return EMPTY_CORPUS
        return await self.corpus.get()

    async def _semantic_match(self, text: str, corpus: KnownAbuseCorpus):
        if self.embedder is None:
            raise EmbeddingUnavailableError("No embedder configured")
        try:
            vecs = await asyncio.wait_for(self.embedder.embed([text]), timeout=self.embedding_timeout)
        except asyncio.TimeoutError as e:
            raise EmbeddingUnavailableError(
                f"Embedding timed out after {self.embedding_timeout}s") from e
        except Exception as e:
            raise EmbeddingUnavailableError(f"Embedding failed: {e}") from e

        vecs = np.asarray(vecs, dtype=np.float64)
        if vecs.size == 0:
            raise EmbeddingUnavailableError("Empty embedding returned")
        if vecs.ndim == 1:
            vecs = vecs.reshape(1, -1)
        if vecs.shape[1] != corpus.dim:
            raise EmbeddingUnavailableError(
                f"Embedding dimension {vecs.shape[1]} does not match corpus dimension {corpus.dim}")

        query_vec = l2_normalize(vecs)[0]
        entry, score = corpus.find_best_match(query_vec)
        return score, entry.reference_text if entry else None

    def _finish(self, verdict: AbuseVerdict, text: str) -> AbuseVerdict:
        if self.meter:
            self.meter.inc(f"promptgate.abuse.{verdict.action.value}")
        if verdict.action is Action.ALLOW:
            self.log.info("abuse_check", action=verdict.action.value,
                          ml_score=round(verdict.ml_score, 4), text_length=len(text))
        else:
            self.log.warn("abuse_check", action=verdict.action.value,
                          abuse_type=verdict.abuse_type,
                          confidence=round(verdict.confidence, 4), text_length=len(text))
        return verdict
