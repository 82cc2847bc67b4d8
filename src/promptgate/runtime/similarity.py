"""Prompt similarity / dedup checks against caller-supplied known prompts."""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Union

import numpy as np

from ..core.abc import Embeddings, FeatureFlags, Logger, Meter
from ..core.distance import calculate, jaccard, l2_normalize
from ..core.errors import EmbeddingUnavailableError, InputValidationError, ensure_text
from ..core.logging import get_logger
from ..core.types import (SimilarityAuditRecord, SimilarityContext, SimilarityMethod,
                          SimilarityVerdict)
from ..policy.schema import SimilarityOptions
from .audit import AuditDispatcher

FALLBACK_METHOD = "jaccard"
LOGGING_FLAG = "enable_similarity_logging"


def fallback_word_similarity(prompt: str, known_prompts: Sequence[str],
                             threshold: float = 0.7) -> SimilarityVerdict:
    """
    Jaccard similarity over lower-cased whitespace-separated words.

    Used only when embeddings are unavailable. A known prompt matches when
    its score is strictly above the threshold.
    """
    prompt_words = prompt.lower().split()
    best = 0.0
    matched: List[str] = []

    for known in known_prompts:
        score = jaccard(prompt_words, known.lower().split())
        if score > best:
            best = score
        if score > threshold:
            matched.append(known)

    return SimilarityVerdict(
        similar=best > threshold,
        score=best,
        matched_references=tuple(matched) if matched else None,
        method=FALLBACK_METHOD,
        fallback_used=True,
    )


class PromptSimilarityChecker:
    """
    Compares a prompt's embedding with embeddings of known prompts.

    Every check emits a SimilarityAuditRecord through the audit dispatcher
    (when similarity logging is enabled); audit failures never change the
    verdict. If the embedding provider fails or times out, the check falls
    back to word-set Jaccard similarity.
    """

    def __init__(self, *, embedder: Optional[Embeddings],
                 options: Optional[SimilarityOptions] = None,
                 audit: Optional[AuditDispatcher] = None,
                 flags: Optional[FeatureFlags] = None,
                 embedding_timeout: float = 5.0,
                 logger: Optional[Logger] = None, meter: Optional[Meter] = None):
        self.embedder = embedder
        self.options = options or SimilarityOptions()
        self.audit = audit
        self.flags = flags
        self.embedding_timeout = embedding_timeout
        self.log = logger or get_logger(__name__)
        self.meter = meter

    async def check(self, prompt: str, known_prompts: Sequence[str],
                    context: Optional[SimilarityContext] = None,
                    threshold: Optional[float] = None,
                    method: Union[SimilarityMethod, str, None] = None) -> SimilarityVerdict:
        """
        Check whether a prompt duplicates any known prompt.

        Args:
            prompt: Incoming prompt
            known_prompts: Previously flagged / known prompt texts
            context: Caller identity for the audit record
            threshold: Similarity in [0, 1] at or above which prompts are similar
            method: cosine | euclidean | dot_product | manhattan

        Returns:
            SimilarityVerdict: Best score and the prompt it came from
        """
        ensure_text(prompt, "prompt")
        for known in known_prompts:
            ensure_text(known, "known prompt")
        context = context or SimilarityContext()
        threshold = self.options.threshold if threshold is None else threshold
        if not 0.0 <= threshold <= 1.0:
            raise InputValidationError(f"threshold must be within [0, 1], got {threshold}")
        try:
            method = SimilarityMethod(method or self.options.method)
        except ValueError:
            raise InputValidationError(f"Unsupported similarity method: {method}")

        if not known_prompts:
            verdict = SimilarityVerdict(similar=False, score=0.0, method=method.value)
            self._emit(prompt, None, None, None, verdict, threshold, context)
            return verdict

        try:
            vecs = await self._embed([prompt, *known_prompts])
        except EmbeddingUnavailableError as e:
            self.log.warn("Embedding unavailable, using word-based similarity fallback",
                          error=str(e), known=len(known_prompts))
            if self.meter:
                self.meter.inc("promptgate.similarity.fallback")
            verdict = fallback_word_similarity(prompt, known_prompts,
                                               self.options.fallback_threshold)
            matched = verdict.matched_references[0] if verdict.matched_references else None
            self._emit(prompt, None, matched, None, verdict,
                       self.options.fallback_threshold, context)
            return self._finish(verdict)

        prompt_vec = vecs[0]
        best = 0.0
        best_index: Optional[int] = None
        for i, known in enumerate(known_prompts):
            score = calculate(prompt_vec, vecs[i + 1], method).normalized
            if score > best:
                best = score
                best_index = i

        best = min(max(best, 0.0), 1.0)
        matched = known_prompts[best_index] if best_index is not None else None
        verdict = SimilarityVerdict(
            similar=best >= threshold,
            score=best,
            matched_references=(matched,) if matched is not None else None,
            method=method.value,
        )
        matched_vec = vecs[best_index + 1] if best_index is not None else None
        self._emit(prompt, prompt_vec, matched, matched_vec, verdict, threshold, context)
        return self._finish(verdict)

    async def _embed(self, texts: List[str]) -> np.ndarray:
        if self.embedder is None:
            raise EmbeddingUnavailableError("No embedder configured")
        try:
            vecs = await asyncio.wait_for(self.embedder.embed(texts), timeout=self.embedding_timeout)
        except asyncio.TimeoutError as e:
            raise EmbeddingUnavailableError(
                f"Embedding timed out after {self.embedding_timeout}s") from e
        except Exception as e:
            raise EmbeddingUnavailableError(f"Embedding failed: {e}") from e

        vecs = np.asarray(vecs, dtype=np.float64)
        if vecs.ndim != 2 or vecs.shape[0] != len(texts):
            raise EmbeddingUnavailableError(
                f"Expected {len(texts)} embeddings, got shape {vecs.shape}")
        return l2_normalize(vecs)

    def _logging_enabled(self, context: SimilarityContext) -> bool:
        if self.flags is None:
            return True
        try:
            return bool(self.flags.is_enabled(LOGGING_FLAG, context.user_id, context.workspace_id))
        except Exception as e:
            self.log.warn("Feature flag lookup failed, assuming enabled",
                          flag=LOGGING_FLAG, error=str(e))
            return True

    def _emit(self, prompt: str, prompt_vec: Optional[np.ndarray], matched: Optional[str],
              matched_vec: Optional[np.ndarray], verdict: SimilarityVerdict,
              threshold: float, context: SimilarityContext) -> None:
        if self.audit is None or not self.audit.enabled:
            return
        if not self._logging_enabled(context):
            return

        record = SimilarityAuditRecord(
            prompt=prompt,
            prompt_embedding=prompt_vec.tolist() if prompt_vec is not None else None,
            matched_text=matched,
            matched_embedding=matched_vec.tolist() if matched_vec is not None else None,
            score=verdict.score,
            threshold_used=threshold,
            method_used=verdict.method,
            action_taken="blocked" if verdict.similar else "allowed",
            timestamp=datetime.now(timezone.utc),
            org_id=context.org_id,
            workspace_id=context.workspace_id,
            user_id=context.user_id,
            trace_id=context.trace_id,
            workflow_execution_id=context.workflow_execution_id,
            node_id=context.node_id,
        )
        self.audit.submit(record)

    def _finish(self, verdict: SimilarityVerdict) -> SimilarityVerdict:
        action = "blocked" if verdict.similar else "allowed"
        if self.meter:
            self.meter.inc(f"promptgate.similarity.{action}", method=verdict.method)
            self.meter.observe("promptgate.similarity.score", verdict.score, method=verdict.method)
        self.log.info("similarity_check", action=action, score=round(verdict.score, 4),
                      method=verdict.method, fallback=verdict.fallback_used)
        return verdict
