"""Known-abuse corpus built once from reference texts via the injected embedder."""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

import numpy as np

from ..core.abc import Embeddings, Logger
from ..core.distance import l2_normalize
from ..core.logging import get_logger
from ..core.types import KnownAbuseEntry


class CorpusState(str, Enum):
    PENDING = "pending"
    BUILDING = "building"
    BUILT = "built"
    FAILED = "failed"


@dataclass(frozen=True)
class KnownAbuseCorpus:
    """Immutable set of (reference text, embedding) pairs."""
    entries: Tuple[KnownAbuseEntry, ...]
    dim: int

    def __len__(self) -> int:
        return len(self.entries)

    def find_best_match(self, query_vector: np.ndarray) -> Tuple[Optional[KnownAbuseEntry], float]:
        """
        Find the closest reference for an L2-normalized query vector.

        Returns:
            tuple: (best_entry_or_none, cosine similarity clamped to [0, 1])
        """
        if not self.entries:
            return None, 0.0

        best_entry = None
        best_score = -1.0
        for entry in self.entries:
            score = float(np.dot(query_vector, entry.embedding))
            if score > best_score:
                best_score = score
                best_entry = entry

        return best_entry, min(max(best_score, 0.0), 1.0)


EMPTY_CORPUS = KnownAbuseCorpus(entries=(), dim=0)


async def build_corpus(reference_texts: Sequence[str], embedder: Embeddings) -> KnownAbuseCorpus:
    """
    Embed reference texts into a corpus.

    Raises:
        ValueError: If the embedder returns an unusable array
    """
    if not reference_texts:
        return EMPTY_CORPUS

    vecs = await embedder.embed(list(reference_texts))
    vecs = np.asarray(vecs, dtype=np.float64)

    if vecs.ndim == 1:
        vecs = vecs.reshape(1, -1)
    if vecs.ndim != 2 or vecs.shape[0] != len(reference_texts):
        raise ValueError(f"Expected {len(reference_texts)} embeddings, got shape {vecs.shape}")

    vecs = l2_normalize(vecs)
    entries = []
    for text, vec in zip(reference_texts, vecs):
        vec = vec.copy()
        vec.setflags(write=False)
        entries.append(KnownAbuseEntry(reference_text=text, embedding=vec))

    return KnownAbuseCorpus(entries=tuple(entries), dim=vecs.shape[1])


class CorpusLoader:
    """
    One-shot, lazily-initialized holder for the known-abuse corpus.

    The first caller of get() builds the corpus; concurrent callers wait for
    that build instead of starting their own. A failed build is not retried:
    the corpus stays empty for the lifetime of the loader and semantic abuse
    checks are skipped.
    """

    def __init__(self, *, reference_texts: Sequence[str], embedder: Optional[Embeddings],
                 timeout: Optional[float] = None, logger: Optional[Logger] = None):
        self.reference_texts = tuple(reference_texts)
        self.embedder = embedder
        self.timeout = timeout
        self.log = logger or get_logger(__name__)
        self.state = CorpusState.PENDING
        self._corpus = EMPTY_CORPUS
        self._lock: Optional[asyncio.Lock] = None
        self._task: Optional[asyncio.Task] = None

    def start(self) -> asyncio.Task:
        """Schedule the build in the background (call from a running loop)."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self.get())
        return self._task

    async def get(self) -> KnownAbuseCorpus:
        """Return the corpus, building it on first use."""
        if self.state in (CorpusState.BUILT, CorpusState.FAILED):
            return self._corpus

        # Bound to the loop running the first get()
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            if self.state in (CorpusState.BUILT, CorpusState.FAILED):
                return self._corpus

            if self.embedder is None:
                self.log.warn("No embedder configured, known-abuse corpus disabled")
                self.state = CorpusState.FAILED
                return self._corpus

            self.state = CorpusState.BUILDING
            try:
                build = build_corpus(self.reference_texts, self.embedder)
                if self.timeout is not None:
                    corpus = await asyncio.wait_for(build, timeout=self.timeout)
                else:
                    corpus = await build
            except Exception as e:
                self.state = CorpusState.FAILED
                self.log.error("Known-abuse corpus build failed, semantic check disabled",
                               error=str(e), references=len(self.reference_texts))
                return self._corpus

            self._corpus = corpus
            self.state = CorpusState.BUILT
            self.log.info("known_abuse_corpus_built", entries=len(corpus), dim=corpus.dim)
            return self._corpus
