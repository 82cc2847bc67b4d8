"""Mock embedder for testing and offline use."""

import asyncio
import hashlib
import re
from typing import Optional, Sequence

import numpy as np

_WORD = re.compile(r"\w+")


class MockEmbedder:
    """
    Deterministic bag-of-words embedder.

    Every word maps to a fixed pseudo-random direction seeded from its hash,
    so texts sharing words point in similar directions and identical texts get
    identical vectors. A small whole-text component keeps different word
    orders apart.
    """

    # Abuse vocabulary shares a common direction so paraphrases cluster
    ABUSE_WORDS = {
        "spam", "scam", "phishing", "fraud", "fraudulent", "harassment", "threat",
        "threatening", "hate", "violence", "malicious", "injection", "unauthorized",
        "exfiltration", "credential", "theft",
    }

    def __init__(self, dimension: int = 128, delay: Optional[float] = None):
        """
        Args:
            dimension: Embedding dimension (default 128 for faster computation)
            delay: Optional artificial latency in seconds per call
        """
        self.dimension = dimension
        self.delay = delay
        self.calls = 0
        self._abuse_axis = self._direction("__abuse__")

    async def embed(self, texts: Sequence[str]) -> np.ndarray:
        """Return L2-normalized embeddings of shape (N, dimension)."""
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if not texts:
            return np.empty((0, self.dimension))

        vecs = np.stack([self._text_to_embedding(t) for t in texts])
        norms = np.maximum(np.linalg.norm(vecs, axis=1, keepdims=True), 1e-12)
        return vecs / norms

    def _direction(self, token: str) -> np.ndarray:
        digest = hashlib.sha256(token.encode("utf-8")).digest()
        rng = np.random.default_rng(int.from_bytes(digest[:8], "little"))
        return rng.standard_normal(self.dimension)

    def _text_to_embedding(self, text: str) -> np.ndarray:
        text = text.lower().strip()
        embedding = 0.25 * self._direction(text)

        for word in _WORD.findall(text):
            embedding += self._direction(word)
            if word in self.ABUSE_WORDS:
                embedding += self._abuse_axis

        return embedding


def create_mock_embedder(dimension: int = 128) -> MockEmbedder:
    """Create a mock embedder instance."""
    return MockEmbedder(dimension=dimension)
