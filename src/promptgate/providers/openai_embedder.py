"""
OpenAI Embeddings Provider for PromptGate

Async implementation of the Embeddings protocol on top of the OpenAI API,
usable as a drop-in replacement for MockEmbedder.
"""

import asyncio
import os
import random
from typing import List, Optional, Union

import numpy as np

from ..core.abc import Logger
from ..core.logging import get_logger

# Optional import for OpenAI - gracefully handle if not available
try:
    from openai import AsyncOpenAI
    import openai
    OPENAI_AVAILABLE = True
except ImportError:
    OPENAI_AVAILABLE = False
    AsyncOpenAI = None
    openai = None

RETRYABLE_PATTERNS = (
    "rate limit", "too many requests", "quota",
    "connection", "timeout", "network", "dns",
    "502", "503", "504",
    "internal server error", "service unavailable", "gateway timeout",
)


class OpenAIEmbedder:
    """
    OpenAI embeddings provider with retry and exponential backoff.

    The host injects it; PromptGate never constructs it implicitly. Callers
    bound each embed() with their own timeout, so the retry budget here should
    fit inside it.
    """

    def __init__(self,
                 model: str = "text-embedding-3-small",
                 api_key: Optional[str] = None,
                 max_retries: int = 3,
                 logger: Optional[Logger] = None):
        """
        Initialize OpenAI embedder.

        Args:
            model: OpenAI embedding model to use
            api_key: OpenAI API key (if None, uses OPENAI_API_KEY environment variable)
            max_retries: Maximum number of retry attempts for API calls
            logger: Optional structured logger
        """
        if not OPENAI_AVAILABLE:
            raise ImportError(
                "OpenAI package is not installed. Install it with: pip install 'promptgate[openai]'"
            )

        self.model = model
        self.max_retries = max_retries
        self.log = logger or get_logger(__name__)

        if api_key is None:
            api_key = os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise ValueError(
                "OpenAI API key is required. Provide via api_key parameter "
                "or set OPENAI_API_KEY environment variable."
            )

        self.client = AsyncOpenAI(api_key=str(api_key))
        self._dimension: Optional[int] = None

    async def embed(self, texts: Union[str, List[str]]) -> np.ndarray:
        """
        Generate L2-normalized embeddings with retry logic.

        Args:
            texts: Single text string or list of text strings

        Returns:
            numpy array with shape (n_texts, embedding_dim)
        """
        if isinstance(texts, str):
            texts = [texts]
        if not texts:
            return np.empty((0, self._dimension or 0))

        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.embeddings.create(model=self.model, input=list(texts))
                vecs = np.array([d.embedding for d in response.data], dtype=np.float32)
                norms = np.maximum(np.linalg.norm(vecs, axis=1, keepdims=True), 1e-12)
                vecs = vecs / norms
                if self._dimension is None:
                    self._dimension = vecs.shape[1]
                return vecs

            except Exception as e:
                retryable = self._is_retryable_error(e)
                if attempt >= self.max_retries or not retryable:
                    kind = "retryable" if retryable else "non-retryable"
                    raise RuntimeError(
                        f"Failed to generate OpenAI embeddings after {attempt + 1} attempts "
                        f"({kind} error: {e})") from e

                # Exponential backoff with jitter
                delay = 2 ** attempt + random.uniform(0.1, 0.5)
                self.log.warn("OpenAI embedding attempt failed, retrying",
                              attempt=attempt + 1, delay=round(delay, 1), error=str(e))
                await asyncio.sleep(delay)

        raise RuntimeError(f"Failed to generate OpenAI embeddings after {self.max_retries + 1} attempts")

    @property
    def dimension(self) -> Optional[int]:
        """Embedding dimension, known after the first successful call."""
        return self._dimension

    def _is_retryable_error(self, error: Exception) -> bool:
        """Rate limits, connection problems and 5xx are transient; everything else is not."""
        if openai is not None:
            if isinstance(error, (openai.RateLimitError, openai.APIConnectionError,
                                  openai.APITimeoutError, openai.InternalServerError)):
                return True
            if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError,
                                  openai.BadRequestError, openai.NotFoundError)):
                return False

        error_str = str(error).lower()
        return any(p in error_str for p in RETRYABLE_PATTERNS)

    def __repr__(self) -> str:
        return f"OpenAIEmbedder(model='{self.model}', dimension={self._dimension}, max_retries={self.max_retries})"


def is_openai_available() -> bool:
    """Check if OpenAI package and API key are available."""
    return OPENAI_AVAILABLE and os.environ.get("OPENAI_API_KEY") is not None


def create_openai_embedder(model: str = "text-embedding-3-small",
                           logger: Optional[Logger] = None) -> Optional[OpenAIEmbedder]:
    """Create an OpenAI embedder, or None if the package or API key is missing."""
    try:
        return OpenAIEmbedder(model=model, logger=logger)
    except (ImportError, ValueError):
        return None
