"""Protocol interfaces for dependency injection from the host process."""

from typing import Protocol, Sequence, Optional, Any
import numpy as np

from .types import ComplianceProfile, SimilarityAuditRecord


class Embeddings(Protocol):
    """Host-injected embeddings provider. Implement with SentenceTransformers, OpenAI, Cohere, etc."""

    async def embed(self, texts: Sequence[str]) -> np.ndarray:
        """
        Embed a sequence of texts into vectors.

        Args:
            texts: Sequence of text strings to embed

        Returns:
            np.ndarray: Shape (N, D). Callers L2-normalize before comparing.
        """
        ...


class ProfileStore(Protocol):
    """Organization profile lookup (plan, data residency, compliance tags)."""

    async def get_profile(self, org_id: str) -> Optional[ComplianceProfile]:
        """Return the organization's compliance profile, or None if unknown."""
        ...


class FeatureFlags(Protocol):
    """Per-user / per-workspace boolean switches for individual checks."""

    def is_enabled(self, flag: str, user_id: Optional[str] = None,
                   workspace_id: Optional[str] = None) -> bool:
        ...


class AuditSink(Protocol):
    """Best-effort destination for similarity audit records."""

    async def record(self, entry: SimilarityAuditRecord) -> None:
        ...


class Logger(Protocol):
    """Structured logger; context travels as keyword arguments (rendered key=value)."""

    def info(self, msg: str, **kv: Any) -> None:
        ...

    def warn(self, msg: str, **kv: Any) -> None:
        ...

    def error(self, msg: str, **kv: Any) -> None:
        ...


class Meter(Protocol):
    """Counters and observations; tags are passed through to the backend."""

    def inc(self, name: str, amount: int = 1, **tags: str) -> None:
        """Add amount to the named counter."""
        ...

    def observe(self, name: str, value: float, **tags: str) -> None:
        """Record one value for the named histogram / summary."""
        ...
