"""Pydantic schemas for gate configuration.

Every heuristic constant used by the checks lives here with its default so it
can be calibrated per deployment from YAML.
"""

from pydantic import BaseModel, Field
from typing import List

from ..core.types import Plan, Provider, SimilarityMethod

DEFAULT_ABUSE_REFERENCES = [
    "spam message",
    "phishing attempt",
    "scam alert",
    "fraudulent activity",
    "harassment content",
    "threatening language",
    "hate speech",
    "violence promotion",
    "malicious code injection",
    "unauthorized access attempt",
    "data exfiltration",
    "credential theft",
]


class AbuseOptions(BaseModel):
    """Thresholds and weights for the abuse detector's scoring."""
    ml_threshold: float = Field(default=0.7, ge=0.0, le=1.0,
                                description="ML score above which input counts as abuse")
    block_threshold: float = Field(default=0.8, ge=0.0, le=1.0,
                                   description="Score above which abuse is blocked rather than warned")
    use_ml_detection: bool = Field(default=True, description="Compute statistical and semantic signals")
    check_semantic_similarity: bool = Field(default=True,
                                            description="Compare against the known-abuse corpus")
    pattern_match_confidence: float = Field(default=0.9, ge=0.0, le=1.0)
    unsafe_below: float = Field(default=0.5, ge=0.0, le=1.0,
                                description="Safety score under which content counts as unsafe")

    entropy_threshold: float = Field(default=4.5, ge=0.0)
    entropy_span: float = Field(default=1.5, gt=0.0,
                                description="Entropy past the threshold that saturates the signal")
    entropy_weight: float = Field(default=0.15, ge=0.0, le=1.0)
    repetition_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    repetition_weight: float = Field(default=0.2, ge=0.0, le=1.0)
    unusual_char_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    unusual_char_weight: float = Field(default=0.15, ge=0.0, le=1.0)
    semantic_threshold: float = Field(default=0.75, ge=0.0, le=1.0)
    semantic_weight: float = Field(default=0.3, ge=0.0, le=1.0)

    class Config:
        extra = "forbid"


class SimilarityOptions(BaseModel):
    """Defaults for prompt-similarity checks."""
    threshold: float = Field(default=0.85, ge=0.0, le=1.0)
    method: SimilarityMethod = Field(default=SimilarityMethod.COSINE)
    fallback_threshold: float = Field(default=0.7, ge=0.0, le=1.0,
                                      description="Jaccard score needed when embeddings are unavailable")

    class Config:
        extra = "forbid"


class LengthOptions(BaseModel):
    """Bounds for prompt length classification."""
    min_length: int = Field(default=1, ge=0)
    max_length: int = Field(default=100_000, ge=1)
    min_tokens: int = Field(default=1, ge=0)
    max_tokens: int = Field(default=128_000, ge=1)
    warn_threshold: float = Field(default=0.8, gt=0.0, le=1.0,
                                  description="Fraction of a maximum that triggers a warning")
    chars_per_token: int = Field(default=4, ge=1)

    class Config:
        extra = "forbid"


class RoutingOptions(BaseModel):
    """Caller defaults for the router."""
    default_provider: Provider = Field(default=Provider.OPENAI)
    default_model: str = Field(default="gpt-4")
    default_plan: Plan = Field(default=Plan.FREE)
    enforce_compliance: bool = Field(default=True)

    class Config:
        extra = "forbid"


class CorpusOptions(BaseModel):
    """Reference texts embedded once into the known-abuse corpus."""
    reference_texts: List[str] = Field(default_factory=lambda: list(DEFAULT_ABUSE_REFERENCES))

    class Config:
        extra = "forbid"


class TimeoutOptions(BaseModel):
    """Upper bounds (seconds) on calls to external collaborators."""
    embedding: float = Field(default=5.0, gt=0.0)
    profile: float = Field(default=2.0, gt=0.0)
    audit: float = Field(default=2.0, gt=0.0)

    class Config:
        extra = "forbid"


class GateConfig(BaseModel):
    """Complete configuration for PromptGate."""
    version: int = Field(default=1, description="Config schema version")
    abuse: AbuseOptions = Field(default_factory=AbuseOptions)
    similarity: SimilarityOptions = Field(default_factory=SimilarityOptions)
    length: LengthOptions = Field(default_factory=LengthOptions)
    routing: RoutingOptions = Field(default_factory=RoutingOptions)
    corpus: CorpusOptions = Field(default_factory=CorpusOptions)
    timeouts: TimeoutOptions = Field(default_factory=TimeoutOptions)

    class Config:
        extra = "forbid"

    def validate_config(self) -> List[str]:
        """Cross-field checks; returns a list of issues (empty when valid)."""
        issues = []

        if self.length.min_length > self.length.max_length:
            issues.append(f"length.min_length ({self.length.min_length}) exceeds "
                          f"length.max_length ({self.length.max_length})")
        if self.length.min_tokens > self.length.max_tokens:
            issues.append(f"length.min_tokens ({self.length.min_tokens}) exceeds "
                          f"length.max_tokens ({self.length.max_tokens})")

        if self.abuse.block_threshold < self.abuse.ml_threshold:
            issues.append("abuse.block_threshold must not be below abuse.ml_threshold")

        refs = self.corpus.reference_texts
        duplicates = set([x for x in refs if refs.count(x) > 1])
        if duplicates:
            issues.append(f"Duplicate corpus reference texts: {duplicates}")
        empty = [r for r in refs if not r.strip()]
        if empty:
            issues.append("Corpus contains empty reference texts")

        return issues
