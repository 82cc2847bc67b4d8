"""Data types and result structures for PromptGate operations."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Optional, Tuple

import numpy as np


class Action(str, Enum):
    """Outcome of a check. Ordered allow < warn < block."""
    ALLOW = "allow"
    WARN = "warn"
    BLOCK = "block"

    @property
    def rank(self) -> int:
        return _ACTION_RANK[self]


_ACTION_RANK = {Action.ALLOW: 0, Action.WARN: 1, Action.BLOCK: 2}


def most_restrictive(actions: Iterable[Action]) -> Action:
    """Return the most restrictive action, ALLOW for an empty input."""
    return max(actions, key=lambda a: a.rank, default=Action.ALLOW)


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SimilarityMethod(str, Enum):
    COSINE = "cosine"
    EUCLIDEAN = "euclidean"
    DOT_PRODUCT = "dot_product"
    MANHATTAN = "manhattan"


class Plan(str, Enum):
    FREE = "free"
    PRO = "pro"
    TEAM = "team"
    ENTERPRISE = "enterprise"


class Provider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"


@dataclass(frozen=True)
class TextFeatures:
    """Statistical features of a text; ratios live in [0, 1]."""
    entropy: float
    repetition_score: float
    unusual_char_ratio: float


@dataclass(frozen=True)
class Violation:
    kind: str
    severity: Severity
    message: str


@dataclass(frozen=True)
class SafetyVerdict:
    """Result of pattern-based content safety scoring."""
    safe: bool
    score: float                       # 1.0 is safest
    violations: Tuple[Violation, ...] = ()

    @property
    def has_severe(self) -> bool:
        """True if any critical or high severity violation fired."""
        return any(v.severity in (Severity.CRITICAL, Severity.HIGH) for v in self.violations)


@dataclass(frozen=True)
class AbusePattern:
    kind: str
    score: float
    description: str


@dataclass(frozen=True)
class AbuseVerdict:
    """Result of the abuse detector."""
    is_abuse: bool
    confidence: float
    action: Action
    ml_score: float
    abuse_type: Optional[str] = None
    patterns: Tuple[AbusePattern, ...] = ()
    features: Optional[TextFeatures] = None
    semantic_similarity: Optional[float] = None
    matched_reference: Optional[str] = None
    degraded_checks: Tuple[str, ...] = ()   # checks skipped because an upstream was unavailable


@dataclass(frozen=True)
class KnownAbuseEntry:
    reference_text: str
    embedding: np.ndarray                   # L2-normalized, read-only


@dataclass(frozen=True)
class SimilarityContext:
    """Caller identity carried into the similarity audit record."""
    user_id: Optional[str] = None
    org_id: Optional[str] = None
    workspace_id: Optional[str] = None
    trace_id: Optional[str] = None
    workflow_execution_id: Optional[str] = None
    node_id: Optional[str] = None


@dataclass(frozen=True)
class SimilarityVerdict:
    """Result of comparing a prompt against known prompts."""
    similar: bool
    score: float
    matched_references: Optional[Tuple[str, ...]] = None
    method: str = SimilarityMethod.COSINE.value
    fallback_used: bool = False


@dataclass(frozen=True)
class SimilarityAuditRecord:
    """Append-only audit entry for one similarity check."""
    prompt: str
    prompt_embedding: Optional[List[float]]
    matched_text: Optional[str]
    matched_embedding: Optional[List[float]]
    score: float
    threshold_used: float
    method_used: str
    action_taken: str                       # "blocked" | "allowed"
    timestamp: datetime
    org_id: Optional[str] = None
    workspace_id: Optional[str] = None
    user_id: Optional[str] = None
    trace_id: Optional[str] = None
    workflow_execution_id: Optional[str] = None
    node_id: Optional[str] = None

    @property
    def score_percent(self) -> int:
        return int(round(self.score * 100))


@dataclass(frozen=True)
class LengthVerdict:
    """Result of prompt length classification."""
    valid: bool
    char_length: int
    token_estimate: int
    action: Action
    recommended_model: Optional[str] = None
    warnings: Tuple[str, ...] = ()
    errors: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ComplianceProfile:
    """Organization profile as returned by the profile store."""
    plan: Plan = Plan.FREE
    data_residency: Optional[str] = None
    compliance_tags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RegionDecision:
    region: str
    reason: str
    requires_compliance: bool
    endpoint: Optional[str] = None
    data_residency: Optional[str] = None


@dataclass(frozen=True)
class CostDecision:
    original_model: str
    recommended_model: str
    downgraded: bool
    allowed_models: Tuple[str, ...]
    reason: str
    plan: Plan


@dataclass(frozen=True)
class RequestContext:
    """Everything the router needs to know about one outbound request."""
    prompt: str
    org_id: Optional[str] = None
    workspace_id: Optional[str] = None
    user_id: Optional[str] = None
    provider: Provider = Provider.OPENAI
    requested_model: Optional[str] = None
    plan: Optional[Plan] = None
    user_region: Optional[str] = None
    preferred_region: Optional[str] = None
    data_residency: Optional[str] = None
    compliance_tags: Tuple[str, ...] = ()
    enforce_compliance: Optional[bool] = None    # None: use the configured default
    strict_compliance: bool = False
    allow_model_downgrade: bool = True
    # Explicit per-request overrides of the routing feature flags
    enable_prompt_length_routing: Optional[bool] = None
    enable_region_routing: Optional[bool] = None
    enable_cost_tiering: Optional[bool] = None


@dataclass(frozen=True)
class RoutingDecision:
    """Final, immutable routing record for one request."""
    provider: Provider
    model: str
    region: str
    reason: str
    action: Action
    plan: Plan
    factors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    errors: Tuple[str, ...] = ()
    original_model: Optional[str] = None
    endpoint: Optional[str] = None
    requires_compliance: bool = False
    data_residency: Optional[str] = None
    compliance_tags: Tuple[str, ...] = ()
    length: Optional[LengthVerdict] = None
    region_decision: Optional[RegionDecision] = None
    cost: Optional[CostDecision] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
