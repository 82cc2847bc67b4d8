"""Region selection from data residency, compliance tags and user geography."""

from typing import Optional, Sequence, Union

from ..core.types import Provider, RegionDecision
from ..policy.tables import GEO_ALIASES, PROVIDER_REGIONS, RESIDENCY_ALIASES, endpoint_for
from .length import as_provider

# (tag, macro-region, reason); first match wins
COMPLIANCE_RULES = (
    ("GDPR", "eu", "GDPR compliance ENFORCED: EU data must be processed in EU region"),
    ("HIPAA", "us", "HIPAA compliance ENFORCED: healthcare data must be processed in US region"),
    ("CCPA", "us", "CCPA compliance: routing to US region for California data protection"),
    ("PIPEDA", "us", "PIPEDA compliance: routing to US region for Canadian data"),
)
ADVISORY_TAGS = ("SOC2",)

RESIDENCY_NAMES = {"eu": "EU", "us": "US", "asia": "Asia"}


def _has_tag(tags: Sequence[str], name: str) -> bool:
    return any(name in t.upper() for t in tags)


def residency_code(data_residency: Optional[str]) -> Optional[str]:
    """Macro-region for a residency tag, None when unrecognized."""
    if not data_residency:
        return None
    return RESIDENCY_ALIASES.get(data_residency.strip().upper())


def determine_region(*, provider: Union[Provider, str, None] = None,
                     user_region: Optional[str] = None,
                     data_residency: Optional[str] = None,
                     compliance_tags: Sequence[str] = (),
                     preferred_region: Optional[str] = None,
                     enforce_compliance: bool = True) -> RegionDecision:
    """
    Pick the provider region for a request.

    Priority, highest first: explicit data residency, compliance tags (when
    enforced and no residency was given), preferred region, user geography,
    provider default. Compliance-driven choices cannot be overridden by
    preference.
    """
    provider = as_provider(provider)
    regions = PROVIDER_REGIONS[provider]

    region = regions["global"]
    reason = "Default routing"
    requires_compliance = False
    pinned_code: Optional[str] = None

    code = residency_code(data_residency)
    if code is not None:
        region = regions[code]
        pinned_code = code
        requires_compliance = True
        name = RESIDENCY_NAMES[code]
        reason = f"Data residency requirement: {name} data must be processed in {name} region"
    elif compliance_tags and enforce_compliance:
        for tag, tag_code, rule_reason in COMPLIANCE_RULES:
            if _has_tag(compliance_tags, tag):
                region = regions[tag_code]
                pinned_code = tag_code
                requires_compliance = True
                reason = rule_reason
                break
        else:
            if any(_has_tag(compliance_tags, t) for t in ADVISORY_TAGS):
                reason = "SOC2 compliance: advisory only, no regional restriction"

    if not requires_compliance:
        if preferred_region:
            region = regions.get(GEO_ALIASES.get(preferred_region.lower(), ""), preferred_region)
            reason = f"User preferred region: {preferred_region}"
        elif user_region:
            geo = GEO_ALIASES.get(user_region.lower())
            if geo is not None:
                region = regions[geo]
                reason = f"User geographic region: {user_region} -> {region}"

    return RegionDecision(
        region=region,
        reason=reason,
        requires_compliance=requires_compliance,
        endpoint=endpoint_for(provider, region),
        data_residency=RESIDENCY_NAMES[pinned_code].upper() if pinned_code else None,
    )
