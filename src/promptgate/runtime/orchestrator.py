"""Routing orchestrator: combines length, region and cost decisions."""

import asyncio
from typing import List, Optional, Sequence, Tuple, Union

from ..core.abc import FeatureFlags, Logger, Meter, ProfileStore
from ..core.errors import InputValidationError, ensure_text
from ..core.logging import get_logger
from ..core.types import (Action, ComplianceProfile, CostDecision, LengthVerdict,
                          Provider, RegionDecision, RequestContext, RoutingDecision,
                          most_restrictive)
from ..policy.schema import LengthOptions, RoutingOptions
from ..policy.tables import DEFAULT_MODELS, PROVIDER_REGIONS
from .cost import apply_cost_tiering, as_plan
from .length import as_provider, classify_length
from .region import ADVISORY_TAGS, determine_region

LENGTH_FLAG = "enable_prompt_length_routing"
REGION_FLAG = "enable_region_routing"
COST_FLAG = "enable_cost_tiering"

PROFILE_WARNING = "Could not fetch organization profile, using defaults"
COMPLIANCE_ERROR = "Compliance requirements could not be met"


def build_reason(cost: Optional[CostDecision], region: Optional[RegionDecision],
                 length: Optional[LengthVerdict]) -> str:
    """Join the reasons of the sub-checks that fired."""
    reasons = []
    if cost is not None and cost.downgraded:
        reasons.append(f"Cost tiering: {cost.reason}")
    if region is not None:
        reasons.append(f"Region routing: {region.reason}")
    if length is not None and length.recommended_model:
        reasons.append(f"Prompt length: {length.char_length} chars, "
                       f"recommended {length.recommended_model}")
    if not reasons:
        return "Default routing (no special factors applied)"
    return "; ".join(reasons)


class RoutingOrchestrator:
    """
    Decides provider, model and region for an allowed prompt.

    Does not run the abuse or similarity gates; callers run those first.
    A failing profile store or feature-flag source degrades to defaults with a
    warning on the decision, never to an exception.
    """

    def __init__(self, *, options: Optional[RoutingOptions] = None,
                 length_options: Optional[LengthOptions] = None,
                 profiles: Optional[ProfileStore] = None,
                 flags: Optional[FeatureFlags] = None,
                 profile_timeout: float = 2.0,
                 logger: Optional[Logger] = None, meter: Optional[Meter] = None):
        self.options = options or RoutingOptions()
        self.length_options = length_options or LengthOptions()
        self.profiles = profiles
        self.flags = flags
        self.profile_timeout = profile_timeout
        self.log = logger or get_logger(__name__)
        self.meter = meter

    async def route(self, ctx: RequestContext) -> RoutingDecision:
        """
        Build the routing decision for one request.

        Args:
            ctx: Request context (prompt, identity, model and region preferences)

        Returns:
            RoutingDecision: Immutable decision; action is the most restrictive
            of the enabled sub-checks
        """
        ensure_text(ctx.prompt, "prompt")
        provider = as_provider(ctx.provider, self.options.default_provider)
        requested = ctx.requested_model or self._default_model(provider)
        enforce = self.options.enforce_compliance if ctx.enforce_compliance is None \
            else ctx.enforce_compliance

        factors: List[str] = []
        warnings: List[str] = []
        errors: List[str] = []

        plan = as_plan(ctx.plan, self.options.default_plan)
        residency = ctx.data_residency
        tags: Tuple[str, ...] = tuple(ctx.compliance_tags)

        profile = await self._fetch_profile(ctx.org_id, warnings)
        if profile is not None:
            try:
                plan = as_plan(profile.plan, plan)
            except InputValidationError as e:
                self.log.warn("Profile has an unsupported plan, keeping request plan",
                              org_id=ctx.org_id, error=str(e))
                warnings.append(PROFILE_WARNING)
            residency = profile.data_residency or residency
            tags = tuple(profile.compliance_tags) or tags

        length_on = self._enabled(LENGTH_FLAG, ctx.enable_prompt_length_routing, ctx)
        region_on = self._enabled(REGION_FLAG, ctx.enable_region_routing, ctx)
        cost_on = self._enabled(COST_FLAG, ctx.enable_cost_tiering, ctx)

        # Length
        length: Optional[LengthVerdict] = None
        if length_on:
            length = classify_length(ctx.prompt, self.length_options, provider, requested)
            factors.append("prompt_length")
            warnings.extend(length.warnings)
            errors.extend(length.errors)

        # Region
        region_decision: Optional[RegionDecision] = None
        if region_on:
            region_decision = determine_region(
                provider=provider,
                user_region=ctx.user_region,
                data_residency=residency,
                compliance_tags=tags,
                preferred_region=ctx.preferred_region,
                enforce_compliance=enforce,
            )
            region = region_decision.region
            endpoint = region_decision.endpoint
            factors.append("region_routing")
            if region_decision.requires_compliance:
                factors.append("compliance_routing")
        else:
            region = ctx.preferred_region or ctx.user_region or PROVIDER_REGIONS[provider]["global"]
            endpoint = None

        if ctx.strict_compliance and enforce and self._needs_pinning(residency, tags) and \
                not (region_decision is not None and region_decision.requires_compliance):
            errors.append(COMPLIANCE_ERROR)

        # Cost
        model = requested
        cost: Optional[CostDecision] = None
        if cost_on:
            cost = apply_cost_tiering(plan, requested, provider)
            factors.append("cost_tiering")
            if cost.downgraded and ctx.allow_model_downgrade:
                model = cost.recommended_model
                factors.append("model_downgrade")
            elif cost.downgraded:
                warnings.append(f"Model downgrade recommended but not allowed: {cost.reason}")

        # Length recommendation applies only when cost tiering left the model alone
        if length is not None and length.recommended_model and model == requested \
                and length.recommended_model != requested:
            model = length.recommended_model
            factors.append("model_selection_by_length")

        actions = [length.action] if length is not None else []
        if errors:
            actions.append(Action.BLOCK)
        action = most_restrictive(actions)

        decision = RoutingDecision(
            provider=provider,
            model=model,
            region=region,
            reason=build_reason(cost, region_decision, length),
            action=action,
            plan=plan,
            factors=tuple(factors),
            warnings=tuple(warnings),
            errors=tuple(errors),
            original_model=requested if model != requested else None,
            endpoint=endpoint,
            requires_compliance=region_decision.requires_compliance if region_decision else False,
            data_residency=(region_decision.data_residency if region_decision else None) or residency,
            compliance_tags=tags,
            length=length,
            region_decision=region_decision,
            cost=cost,
        )

        if self.meter:
            self.meter.inc(f"promptgate.route.{action.value}", provider=provider.value)
        self.log.info("route", action=action.value, provider=provider.value, model=model,
                      region=region, factors=",".join(factors), org_id=ctx.org_id)
        return decision

    async def route_simple(self, prompt: str, requested_model: Optional[str] = None,
                           provider: Union[Provider, str, None] = None,
                           user_region: Optional[str] = None) -> RoutingDecision:
        """Route with only a prompt, model, provider and user region."""
        ctx = RequestContext(
            prompt=prompt,
            provider=as_provider(provider, self.options.default_provider),
            requested_model=requested_model,
            user_region=user_region,
        )
        return await self.route(ctx)

    def _default_model(self, provider: Provider) -> str:
        if provider is self.options.default_provider:
            return self.options.default_model
        return DEFAULT_MODELS[provider]

    async def _fetch_profile(self, org_id: Optional[str],
                             warnings: List[str]) -> Optional[ComplianceProfile]:
        if not org_id or self.profiles is None:
            return None
        try:
            return await asyncio.wait_for(self.profiles.get_profile(org_id),
                                          timeout=self.profile_timeout)
        except asyncio.TimeoutError:
            self.log.warn("Profile fetch timed out", org_id=org_id, timeout=self.profile_timeout)
        except Exception as e:
            self.log.warn("Profile fetch failed", org_id=org_id, error=str(e))
        warnings.append(PROFILE_WARNING)
        return None

    def _enabled(self, flag: str, override: Optional[bool], ctx: RequestContext) -> bool:
        if override is not None:
            return override
        if self.flags is None:
            return True
        try:
            return bool(self.flags.is_enabled(flag, ctx.user_id, ctx.workspace_id))
        except Exception as e:
            self.log.warn("Feature flag lookup failed, assuming enabled", flag=flag, error=str(e))
            return True

    @staticmethod
    def _needs_pinning(residency: Optional[str], tags: Sequence[str]) -> bool:
        if residency:
            return True
        return any(not any(a in t.upper() for a in ADVISORY_TAGS) for t in tags)
