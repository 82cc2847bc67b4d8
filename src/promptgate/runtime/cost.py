"""Plan-based model selection."""

from typing import Union

from ..core.errors import InputValidationError, ensure_text
from ..core.types import CostDecision, Plan, Provider
from ..policy.tables import PLAN_MODELS, PREMIUM_MODELS
from .length import as_provider


def as_plan(value: Union[Plan, str, None], default: Plan = Plan.FREE) -> Plan:
    if value is None:
        return default
    try:
        return Plan(value)
    except ValueError:
        raise InputValidationError(f"Unsupported plan: {value}")


def _near_match(requested: str, model: str) -> bool:
    requested, model = requested.lower(), model.lower()
    return requested in model or model in requested


def is_premium(requested_model: str, provider: Provider) -> bool:
    requested = requested_model.lower()
    return any(p in requested for p in PREMIUM_MODELS[provider])


def apply_cost_tiering(plan: Union[Plan, str], requested_model: str,
                       provider: Union[Provider, str, None] = None,
                       force_downgrade: bool = False) -> CostDecision:
    """
    Choose the model a plan may use.

    Free plans (and forced downgrades) always get the cheapest allowed model.
    Paid plans asking for a model outside their list get the most capable
    allowed model. downgraded is set only when the model actually changes.
    """
    ensure_text(requested_model, "requested_model")
    plan = as_plan(plan)
    provider = as_provider(provider)
    allowed = PLAN_MODELS[plan][provider]

    recommended = requested_model
    reason = f"Plan: {plan.value} - Model allowed"

    if (plan is Plan.FREE or force_downgrade) and requested_model != allowed[0]:
        recommended = allowed[0]
        if plan is Plan.FREE and is_premium(requested_model, provider):
            reason = f"Free plan: premium model {requested_model} not available, using {recommended}"
        elif plan is Plan.FREE:
            reason = f"Free plan: automatically routed to {recommended} (requested: {requested_model})"
        else:
            reason = f"{plan.value} plan: downgrade forced, using {recommended}"
    elif plan is not Plan.FREE and not force_downgrade and \
            not any(_near_match(requested_model, m) for m in allowed):
        recommended = allowed[-1]
        reason = f"{plan.value} plan: {requested_model} not available, using {recommended}"

    return CostDecision(
        original_model=requested_model,
        recommended_model=recommended,
        downgraded=recommended != requested_model,
        allowed_models=allowed,
        reason=reason,
        plan=plan,
    )
