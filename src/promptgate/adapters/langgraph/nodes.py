"""LangGraph node factories for PromptGate integration."""

from langchain_core.runnables import RunnableLambda

from ...core.types import RequestContext
from ...core.util import to_plain
from ...runtime.service import PromptGate
from .state_keys import PROMPTGATE_ABUSE, PROMPTGATE_ROUTE, ROUTING_CONTEXT, USER_INPUT


def make_abuse_gate_node(gate: PromptGate, text_key: str = USER_INPUT):
    """
    Create a LangGraph node that runs the abuse detector on the input text.

    Args:
        gate: Configured PromptGate instance
        text_key: State key containing the input text

    Returns:
        RunnableLambda: Async node that adds the abuse verdict to state;
        downstream edges branch on state[PROMPTGATE_ABUSE]["action"]
    """
    async def _check_abuse(state):
        verdict = await gate.check_abuse(state.get(text_key, ""))
        return {PROMPTGATE_ABUSE: to_plain(verdict)}

    return RunnableLambda(_check_abuse)


def make_route_node(gate: PromptGate, text_key: str = USER_INPUT,
                    context_key: str = ROUTING_CONTEXT):
    """
    Create a LangGraph node that computes a routing decision.

    The optional mapping under context_key supplies RequestContext fields
    (org_id, plan, requested_model, user_region, ...).

    Returns:
        RunnableLambda: Async node that adds the routing decision to state
    """
    async def _route(state):
        fields = dict(state.get(context_key) or {})
        fields["prompt"] = state.get(text_key, "")
        if "compliance_tags" in fields:
            fields["compliance_tags"] = tuple(fields["compliance_tags"])
        decision = await gate.route(RequestContext(**fields))
        return {PROMPTGATE_ROUTE: to_plain(decision)}

    return RunnableLambda(_route)
