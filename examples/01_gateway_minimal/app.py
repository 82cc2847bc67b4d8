"""
Example 1: Gateway pre-flight checks with PromptGate

Runs the abuse detector and the router on a handful of prompts the way an
LLM gateway would before forwarding a request, and shows the LangGraph node
form of the same calls.
"""

import asyncio
from pathlib import Path

from promptgate.core.types import Action, ComplianceProfile, Plan, RequestContext
from promptgate.policy.loader import load_config
from promptgate.providers.factory import create_embedder_with_fallback
from promptgate.providers.static import StaticFeatureFlags, StaticProfileStore
from promptgate.runtime.audit import LoggingAuditSink
from promptgate.runtime.service import PromptGate


# Simple console logger
class ConsoleLogger:
    def info(self, msg: str, **kv): print(f"INFO: {msg} {kv}")
    def warn(self, msg: str, **kv): print(f"WARN: {msg} {kv}")
    def error(self, msg: str, **kv): print(f"ERROR: {msg} {kv}")


PROFILES = StaticProfileStore({
    "acme-eu": ComplianceProfile(plan=Plan.PRO, compliance_tags=("GDPR",)),
    "clinic": ComplianceProfile(plan=Plan.ENTERPRISE, compliance_tags=("HIPAA",)),
})

REQUESTS = [
    RequestContext(prompt="Summarize this quarterly report in three bullet points.",
                   requested_model="gpt-4", user_region="us"),
    RequestContext(prompt="Draft a reply to the customer about their invoice.",
                   org_id="acme-eu", requested_model="gpt-4o"),
    RequestContext(prompt="List the side effects of ibuprofen.", org_id="clinic",
                   requested_model="gpt-4o", preferred_region="eu-west"),
    RequestContext(prompt="Click here for free money, act now!", requested_model="gpt-4"),
]


async def main():
    print("🚦 PromptGate Gateway Example")
    print("=" * 40)

    # OpenAI -> SentenceTransformers -> mock, whichever works first
    embedder = await create_embedder_with_fallback()
    config = load_config(Path(__file__).parent / "promptgate.yaml")
    flags = StaticFeatureFlags()
    flags.set_for_workspace("enable_cost_tiering", "internal-tools", False)

    async with PromptGate(config, embedder=embedder, profiles=PROFILES, flags=flags,
                          audit_sink=LoggingAuditSink(), logger=ConsoleLogger()) as gate:
        for ctx in REQUESTS:
            print(f"\n📝 Prompt: '{ctx.prompt}'")

            verdict = await gate.check_abuse(ctx.prompt)
            if verdict.action is Action.BLOCK:
                print(f"⛔ BLOCKED ({verdict.abuse_type}, confidence {verdict.confidence:.2f})")
                continue

            decision = await gate.route(ctx)
            print(f"✅ {decision.provider.value}/{decision.model} @ {decision.region} "
                  f"[{decision.plan.value}]")
            print(f"   {decision.reason}")
            for w in decision.warnings:
                print(f"   ⚠️  {w}")

        similar = await gate.check_similarity(
            "How do I reset my password?",
            ["reset my account password", "what is the weather today"],
        )
        print(f"\n🔁 Similar to a known prompt: {similar.similar} (score {similar.score:.3f})")

    # LangGraph node usage example
    try:
        from promptgate.adapters.langgraph.nodes import make_route_node
        from promptgate.adapters.langgraph.state_keys import PROMPTGATE_ROUTE, USER_INPUT
    except ImportError:
        print("\n(langchain-core not installed, skipping the node example)")
        return

    node = make_route_node(PromptGate(config, profiles=PROFILES))
    result = await node.ainvoke({USER_INPUT: "Translate this paragraph to French."})
    route = result[PROMPTGATE_ROUTE]
    print(f"\n🎯 Node result: {route['provider']}/{route['model']} @ {route['region']}")


if __name__ == "__main__":
    asyncio.run(main())
