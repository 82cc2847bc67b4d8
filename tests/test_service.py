"""Test the PromptGate facade end to end."""

import asyncio

import pytest

from promptgate.core.types import Action, RequestContext, SimilarityContext
from promptgate.policy.corpus import CorpusState
from promptgate.policy.schema import GateConfig, LengthOptions
from promptgate.providers.mock_embedder import MockEmbedder
from promptgate.providers.static import StaticFeatureFlags
from promptgate.runtime.audit import InMemoryAuditSink
from promptgate.runtime.service import PromptGate

BENIGN = "Summarize this quarterly report in three bullet points."


class TestPromptGate:

    @pytest.mark.asyncio
    async def test_four_operations(self, sample_config, mock_embedder, profile_store):
        sink = InMemoryAuditSink()
        gate = PromptGate(sample_config, embedder=mock_embedder, profiles=profile_store,
                          audit_sink=sink)
        gate.start()

        abuse = await gate.check_abuse(BENIGN)
        similar = await gate.check_similarity(BENIGN, [BENIGN],
                                              context=SimilarityContext(org_id="org-eu"))
        length = gate.classify_length(BENIGN)
        decision = await gate.route(RequestContext(prompt=BENIGN, org_id="org-eu"))
        await gate.aclose()

        assert abuse.action is Action.ALLOW
        assert similar.similar is True
        assert length.valid
        assert decision.region == "eu-west"
        assert len(sink.records) == 1
        assert sink.records[0].org_id == "org-eu"
        assert gate.corpus.state is CorpusState.BUILT

    @pytest.mark.asyncio
    async def test_context_manager(self, mock_embedder):
        async with PromptGate(embedder=mock_embedder) as gate:
            verdict = await gate.check_abuse("click here for free money now now now now")
        assert verdict.action is Action.BLOCK

    @pytest.mark.asyncio
    async def test_no_collaborators(self):
        gate = PromptGate()

        abuse = await gate.check_abuse(BENIGN)
        similar = await gate.check_similarity(BENIGN, [BENIGN])
        decision = await gate.route_simple(BENIGN)

        assert abuse.action is Action.ALLOW
        assert gate.corpus.state is CorpusState.FAILED
        assert similar.fallback_used
        assert decision.model == "gpt-3.5-turbo"  # free plan by default

    @pytest.mark.asyncio
    async def test_config_flows_to_checks(self, mock_embedder):
        config = GateConfig(length=LengthOptions(max_length=20))
        gate = PromptGate(config, embedder=mock_embedder)

        assert gate.classify_length("a" * 21).action is Action.BLOCK
        assert gate.classify_length("a" * 21, LengthOptions()).action is Action.ALLOW
        decision = await gate.route(RequestContext(prompt="a" * 21))
        assert decision.action is Action.BLOCK

    @pytest.mark.asyncio
    async def test_failing_embedder_degrades_everything(self, failing_embedder, test_logger):
        gate = PromptGate(embedder=failing_embedder, logger=test_logger)

        abuse = await gate.check_abuse(BENIGN)
        similar = await gate.check_similarity(BENIGN, ["another prompt entirely"])

        assert abuse.action is Action.ALLOW
        assert similar.fallback_used
        assert similar.similar is False

    @pytest.mark.asyncio
    async def test_flags_shared(self, mock_embedder):
        flags = StaticFeatureFlags({"enable_cost_tiering": False,
                                    "enable_similarity_logging": False})
        sink = InMemoryAuditSink()
        gate = PromptGate(embedder=mock_embedder, flags=flags, audit_sink=sink)

        decision = await gate.route(RequestContext(prompt=BENIGN, requested_model="gpt-4"))
        await gate.check_similarity(BENIGN, [BENIGN])
        await gate.aclose()

        assert decision.model == "gpt-4"
        assert sink.records == []

    @pytest.mark.asyncio
    async def test_workspace_flag_override(self, mock_embedder):
        flags = StaticFeatureFlags()
        flags.set_for_workspace("enable_cost_tiering", "internal-tools", False)
        gate = PromptGate(embedder=mock_embedder, flags=flags)

        internal = await gate.route(RequestContext(prompt=BENIGN, requested_model="gpt-4",
                                                   workspace_id="internal-tools"))
        other = await gate.route(RequestContext(prompt=BENIGN, requested_model="gpt-4",
                                                workspace_id="sales"))

        assert internal.model == "gpt-4"
        assert other.model == "gpt-3.5-turbo"


class TestGateBuiltOutsideLoop:

    def test_start_and_check_under_asyncio_run(self):
        gate = PromptGate(embedder=MockEmbedder(dimension=32, delay=0.05))

        async def main():
            gate.start()
            return await asyncio.gather(gate.check_abuse(BENIGN), gate.check_abuse(BENIGN))

        first, second = asyncio.run(main())

        assert first.action is Action.ALLOW
        assert second.action is Action.ALLOW
        assert gate.corpus.state is CorpusState.BUILT
