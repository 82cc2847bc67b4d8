"""Test the prompt similarity checker and its word-overlap fallback."""

import numpy as np
import pytest

from promptgate.core.errors import InputValidationError
from promptgate.core.types import SimilarityContext
from promptgate.policy.schema import SimilarityOptions
from promptgate.providers.static import StaticFeatureFlags
from promptgate.runtime.audit import AuditDispatcher
from promptgate.runtime.similarity import PromptSimilarityChecker, fallback_word_similarity

from conftest import FailingAuditSink, RaisingFlags, SlowAuditSink

PROMPT = "Write a poem about the ocean at night"
KNOWN = ["Explain quantum computing to a child", "Write a poem about the ocean at night"]


def make_checker(embedder, sink=None, flags=None, logger=None, meter=None, **kwargs):
    audit = AuditDispatcher(sink=sink, timeout=0.1, logger=logger, meter=meter)
    return PromptSimilarityChecker(embedder=embedder, audit=audit, flags=flags,
                                   logger=logger, meter=meter, **kwargs)


class TestEmbeddingSimilarity:

    @pytest.mark.asyncio
    async def test_identical_prompt_is_similar(self, mock_embedder):
        checker = make_checker(mock_embedder)

        verdict = await checker.check(PROMPT, KNOWN, threshold=0.99)

        assert verdict.similar is True
        assert verdict.score == pytest.approx(1.0, abs=1e-6)
        assert verdict.matched_references == (PROMPT,)
        assert verdict.method == "cosine"
        assert verdict.fallback_used is False

    @pytest.mark.asyncio
    async def test_unrelated_prompt_is_not_similar(self, mock_embedder):
        checker = make_checker(mock_embedder)

        verdict = await checker.check("List three prime numbers", ["Describe a sunset over Paris"])

        assert verdict.similar is False
        assert 0.0 <= verdict.score < 0.85

    @pytest.mark.asyncio
    async def test_cosine_is_symmetric(self, mock_embedder):
        checker = make_checker(mock_embedder)
        a, b = "reset my account password", "how do I reset the password on my account"

        ab = await checker.check(a, [b])
        ba = await checker.check(b, [a])

        assert ab.score == pytest.approx(ba.score)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["cosine", "euclidean", "dot_product", "manhattan"])
    async def test_methods_identical_prompt(self, mock_embedder, method):
        checker = make_checker(mock_embedder)

        verdict = await checker.check(PROMPT, [PROMPT], threshold=0.99, method=method)

        assert verdict.similar is True
        assert verdict.method == method
        assert 0.0 <= verdict.score <= 1.0

    @pytest.mark.asyncio
    async def test_single_batched_embedding_call(self, mock_embedder):
        checker = make_checker(mock_embedder)
        await checker.check(PROMPT, KNOWN)
        assert mock_embedder.calls == 1

    @pytest.mark.asyncio
    async def test_default_threshold_from_options(self, mock_embedder):
        checker = make_checker(mock_embedder, options=SimilarityOptions(threshold=0.0))

        verdict = await checker.check("alpha", ["omega"])

        assert verdict.similar is True

    @pytest.mark.asyncio
    async def test_empty_known_list(self, mock_embedder, audit_sink):
        checker = make_checker(mock_embedder, sink=audit_sink)

        verdict = await checker.check(PROMPT, [])
        await checker.audit.drain()

        assert verdict.similar is False
        assert verdict.score == 0.0
        assert verdict.matched_references is None
        assert mock_embedder.calls == 0
        assert len(audit_sink.records) == 1


class TestValidation:

    @pytest.mark.asyncio
    async def test_bad_threshold(self, mock_embedder):
        with pytest.raises(InputValidationError):
            await make_checker(mock_embedder).check(PROMPT, KNOWN, threshold=1.5)

    @pytest.mark.asyncio
    async def test_bad_method(self, mock_embedder):
        with pytest.raises(InputValidationError):
            await make_checker(mock_embedder).check(PROMPT, KNOWN, method="hamming")

    @pytest.mark.asyncio
    async def test_non_string_known(self, mock_embedder):
        with pytest.raises(InputValidationError):
            await make_checker(mock_embedder).check(PROMPT, ["ok", 42])


class TestFallback:

    def test_word_overlap(self):
        verdict = fallback_word_similarity("the cat sat", ["The cat sat", "a dog ran"])

        assert verdict.similar is True
        assert verdict.score == 1.0
        assert verdict.matched_references == ("The cat sat",)
        assert verdict.method == "jaccard"
        assert verdict.fallback_used is True

    def test_threshold_is_strict(self):
        # Jaccard of {a, b, c} and {a, b, c, d} is 0.75
        assert fallback_word_similarity("a b c", ["a b c d"], threshold=0.75).similar is False
        assert fallback_word_similarity("a b c", ["a b c d"], threshold=0.7).similar is True

    def test_no_overlap(self):
        verdict = fallback_word_similarity("hello world", ["goodbye moon"])
        assert verdict.score == 0.0
        assert verdict.matched_references is None

    @pytest.mark.asyncio
    async def test_embedding_failure_uses_fallback(self, failing_embedder, audit_sink,
                                                   test_logger, meter):
        checker = make_checker(failing_embedder, sink=audit_sink, logger=test_logger, meter=meter)

        verdict = await checker.check(PROMPT, KNOWN)
        await checker.audit.drain()

        assert verdict.fallback_used is True
        assert verdict.method == "jaccard"
        assert verdict.similar is True
        assert "promptgate.similarity.fallback" in meter.names()
        assert "warn" in test_logger.levels()
        record = audit_sink.records[0]
        assert record.method_used == "jaccard"
        assert record.prompt_embedding is None

    @pytest.mark.asyncio
    async def test_timeout_uses_fallback(self, slow_embedder):
        checker = make_checker(slow_embedder, embedding_timeout=0.05)

        verdict = await checker.check("completely different words", KNOWN)

        assert verdict.fallback_used is True
        assert verdict.similar is False

    @pytest.mark.asyncio
    async def test_no_embedder_uses_fallback(self):
        verdict = await make_checker(None).check(PROMPT, KNOWN)
        assert verdict.fallback_used is True


class TestAudit:

    @pytest.mark.asyncio
    async def test_record_contents(self, mock_embedder, audit_sink):
        checker = make_checker(mock_embedder, sink=audit_sink)
        ctx = SimilarityContext(user_id="u1", org_id="o1", workspace_id="w1", trace_id="t1",
                                workflow_execution_id="run-9", node_id="n3")

        verdict = await checker.check(PROMPT, KNOWN, context=ctx, threshold=0.9)
        await checker.audit.drain()

        record = audit_sink.records[0]
        assert record.prompt == PROMPT
        assert record.matched_text == PROMPT
        assert record.action_taken == "blocked"
        assert record.threshold_used == 0.9
        assert record.method_used == "cosine"
        assert record.score == verdict.score
        assert record.score_percent == 100
        assert len(record.prompt_embedding) == 64
        assert np.allclose(record.prompt_embedding, record.matched_embedding)
        assert (record.org_id, record.workspace_id, record.user_id) == ("o1", "w1", "u1")
        assert (record.trace_id, record.workflow_execution_id, record.node_id) == ("t1", "run-9", "n3")

    @pytest.mark.asyncio
    async def test_allowed_record(self, mock_embedder, audit_sink):
        checker = make_checker(mock_embedder, sink=audit_sink)

        await checker.check("List three prime numbers", ["Describe a sunset over Paris"])
        await checker.audit.drain()

        assert audit_sink.records[0].action_taken == "allowed"

    @pytest.mark.asyncio
    async def test_sink_failure_does_not_change_verdict(self, mock_embedder, test_logger, meter):
        sink = FailingAuditSink()
        checker = make_checker(mock_embedder, sink=sink, logger=test_logger, meter=meter)

        verdict = await checker.check(PROMPT, KNOWN, threshold=0.99)
        await checker.audit.drain()

        assert verdict.similar is True
        assert sink.calls == 1
        assert "promptgate.audit.failed" in meter.names()
        assert "error" in test_logger.levels()

    @pytest.mark.asyncio
    async def test_slow_sink_does_not_block_caller(self, mock_embedder, meter):
        checker = make_checker(mock_embedder, sink=SlowAuditSink(delay=5.0), meter=meter)

        verdict = await checker.check(PROMPT, KNOWN, threshold=0.99)

        assert verdict.similar is True
        assert len(checker.audit._pending) == 1
        await checker.audit.drain()
        assert "promptgate.audit.failed" in meter.names()

    @pytest.mark.asyncio
    async def test_logging_flag_off_skips_record(self, mock_embedder, audit_sink):
        flags = StaticFeatureFlags({"enable_similarity_logging": False})
        checker = make_checker(mock_embedder, sink=audit_sink, flags=flags)

        await checker.check(PROMPT, KNOWN)
        await checker.audit.drain()

        assert audit_sink.records == []

    @pytest.mark.asyncio
    async def test_logging_flag_per_workspace(self, mock_embedder, audit_sink):
        flags = StaticFeatureFlags()
        flags.set_for_workspace("enable_similarity_logging", "w-quiet", False)
        checker = make_checker(mock_embedder, sink=audit_sink, flags=flags)

        await checker.check(PROMPT, KNOWN, context=SimilarityContext(workspace_id="w-quiet"))
        await checker.check(PROMPT, KNOWN, context=SimilarityContext(workspace_id="w-loud"))
        await checker.audit.drain()

        assert len(audit_sink.records) == 1

    @pytest.mark.asyncio
    async def test_flag_source_failure_keeps_verdict(self, mock_embedder, audit_sink, test_logger):
        checker = make_checker(mock_embedder, sink=audit_sink, flags=RaisingFlags(),
                               logger=test_logger)

        verdict = await checker.check(PROMPT, KNOWN)
        await checker.audit.drain()

        assert verdict.similar is True
        assert len(audit_sink.records) == 1
        assert ("warn", "Feature flag lookup failed, assuming enabled") in \
            [(level, msg) for level, msg, _ in test_logger.messages]
