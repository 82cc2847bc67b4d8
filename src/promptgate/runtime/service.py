"""PromptGate facade: the four host-facing operations behind one object."""

from typing import Optional, Sequence, Union

from ..core.abc import AuditSink, Embeddings, FeatureFlags, Logger, Meter, ProfileStore
from ..core.logging import get_logger
from ..core.types import (AbuseVerdict, LengthVerdict, Provider, RequestContext,
                          RoutingDecision, SimilarityContext, SimilarityMethod,
                          SimilarityVerdict)
from ..policy.corpus import CorpusLoader
from ..policy.schema import AbuseOptions, GateConfig, LengthOptions
from .abuse import AbuseDetector
from .audit import AuditDispatcher
from .length import classify_length
from .orchestrator import RoutingOrchestrator
from .similarity import PromptSimilarityChecker


class PromptGate:
    """
    Prompt gating and routing for an LLM gateway.

    Wires the abuse detector, similarity checker, length classifier and router
    to one GateConfig and the host's collaborators. Every collaborator is
    optional; missing ones disable the signals that need them.

    Usage:
        gate = PromptGate(config, embedder=embedder, audit_sink=sink)
        gate.start()
        verdict = await gate.check_abuse(text)
        decision = await gate.route(RequestContext(prompt=text, plan="pro"))
        await gate.aclose()
    """

    def __init__(self, config: Optional[GateConfig] = None, *,
                 embedder: Optional[Embeddings] = None,
                 profiles: Optional[ProfileStore] = None,
                 flags: Optional[FeatureFlags] = None,
                 audit_sink: Optional[AuditSink] = None,
                 logger: Optional[Logger] = None, meter: Optional[Meter] = None):
        self.config = config or GateConfig()
        self.log = logger or get_logger(__name__)
        self.meter = meter
        timeouts = self.config.timeouts

        self.corpus = CorpusLoader(
            reference_texts=self.config.corpus.reference_texts,
            embedder=embedder,
            timeout=timeouts.embedding,
            logger=self.log,
        )
        self.audit = AuditDispatcher(sink=audit_sink, timeout=timeouts.audit,
                                     logger=self.log, meter=meter)
        self.abuse = AbuseDetector(
            options=self.config.abuse,
            embedder=embedder,
            corpus=self.corpus,
            embedding_timeout=timeouts.embedding,
            logger=self.log,
            meter=meter,
        )
        self.similarity = PromptSimilarityChecker(
            embedder=embedder,
            options=self.config.similarity,
            audit=self.audit,
            flags=flags,
            embedding_timeout=timeouts.embedding,
            logger=self.log,
            meter=meter,
        )
        self.router = RoutingOrchestrator(
            options=self.config.routing,
            length_options=self.config.length,
            profiles=profiles,
            flags=flags,
            profile_timeout=timeouts.profile,
            logger=self.log,
            meter=meter,
        )

    def start(self) -> None:
        """Begin building the known-abuse corpus in the background."""
        self.corpus.start()

    async def aclose(self) -> None:
        """Wait for pending audit writes."""
        await self.audit.drain()

    async def __aenter__(self) -> "PromptGate":
        self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def check_abuse(self, text: str, options: Optional[AbuseOptions] = None) -> AbuseVerdict:
        return await self.abuse.check(text, options)

    async def check_similarity(self, prompt: str, known_prompts: Sequence[str],
                               context: Optional[SimilarityContext] = None,
                               threshold: Optional[float] = None,
                               method: Union[SimilarityMethod, str, None] = None) -> SimilarityVerdict:
        return await self.similarity.check(prompt, known_prompts, context, threshold, method)

    def classify_length(self, prompt: str, options: Optional[LengthOptions] = None,
                        provider: Union[Provider, str, None] = None,
                        model: Optional[str] = None) -> LengthVerdict:
        return classify_length(prompt, options or self.config.length, provider, model)

    async def route(self, ctx: RequestContext) -> RoutingDecision:
        return await self.router.route(ctx)

    async def route_simple(self, prompt: str, requested_model: Optional[str] = None,
                           provider: Union[Provider, str, None] = None,
                           user_region: Optional[str] = None) -> RoutingDecision:
        return await self.router.route_simple(prompt, requested_model, provider, user_region)
