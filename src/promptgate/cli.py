"""Command-line interface for PromptGate."""

import argparse
import asyncio
import importlib.metadata
import sys
from pathlib import Path

from promptgate.core.errors import ConfigLoadError, PromptGateError
from promptgate.core.types import Action, RequestContext
from promptgate.core.util import safe_json
from promptgate.policy.loader import load_config
from promptgate.policy.schema import GateConfig
from promptgate.providers.factory import create_embedder_with_fallback
from promptgate.providers.mock_embedder import create_mock_embedder
from promptgate.runtime.audit import LoggingAuditSink
from promptgate.runtime.service import PromptGate

EXIT_BLOCKED = 2


def _config(args) -> GateConfig:
    if getattr(args, "config", None):
        return load_config(args.config)
    return GateConfig()


async def _embedder(args):
    if args.mock_embedder:
        print("Using mock embedder for testing")
        return create_mock_embedder()
    return await create_embedder_with_fallback()


def validate_config_command(args):
    """Validate a PromptGate config file."""
    config_path = Path(args.config_file)
    if not config_path.exists():
        print(f"Error: Config file not found: {config_path}")
        return 1

    try:
        print(f"Validating config: {config_path}")
        config = load_config(config_path)
    except ConfigLoadError as e:
        print(f"❌ Config validation failed: {e}")
        return 1

    print("✅ Config validation successful!")
    print(f"   Version: {config.version}")
    print(f"   Abuse: ml_threshold={config.abuse.ml_threshold}, "
          f"block_threshold={config.abuse.block_threshold}")
    print(f"   Similarity: {config.similarity.method.value} >= {config.similarity.threshold}")
    print(f"   Length: {config.length.min_length}-{config.length.max_length} chars, "
          f"<= {config.length.max_tokens} tokens")
    print(f"   Routing: {config.routing.default_provider.value}/{config.routing.default_model} "
          f"({config.routing.default_plan.value} plan)")
    print(f"   Corpus: {len(config.corpus.reference_texts)} reference texts")

    if args.verbose:
        print("\nReference texts:")
        for text in config.corpus.reference_texts:
            print(f"   - {text}")
    return 0


async def _check(args):
    embedder = await _embedder(args)
    async with PromptGate(_config(args), embedder=embedder) as gate:
        verdict = await gate.check_abuse(args.text)

    if args.json:
        print(safe_json(verdict))
    else:
        print(f"\nText: \"{args.text}\"")
        print(f"   Action: {verdict.action.value.upper()} (confidence {verdict.confidence:.3f})")
        if verdict.abuse_type:
            print(f"   Type: {verdict.abuse_type}")
        for p in verdict.patterns:
            print(f"   - {p.kind}: {p.description}")
        if verdict.degraded_checks:
            print(f"   ⚠️  Skipped: {', '.join(verdict.degraded_checks)}")
    return EXIT_BLOCKED if verdict.action is Action.BLOCK else 0


async def _similar(args):
    embedder = await _embedder(args)
    async with PromptGate(_config(args), embedder=embedder, audit_sink=LoggingAuditSink()) as gate:
        verdict = await gate.check_similarity(args.prompt, args.known,
                                              threshold=args.threshold, method=args.method)

    if args.json:
        print(safe_json(verdict))
    else:
        label = "SIMILAR" if verdict.similar else "DISTINCT"
        print(f"\nPrompt: \"{args.prompt}\"")
        print(f"   {label}: score {verdict.score:.3f} ({verdict.method})")
        for ref in verdict.matched_references or ():
            print(f"   matched: \"{ref}\"")
        if verdict.fallback_used:
            print("   ⚠️  Embeddings unavailable, word-overlap fallback used")
    return 0


async def _route(args):
    ctx = RequestContext(
        prompt=args.prompt,
        provider=args.provider,
        requested_model=args.model,
        plan=args.plan,
        user_region=args.region,
        preferred_region=args.preferred_region,
        data_residency=args.residency,
        compliance_tags=tuple(args.tag or ()),
    )
    gate = PromptGate(_config(args))
    decision = await gate.route(ctx)

    if args.json:
        print(safe_json(decision))
    else:
        print(f"\n{decision.action.value.upper()} -> {decision.provider.value}/{decision.model} "
              f"@ {decision.region}")
        if decision.original_model:
            print(f"   requested: {decision.original_model}")
        print(f"   reason: {decision.reason}")
        print(f"   factors: {', '.join(decision.factors) or 'none'}")
        for w in decision.warnings:
            print(f"   ⚠️  {w}")
        for e in decision.errors:
            print(f"   ❌ {e}")
    return EXIT_BLOCKED if decision.action is Action.BLOCK else 0


def _run(coro_fn, args):
    try:
        return asyncio.run(coro_fn(args))
    except PromptGateError as e:
        print(f"❌ Error: {e}")
        return 1


def info_command(args):
    """Display PromptGate version and system information."""
    print("PromptGate CLI")
    print("=" * 50)

    try:
        version = importlib.metadata.version("promptgate")
        print(f"Version: {version}")
    except importlib.metadata.PackageNotFoundError:
        print("Version: development")

    print(f"Python: {sys.version.split()[0]}")
    print("\nOptional dependencies:")

    for name, module in (("openai", "openai"), ("sentence-transformers", "sentence_transformers"),
                         ("langchain-core", "langchain_core")):
        try:
            mod = __import__(module)
            print(f"   ✅ {name}: {getattr(mod, '__version__', 'installed')}")
        except ImportError:
            print(f"   ❌ {name}: not installed")
    return 0


def create_parser():
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="promptgate",
        description="PromptGate prompt gating and routing CLI"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    validate_parser = subparsers.add_parser("validate", help="Validate a PromptGate config file")
    validate_parser.add_argument("config_file", help="Path to the config YAML file")
    validate_parser.add_argument("-v", "--verbose", action="store_true",
                                 help="Show detailed validation results")

    def common(p, embedder=True):
        p.add_argument("-c", "--config", help="Path to a config YAML file")
        p.add_argument("--json", action="store_true", help="Print the full result as JSON")
        if embedder:
            p.add_argument("--mock-embedder", action="store_true",
                           help="Force use of mock embedder for testing")

    check_parser = subparsers.add_parser("check", help="Run the abuse detector on a text "
                                                       "(exit code 2 when blocked)")
    check_parser.add_argument("text", help="Text to check")
    common(check_parser)

    similar_parser = subparsers.add_parser("similar", help="Compare a prompt against known prompts")
    similar_parser.add_argument("prompt", help="Prompt to check")
    similar_parser.add_argument("-k", "--known", action="append", default=[],
                                help="Known prompt (repeatable)")
    similar_parser.add_argument("-t", "--threshold", type=float, help="Similarity threshold in [0, 1]")
    similar_parser.add_argument("-m", "--method",
                                choices=["cosine", "euclidean", "dot_product", "manhattan"])
    common(similar_parser)

    route_parser = subparsers.add_parser("route", help="Compute a routing decision "
                                                       "(exit code 2 when blocked)")
    route_parser.add_argument("prompt", help="Prompt to route")
    route_parser.add_argument("--plan", choices=["free", "pro", "team", "enterprise"])
    route_parser.add_argument("--provider", choices=["openai", "anthropic", "google"])
    route_parser.add_argument("--model", help="Requested model")
    route_parser.add_argument("--region", help="User geographic region (us, eu, asia, ...)")
    route_parser.add_argument("--preferred-region", help="Explicit preferred provider region")
    route_parser.add_argument("--residency", help="Data residency requirement (EU, US, ASIA)")
    route_parser.add_argument("--tag", action="append", help="Compliance tag (repeatable)")
    common(route_parser, embedder=False)

    subparsers.add_parser("info", help="Display version and system information")
    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "validate":
        return validate_config_command(args)
    elif args.command == "check":
        return _run(_check, args)
    elif args.command == "similar":
        return _run(_similar, args)
    elif args.command == "route":
        return _run(_route, args)
    elif args.command == "info":
        return info_command(args)
    print(f"Unknown command: {args.command}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
