"""Static lookup tables for length, region and cost routing."""

from ..core.types import Plan, Provider

# Allowed models per plan, ordered cheapest -> most capable
PLAN_MODELS = {
    Plan.FREE: {
        Provider.OPENAI: ("gpt-3.5-turbo", "gpt-3.5-turbo-16k"),
        Provider.ANTHROPIC: ("claude-3-haiku", "claude-instant-1.2"),
        Provider.GOOGLE: ("gemini-1.5-flash", "gemini-pro"),
    },
    Plan.PRO: {
        Provider.OPENAI: ("gpt-3.5-turbo", "gpt-3.5-turbo-16k", "gpt-4", "gpt-4-turbo"),
        Provider.ANTHROPIC: ("claude-3-haiku", "claude-3-sonnet", "claude-3-opus"),
        Provider.GOOGLE: ("gemini-pro", "gemini-1.5-flash", "gemini-1.5-pro"),
    },
    Plan.TEAM: {
        Provider.OPENAI: ("gpt-3.5-turbo", "gpt-3.5-turbo-16k", "gpt-4", "gpt-4-turbo", "gpt-4o"),
        Provider.ANTHROPIC: ("claude-3-haiku", "claude-3-sonnet", "claude-3-opus", "claude-3-5-sonnet"),
        Provider.GOOGLE: ("gemini-pro", "gemini-1.5-flash", "gemini-1.5-pro"),
    },
    Plan.ENTERPRISE: {
        Provider.OPENAI: ("gpt-3.5-turbo", "gpt-3.5-turbo-16k", "gpt-4o-mini", "gpt-4",
                          "gpt-4-turbo", "gpt-4o"),
        Provider.ANTHROPIC: ("claude-3-haiku", "claude-3-sonnet", "claude-3-opus", "claude-3-5-sonnet"),
        Provider.GOOGLE: ("gemini-1.5-flash-8b", "gemini-pro", "gemini-1.5-flash", "gemini-1.5-pro"),
    },
}

# Never served on the free plan, even on a near-match against PLAN_MODELS
PREMIUM_MODELS = {
    Provider.OPENAI: ("gpt-4", "gpt-4-turbo", "gpt-4o"),
    Provider.ANTHROPIC: ("claude-3-opus", "claude-3-5-sonnet"),
    Provider.GOOGLE: ("gemini-1.5-pro",),
}

# (max tokens, model) buckets per provider; prompts past the last bucket get
# the last model plus a chunking warning
LENGTH_BUCKETS = {
    Provider.OPENAI: ((4_000, "gpt-3.5-turbo"), (16_000, "gpt-3.5-turbo-16k"), (128_000, "gpt-4-turbo")),
    Provider.ANTHROPIC: ((4_000, "claude-3-haiku"), (16_000, "claude-3-sonnet"), (128_000, "claude-3-opus")),
    Provider.GOOGLE: ((4_000, "gemini-1.5-flash"), (16_000, "gemini-pro"), (128_000, "gemini-1.5-pro")),
}

# Fallback when no bucket applies (e.g. empty prompt)
DEFAULT_MODELS = {
    Provider.OPENAI: "gpt-4",
    Provider.ANTHROPIC: "claude-3-opus",
    Provider.GOOGLE: "gemini-pro",
}

# Context windows (tokens) of known models; a requested model is kept by the
# length classifier when the prompt fits
MODEL_CONTEXT_TOKENS = {
    "gpt-3.5-turbo": 4_000,
    "gpt-3.5-turbo-16k": 16_000,
    "gpt-4": 8_000,
    "gpt-4-turbo": 128_000,
    "gpt-4o": 128_000,
    "gpt-4o-mini": 128_000,
    "claude-instant-1.2": 100_000,
    "claude-3-haiku": 200_000,
    "claude-3-sonnet": 200_000,
    "claude-3-opus": 200_000,
    "claude-3-5-sonnet": 200_000,
    "gemini-pro": 32_000,
    "gemini-1.5-flash": 1_000_000,
    "gemini-1.5-flash-8b": 1_000_000,
    "gemini-1.5-pro": 1_000_000,
}

# Provider region names keyed by macro-region
PROVIDER_REGIONS = {
    Provider.OPENAI: {"us": "us-east", "eu": "eu-west", "asia": "asia-pacific", "global": "us-east"},
    Provider.ANTHROPIC: {"us": "us-east", "eu": "eu-west", "asia": "asia-pacific", "global": "us-east"},
    Provider.GOOGLE: {"us": "us-central", "eu": "europe-west", "asia": "asia-east", "global": "us-central"},
}

# Data residency codes -> macro-region
RESIDENCY_ALIASES = {
    "EU": "eu",
    "EUROPE": "eu",
    "US": "us",
    "USA": "us",
    "ASIA": "asia",
    "ASIA-PACIFIC": "asia",
    "APAC": "asia",
}

# Detected user geography -> macro-region
GEO_ALIASES = {
    "us": "us",
    "usa": "us",
    "eu": "eu",
    "europe": "eu",
    "uk": "eu",
    "asia": "asia",
    "apac": "asia",
    "asia-pacific": "asia",
}

GOOGLE_LOCATIONS = {
    "us-central": "us-central1",
    "europe-west": "europe-west1",
    "asia-east": "asia-east1",
}

GLOBAL_ENDPOINTS = {
    Provider.OPENAI: "https://api.openai.com/v1",
    Provider.ANTHROPIC: "https://api.anthropic.com/v1",
}


def endpoint_for(provider: Provider, region: str) -> str:
    """API endpoint for a provider region; Google exposes regional hosts."""
    if provider is Provider.GOOGLE:
        location = GOOGLE_LOCATIONS.get(region, "us-central1")
        return f"https://{location}-aiplatform.googleapis.com/v1"
    return GLOBAL_ENDPOINTS[provider]
