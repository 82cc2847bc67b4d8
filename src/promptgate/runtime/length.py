"""Prompt length validation and length-based model recommendation."""

import math
from typing import List, Optional, Union

from ..core.errors import InputValidationError, ensure_text
from ..core.types import Action, LengthVerdict, Provider
from ..policy.schema import LengthOptions
from ..policy.tables import DEFAULT_MODELS, LENGTH_BUCKETS, MODEL_CONTEXT_TOKENS


def as_provider(value: Union[Provider, str, None], default: Provider = Provider.OPENAI) -> Provider:
    if value is None:
        return default
    try:
        return Provider(value)
    except ValueError:
        raise InputValidationError(f"Unsupported provider: {value}")


def estimate_tokens(char_length: int, chars_per_token: int = 4) -> int:
    return math.ceil(char_length / chars_per_token)


def _bucket_model(token_estimate: int, provider: Provider, model: Optional[str]):
    """Return (model, needs_chunking) for a token estimate."""
    if token_estimate <= 0:
        return None, False

    if model is not None:
        window = MODEL_CONTEXT_TOKENS.get(model)
        if window is not None and token_estimate <= window:
            return model, False

    buckets = LENGTH_BUCKETS[provider]
    for limit, bucket_model in buckets:
        if token_estimate <= limit:
            return bucket_model, False
    return buckets[-1][1], True


def classify_length(prompt: str, options: Optional[LengthOptions] = None,
                    provider: Union[Provider, str, None] = None,
                    model: Optional[str] = None) -> LengthVerdict:
    """
    Validate a prompt against length bounds and recommend a model.

    Any bound violation blocks. Reaching the warn threshold of either maximum
    warns. A requested model is kept when its context window holds the
    prompt; otherwise the provider's bucket table picks one.
    """
    ensure_text(prompt, "prompt")
    opts = options or LengthOptions()
    provider = as_provider(provider)

    length = len(prompt)
    tokens = estimate_tokens(length, opts.chars_per_token)
    warnings: List[str] = []
    errors: List[str] = []
    action = Action.ALLOW

    if length < opts.min_length:
        errors.append(f"Prompt is too short: {length} characters (minimum: {opts.min_length})")
    if length > opts.max_length:
        errors.append(f"Prompt is too long: {length} characters (maximum: {opts.max_length})")
    if tokens < opts.min_tokens:
        errors.append(f"Prompt token estimate too low: ~{tokens} tokens (minimum: {opts.min_tokens})")
    if tokens > opts.max_tokens:
        errors.append(f"Prompt token estimate too high: ~{tokens} tokens (maximum: {opts.max_tokens})")
    if errors:
        action = Action.BLOCK

    length_pct = length / opts.max_length
    token_pct = tokens / opts.max_tokens
    if opts.warn_threshold <= length_pct < 1.0:
        warnings.append(f"Prompt is {length_pct * 100:.1f}% of maximum length")
    if opts.warn_threshold <= token_pct < 1.0:
        warnings.append(f"Prompt token estimate is {token_pct * 100:.1f}% of maximum tokens")
    if warnings and action is Action.ALLOW:
        action = Action.WARN

    recommended, chunk = _bucket_model(tokens, provider, model)
    if chunk:
        warnings.append(f"Prompt is very long ({tokens} tokens). Consider chunking or "
                        f"using a model with larger context window.")
        if action is Action.ALLOW:
            action = Action.WARN

    return LengthVerdict(
        valid=not errors,
        char_length=length,
        token_estimate=tokens,
        action=action,
        recommended_model=recommended,
        warnings=tuple(warnings),
        errors=tuple(errors),
    )


def recommended_model_by_length(prompt: str, provider: Union[Provider, str, None] = None) -> str:
    """Bucket model for a prompt, or the provider default when none applies."""
    ensure_text(prompt, "prompt")
    provider = as_provider(provider)
    model, _ = _bucket_model(estimate_tokens(len(prompt)), provider, None)
    return model or DEFAULT_MODELS[provider]
