"""Exception hierarchy for unexpected failures.

Policy outcomes (a blocked prompt, a downgraded model) are returned as
verdicts and never raised.
"""


class PromptGateError(Exception):
    """Base class for all PromptGate errors."""
    pass


class InputValidationError(PromptGateError, ValueError):
    """Malformed input handed to a classifier (e.g. non-string text)."""
    pass


class EmbeddingUnavailableError(PromptGateError):
    """Embedding provider failed or timed out."""
    pass


class ProfileUnavailableError(PromptGateError):
    """Organization profile store failed or timed out."""
    pass


class ConfigLoadError(PromptGateError):
    """Exception raised when config loading or validation fails."""
    pass


def ensure_text(value, name: str = "text") -> str:
    """Return value if it is a str, else raise InputValidationError."""
    if not isinstance(value, str):
        raise InputValidationError(f"{name} must be a string, got {type(value).__name__}")
    return value
