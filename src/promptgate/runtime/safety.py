"""Pattern-based content safety scoring."""

import re
from typing import List

from ..core.errors import ensure_text
from ..core.types import SafetyVerdict, Severity, Violation

# Critical: attack / malware vocabulary
BLOCKED_PATTERNS = (
    re.compile(r"\b(?:hack|exploit|bypass|unauthorized|illegal|malware|virus|trojan)\b", re.IGNORECASE),
    re.compile(r"\b(?:ddos|dos|attack|breach|inject|sql injection|xss)\b", re.IGNORECASE),
)

# Medium: credentials and destructive SQL verbs
SUSPICIOUS_PATTERNS = (
    re.compile(r"\b(?:password|credential|api.?key|secret|token)\b", re.IGNORECASE),
    re.compile(r"\b(?:delete|drop|truncate|alter|modify)\b", re.IGNORECASE),
)

CODE_INJECTION_PATTERNS = (
    re.compile(r"<script[^>]*>", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"\bon\w+\s*=", re.IGNORECASE),
    re.compile(r"\beval\s*\(", re.IGNORECASE),
    re.compile(r"\bexec\s*\(", re.IGNORECASE),
    re.compile(r"\bsystem\s*\(", re.IGNORECASE),
    re.compile(r"\bshell_exec\s*\(", re.IGNORECASE),
    re.compile(r"\$\{.*\}"),
    re.compile(r"`.*\$\{.*\}`"),
)

MAX_CONTENT_LENGTH = 100_000

BLOCKED_PENALTY = 0.5
SUSPICIOUS_PENALTY = 0.2
LENGTH_PENALTY = 0.1
INJECTION_PENALTY = 0.3
SAFE_ABOVE = 0.5


def detect_code_injection(content: str) -> bool:
    """Script tags, eval/exec/system calls or template-injection syntax."""
    return any(p.search(content) for p in CODE_INJECTION_PATTERNS)


def check_content_safety(content: str) -> SafetyVerdict:
    """
    Score content against the static rule tables.

    Starts at 1.0 and subtracts a penalty per blocked / suspicious pattern
    match, for excessive length and for code injection. Content is safe when
    nothing fired or the score stays above 0.5.
    """
    ensure_text(content, "content")
    violations: List[Violation] = []
    score = 1.0

    for pattern in BLOCKED_PATTERNS:
        if pattern.search(content):
            violations.append(Violation("blocked_pattern", Severity.CRITICAL,
                                        "Content contains blocked patterns"))
            score -= BLOCKED_PENALTY

    for pattern in SUSPICIOUS_PATTERNS:
        if pattern.search(content):
            violations.append(Violation("suspicious_pattern", Severity.MEDIUM,
                                        "Content contains suspicious patterns"))
            score -= SUSPICIOUS_PENALTY

    if len(content) > MAX_CONTENT_LENGTH:
        violations.append(Violation("excessive_length", Severity.LOW,
                                    "Content is excessively long"))
        score -= LENGTH_PENALTY

    if detect_code_injection(content):
        violations.append(Violation("code_injection", Severity.HIGH,
                                    "Potential code injection detected"))
        score -= INJECTION_PENALTY

    score = max(0.0, score)

    return SafetyVerdict(
        safe=not violations or score > SAFE_ABOVE,
        score=score,
        violations=tuple(violations),
    )
