"""
Statistical text features used by the abuse detector.

All functions are pure and total: any str (including "" and non-ASCII
text) yields a finite value. Ratios are always in [0, 1].
"""

import math
import re
from collections import Counter

from .errors import ensure_text
from .types import TextFeatures

# Alphanumerics, whitespace and common punctuation
_USUAL_CHAR = re.compile(r"[A-Za-z0-9\s.,!?;:'\"()\-]")

MIN_REPETITION_LENGTH = 10


def entropy(text: str) -> float:
    """Shannon entropy (bits) of the character frequency distribution."""
    ensure_text(text)
    if not text:
        return 0.0
    n = len(text)
    h = 0.0
    for count in Counter(text).values():
        p = count / n
        h -= p * math.log2(p)
    return max(h, 0.0)


def repetition_score(text: str) -> float:
    """
    Repetition in [0, 1], higher for spam-like text.

    Max of (a) repeated words (length > 2) beyond their first occurrence,
    over the total word count, and (b) half the share of 3-character windows
    whose sequence appears more than twice.
    """
    ensure_text(text)
    if len(text) < MIN_REPETITION_LENGTH:
        return 0.0

    words = text.lower().split()
    counts = Counter(w for w in words if len(w) > 2)
    repeated = sum(c - 1 for c in counts.values() if c > 1)
    word_score = min(repeated / len(words), 1.0) if words else 0.0

    # Non-overlapping occurrence count per 3-character sequence (str.count
    # semantics), gathered in one left-to-right pass
    seq_counts = {}
    next_free = {}
    for i in range(len(text) - 2):
        seq = text[i:i + 3]
        if i >= next_free.get(seq, 0):
            seq_counts[seq] = seq_counts.get(seq, 0) + 1
            next_free[seq] = i + 3

    char_repetition = 0
    for i in range(len(text) - 3):
        count = seq_counts[text[i:i + 3]]
        if count > 2:
            char_repetition += count - 2
    char_score = min(char_repetition / len(text), 1.0)

    return max(word_score, char_score * 0.5)


def unusual_char_ratio(text: str) -> float:
    """Share of characters outside alphanumerics, whitespace and .,!?;:'"()-"""
    ensure_text(text)
    if not text:
        return 0.0
    unusual = sum(1 for ch in text if not _USUAL_CHAR.match(ch))
    return unusual / len(text)


def extract_features(text: str) -> TextFeatures:
    return TextFeatures(
        entropy=entropy(text),
        repetition_score=repetition_score(text),
        unusual_char_ratio=unusual_char_ratio(text),
    )
