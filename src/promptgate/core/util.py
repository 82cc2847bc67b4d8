"""Small utility functions."""

import hashlib
import json
from datetime import datetime
from enum import Enum
from typing import Any


def hash_text(text: str) -> str:
    """Create a stable hash of text content."""
    return hashlib.sha256(text.encode('utf-8')).hexdigest()[:16]


def preview(text: str, limit: int = 100) -> str:
    """Truncate text for log lines."""
    return text if len(text) <= limit else text[:limit] + "..."


def to_plain(item: Any) -> Any:
    """Convert verdicts / records (dataclasses, enums, numpy values) into JSON-ready data."""
    if isinstance(item, Enum):
        return item.value
    if isinstance(item, datetime):
        return item.isoformat()
    if hasattr(item, 'tolist'):  # numpy array or scalar
        return item.tolist()
    if hasattr(item, '__dataclass_fields__'):
        return {k: to_plain(getattr(item, k)) for k in item.__dataclass_fields__}
    if isinstance(item, (list, tuple)):
        return [to_plain(x) for x in item]
    if isinstance(item, dict):
        return {k: to_plain(v) for k, v in item.items()}
    return item


def safe_json(obj: Any) -> str:
    """Safely serialize object to JSON, handling numpy types and dataclasses."""
    try:
        return json.dumps(to_plain(obj), indent=2)
    except (TypeError, ValueError) as e:
        return f"<serialization error: {e}>"
