"""Text normalization helpers shared by every graph component.

All functions here are pure. Node and edge ids are derived from their
output, so identical input must always produce identical output.
"""

import math
import re
from datetime import datetime, timezone

from .constants import CANONICAL_MAX_CHARS, SLUG_MAX_CHARS, TOPIC_MAX_CHARS

_WHITESPACE = re.compile(r"\s+")
_SLUG_INVALID = re.compile(r"[^a-z0-9]+")
_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}\s*[-–]?\s*")
_STOPWORDS = re.compile(r"\b(a|an|the|to|for|and|or|of|in|on|at|by|with)\b")
_NON_ALNUM = re.compile(r"[^a-z0-9\s]")

# Order matters: images before links, bold before italic.
_INLINE_MARKUP = (
    (re.compile(r"`([^`]+)`"), r"\1"),
    (re.compile(r"\*\*([^*]+)\*\*"), r"\1"),
    (re.compile(r"\*([^*]+)\*"), r"\1"),
    (re.compile(r"(?<!\w)__([^_]+)__(?!\w)"), r"\1"),
    (re.compile(r"(?<!\w)_([^_]+)_(?!\w)"), r"\1"),
    (re.compile(r"!\[([^\]]*)\]\(([^)]+)\)"), r"\1"),
    (re.compile(r"\[([^\]]+)\]\(([^)]+)\)"), r"\1"),
)


def sanitize_text(value, fallback: str = "") -> str:
    """Collapse whitespace in a string; anything that isn't a string yields fallback."""
    if not isinstance(value, str):
        return fallback
    return _WHITESPACE.sub(" ", value).strip()


def clean_inline(text: str) -> str:
    """Strip inline markdown markup (code, emphasis, links, images)."""
    out = sanitize_text(text)
    for pattern, replacement in _INLINE_MARKUP:
        out = pattern.sub(replacement, out)
    return _WHITESPACE.sub(" ", out).strip()


def slug(text: str) -> str:
    """Lowercase kebab slug, at most 48 chars, "item" when nothing survives."""
    value = _SLUG_INVALID.sub("-", str(text or "").lower()).strip("-")
    return value[:SLUG_MAX_CHARS] or "item"


def clamp01(value, fallback: float) -> float:
    """Coerce to a finite number in [0, 1] rounded to 2 decimals."""
    if isinstance(value, bool):
        return fallback
    if isinstance(value, str):
        try:
            value = float(value.strip()) if value.strip() else None
        except ValueError:
            return fallback
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return fallback
    return round(min(1.0, max(0.0, float(value))), 2)


def ellipsize(text: str, limit: int) -> str:
    """Cut text to limit chars, ending in "..." when something was dropped."""
    if len(text) <= limit:
        return text
    return f"{text[:limit - 3].rstrip()}..."


def normalize_topic(raw: str) -> str:
    """Heading text as a topic name, without a leading date stamp."""
    topic = _DATE_PREFIX.sub("", clean_inline(raw))
    if not topic:
        return "General"
    return ellipsize(topic, TOPIC_MAX_CHARS)


def canonicalize_fact(text: str) -> str:
    """Lowercased statement with stopwords and punctuation removed, for dedupe keys."""
    out = _STOPWORDS.sub(" ", clean_inline(text).lower())
    out = _NON_ALNUM.sub(" ", out)
    return _WHITESPACE.sub(" ", out).strip()[:CANONICAL_MAX_CHARS]


def to_epoch_ms(value) -> int:
    """Timestamp in milliseconds; values below 1e12 are taken as seconds."""
    if isinstance(value, bool):
        return 0
    try:
        num = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(num) or num <= 0:
        return 0
    return int(num * 1000) if num < 1_000_000_000_000 else int(num)


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
