"""Canonical form of free-text contact reasons used as grouping keys."""

import re

_TRAILING_PUNCTUATION = re.compile(r"[.!?]+$")
_WHITESPACE_RUN = re.compile(r"\s+")


def is_reason_text(value: object) -> bool:
    """True for values worth counting: non-blank strings."""
    return isinstance(value, str) and bool(value.strip())


def normalize(text: str) -> str:
    """
    Lower-case, trim, drop trailing '.', '!' or '?' and collapse whitespace.

    normalize(normalize(x)) == normalize(x) for any string x.
    """
    normalized = text.lower().strip()
    normalized = _TRAILING_PUNCTUATION.sub("", normalized)
    normalized = _WHITESPACE_RUN.sub(" ", normalized)
    # Stripping punctuation can expose whitespace ("ok !" -> "ok ")
    normalized = normalized.strip()
    if _TRAILING_PUNCTUATION.search(normalized):
        return normalize(normalized)
    return normalized
