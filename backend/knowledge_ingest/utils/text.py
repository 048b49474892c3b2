"""Text processing helpers."""

from __future__ import annotations


def word_count(text: str) -> int:
    """Number of whitespace-separated tokens; zero for blank text."""
    return len(text.split())


def last_words(text: str, count: int) -> str:
    """Return the trailing ``count`` words of ``text`` joined by single spaces."""
    if count <= 0:
        return ""
    return " ".join(text.split()[-count:])


def truncate(text: str, limit: int, marker: str = "...") -> str:
    """Cut ``text`` to ``limit`` characters and append ``marker`` when cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + marker
