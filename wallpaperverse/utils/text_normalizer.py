"""Text normalization for tag names, search terms and cache keys.

Tags are deduplicated by their normalized name, so every code path that
writes or looks up a tag must go through :func:`normalize_tag_name`.
"""

from __future__ import annotations

import re

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_tag_name(name: str) -> str:
    """Lower-case *name* and collapse internal whitespace.

    >>> normalize_tag_name("  Mountain   Lake ")
    'mountain lake'
    """
    return _WHITESPACE_RE.sub(" ", name).strip().lower()


def split_tag_string(raw: str, separator: str = ",") -> list[str]:
    """Split a delimited tag string into normalized, de-duplicated tags.

    Order is preserved; empty fragments are dropped.
    """
    seen: set[str] = set()
    tags: list[str] = []
    for fragment in raw.split(separator):
        tag = normalize_tag_name(fragment)
        if tag and tag not in seen:
            seen.add(tag)
            tags.append(tag)
    return tags


def normalize_query(query: str) -> str:
    """Normalize a free-text search query.

    The result is both what the store searches for and what the search
    cache key embeds, so two queries share a key only when they would
    run the same database lookup.

    >>> normalize_query("  Misty   Forest ")
    'misty forest'
    """
    return _WHITESPACE_RE.sub(" ", query).strip().lower()
