"""Shared name matching utilities for artist resolution and cache keys."""

MAX_ARTIST_NAME_LENGTH = 100
"""Longest artist name accepted by a lookup."""


def normalize_name(name: str) -> str:
    """Normalize an artist name for case-insensitive comparison.

    Trims surrounding whitespace and case-folds, so "Drake" and "  DRAKE "
    normalize to the same string.
    """
    return name.strip().casefold()


def names_match(left: str | None, right: str | None) -> bool:
    """Check whether two artist display names are the same, ignoring case."""
    if not left or not right:
        return False
    return normalize_name(left) == normalize_name(right)
