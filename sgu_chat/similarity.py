"""Lexical similarity between a query and a corpus text.

Scores are floats in ``[0, 1]``. The cascade in :func:`match_score` tries the
cheap exact and containment checks first and falls back to a Jaccard index
over the stemmed token sets.
"""

from typing import Iterable

EXACT_MATCH_SCORE = 1.0
SUBSTRING_MATCH_SCORE = 0.9
MIN_COMPACT_LENGTH = 4


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    """Jaccard index of two token collections treated as sets."""
    set_a, set_b = set(a), set(b)
    union = len(set_a | set_b)
    return len(set_a & set_b) / max(union, 1)


def contains_phrase(haystack: str, needle: str) -> bool:
    """True when ``needle`` occurs in ``haystack`` on word boundaries.

    Both arguments are canonical strings (see ``nlp_utils.normalize``).
    """
    if not haystack or not needle:
        return False
    return f" {needle} " in f" {haystack} "


def match_score(query_canonical: str, query_tokens, target_canonical: str, target_tokens) -> float:
    if not query_canonical or not target_canonical:
        return 0.0
    if query_canonical == target_canonical:
        return EXACT_MATCH_SCORE
    if contains_phrase(target_canonical, query_canonical) or contains_phrase(query_canonical, target_canonical):
        return SUBSTRING_MATCH_SCORE
    return jaccard(query_tokens, target_tokens)


def compact_contains(a: str, b: str) -> bool:
    """Containment either way on compacted (space-free) strings.

    The contained side must be at least ``MIN_COMPACT_LENGTH`` characters so
    that one or two letters never count as a match.
    """
    shorter, longer = sorted((a, b), key=len)
    if len(shorter) < MIN_COMPACT_LENGTH:
        return False
    return shorter in longer
