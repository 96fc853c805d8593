"""Relevance scoring for completion candidates."""

from __future__ import annotations

EXACT_MATCH = 100
PREFIX_MATCH = 95
CONTAINS_CAP = 85
CONTAINS_BONUS = 5
MISS_PENALTY = 10


def score_relevance(candidate: str, word: str, base_score: int) -> int:
    """Score ``candidate`` against the partially typed ``word``.

    Exact matches outrank prefix matches, which outrank substring matches,
    which outrank misses. An empty word leaves ``base_score`` untouched so
    "show everything" lists keep their hand-assigned ordering.
    """

    if not word:
        return base_score
    item = candidate.lower()
    needle = word.lower()
    if item == needle:
        return EXACT_MATCH
    if item.startswith(needle):
        return PREFIX_MATCH
    if needle in item:
        return min(base_score + CONTAINS_BONUS, CONTAINS_CAP)
    return max(base_score - MISS_PENALTY, 0)


def is_prefix(candidate: str, word: str) -> bool:
    return candidate.lower().startswith(word.lower())


__all__ = ["score_relevance", "is_prefix"]
