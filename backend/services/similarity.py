"""
Similarity scoring between OCR candidates and provider places.

Base metric is normalized Levenshtein similarity on case-folded strings. Category
and rating bonuses are additive heuristics, so scores can exceed 1.0; only the
ordering is meaningful.
"""
from __future__ import annotations

from typing import Iterable, List, Sequence

from rapidfuzz.distance import Levenshtein

from domain.models import PlaceRecord, ScoredPlace
from services.candidates import FOOD_KEYWORDS


def levenshtein(a: str, b: str) -> int:
    """Character-level edit distance with unit insert/delete/substitute costs."""
    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> float:
    s1 = (a or "").casefold()
    s2 = (b or "").casefold()
    if s1 == s2:
        return 1.0
    longest = max(len(s1), len(s2))
    return (longest - levenshtein(s1, s2)) / longest


def _has_food_category(categories: Iterable[str] | None, keywords: Sequence[str]) -> bool:
    for category in categories or []:
        lowered = category.lower()
        if any(keyword in lowered for keyword in keywords):
            return True
    return False


def score_places(
    candidates: Sequence[str],
    places: Sequence[PlaceRecord],
    *,
    category_bonus: float = 0.1,
    rating_bonus: float = 0.1,
    rating_floor: float = 4.0,
    keywords: Sequence[str] = FOOD_KEYWORDS,
) -> List[ScoredPlace]:
    """
    Score each place by its best similarity against any candidate, plus bonuses.

    Bonuses are applied once per place. Output is sorted by score descending;
    Python's stable sort keeps input order for ties.
    """
    scored: List[ScoredPlace] = []
    for place in places:
        best = 0.0
        best_candidate = None
        for candidate in candidates:
            value = similarity(candidate, place.name)
            if best_candidate is None or value > best:
                best = value
                best_candidate = candidate

        score = best
        if _has_food_category(place.categories, keywords):
            score += category_bonus
        if place.rating is not None and place.rating > rating_floor:
            score += rating_bonus
        scored.append(ScoredPlace(place=place, score=score, matched_candidate=best_candidate))

    scored.sort(key=lambda s: s.score, reverse=True)
    return scored
