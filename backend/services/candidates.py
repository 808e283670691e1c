"""
Candidate place-name extraction from aggregated OCR text.

A line is kept when it looks like it names a venue:
- it mentions a food/venue keyword (case-insensitive), or
- it is a short strict Title Case phrase, or
- it carries a social handle or hashtag.
Lines with links are always dropped. Output preserves first-seen order, since
callers only search the first few candidates.
"""
from __future__ import annotations

import re
from typing import List

FOOD_KEYWORDS = (
    "burger",
    "pizza",
    "sushi",
    "café",
    "cafe",
    "bakery",
    "bar",
    "grill",
    "kebab",
    "ramen",
    "taco",
    "steak",
    "bistro",
    "brunch",
    "restaurant",
    "diner",
    "eatery",
    "kitchen",
    "food",
    "dining",
    "cuisine",
)

TITLE_CASE_RE = re.compile(r"^[A-Z][a-z]+(\s+[A-Z][a-z]+)*$")
TITLE_CASE_MIN_LEN = 3
TITLE_CASE_MAX_LEN = 50
LINK_MARKERS = ("http", "www")
SOCIAL_MARKERS = ("@", "#")


def contains_food_keyword(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in FOOD_KEYWORDS)


def _is_title_case_name(line: str) -> bool:
    return (
        TITLE_CASE_MIN_LEN <= len(line) <= TITLE_CASE_MAX_LEN
        and TITLE_CASE_RE.match(line) is not None
    )


def _is_candidate(line: str) -> bool:
    if any(marker in line for marker in LINK_MARKERS):
        return False
    return (
        contains_food_keyword(line)
        or _is_title_case_name(line)
        or any(marker in line for marker in SOCIAL_MARKERS)
    )


def extract_candidates(text: str) -> List[str]:
    """Return deduplicated candidate lines in order of first appearance."""
    if not text:
        return []
    seen = set()
    candidates: List[str] = []
    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if not line or line in seen:
            continue
        if _is_candidate(line):
            seen.add(line)
            candidates.append(line)
    return candidates
