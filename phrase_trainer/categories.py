"""Known content categories.

The sheet's ``category`` column holds one of these slugs; anything else
lands in the default bucket.
"""
from __future__ import annotations

DEFAULT_CATEGORY = "misc"

CATEGORIES: dict[str, str] = {
    "greetings": "Greetings & Introductions",
    "questions": "Common Questions & Responses",
    "directions": "Directions & Transportation",
    "food": "Food & Dining",
    "numbers": "Numbers, Time & Dates",
    "shopping": "Shopping & Money",
    "emergencies": "Emergencies & Health",
    "social": "Social / Small Talk",
    "family": "Family & People",
    "misc": "Miscellaneous",
}


def normalize_category(raw: str | None) -> str:
    slug = (raw or "").strip().lower()
    return slug if slug in CATEGORIES else DEFAULT_CATEGORY


def category_label(slug: str) -> str:
    return CATEGORIES.get(slug, CATEGORIES[DEFAULT_CATEGORY])
