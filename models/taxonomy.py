"""Canonical taxonomy definitions for wardrobe items and occasions.

This module centralises the closed category set, the ordered occasion list and
the one parser for variant-shaped tag fields. Helper functions keep validation
consistent across storage, collaborators and the composition logic.
"""

import json
from typing import Any, Dict, List, Tuple

ALL_ITEMS = "All Items"

CATEGORIES: Tuple[str, ...] = (
    "Tops",
    "Bottoms",
    "Outerwear",
    "Shoes",
    "Dresses",
    "Bags",
    "Caps",
    "Accessories",
)

OCCASIONS: Tuple[str, ...] = (
    "Casual",
    "Work",
    "Date Night",
    "Formal",
    "Weekend Brunch",
    "Beach & Vacation",
    "Wedding Guest",
    "Gym",
    "Party",
    "Concert & Festival",
    "Job Interview",
    "Business Trip",
    "Lounge & Home",
)

# Checked in order; the first keyword hit wins.
CATEGORY_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("Bags", ("bag", "handbag", "satchel", "purse", "clutch", "tote", "backpack")),
    ("Dresses", ("dress", "gown", "jumpsuit")),
    ("Outerwear", ("outer", "jacket", "coat", "blazer", "cardigan", "parka")),
    ("Bottoms", ("bottom", "pants", "jeans", "skirt", "trousers", "shorts", "leggings")),
    ("Shoes", ("shoe", "footwear", "boots", "sneakers", "heels", "sandals", "loafers")),
    ("Caps", ("cap", "beanie", "beret")),
    ("Accessories", ("access", "jewel", "hat", "belt", "scarf", "watch", "sunglass")),
    ("Tops", ("top", "shirt", "blouse", "sweater", "hoodie", "tee")),
]

_CATEGORY_LOOKUP: Dict[str, str] = {category.lower(): category for category in CATEGORIES}
_OCCASION_LOOKUP: Dict[str, str] = {occasion.lower(): occasion for occasion in OCCASIONS}


def validate_category(value: str) -> str:
    """Validate a category and return its canonical label.

    Raises a :class:`ValueError` for unknown labels and for the UI-only
    ``All Items`` pseudo-category.
    """

    key = str(value or "").strip().lower()
    if key not in _CATEGORY_LOOKUP:
        raise ValueError(f"Unsupported category '{value}'. Allowed: {list(CATEGORIES)}")
    return _CATEGORY_LOOKUP[key]


def normalize_category(raw: str) -> str:
    """Map a free-form garment label onto the closed category set.

    Labels that name no known garment fall back to ``Tops``.
    """

    key = str(raw or "").strip().lower()
    if key in _CATEGORY_LOOKUP:
        return _CATEGORY_LOOKUP[key]
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in key for keyword in keywords):
            return category
    return "Tops"


def validate_occasion(value: str) -> str:
    """Validate an occasion label and return its canonical spelling."""

    key = str(value or "").strip().lower()
    if key not in _OCCASION_LOOKUP:
        raise ValueError(f"Unsupported occasion '{value}'. Allowed: {list(OCCASIONS)}")
    return _OCCASION_LOOKUP[key]


def parse_tag_field(raw: Any) -> List[str]:
    """Flatten a tag field stored as a list, JSON string, CSV string or scalar."""

    if raw is None:
        return []
    if isinstance(raw, (list, tuple, set)):
        return [str(value) for value in raw]
    if not isinstance(raw, str):
        return [str(raw)]

    trimmed = raw.strip()
    if not trimmed:
        return []
    if trimmed.startswith("[") and trimmed.endswith("]"):
        try:
            parsed = json.loads(trimmed)
        except ValueError:
            return [trimmed]
        if isinstance(parsed, list):
            return [str(value) for value in parsed]
        return [trimmed]
    if "," in trimmed:
        return [part.strip() for part in trimmed.split(",")]
    return [trimmed]


__all__ = [
    "ALL_ITEMS",
    "CATEGORIES",
    "OCCASIONS",
    "validate_category",
    "normalize_category",
    "validate_occasion",
    "parse_tag_field",
]
