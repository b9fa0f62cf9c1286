"""Occasion suitability matching with normalised fuzzy tag comparison."""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping

from models.taxonomy import OCCASIONS, parse_tag_field

MIN_PARTIAL_MATCH_LENGTH = 4

_DISALLOWED_CHARS = re.compile(r"[^\w\s&]")
_TAG_WRAPPERS = re.compile(r"[\[\]\"']")


def normalize_label(text: str) -> str:
    """Lowercase, trim and drop everything but word chars, whitespace and ``&``."""

    return _DISALLOWED_CHARS.sub("", str(text).lower().strip())


def _normalize_tag(tag: Any) -> str:
    cleaned = _TAG_WRAPPERS.sub("", str(tag).lower().strip())
    return _DISALLOWED_CHARS.sub("", cleaned)


def _raw_suitability(item: Any) -> Any:
    if isinstance(item, Mapping):
        if "occasion_suitability" in item:
            return item["occasion_suitability"]
        return item.get("occasionSuitability")
    return getattr(item, "occasion_suitability", None)


def tag_matches(tag: str, occasion: str) -> bool:
    """Exact match, or containment either way once the tag is long enough."""

    if not tag:
        return False
    if tag == occasion:
        return True
    return len(tag) >= MIN_PARTIAL_MATCH_LENGTH and (tag in occasion or occasion in tag)


def is_suitable(item: Any, occasion: str) -> bool:
    """Return whether ``item`` is tagged for ``occasion``.

    ``item`` may be a :class:`~models.wardrobe_item.WardrobeItem` or a raw
    storage row; the suitability field may be a list, a JSON-array string, a
    comma separated string or a single scalar.
    """

    raw = _raw_suitability(item)
    if raw is None:
        return False
    target = normalize_label(occasion)
    return any(tag_matches(_normalize_tag(tag), target) for tag in parse_tag_field(raw))


def suitable_items(items: Iterable[Any], occasion: str) -> List[Any]:
    """Filter ``items`` down to those suitable for ``occasion``, order preserved."""

    return [item for item in items if is_suitable(item, occasion)]


def occasion_coverage(items: Iterable[Any]) -> Dict[str, int]:
    """Count suitable items for every occasion in display order."""

    materialised = list(items)
    return {occasion: len(suitable_items(materialised, occasion)) for occasion in OCCASIONS}


__all__ = [
    "MIN_PARTIAL_MATCH_LENGTH",
    "is_suitable",
    "normalize_label",
    "occasion_coverage",
    "suitable_items",
    "tag_matches",
]
