"""Structural rules every outfit must satisfy before it is shown to a user."""

from __future__ import annotations

from collections import Counter
from typing import List, Sequence

from models.wardrobe_item import WardrobeItem

SINGLE_SLOT_CATEGORIES = ("Shoes", "Bags", "Caps", "Outerwear")


def outfit_violations(items: Sequence[WardrobeItem], relaxed: bool = False) -> List[str]:
    """Return the names of every rule the candidate breaks.

    Strict mode requires a Top+Bottom pair or a single Dress. Relaxed mode
    additionally accepts a lone Top or a lone Bottom.
    """

    violations: List[str] = []
    item_ids = [item.item_id for item in items]
    if len(set(item_ids)) != len(item_ids):
        violations.append("duplicate_items")

    counts = Counter(item.category for item in items)
    dresses, tops, bottoms = counts["Dresses"], counts["Tops"], counts["Bottoms"]

    if dresses:
        if tops or bottoms:
            violations.append("dress_with_separates")
        if dresses > 1:
            violations.append("multiple_dresses")
    else:
        if not relaxed and bool(tops) != bool(bottoms):
            violations.append("incomplete_separates")
        if not tops and not bottoms and not counts["Outerwear"]:
            violations.append("no_wearable_core")

    for category in SINGLE_SLOT_CATEGORIES:
        if counts[category] > 1:
            violations.append(f"too_many_{category.lower()}")
    return violations


def is_valid_outfit(items: Sequence[WardrobeItem], relaxed: bool = False) -> bool:
    return not outfit_violations(items, relaxed)


__all__ = ["SINGLE_SLOT_CATEGORIES", "is_valid_outfit", "outfit_violations"]
