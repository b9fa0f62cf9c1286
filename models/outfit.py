"""Outfit suggestion and cached visualization schemas."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from models.wardrobe_item import WardrobeItem

CACHE_RETENTION = timedelta(hours=24)
HISTORY_LIMIT = 30


def outfit_signature(item_ids: Iterable[str]) -> str:
    """Canonical identity of a composition: sorted, comma-joined item ids."""

    return ",".join(sorted(str(item_id) for item_id in item_ids))


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Outfit:
    outfit_id: str
    name: str
    items: List[WardrobeItem]
    stylist_notes: str
    occasion: str
    is_universal: bool = False

    @property
    def signature(self) -> str:
        return outfit_signature(item.item_id for item in self.items)

    @property
    def item_ids(self) -> List[str]:
        return [item.item_id for item in self.items]


@dataclass(frozen=True)
class CachedOutfit:
    """A visualized outfit persisted per occasion until it goes stale."""

    outfit: Outfit
    visualized_image_url: Optional[str]
    generated_at: datetime = field(default_factory=_utc_now)
    combination_history: List[str] = field(default_factory=list)

    @property
    def expires_at(self) -> datetime:
        return self.generated_at + CACHE_RETENTION

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or _utc_now()) >= self.expires_at


def extend_history(history: Iterable[str], signatures: Iterable[str]) -> List[str]:
    """Append signatures, keeping only the most recent ``HISTORY_LIMIT`` entries."""

    combined = list(history)
    for signature in signatures:
        if signature not in combined:
            combined.append(signature)
    return combined[-HISTORY_LIMIT:]


__all__ = [
    "CACHE_RETENTION",
    "HISTORY_LIMIT",
    "CachedOutfit",
    "Outfit",
    "extend_history",
    "outfit_signature",
]
