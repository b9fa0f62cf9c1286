"""Wardrobe item data model and helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from models.taxonomy import parse_tag_field, validate_category

SUMMARY_NAME_LENGTH = 40


def _clean_tags(raw: Any) -> List[str]:
    return [tag.strip() for tag in parse_tag_field(raw) if tag and tag.strip()]


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class WardrobeItem:
    """A cataloged garment or accessory owned by one user."""

    item_id: str
    user_id: str
    name: str
    category: str
    image_url: str = ""
    sub_category: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_colors: List[str] = field(default_factory=list)
    pattern: Optional[str] = None
    material_look: Optional[str] = None
    seasonality: List[str] = field(default_factory=list)
    formality: Optional[str] = None
    warmth_level: Optional[str] = None
    fits_with_colors: List[str] = field(default_factory=list)
    occasion_suitability: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    description: Optional[str] = None
    price: Optional[float] = None
    is_favorite: bool = False
    created_at: str = field(default_factory=_utc_now_iso)

    def __post_init__(self) -> None:
        self.category = validate_category(self.category)
        self.secondary_colors = _clean_tags(self.secondary_colors)
        self.seasonality = _clean_tags(self.seasonality)
        self.fits_with_colors = _clean_tags(self.fits_with_colors)
        self.occasion_suitability = _clean_tags(self.occasion_suitability)
        self.tags = _clean_tags(self.tags)
        if self.price is not None:
            self.price = float(self.price)
        self.is_favorite = bool(self.is_favorite)

    def to_summary(self) -> Dict[str, Optional[str]]:
        """Compact view sent to the outfit generation collaborator."""

        return {
            "id": self.item_id,
            "category": self.category,
            "name": self.name[:SUMMARY_NAME_LENGTH],
            "primary_color": self.primary_color,
            "material_look": self.material_look,
        }


def from_raw_metadata(metadata: Dict[str, Any]) -> WardrobeItem:
    """Factory to build a :class:`WardrobeItem` from a loose storage or analysis row."""

    required_fields = ["item_id", "user_id", "name", "category"]
    missing = [name for name in required_fields if not metadata.get(name)]
    if missing:
        raise ValueError(f"Missing required fields for WardrobeItem: {missing}")

    optional: Dict[str, Any] = {}
    if metadata.get("created_at"):
        optional["created_at"] = str(metadata["created_at"])

    return WardrobeItem(
        item_id=str(metadata["item_id"]),
        user_id=str(metadata["user_id"]),
        name=str(metadata["name"]),
        category=str(metadata["category"]),
        image_url=str(metadata.get("image_url") or ""),
        sub_category=metadata.get("sub_category"),
        primary_color=metadata.get("primary_color"),
        secondary_colors=metadata.get("secondary_colors"),
        pattern=metadata.get("pattern"),
        material_look=metadata.get("material_look"),
        seasonality=metadata.get("seasonality"),
        formality=metadata.get("formality"),
        warmth_level=metadata.get("warmth_level"),
        fits_with_colors=metadata.get("fits_with_colors"),
        occasion_suitability=metadata.get("occasion_suitability"),
        tags=metadata.get("tags"),
        description=metadata.get("description"),
        price=metadata.get("price"),
        is_favorite=bool(metadata.get("is_favorite", False)),
        **optional,
    )


__all__ = ["WardrobeItem", "from_raw_metadata"]
