"""Pydantic schemas for the payloads exchanged with AI collaborators."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.taxonomy import OCCASIONS, normalize_category, parse_tag_field


class ItemSummary(BaseModel):
    """Minimal wardrobe item description sent to the outfit generator."""

    id: str = Field(min_length=1)
    category: str
    name: str
    primary_color: Optional[str] = None
    material_look: Optional[str] = None


class GenerationRequest(BaseModel):
    """Input contract for one outfit generation call."""

    occasion: str = Field(min_length=1)
    candidate_pool: List[ItemSummary]
    avoid_signatures: List[str] = []
    universal: bool = False
    profile_hints: Dict[str, Any] = {}


class OutfitOption(BaseModel):
    """One candidate outfit as named by the generator. Untrusted."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    item_ids: List[str] = Field(default_factory=list, alias="itemIds")
    stylist_notes: str = Field(default="", alias="stylistNotes")

    @field_validator("item_ids", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> List[str]:
        return [str(item_id).strip() for item_id in parse_tag_field(value) if str(item_id).strip()]

    @field_validator("name", "stylist_notes", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return "" if value is None else str(value)


class GenerationResponse(BaseModel):
    """Generator output: an unordered list of candidate outfits."""

    options: List[OutfitOption] = []


class AnalyzedGarment(BaseModel):
    """A garment extracted from an uploaded photo."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    category: str
    primary_color: Optional[str] = Field(default=None, alias="primaryColor")
    description: Optional[str] = None
    material_look: Optional[str] = Field(default=None, alias="materialLook")
    pattern: Optional[str] = None
    warmth_level: Optional[str] = Field(default=None, alias="warmthLevel")
    occasion_suitability: List[str] = Field(default_factory=list, alias="occasionSuitability")

    @field_validator("category", mode="before")
    @classmethod
    def _normalise_category(cls, value: Any) -> str:
        return normalize_category(str(value or ""))

    @field_validator("occasion_suitability", mode="before")
    @classmethod
    def _known_occasions(cls, value: Any) -> List[str]:
        lookup = {occasion.lower(): occasion for occasion in OCCASIONS}
        tags = [str(tag).strip() for tag in parse_tag_field(value)]
        return [lookup.get(tag.lower(), tag) for tag in tags if tag]


class AnalysisResponse(BaseModel):
    """Analyzer output; an empty list means the photo shows no fashion item."""

    items: List[AnalyzedGarment] = []


__all__ = [
    "AnalysisResponse",
    "AnalyzedGarment",
    "GenerationRequest",
    "GenerationResponse",
    "ItemSummary",
    "OutfitOption",
]
