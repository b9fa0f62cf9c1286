"""Model package exports."""

from models.taxonomy import *  # noqa: F401,F403
from models.outfit import CachedOutfit, Outfit, outfit_signature
from models.wardrobe_item import WardrobeItem, from_raw_metadata

__all__ = ["CachedOutfit", "Outfit", "WardrobeItem", "from_raw_metadata", "outfit_signature"]
