"""In-process application state shared by every component.

The store holds one immutable :class:`AppState` snapshot. Each update function
builds a new snapshot with its slices replaced wholesale, so readers holding an
older snapshot never observe a partial change. Item edits and deletions also
rewrite the suggestion and cache slices that reference the item.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Optional, Tuple

from memory.user_profile import UserProfile
from models.outfit import CachedOutfit, Outfit, extend_history
from models.wardrobe_item import WardrobeItem


def _swap(existing: WardrobeItem, item: WardrobeItem) -> WardrobeItem:
    return item if existing.item_id == item.item_id else existing


def _swap_in_outfit(outfit: Outfit, item: WardrobeItem) -> Outfit:
    if item.item_id not in outfit.item_ids:
        return outfit
    return replace(outfit, items=[_swap(existing, item) for existing in outfit.items])


@dataclass(frozen=True)
class AppState:
    profile: Optional[UserProfile] = None
    items: Tuple[WardrobeItem, ...] = ()
    outfit_cache: Dict[str, CachedOutfit] = field(default_factory=dict)
    suggestions: Dict[str, Tuple[Outfit, ...]] = field(default_factory=dict)
    history: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    hydrated: bool = False

    @property
    def user_id(self) -> Optional[str]:
        return self.profile.user_id if self.profile else None

    def find_suggestion(self, occasion: str, outfit_id: str) -> Optional[Outfit]:
        for outfit in self.suggestions.get(occasion, ()):
            if outfit.outfit_id == outfit_id:
                return outfit
        return None


class AppStateStore:
    """Owns the current :class:`AppState` and replaces it slice by slice."""

    def __init__(self, initial: AppState | None = None) -> None:
        self._state = initial or AppState()

    @property
    def state(self) -> AppState:
        return self._state

    def _replace(self, **changes) -> AppState:
        self._state = replace(self._state, **changes)
        return self._state

    def set_profile(self, profile: Optional[UserProfile]) -> AppState:
        return self._replace(profile=profile)

    def set_items(self, items: Iterable[WardrobeItem]) -> AppState:
        return self._replace(items=tuple(items))

    def prepend_item(self, item: WardrobeItem) -> AppState:
        return self._replace(items=(item,) + self._state.items)

    def replace_item(self, item: WardrobeItem) -> AppState:
        """Swap in an edited item everywhere it is referenced."""

        state = self._state
        return self._replace(
            items=tuple(_swap(existing, item) for existing in state.items),
            suggestions={
                occasion: tuple(_swap_in_outfit(outfit, item) for outfit in outfits)
                for occasion, outfits in state.suggestions.items()
            },
            outfit_cache={
                occasion: replace(cached, outfit=_swap_in_outfit(cached.outfit, item))
                for occasion, cached in state.outfit_cache.items()
            },
        )

    def remove_item(self, item_id: str) -> AppState:
        """Drop the item and every suggestion or cached outfit built from it."""

        state = self._state
        suggestions = {}
        for occasion, outfits in state.suggestions.items():
            kept = tuple(outfit for outfit in outfits if item_id not in outfit.item_ids)
            if kept:
                suggestions[occasion] = kept
        return self._replace(
            items=tuple(item for item in state.items if item.item_id != item_id),
            suggestions=suggestions,
            outfit_cache={
                occasion: cached
                for occasion, cached in state.outfit_cache.items()
                if item_id not in cached.outfit.item_ids
            },
        )

    def set_outfit_cache(self, cache: Dict[str, CachedOutfit]) -> AppState:
        return self._replace(outfit_cache=dict(cache))

    def put_cached_outfit(self, occasion: str, cached: CachedOutfit) -> AppState:
        return self._replace(outfit_cache={**self._state.outfit_cache, occasion: cached})

    def drop_cached_outfit(self, occasion: str) -> AppState:
        cache = {key: value for key, value in self._state.outfit_cache.items() if key != occasion}
        return self._replace(outfit_cache=cache)

    def set_suggestions(self, occasion: str, outfits: Iterable[Outfit]) -> AppState:
        return self._replace(suggestions={**self._state.suggestions, occasion: tuple(outfits)})

    def clear_suggestions(self, occasion: str) -> AppState:
        suggestions = {key: value for key, value in self._state.suggestions.items() if key != occasion}
        return self._replace(suggestions=suggestions)

    def extend_history(self, occasion: str, signatures: Iterable[str]) -> AppState:
        updated = tuple(extend_history(self._state.history.get(occasion, ()), signatures))
        return self._replace(history={**self._state.history, occasion: updated})

    def set_hydrated(self, hydrated: bool = True) -> AppState:
        return self._replace(hydrated=hydrated)

    def clear(self) -> AppState:
        self._state = AppState()
        return self._state


__all__ = ["AppState", "AppStateStore"]
