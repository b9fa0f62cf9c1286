"""Compose outfits from untrusted generator output.

Pipeline: pool selection, external generation, hydration against the
inventory, deduplication by signature, structural validation, assembly.
Nothing the generator returns reaches a caller without passing every stage.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from glam_app.logging_config import get_logger, log_event
from logic.outfit_validator import outfit_violations
from logic.suitability import is_suitable
from logic.validation import GenerationRequest, ItemSummary
from models.outfit import Outfit, outfit_signature
from models.wardrobe_item import WardrobeItem
from tools.generation_provider import OutfitGenerator

LOGGER = get_logger(__name__)

DEFAULT_MAX_POOL_ITEMS = 300


@dataclass
class CompositionResult:
    """Accepted outfits for one request.

    ``failed`` is set when the generator could not be reached or its request
    could not be built; an empty result with ``failed`` unset means the
    generator answered but nothing survived validation.
    """

    outfits: List[Outfit] = field(default_factory=list)
    exhausted: bool = False
    diagnostics: Dict[str, Any] = field(default_factory=dict)
    failed: bool = False


def build_candidate_pool(
    inventory: Sequence[WardrobeItem],
    occasion: str,
    universal_mode: bool,
    max_pool_items: int = DEFAULT_MAX_POOL_ITEMS,
) -> List[WardrobeItem]:
    """Items eligible for one request; the full inventory in universal mode.

    Items without an id can never be referenced back and are left out.
    """

    addressable = [item for item in inventory if item.item_id]
    pool = addressable if universal_mode else [item for item in addressable if is_suitable(item, occasion)]
    return pool[:max_pool_items]


def _new_outfit_id() -> str:
    return uuid.uuid4().hex[:12]


async def compose_outfits(
    inventory: Sequence[WardrobeItem],
    occasion: str,
    prior_profile: Optional[Dict[str, Any]],
    avoid_signatures: Iterable[str],
    universal_mode: bool,
    generator: OutfitGenerator,
    max_pool_items: int = DEFAULT_MAX_POOL_ITEMS,
) -> CompositionResult:
    """Return validated, novel outfits for ``occasion``. Never raises."""

    seen = set(avoid_signatures)
    pool = build_candidate_pool(inventory, occasion, universal_mode, max_pool_items)
    diagnostics: Dict[str, Any] = {
        "occasion": occasion,
        "universal_mode": universal_mode,
        "pool_size": len(pool),
        "candidates": 0,
        "unresolved": 0,
        "duplicates": 0,
        "invalid": 0,
        "violations": [],
    }
    if not pool:
        log_event(LOGGER, logging.INFO, "composition_empty_pool", **diagnostics)
        return CompositionResult([], False, diagnostics)

    try:
        request = GenerationRequest(
            occasion=occasion,
            candidate_pool=[ItemSummary(**item.to_summary()) for item in pool],
            avoid_signatures=sorted(seen),
            universal=universal_mode,
            profile_hints=prior_profile or {},
        )
        response = await generator.suggest_outfits(request)
    except Exception as exc:  # noqa: BLE001
        diagnostics["error"] = str(exc)
        log_event(LOGGER, logging.WARNING, "composition_generator_failed", **diagnostics)
        return CompositionResult([], False, diagnostics, failed=True)

    candidates = response.options
    diagnostics["candidates"] = len(candidates)
    by_id = {item.item_id: item for item in inventory}
    outfits: List[Outfit] = []

    for option in candidates:
        items = [by_id[item_id] for item_id in option.item_ids if item_id in by_id]
        if not items:
            diagnostics["unresolved"] += 1
            continue

        signature = outfit_signature(item.item_id for item in items)
        if signature in seen:
            diagnostics["duplicates"] += 1
            continue
        seen.add(signature)

        violations = outfit_violations(items, relaxed=universal_mode)
        if violations:
            diagnostics["invalid"] += 1
            diagnostics["violations"].append(violations)
            continue

        outfits.append(
            Outfit(
                outfit_id=_new_outfit_id(),
                name=option.name or f"{occasion} Selection",
                items=items,
                stylist_notes=option.stylist_notes,
                occasion=occasion,
                is_universal=universal_mode,
            )
        )

    exhausted = len(outfits) < len(candidates)
    diagnostics["accepted"] = len(outfits)
    log_event(LOGGER, logging.INFO, "composition_completed", exhausted=exhausted, **diagnostics)
    return CompositionResult(outfits, exhausted, diagnostics)


__all__ = ["CompositionResult", "DEFAULT_MAX_POOL_ITEMS", "build_candidate_pool", "compose_outfits"]
