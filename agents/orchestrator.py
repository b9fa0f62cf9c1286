"""Generation state machine for outfit suggestions and visualizations."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from glam_app.config import AppConfig
from glam_app.logging_config import get_logger, log_event, operation_context
from logic.outfit_composer import compose_outfits
from logic.suitability import suitable_items
from memory.app_state import AppStateStore
from models.outfit import CachedOutfit, Outfit, extend_history
from models.taxonomy import validate_occasion
from tools.blob_store import LocalBlobStore
from tools.entitlement_provider import (
    GENERATION_COST,
    HD_VISUALIZATION_COST,
    VISUALIZATION_COST,
    EntitlementProvider,
    OutOfCreditsError,
)
from tools.generation_provider import OutfitGenerator
from tools.image_fetcher import fetch_image
from tools.outfit_cache_store import SQLiteOutfitCacheStore
from tools.visualization_provider import OutfitVisualizer

LOGGER = get_logger(__name__)

MIN_INVENTORY_ITEMS = 2
RETRY_MESSAGE = "Something went wrong while styling. Please try again."

PortraitLoader = Callable[[str], Awaitable[bytes]]


class GenerationPhase(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    DESIGNING = "designing"
    VISUALIZING = "visualizing"
    COMPLETE = "complete"
    CREDIT_EXHAUSTED = "credit_exhausted"
    NO_SUITABLE_ITEMS = "no_suitable_items"
    NEEDS_UNIVERSAL = "needs_universal"
    ERROR = "error"


@dataclass
class GenerationOutcome:
    phase: GenerationPhase
    occasion: str
    phases: List[GenerationPhase] = field(default_factory=list)
    outfits: List[Outfit] = field(default_factory=list)
    exhausted: bool = False
    universal_mode: bool = False
    cached: Optional[CachedOutfit] = None
    message: Optional[str] = None


async def _fetch_portrait(url: str) -> bytes:
    return await asyncio.to_thread(fetch_image, url)


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


class _Run:
    """Tracks the phases one request passes through."""

    def __init__(self, orchestrator: "OutfitOrchestrator", occasion: str, universal_mode: bool = False) -> None:
        self.orchestrator = orchestrator
        self.occasion = occasion
        self.universal_mode = universal_mode
        self.phases: List[GenerationPhase] = []

    def enter(self, phase: GenerationPhase) -> None:
        self.phases.append(phase)
        self.orchestrator.phase = phase

    def finish(self, phase: GenerationPhase, **fields) -> GenerationOutcome:
        self.enter(phase)
        if phase is GenerationPhase.ERROR:
            self.orchestrator.phase = GenerationPhase.IDLE
        return GenerationOutcome(
            phase=phase,
            occasion=self.occasion,
            phases=list(self.phases),
            universal_mode=self.universal_mode,
            **fields,
        )


class OutfitOrchestrator:
    """Runs the credit gate, composition and visualization flow for one user session."""

    def __init__(
        self,
        config: AppConfig,
        state: AppStateStore,
        entitlements: EntitlementProvider,
        generator: OutfitGenerator,
        visualizer: OutfitVisualizer,
        cache_store: SQLiteOutfitCacheStore,
        blob_store: LocalBlobStore,
        portrait_loader: PortraitLoader | None = None,
    ) -> None:
        self.config = config
        self.state = state
        self.entitlements = entitlements
        self.generator = generator
        self.visualizer = visualizer
        self.cache_store = cache_store
        self.blob_store = blob_store
        self.portrait_loader = portrait_loader or _fetch_portrait
        self.phase = GenerationPhase.IDLE

    def _evict_stale(self, user_id: str, occasion: str, now: datetime) -> Optional[CachedOutfit]:
        self.state.clear_suggestions(occasion)
        cached = self.state.state.outfit_cache.get(occasion)
        if cached is not None and cached.is_expired(now):
            self.state.drop_cached_outfit(occasion)
            self.cache_store.delete(user_id, occasion)
            log_event(LOGGER, logging.INFO, "cached_outfit_expired", occasion=occasion)
            return None
        return cached

    async def generate(self, occasion: str, universal_mode: bool = False) -> GenerationOutcome:
        """Compose fresh outfit suggestions for ``occasion``.

        The credit gate runs before anything else and the credit is consumed
        before the generator is called. A strict request whose pool is empty
        stops at ``no_suitable_items`` without a charge; a strict request that
        yields nothing stops at ``needs_universal`` so the caller can confirm a
        retry with ``universal_mode=True``.
        """

        occasion = validate_occasion(occasion)
        run = _Run(self, occasion, universal_mode)
        with operation_context("agent:orchestrator.generate") as correlation_id:
            log_event(
                LOGGER,
                logging.INFO,
                "generation_started",
                occasion=occasion,
                universal_mode=universal_mode,
                correlation_id=correlation_id,
            )
            try:
                outcome = await self._generate(run)
            except Exception as exc:  # noqa: BLE001
                log_event(LOGGER, logging.ERROR, "generation_failed", occasion=occasion, error=str(exc), exc_info=True)
                outcome = run.finish(
                    GenerationPhase.ERROR,
                    message=RETRY_MESSAGE,
                )
            log_event(
                LOGGER,
                logging.INFO,
                "generation_finished",
                occasion=occasion,
                phase=outcome.phase.value,
                outfit_count=len(outcome.outfits),
                exhausted=outcome.exhausted,
            )
            return outcome

    async def _generate(self, run: _Run) -> GenerationOutcome:
        occasion, universal_mode = run.occasion, run.universal_mode
        if not self.entitlements.has_credit(GENERATION_COST):
            return run.finish(GenerationPhase.CREDIT_EXHAUSTED, message="You are out of credits.")

        snapshot = self.state.state
        user_id = snapshot.user_id
        if user_id is None:
            raise RuntimeError("No signed-in user")
        inventory = list(snapshot.items)
        if len(inventory) < MIN_INVENTORY_ITEMS:
            return run.finish(
                GenerationPhase.NO_SUITABLE_ITEMS,
                message=f"Add at least {MIN_INVENTORY_ITEMS} pieces to your wardrobe first.",
            )
        if not universal_mode and not suitable_items(inventory, occasion):
            return run.finish(
                GenerationPhase.NO_SUITABLE_ITEMS,
                message=f"No pieces are tagged for {occasion}. Try creative mode with your whole wardrobe.",
            )

        run.enter(GenerationPhase.ANALYZING)
        run.enter(GenerationPhase.DESIGNING)
        try:
            self.entitlements.consume_credit(GENERATION_COST)
        except OutOfCreditsError:
            return run.finish(GenerationPhase.CREDIT_EXHAUSTED, message="You are out of credits.")
        cached = self._evict_stale(user_id, occasion, datetime.now(timezone.utc))

        avoid = set(self.state.state.history.get(occasion, ()))
        if cached is not None:
            avoid.update(cached.combination_history)
        profile = self.state.state.profile
        result = await compose_outfits(
            inventory,
            occasion,
            profile.styling_hints() if profile else None,
            avoid,
            universal_mode,
            self.generator,
            max_pool_items=self.config.max_pool_items,
        )

        if result.failed:
            log_event(
                LOGGER,
                logging.WARNING,
                "generation_collaborator_unavailable",
                occasion=occasion,
                error=result.diagnostics.get("error"),
            )
            return run.finish(GenerationPhase.ERROR, message=RETRY_MESSAGE)

        if not result.outfits:
            if not universal_mode:
                return run.finish(
                    GenerationPhase.NEEDS_UNIVERSAL,
                    exhausted=result.exhausted,
                    message="No new looks match this occasion. Style it with your whole wardrobe?",
                )
            return run.finish(
                GenerationPhase.COMPLETE,
                exhausted=result.exhausted,
                message="We couldn't build a new look. Try adding different pieces.",
            )

        self.state.set_suggestions(occasion, result.outfits)
        self.state.extend_history(occasion, [outfit.signature for outfit in result.outfits])
        return run.finish(GenerationPhase.COMPLETE, outfits=list(result.outfits), exhausted=result.exhausted)

    async def visualize(self, occasion: str, outfit_id: str, hd: bool = False) -> GenerationOutcome:
        """Render the selected suggestion on the user's reference portrait and cache it."""

        occasion = validate_occasion(occasion)
        run = _Run(self, occasion)
        with operation_context("agent:orchestrator.visualize") as correlation_id:
            log_event(
                LOGGER,
                logging.INFO,
                "visualization_started",
                occasion=occasion,
                hd=hd,
                correlation_id=correlation_id,
            )
            try:
                outcome = await self._visualize(run, outfit_id, hd)
            except Exception as exc:  # noqa: BLE001
                log_event(
                    LOGGER, logging.ERROR, "visualization_crashed", occasion=occasion, error=str(exc), exc_info=True
                )
                outcome = run.finish(
                    GenerationPhase.ERROR,
                    message="Something went wrong while visualizing. Please try again.",
                )
            log_event(LOGGER, logging.INFO, "visualization_finished", occasion=occasion, phase=outcome.phase.value)
            return outcome

    async def _visualize(self, run: _Run, outfit_id: str, hd: bool) -> GenerationOutcome:
        occasion = run.occasion
        snapshot = self.state.state
        outfit = snapshot.find_suggestion(occasion, outfit_id)
        if outfit is None:
            return run.finish(GenerationPhase.COMPLETE, message="Pick one of the suggested outfits first.")
        profile = snapshot.profile
        if profile is None or not profile.avatar_url:
            return run.finish(GenerationPhase.COMPLETE, message="Add a reference portrait to visualize outfits.")

        cost = HD_VISUALIZATION_COST if hd else VISUALIZATION_COST
        if not self.entitlements.has_credit(cost):
            return run.finish(GenerationPhase.CREDIT_EXHAUSTED, message="You are out of credits.")

        run.enter(GenerationPhase.VISUALIZING)
        try:
            portrait = await self.portrait_loader(profile.avatar_url)
            image = await self.visualizer.render(portrait, outfit)
        except Exception as exc:  # noqa: BLE001
            log_event(LOGGER, logging.WARNING, "visualization_failed", occasion=occasion, error=str(exc))
            return run.finish(
                GenerationPhase.COMPLETE,
                outfits=[outfit],
                message="We couldn't render this look. Please try again.",
            )

        try:
            self.entitlements.consume_credit(cost)
        except OutOfCreditsError:
            return run.finish(GenerationPhase.CREDIT_EXHAUSTED, message="You are out of credits.")

        user_id = profile.user_id
        image_url = self.blob_store.upload(user_id, f"outfit-{_slug(occasion)}-{outfit.outfit_id}.png", image)
        previous = self.state.state.outfit_cache.get(occasion)
        history = extend_history(
            previous.combination_history if previous else [],
            list(self.state.state.history.get(occasion, ())) + [outfit.signature],
        )
        cached = CachedOutfit(
            outfit=outfit,
            visualized_image_url=image_url,
            generated_at=datetime.now(timezone.utc),
            combination_history=history,
        )
        self.cache_store.save(user_id, cached)
        self.state.put_cached_outfit(occasion, cached)
        if previous is not None and previous.visualized_image_url and previous.visualized_image_url != image_url:
            self.blob_store.remove(previous.visualized_image_url)
        return run.finish(GenerationPhase.COMPLETE, outfits=[outfit], cached=cached)


__all__ = ["GenerationOutcome", "GenerationPhase", "OutfitOrchestrator", "RETRY_MESSAGE"]
