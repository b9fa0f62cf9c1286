"""Glam wardrobe app bootstrap."""

import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from agents.orchestrator import GenerationOutcome, OutfitOrchestrator
from agents.wardrobe_ingestion import UploadTask, WardrobeIngestionAgent
from glam_app.config import AppConfig
from glam_app.logging_config import configure_logging, get_logger, log_event, operation_context
from memory.app_state import AppState, AppStateStore
from memory.user_profile import UserProfile, UserProfileService
from models.wardrobe_item import WardrobeItem
from tools.analysis_provider import GarmentAnalyzer, GeminiGarmentAnalyzer
from tools.blob_store import LocalBlobStore
from tools.entitlement_provider import ProfileCreditLedger
from tools.gemini_client import configure_gemini
from tools.generation_provider import GeminiOutfitGenerator, OutfitGenerator
from tools.image_fetcher import fetch_image
from tools.outfit_cache_store import SQLiteOutfitCacheStore
from tools.visualization_provider import GeminiOutfitVisualizer, OutfitVisualizer
from tools.wardrobe_store import SQLiteWardrobeStore

LOGGER = get_logger(__name__)

HYDRATION_BATCH_SIZE = 50


class NotSignedInError(RuntimeError):
    """Raised when a user-scoped action runs before :meth:`GlamWardrobeApp.hydrate`."""


class GlamWardrobeApp:
    """Wires together config, stores, collaborators and the state machine."""

    def __init__(
        self,
        config: AppConfig | None = None,
        generator: OutfitGenerator | None = None,
        analyzer: GarmentAnalyzer | None = None,
        visualizer: OutfitVisualizer | None = None,
    ) -> None:
        self.config = config or AppConfig.from_env()
        configure_logging()
        if generator is None or analyzer is None or visualizer is None:
            configure_gemini(self.config.api_key)

        self.state = AppStateStore()
        self.profiles = UserProfileService(self.config.profile_dir)
        self.wardrobe_store = SQLiteWardrobeStore(self.config.wardrobe_db_path)
        self.cache_store = SQLiteOutfitCacheStore(self.config.wardrobe_db_path)
        self.blob_store = LocalBlobStore(
            self.config.blob_dir, self.config.blob_base_url, self.config.blob_signing_key
        )
        self.credits = ProfileCreditLedger(self.profiles, self.state)

        self.generator = generator or GeminiOutfitGenerator(self.config.model)
        self.analyzer = analyzer or GeminiGarmentAnalyzer(self.config.model, self.config.image_model)
        self.visualizer = visualizer or GeminiOutfitVisualizer(self.config.image_model)

        self.orchestrator = OutfitOrchestrator(
            config=self.config,
            state=self.state,
            entitlements=self.credits,
            generator=self.generator,
            visualizer=self.visualizer,
            cache_store=self.cache_store,
            blob_store=self.blob_store,
            portrait_loader=self.load_image,
        )
        self.ingestion = WardrobeIngestionAgent(
            analyzer=self.analyzer,
            wardrobe_store=self.wardrobe_store,
            blob_store=self.blob_store,
            state=self.state,
        )

    async def load_image(self, url: str) -> bytes:
        """Read our own signed blobs locally; fetch anything else over the network."""

        if self.blob_store.verify_url(url):
            return self.blob_store.read(url)
        return await asyncio.to_thread(fetch_image, url)

    def require_user(self) -> str:
        user_id = self.state.state.user_id
        if user_id is None:
            raise NotSignedInError("No signed-in user; hydrate first")
        return user_id

    def hydrate(self, user_id: str, email: Optional[str] = None) -> AppState:
        """Load the profile, the full inventory and the active outfit cache."""

        with operation_context("app.hydrate") as correlation_id:
            self.state.clear()
            profile = self.profiles.get_or_create(user_id, email=email)
            self.state.set_profile(profile)

            total = self.wardrobe_store.count_items(user_id)
            items: List[WardrobeItem] = []
            for offset in range(0, total, HYDRATION_BATCH_SIZE):
                items.extend(self.wardrobe_store.fetch_items_batch(user_id, HYDRATION_BATCH_SIZE, offset))
            self.state.set_items(items)

            self.cache_store.purge_expired(user_id)
            self.state.set_outfit_cache(self.cache_store.fetch_active(user_id, items))
            state = self.state.set_hydrated(True)
            log_event(
                LOGGER,
                logging.INFO,
                "app_hydrated",
                correlation_id=correlation_id,
                item_count=len(items),
                cached_occasions=sorted(state.outfit_cache),
            )
            return state

    def update_profile(self, updates: Dict[str, Any]) -> UserProfile:
        user_id = self.require_user()
        protected = {"credits", "is_premium", "total_generations"}
        profile = self.profiles.update(user_id, {k: v for k, v in updates.items() if k not in protected})
        self.state.set_profile(profile)
        return profile

    def upload_portrait(self, data: bytes) -> UserProfile:
        user_id = self.require_user()
        previous = self.state.state.profile.avatar_url if self.state.state.profile else None
        url = self.blob_store.upload(user_id, f"portrait-{uuid.uuid4().hex[:8]}.jpg", data)
        profile = self.update_profile({"avatar_url": url})
        if previous:
            self.blob_store.remove(previous)
        return profile

    async def upload_images(self, images: Sequence[bytes]) -> List[UploadTask]:
        return await self.ingestion.ingest(self.require_user(), images)

    def update_item(self, item_id: str, updates: Dict[str, Any]) -> Optional[WardrobeItem]:
        updated = self.wardrobe_store.update_item(self.require_user(), item_id, updates)
        if updated is not None:
            self.state.replace_item(updated)
        return updated

    def delete_item(self, item_id: str) -> bool:
        user_id = self.require_user()
        existing = self.wardrobe_store.get_item(user_id, item_id)
        if existing is None:
            return False
        self.wardrobe_store.delete_item(user_id, item_id)
        if existing.image_url:
            self.blob_store.remove(existing.image_url)
        for occasion, cached in self.state.state.outfit_cache.items():
            if item_id not in cached.outfit.item_ids:
                continue
            self.cache_store.delete(user_id, occasion)
            if cached.visualized_image_url:
                self.blob_store.remove(cached.visualized_image_url)
        self.state.remove_item(item_id)
        return True

    async def generate(self, occasion: str, universal_mode: bool = False) -> GenerationOutcome:
        self.require_user()
        return await self.orchestrator.generate(occasion, universal_mode=universal_mode)

    async def visualize(self, occasion: str, outfit_id: str, hd: bool = False) -> GenerationOutcome:
        self.require_user()
        return await self.orchestrator.visualize(occasion, outfit_id, hd=hd)

    def grant_pack(self, pack_id: str) -> UserProfile:
        self.require_user()
        return self.credits.grant_pack(pack_id)

    def logout(self) -> None:
        self.state.clear()
        LOGGER.info("Signed out; application state cleared")


__all__ = ["GlamWardrobeApp", "HYDRATION_BATCH_SIZE", "NotSignedInError"]
