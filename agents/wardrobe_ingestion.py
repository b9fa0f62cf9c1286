"""Upload pipeline turning garment photos into stored WardrobeItems."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from glam_app.logging_config import get_logger, log_event, operation_context
from logic.validation import AnalyzedGarment
from memory.app_state import AppStateStore
from models.wardrobe_item import WardrobeItem
from tools.analysis_provider import GarmentAnalyzer
from tools.blob_store import LocalBlobStore
from tools.wardrobe_store import WardrobeStore

logger = get_logger(__name__)

NO_ITEMS_MESSAGE = "No items detected."


class UploadStatus(str, Enum):
    QUEUED = "queued"
    ANALYZING = "analyzing"
    ILLUSTRATING = "illustrating"
    SAVING = "saving"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class UploadTask:
    task_id: str
    status: UploadStatus = UploadStatus.QUEUED
    progress: int = 0
    error_message: Optional[str] = None
    item_ids: List[str] = field(default_factory=list)
    failed_garments: List[str] = field(default_factory=list)


class WardrobeIngestionAgent:
    """Analyzes uploaded photos one at a time, in submission order."""

    def __init__(
        self,
        analyzer: GarmentAnalyzer,
        wardrobe_store: WardrobeStore,
        blob_store: LocalBlobStore,
        state: AppStateStore,
    ) -> None:
        self.analyzer = analyzer
        self.wardrobe_store = wardrobe_store
        self.blob_store = blob_store
        self.state = state
        self._lock = asyncio.Lock()

    def _build_item(self, user_id: str, item_id: str, garment: AnalyzedGarment, image_url: str) -> WardrobeItem:
        return WardrobeItem(
            item_id=item_id,
            user_id=user_id,
            name=garment.name,
            category=garment.category,
            image_url=image_url,
            primary_color=garment.primary_color,
            pattern=garment.pattern,
            material_look=garment.material_look,
            warmth_level=garment.warmth_level,
            occasion_suitability=garment.occasion_suitability,
            description=garment.description,
        )

    async def _store_garment(
        self, user_id: str, garment: AnalyzedGarment, image: bytes, task: UploadTask
    ) -> WardrobeItem:
        isolated = await self.analyzer.isolate(garment, image)
        item_id = uuid.uuid4().hex
        image_url = self.blob_store.upload(user_id, f"item-{item_id}.png", isolated)
        item = self._build_item(user_id, item_id, garment, image_url)
        task.status = UploadStatus.SAVING
        stored = self.wardrobe_store.create_item(item)
        self.state.prepend_item(stored)
        return stored

    async def process_image(self, user_id: str, image: bytes, task: UploadTask) -> UploadTask:
        async with self._lock:
            task.status = UploadStatus.ANALYZING
            task.progress = 10
            try:
                garments = await self.analyzer.analyze(image)
            except Exception as exc:  # noqa: BLE001
                logger.error("Garment analysis failed", extra={"task_id": task.task_id, "error": str(exc)})
                task.status = UploadStatus.ERROR
                task.error_message = "We couldn't read this photo. Please try another."
                return task

            if not garments:
                task.status = UploadStatus.ERROR
                task.error_message = NO_ITEMS_MESSAGE
                return task

            for index, garment in enumerate(garments):
                task.status = UploadStatus.ILLUSTRATING
                task.progress = 10 + int(80 * index / len(garments))
                try:
                    stored = await self._store_garment(user_id, garment, image, task)
                except Exception as exc:  # noqa: BLE001
                    logger.warning(
                        "Skipping garment that failed to process",
                        extra={"task_id": task.task_id, "category": garment.category, "error": str(exc)},
                    )
                    task.failed_garments.append(garment.name)
                    continue
                task.item_ids.append(stored.item_id)

            task.status = UploadStatus.COMPLETE
            task.progress = 100
            return task

    async def ingest(self, user_id: str, images: Sequence[bytes]) -> List[UploadTask]:
        """Queue every image; the shared lock keeps at most one pipeline in flight."""

        with operation_context("agent:wardrobe_ingestion.ingest") as correlation_id:
            tasks = [UploadTask(task_id=uuid.uuid4().hex[:8]) for _ in images]
            await asyncio.gather(
                *(self.process_image(user_id, image, task) for image, task in zip(images, tasks))
            )
            log_event(
                logger,
                level=logging.INFO,
                event="agent_call_completed",
                agent="wardrobe_ingestion",
                method="ingest",
                correlation_id=correlation_id,
                ingested=sum(len(task.item_ids) for task in tasks),
                failed=sum(1 for task in tasks if task.status is UploadStatus.ERROR),
            )
            return tasks


__all__ = ["NO_ITEMS_MESSAGE", "UploadStatus", "UploadTask", "WardrobeIngestionAgent"]
