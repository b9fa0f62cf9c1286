"""Upload pipeline: serialized processing and per-garment failure handling."""

from __future__ import annotations

import asyncio
from typing import List

from agents.wardrobe_ingestion import NO_ITEMS_MESSAGE, UploadStatus, WardrobeIngestionAgent
from memory.app_state import AppStateStore
from tools.analysis_provider import MockGarmentAnalyzer
from tools.blob_store import LocalBlobStore
from tools.wardrobe_store import SQLiteWardrobeStore

JACKET = {"name": "Denim Jacket", "category": "jacket", "primaryColor": "#334455", "occasionSuitability": ["casual"]}
SKIRT = {"name": "Pleated Skirt", "category": "Bottoms", "occasionSuitability": "Work, Date Night"}
HEELS = {"name": "Red Heels", "category": "heels", "occasionSuitability": ["Party"]}


class _SlowAnalyzer(MockGarmentAnalyzer):
    """Yields to the loop mid-analysis so overlapping pipelines would interleave."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.in_flight = 0
        self.max_in_flight = 0

    async def analyze(self, image: bytes):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)
        try:
            return await super().analyze(image)
        finally:
            self.in_flight -= 1


def _agent(tmp_path, analyzer) -> WardrobeIngestionAgent:
    return WardrobeIngestionAgent(
        analyzer=analyzer,
        wardrobe_store=SQLiteWardrobeStore(tmp_path / "wardrobe.db"),
        blob_store=LocalBlobStore(tmp_path / "blobs", "http://testserver/blobs", "key"),
        state=AppStateStore(),
    )


def test_images_are_processed_one_at_a_time_in_order(tmp_path) -> None:
    analyzer = _SlowAnalyzer(garments={b"one": [JACKET], b"two": [SKIRT, HEELS], b"three": []})
    agent = _agent(tmp_path, analyzer)

    tasks = asyncio.run(agent.ingest("user-1", [b"one", b"two", b"three"]))

    assert analyzer.max_in_flight == 1
    assert analyzer.calls == [
        "analyze:one",
        "isolate:Denim Jacket",
        "analyze:two",
        "isolate:Pleated Skirt",
        "isolate:Red Heels",
        "analyze:three",
    ]
    assert [task.status for task in tasks] == [UploadStatus.COMPLETE, UploadStatus.COMPLETE, UploadStatus.ERROR]
    assert tasks[2].error_message == NO_ITEMS_MESSAGE
    assert tasks[0].progress == 100


def test_items_are_persisted_and_prepended(tmp_path) -> None:
    agent = _agent(tmp_path, MockGarmentAnalyzer(garments={b"one": [JACKET, HEELS]}))

    tasks = asyncio.run(agent.ingest("user-1", [b"one"]))

    names: List[str] = [item.name for item in agent.state.state.items]
    assert names == ["Red Heels", "Denim Jacket"]
    jacket = agent.wardrobe_store.get_item("user-1", tasks[0].item_ids[0])
    assert jacket.category == "Outerwear"
    assert jacket.occasion_suitability == ["Casual"]
    assert agent.blob_store.read(jacket.image_url) == b"isolated:Denim Jacket"
    heels = agent.wardrobe_store.get_item("user-1", tasks[0].item_ids[1])
    assert heels.category == "Shoes"


def test_failing_garment_is_skipped(tmp_path) -> None:
    analyzer = MockGarmentAnalyzer(garments={b"one": [JACKET, SKIRT]}, failing_garments=["Denim Jacket"])
    agent = _agent(tmp_path, analyzer)

    task = asyncio.run(agent.ingest("user-1", [b"one"]))[0]

    assert task.status is UploadStatus.COMPLETE
    assert task.failed_garments == ["Denim Jacket"]
    assert len(task.item_ids) == 1
    assert agent.wardrobe_store.count_items("user-1") == 1


def test_analysis_failure_marks_task_error(tmp_path) -> None:
    analyzer = MockGarmentAnalyzer(garments={b"two": [SKIRT]}, failing_images=[b"one"])
    agent = _agent(tmp_path, analyzer)

    tasks = asyncio.run(agent.ingest("user-1", [b"one", b"two"]))

    assert tasks[0].status is UploadStatus.ERROR
    assert tasks[1].status is UploadStatus.COMPLETE
    assert [item.name for item in agent.state.state.items] == ["Pleated Skirt"]
