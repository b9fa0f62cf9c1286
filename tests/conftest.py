"""Shared fixtures for the wardrobe test-suite."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Iterable

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from glam_app.config import AppConfig  # noqa: E402
from models.wardrobe_item import WardrobeItem  # noqa: E402


@pytest.fixture()
def make_item() -> Callable[..., WardrobeItem]:
    """Factory for wardrobe items with sensible defaults."""

    def _make(
        item_id: str,
        category: str = "Tops",
        occasions: Iterable[str] | str | None = ("Casual",),
        user_id: str = "user-1",
        **extra,
    ) -> WardrobeItem:
        return WardrobeItem(
            item_id=item_id,
            user_id=user_id,
            name=extra.pop("name", f"{category} {item_id}"),
            category=category,
            occasion_suitability=occasions,
            **extra,
        )

    return _make


@pytest.fixture()
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        api_key=None,
        wardrobe_db_path=str(tmp_path / "wardrobe.db"),
        profile_dir=str(tmp_path / "profiles"),
        blob_dir=str(tmp_path / "blobs"),
        blob_base_url="http://testserver/blobs",
        blob_signing_key="test-key",
        environment="test",
    )
