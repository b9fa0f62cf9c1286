"""Wardrobe storage abstractions and SQLite implementation."""
from __future__ import annotations

import json
import sqlite3
from dataclasses import asdict
from pathlib import Path
from typing import Dict, List, Optional

from models.taxonomy import parse_tag_field
from models.wardrobe_item import WardrobeItem

_LIST_COLUMNS = ("secondary_colors", "seasonality", "fits_with_colors", "occasion_suitability", "tags")
_IMMUTABLE_FIELDS = {"user_id", "item_id", "created_at"}


class WardrobeStore:
    """Persistence interface for wardrobe items."""

    def create_item(self, item: WardrobeItem) -> WardrobeItem:
        raise NotImplementedError

    def get_item(self, user_id: str, item_id: str) -> Optional[WardrobeItem]:
        raise NotImplementedError

    def list_items_for_user(self, user_id: str) -> List[WardrobeItem]:
        raise NotImplementedError

    def count_items(self, user_id: str) -> int:
        raise NotImplementedError

    def fetch_items_batch(self, user_id: str, limit: int, offset: int) -> List[WardrobeItem]:
        raise NotImplementedError

    def update_item(self, user_id: str, item_id: str, updated_fields: Dict[str, object]) -> Optional[WardrobeItem]:
        raise NotImplementedError

    def delete_item(self, user_id: str, item_id: str) -> bool:
        raise NotImplementedError


class SQLiteWardrobeStore(WardrobeStore):
    """Local SQLite-backed store for wardrobe items."""

    def __init__(self, database_path: str | Path = "data/wardrobe.db") -> None:
        self.database_path = Path(database_path)
        if self.database_path.parent and not self.database_path.parent.exists():
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_tables()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.database_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_tables(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS wardrobe_items (
                    user_id TEXT NOT NULL,
                    item_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    category TEXT NOT NULL,
                    image_url TEXT,
                    sub_category TEXT,
                    primary_color TEXT,
                    secondary_colors TEXT,
                    pattern TEXT,
                    material_look TEXT,
                    seasonality TEXT,
                    formality TEXT,
                    warmth_level TEXT,
                    fits_with_colors TEXT,
                    occasion_suitability TEXT,
                    tags TEXT,
                    description TEXT,
                    price REAL,
                    is_favorite INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    PRIMARY KEY (user_id, item_id)
                );
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_wardrobe_items_created ON wardrobe_items (user_id, created_at)"
            )

    @staticmethod
    def _serialise_list(values: Optional[List[object]]) -> str:
        return json.dumps(values or [])

    def create_item(self, item: WardrobeItem) -> WardrobeItem:
        row = asdict(item)
        for column in _LIST_COLUMNS:
            row[column] = self._serialise_list(row[column])
        row["is_favorite"] = int(item.is_favorite)
        columns = ", ".join(row)
        placeholders = ", ".join(f":{column}" for column in row)
        with self._connect() as conn:
            conn.execute(f"INSERT OR REPLACE INTO wardrobe_items ({columns}) VALUES ({placeholders})", row)
        return item

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> WardrobeItem:
        data = dict(row)
        for column in _LIST_COLUMNS:
            # Legacy rows may hold comma strings or bare scalars rather than JSON arrays.
            data[column] = parse_tag_field(data.get(column))
        data["is_favorite"] = bool(data.get("is_favorite"))
        return WardrobeItem(**data)

    def get_item(self, user_id: str, item_id: str) -> Optional[WardrobeItem]:
        with self._connect() as conn:
            cursor = conn.execute(
                "SELECT * FROM wardrobe_items WHERE user_id = ? AND item_id = ?",
                (user_id, item_id),
            )
            row = cursor.fetchone()
            return self._row_to_item(row) if row else None

    def list_items_for_user(self, user_id: str) -> List[WardrobeItem]:
        with self._connect() as conn:
            cursor = conn.execute(
                "SELECT * FROM wardrobe_items WHERE user_id = ? ORDER BY created_at DESC, item_id",
                (user_id,),
            )
            return [self._row_to_item(row) for row in cursor.fetchall()]

    def count_items(self, user_id: str) -> int:
        with self._connect() as conn:
            cursor = conn.execute("SELECT COUNT(*) FROM wardrobe_items WHERE user_id = ?", (user_id,))
            return int(cursor.fetchone()[0])

    def fetch_items_batch(self, user_id: str, limit: int, offset: int) -> List[WardrobeItem]:
        """Return one page of items, newest first."""

        with self._connect() as conn:
            cursor = conn.execute(
                "SELECT * FROM wardrobe_items WHERE user_id = ? ORDER BY created_at DESC, item_id LIMIT ? OFFSET ?",
                (user_id, limit, offset),
            )
            return [self._row_to_item(row) for row in cursor.fetchall()]

    def update_item(self, user_id: str, item_id: str, updated_fields: Dict[str, object]) -> Optional[WardrobeItem]:
        current = self.get_item(user_id, item_id)
        if not current:
            return None

        data = asdict(current)
        for key, value in updated_fields.items():
            if key in _IMMUTABLE_FIELDS or key not in data:
                continue
            data[key] = value

        validated = WardrobeItem(**data)
        return self.create_item(validated)

    def delete_item(self, user_id: str, item_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM wardrobe_items WHERE user_id = ? AND item_id = ?",
                (user_id, item_id),
            )
            return cursor.rowcount > 0


__all__ = ["WardrobeStore", "SQLiteWardrobeStore"]
