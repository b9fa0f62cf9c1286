"""Per-occasion cache of visualized outfits, backed by SQLite."""
from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Optional

from models.outfit import CachedOutfit, Outfit
from models.taxonomy import parse_tag_field
from models.wardrobe_item import WardrobeItem

logger = logging.getLogger(__name__)


class SQLiteOutfitCacheStore:
    """Stores at most one cached outfit per (user, occasion)."""

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
                CREATE TABLE IF NOT EXISTS outfit_cache (
                    user_id TEXT NOT NULL,
                    occasion TEXT NOT NULL,
                    outfit_id TEXT NOT NULL,
                    name TEXT,
                    item_ids TEXT NOT NULL,
                    stylist_notes TEXT,
                    is_universal INTEGER NOT NULL DEFAULT 0,
                    visualized_image_url TEXT,
                    generated_at TEXT NOT NULL,
                    expires_at TEXT NOT NULL,
                    combination_history TEXT,
                    PRIMARY KEY (user_id, occasion)
                );
                """
            )

    def save(self, user_id: str, cached: CachedOutfit) -> CachedOutfit:
        """Replace the occasion's row with ``cached``."""

        outfit = cached.outfit
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM outfit_cache WHERE user_id = ? AND occasion = ?",
                (user_id, outfit.occasion),
            )
            conn.execute(
                """
                INSERT INTO outfit_cache (
                    user_id, occasion, outfit_id, name, item_ids, stylist_notes, is_universal,
                    visualized_image_url, generated_at, expires_at, combination_history
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    outfit.occasion,
                    outfit.outfit_id,
                    outfit.name,
                    json.dumps(outfit.item_ids),
                    outfit.stylist_notes,
                    int(outfit.is_universal),
                    cached.visualized_image_url,
                    cached.generated_at.isoformat(),
                    cached.expires_at.isoformat(),
                    json.dumps(list(cached.combination_history)),
                ),
            )
        return cached

    def delete(self, user_id: str, occasion: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM outfit_cache WHERE user_id = ? AND occasion = ?",
                (user_id, occasion),
            )
            return cursor.rowcount > 0

    def purge_expired(self, user_id: str, now: Optional[datetime] = None) -> int:
        cutoff = (now or datetime.now(timezone.utc)).isoformat()
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM outfit_cache WHERE user_id = ? AND expires_at <= ?",
                (user_id, cutoff),
            )
            return cursor.rowcount

    def fetch_active(
        self,
        user_id: str,
        inventory: Iterable[WardrobeItem],
        now: Optional[datetime] = None,
    ) -> Dict[str, CachedOutfit]:
        """Load unexpired rows, hydrating item ids against ``inventory``.

        Ids that no longer resolve are dropped; a row left with no items is skipped.
        """

        now = now or datetime.now(timezone.utc)
        by_id = {item.item_id: item for item in inventory}
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM outfit_cache WHERE user_id = ?", (user_id,)).fetchall()

        active: Dict[str, CachedOutfit] = {}
        for row in rows:
            generated_at = datetime.fromisoformat(row["generated_at"])
            if generated_at.tzinfo is None:
                generated_at = generated_at.replace(tzinfo=timezone.utc)
            items = [by_id[item_id] for item_id in parse_tag_field(row["item_ids"]) if item_id in by_id]
            if not items:
                logger.debug("Skipping cached outfit with no resolvable items", extra={"occasion": row["occasion"]})
                continue
            cached = CachedOutfit(
                outfit=Outfit(
                    outfit_id=row["outfit_id"],
                    name=row["name"] or "",
                    items=items,
                    stylist_notes=row["stylist_notes"] or "",
                    occasion=row["occasion"],
                    is_universal=bool(row["is_universal"]),
                ),
                visualized_image_url=row["visualized_image_url"],
                generated_at=generated_at,
                combination_history=parse_tag_field(row["combination_history"]),
            )
            if cached.is_expired(now):
                continue
            active[row["occasion"]] = cached
        return active


__all__ = ["SQLiteOutfitCacheStore"]
