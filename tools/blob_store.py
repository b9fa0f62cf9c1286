"""Local blob storage for garment and outfit images with signed URLs."""
from __future__ import annotations

import hashlib
import hmac
import logging
import re
import time
from pathlib import Path
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlparse

logger = logging.getLogger(__name__)

SIGNED_URL_TTL_SECONDS = 60 * 60 * 24 * 365
_SAFE_SEGMENT = re.compile(r"[^A-Za-z0-9._-]")


def _safe_segment(value: str) -> str:
    cleaned = _SAFE_SEGMENT.sub("_", value).lstrip(".")
    if not cleaned:
        raise ValueError(f"Invalid blob path segment: {value!r}")
    return cleaned


class LocalBlobStore:
    """Writes blobs under ``base_dir/<user_id>/<name>`` and hands out signed URLs."""

    def __init__(self, base_dir: str | Path, base_url: str, signing_key: str) -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.base_url = base_url.rstrip("/")
        self._key = signing_key.encode("utf-8")

    def _sign(self, path: str, expires: int) -> str:
        message = f"{path}:{expires}".encode("utf-8")
        return hmac.new(self._key, message, hashlib.sha256).hexdigest()

    def _blob_path(self, relative: str) -> Path:
        return self.base_dir / relative

    def upload(self, user_id: str, name: str, data: bytes, now: Optional[float] = None) -> str:
        relative = f"{_safe_segment(user_id)}/{_safe_segment(name)}"
        target = self._blob_path(relative)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        expires = int((now if now is not None else time.time()) + SIGNED_URL_TTL_SECONDS)
        query = urlencode({"expires": expires, "signature": self._sign(relative, expires)})
        logger.debug("Stored blob", extra={"blob": relative, "size": len(data)})
        return f"{self.base_url}/{relative}?{query}"

    def _relative_from_url(self, url: str) -> Optional[str]:
        base = urlparse(self.base_url)
        parsed = urlparse(url)
        if (parsed.scheme, parsed.netloc) != (base.scheme, base.netloc):
            return None
        base_path = base.path.rstrip("/")
        path = parsed.path
        if not path.startswith(f"{base_path}/"):
            return None
        relative = path[len(base_path) + 1 :]
        parts = relative.split("/")
        if len(parts) != 2 or any(part in {"", ".", ".."} for part in parts):
            return None
        return relative

    def verify_url(self, url: str, now: Optional[float] = None) -> bool:
        relative = self._relative_from_url(url)
        if relative is None:
            return False
        query = parse_qs(urlparse(url).query)
        try:
            expires = int(query["expires"][0])
            signature = query["signature"][0]
        except (KeyError, IndexError, ValueError):
            return False
        if expires < (now if now is not None else time.time()):
            return False
        return hmac.compare_digest(signature, self._sign(relative, expires))

    def read(self, url: str) -> bytes:
        relative = self._relative_from_url(url)
        if relative is None:
            raise FileNotFoundError(url)
        return self._blob_path(relative).read_bytes()

    def remove(self, url: str) -> bool:
        """Delete the blob behind ``url``; returns False when it is not ours or already gone."""

        relative = self._relative_from_url(url)
        if relative is None:
            return False
        target = self._blob_path(relative)
        if not target.exists():
            return False
        target.unlink()
        return True


__all__ = ["LocalBlobStore", "SIGNED_URL_TTL_SECONDS"]
