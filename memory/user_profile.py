"""User profile model and JSON-backed profile service."""

import json
import logging
import re
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

STARTUP_CREDITS = 50.0


@dataclass
class UserProfile:
    user_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    sex: Optional[str] = None
    preferred_style: Optional[str] = None
    favorite_colors: List[str] = field(default_factory=list)
    language: str = "en"
    is_premium: bool = False
    credits: float = STARTUP_CREDITS
    total_generations: int = 0
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def styling_hints(self) -> Dict[str, Any]:
        """Non-identifying hints forwarded to the outfit generator."""

        hints: Dict[str, Any] = {
            "sex": self.sex,
            "preferred_style": self.preferred_style,
            "favorite_colors": list(self.favorite_colors),
            "language": self.language,
        }
        return {key: value for key, value in hints.items() if value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


class UserProfileService:
    """Simple JSON-backed profile store, one file per user."""

    def __init__(self, base_dir: str = "data/profiles") -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _profile_path(self, user_id: str) -> Path:
        safe_id = re.sub(r"[^A-Za-z0-9._-]", "_", user_id)
        return self.base_dir / f"{safe_id}.json"

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        path = self._profile_path(user_id)
        if not path.exists():
            return None
        return UserProfile.from_dict(json.loads(path.read_text()))

    def get_or_create(self, user_id: str, email: Optional[str] = None) -> UserProfile:
        profile = self.get_profile(user_id)
        if profile is not None:
            return profile
        profile = UserProfile(user_id=user_id, email=email)
        logger.info("Created profile with startup credits", extra={"credits": profile.credits})
        return self.save(profile)

    def save(self, profile: UserProfile) -> UserProfile:
        self._profile_path(profile.user_id).write_text(json.dumps(asdict(profile), indent=2))
        return profile

    def update(self, user_id: str, updates: Dict[str, Any]) -> UserProfile:
        profile = self.get_or_create(user_id)
        data = asdict(profile)
        data.update({key: value for key, value in updates.items() if key in data and key != "user_id"})
        return self.save(UserProfile.from_dict(data))

    def delete(self, user_id: str) -> bool:
        path = self._profile_path(user_id)
        if not path.exists():
            return False
        path.unlink()
        return True


__all__ = ["STARTUP_CREDITS", "UserProfile", "UserProfileService"]
