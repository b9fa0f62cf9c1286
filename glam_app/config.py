"""Configuration helpers for the Glam wardrobe app."""

from dataclasses import dataclass
from pathlib import Path
import os
from typing import Optional

DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"
DEFAULT_IMAGE_MODEL = "gemini-2.0-flash-exp-image-generation"
DEFAULT_MAX_POOL_ITEMS = 300


@dataclass
class AppConfig:
    """Configuration values for the wardrobe app.

    Collaborator models, storage locations and blob signing settings live here
    so that the app, the API server and tests build components from one place.
    """

    model: str = DEFAULT_GEMINI_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    api_key: Optional[str] = None
    wardrobe_db_path: str = "data/wardrobe.db"
    profile_dir: str = "data/profiles"
    blob_dir: str = "data/blobs"
    blob_base_url: str = "http://localhost:8080/blobs"
    blob_signing_key: str = "local-dev-signing-key"
    max_pool_items: int = DEFAULT_MAX_POOL_ITEMS
    environment: str | None = None

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build a config from environment variables or an environment YAML file.

        Environment specific YAML lives in ``config/environments/<env>.yaml`` by
        default and is merged with environment variables so that secrets such as
        the Gemini key and the blob signing key can be injected at runtime.
        """

        env_name = os.getenv("APP_ENV")
        config_path = os.getenv("APP_CONFIG_PATH")
        config_dir = Path(os.getenv("APP_CONFIG_DIR", "config/environments"))
        yaml_config: dict = {}

        if config_path:
            path = Path(config_path)
        elif env_name:
            path = config_dir / f"{env_name}.yaml"
        else:
            path = None

        if path and path.exists():
            yaml_config = cls._load_yaml_config(path)

        def get_value(key: str, default: Optional[str] = None) -> Optional[str]:
            env_key = key.upper()
            return os.getenv(env_key, yaml_config.get(key, default))

        defaults = cls()
        max_pool_raw = get_value("max_pool_items", str(DEFAULT_MAX_POOL_ITEMS))
        try:
            max_pool_items = int(max_pool_raw or DEFAULT_MAX_POOL_ITEMS)
        except ValueError:
            max_pool_items = DEFAULT_MAX_POOL_ITEMS

        return cls(
            model=str(get_value("model") or defaults.model),
            image_model=str(get_value("image_model") or defaults.image_model),
            api_key=get_value("google_api_key"),
            wardrobe_db_path=str(get_value("wardrobe_db_path") or defaults.wardrobe_db_path),
            profile_dir=str(get_value("profile_dir") or defaults.profile_dir),
            blob_dir=str(get_value("blob_dir") or defaults.blob_dir),
            blob_base_url=str(get_value("blob_base_url") or defaults.blob_base_url),
            blob_signing_key=str(get_value("blob_signing_key") or defaults.blob_signing_key),
            max_pool_items=max(1, max_pool_items),
            environment=env_name,
        )

    @staticmethod
    def _load_yaml_config(path: Path) -> dict:
        """Parse a minimal YAML/INI-style config without external dependencies."""

        config: dict[str, str] = {}
        for line in path.read_text().splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if ":" not in stripped:
                continue
            key, raw_value = stripped.split(":", 1)
            value = raw_value.strip()
            if (value.startswith("\"") and value.endswith("\"")) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]
            config[key.strip()] = value
        return config
