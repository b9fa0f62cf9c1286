"""Visualization collaborator: renders the wearer in an outfit."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from models.outfit import Outfit
from tools.gemini_client import ProviderResponseError, build_model, extract_inline_image, image_part
from tools.observability import instrument_tool

LOGGER = logging.getLogger(__name__)

OCCASION_ENVIRONMENTS: Dict[str, str] = {
    "Casual": "A chic urban cobblestone street in Paris, soft cinematic sunlight.",
    "Work": "A sleek glass-walled executive lounge in a modern skyscraper.",
    "Date Night": "A moody candlelit rooftop terrace at night.",
    "Formal": "The grand marble foyer of a neo-classical opera house.",
    "Gym": "A minimalist gym with soft ambient blue lighting.",
    "Party": "An exclusive neon-lit lounge with a velvet aesthetic.",
    "Wedding Guest": "A romantic lakeside villa garden at twilight.",
    "Weekend Brunch": "A sun-drenched botanical cafe with warm wooden textures.",
    "Beach & Vacation": "An overwater bungalow deck above turquoise waves.",
    "Concert & Festival": "A balcony overlooking a grand music stadium.",
    "Job Interview": "A sophisticated minimalist office with professional lighting.",
    "Business Trip": "The first-class cabin of a private jet, soft leather seats.",
    "Lounge & Home": "A serene minimalist living space with floor-to-ceiling windows.",
}
DEFAULT_ENVIRONMENT = "A luxury lifestyle setting."


class OutfitVisualizer(ABC):
    @abstractmethod
    async def render(self, portrait: bytes, outfit: Outfit) -> bytes:
        """Return an image of the person in ``portrait`` wearing ``outfit``."""


class GeminiOutfitVisualizer(OutfitVisualizer):
    def __init__(self, model_name: str, model: Any | None = None) -> None:
        self.model_name = model_name
        self._model = model

    @property
    def model(self) -> Any:
        if self._model is None:
            self._model = build_model(self.model_name)
        return self._model

    @staticmethod
    def build_prompt(outfit: Outfit) -> str:
        wearing = ", ".join(
            f"{item.name} ({item.description})" if item.description else item.name for item in outfit.items
        )
        setting = OCCASION_ENVIRONMENTS.get(outfit.occasion, DEFAULT_ENVIRONMENT)
        return (
            "Photorealistic full-body fashion photograph.\n"
            "SUBJECT: keep the exact face, skin tone and identity of the person in the first image.\n"
            f"WEARING: {wearing}. Do not alter the garments.\n"
            f"SETTING: {setting}\n"
            "Cinematic lighting, portrait orientation."
        )

    @instrument_tool("render_outfit")
    async def render(self, portrait: bytes, outfit: Outfit) -> bytes:
        response = await self.model.generate_content_async([image_part(portrait), self.build_prompt(outfit)])
        return extract_inline_image(response)


class MockOutfitVisualizer(OutfitVisualizer):
    """Deterministic renderer; set ``fail=True`` to simulate a collaborator failure."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.rendered: List[str] = []

    async def render(self, portrait: bytes, outfit: Outfit) -> bytes:
        if self.fail:
            raise ProviderResponseError("Mock visualization failure")
        self.rendered.append(outfit.outfit_id)
        LOGGER.info("Returning mock visualization", extra={"occasion": outfit.occasion})
        return f"render:{outfit.signature}".encode("utf-8")


__all__ = [
    "DEFAULT_ENVIRONMENT",
    "GeminiOutfitVisualizer",
    "MockOutfitVisualizer",
    "OCCASION_ENVIRONMENTS",
    "OutfitVisualizer",
]
