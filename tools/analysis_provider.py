"""Garment analysis collaborator: photo in, structured garments out."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence

from pydantic import ValidationError

from logic.safety import system_instruction
from logic.validation import AnalysisResponse, AnalyzedGarment
from models.taxonomy import CATEGORIES, OCCASIONS
from tools.gemini_client import (
    ProviderResponseError,
    build_model,
    extract_inline_image,
    image_part,
    parse_json_payload,
    response_text,
)
from tools.observability import instrument_tool

LOGGER = logging.getLogger(__name__)


class GarmentAnalyzer(ABC):
    """Abstract analysis collaborator."""

    @abstractmethod
    async def analyze(self, image: bytes) -> List[AnalyzedGarment]:
        """Return every garment visible in ``image``; empty when there is none."""

    @abstractmethod
    async def isolate(self, garment: AnalyzedGarment, image: bytes) -> bytes:
        """Return a product shot of ``garment`` on a plain white background."""


class GeminiGarmentAnalyzer(GarmentAnalyzer):
    def __init__(
        self,
        model_name: str,
        image_model_name: str,
        model: Any | None = None,
        image_model: Any | None = None,
    ) -> None:
        self.model_name = model_name
        self.image_model_name = image_model_name
        self.system_instruction = system_instruction(
            "garment cataloguer. For each garment report name, category "
            f"({', '.join(CATEGORIES)}), primaryColor, description, materialLook, pattern, "
            f"warmthLevel and two or more occasionSuitability values from: {', '.join(OCCASIONS)}."
        )
        self._model = model
        self._image_model = image_model

    @property
    def model(self) -> Any:
        if self._model is None:
            self._model = build_model(self.model_name, self.system_instruction, json_output=True)
        return self._model

    @property
    def image_model(self) -> Any:
        if self._image_model is None:
            self._image_model = build_model(self.image_model_name)
        return self._image_model

    @instrument_tool("analyze_garments")
    async def analyze(self, image: bytes) -> List[AnalyzedGarment]:
        response = await self.model.generate_content_async(
            [image_part(image), 'Digitize the garments. Respond as {"items": [...]}.']
        )
        payload = parse_json_payload(response_text(response))
        try:
            return AnalysisResponse.model_validate(payload).items
        except ValidationError as exc:
            raise ProviderResponseError(f"Analysis payload failed schema checks: {exc}") from exc

    @instrument_tool("isolate_garment")
    async def isolate(self, garment: AnalyzedGarment, image: bytes) -> bytes:
        response = await self.image_model.generate_content_async(
            [image_part(image), f"Isolate the {garment.name} on a pure white background. No people."]
        )
        return extract_inline_image(response)


class MockGarmentAnalyzer(GarmentAnalyzer):
    """Returns scripted garments per image, keyed by the image bytes."""

    def __init__(
        self,
        garments: Dict[bytes, Sequence[Dict[str, Any]]] | None = None,
        failing_images: Sequence[bytes] = (),
        failing_garments: Sequence[str] = (),
    ) -> None:
        self._garments = dict(garments or {})
        self._failing_images = set(failing_images)
        self._failing_garments = set(failing_garments)
        self.calls: List[str] = []

    async def analyze(self, image: bytes) -> List[AnalyzedGarment]:
        self.calls.append(f"analyze:{image.decode('utf-8', 'replace')}")
        if image in self._failing_images:
            raise ProviderResponseError("Mock analysis failure")
        return [AnalyzedGarment.model_validate(raw) for raw in self._garments.get(image, [])]

    async def isolate(self, garment: AnalyzedGarment, image: bytes) -> bytes:
        self.calls.append(f"isolate:{garment.name}")
        if garment.name in self._failing_garments:
            raise ProviderResponseError(f"Mock isolation failure for {garment.name}")
        LOGGER.debug("Returning mock isolated garment", extra={"garment": garment.name})
        return f"isolated:{garment.name}".encode("utf-8")


__all__ = ["GarmentAnalyzer", "GeminiGarmentAnalyzer", "MockGarmentAnalyzer"]
