"""Outfit generation collaborator: item summaries in, candidate outfits out."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import ValidationError

from logic.safety import system_instruction
from logic.validation import GenerationRequest, GenerationResponse, OutfitOption
from tools.gemini_client import ProviderResponseError, build_model, parse_json_payload, response_text
from tools.observability import instrument_tool

LOGGER = logging.getLogger(__name__)

DEFAULT_OPTION_COUNT = 3

FORMALITY_ANCHORS: Dict[str, str] = {
    "Casual": "Relaxed and effortless, formality 1-3 of 10.",
    "Work": "Polished and structured, formality 8-9 of 10.",
    "Date Night": "Elevated and alluring, formality 6-8 of 10.",
    "Formal": "Black tie, formality 10 of 10.",
    "Gym": "Functional performance wear, formality 0-1 of 10.",
    "Party": "Bold and expressive, formality 4-9 of 10.",
    "Wedding Guest": "Celebratory and respectful, formality 8-9 of 10.",
    "Weekend Brunch": "Breezy and light, formality 3-5 of 10.",
    "Beach & Vacation": "Resort leisure, formality 1-4 of 10.",
    "Concert & Festival": "Editorial edge, formality 2-6 of 10.",
    "Job Interview": "Impeccable first impression, formality 9-10 of 10.",
    "Business Trip": "Versatile travel polish, formality 7-8 of 10.",
    "Lounge & Home": "Soft and minimal, formality 0-2 of 10.",
}


class OutfitGenerator(ABC):
    """Abstract outfit generation collaborator."""

    @abstractmethod
    async def suggest_outfits(self, request: GenerationRequest) -> GenerationResponse:
        """Return candidate outfits referencing ids from ``request.candidate_pool``."""


class GeminiOutfitGenerator(OutfitGenerator):
    """Gemini-backed stylist that proposes outfits as JSON."""

    def __init__(
        self,
        model_name: str,
        option_count: int = DEFAULT_OPTION_COUNT,
        model: Any | None = None,
    ) -> None:
        self.model_name = model_name
        self.option_count = option_count
        self.system_instruction = system_instruction(
            "outfit stylist. Compose complete looks from the archive and explain each in one or two sentences."
        )
        self._model = model

    @property
    def model(self) -> Any:
        if self._model is None:
            self._model = build_model(self.model_name, self.system_instruction, json_output=True)
        return self._model

    def build_prompt(self, request: GenerationRequest) -> str:
        anchor = FORMALITY_ANCHORS.get(request.occasion, "Standard high-fashion aesthetic.")
        mode = (
            "CREATIVE MODE: curate from the entire archive, prioritising harmony and occasion formality."
            if request.universal
            else "SIGNATURE MODE: every archive item is tagged for this occasion."
        )
        archive = "\n".join(
            f"[ID:{item.id}] {item.name} ({item.category}) | color:{item.primary_color or '-'} "
            f"| material:{item.material_look or '-'}"
            for item in request.candidate_pool
        )
        avoid = ", ".join(request.avoid_signatures) or "none"
        hints = json.dumps(request.profile_hints) if request.profile_hints else "none"
        return (
            f"OCCASION: {request.occasion} ({anchor})\n"
            f"{mode}\n"
            f"WEARER HINTS: {hints}\n"
            f"AVOID these id combinations (sorted, comma joined): {avoid}\n"
            f"Propose {self.option_count} distinct outfits. Each outfit uses either one dress or a top with a "
            "bottom, plus at most one each of shoes, bag, cap and outerwear.\n"
            'Respond as {"options": [{"name": str, "itemIds": [str], "stylistNotes": str}]}\n'
            f"ARCHIVE:\n{archive}"
        )

    @instrument_tool("suggest_outfits")
    async def suggest_outfits(self, request: GenerationRequest) -> GenerationResponse:
        response = await self.model.generate_content_async(self.build_prompt(request))
        payload = parse_json_payload(response_text(response))
        if "options" not in payload and "itemIds" in payload:
            payload = {"options": [payload]}
        try:
            return GenerationResponse.model_validate(payload)
        except ValidationError as exc:
            raise ProviderResponseError(f"Generator payload failed schema checks: {exc}") from exc


class MockOutfitGenerator(OutfitGenerator):
    """Offline deterministic generator for tests and local runs.

    Returns the scripted options, or derives them from the request via
    ``responder``. When ``error`` is set every call raises it.
    """

    def __init__(
        self,
        options: Sequence[Dict[str, Any]] | None = None,
        responder: Optional[Callable[[GenerationRequest], Sequence[Dict[str, Any]]]] = None,
        error: Exception | None = None,
    ) -> None:
        self._options = list(options or [])
        self._responder = responder
        self._error = error
        self.requests: List[GenerationRequest] = []

    async def suggest_outfits(self, request: GenerationRequest) -> GenerationResponse:
        self.requests.append(request)
        LOGGER.info("Returning mock outfit options", extra={"occasion": request.occasion})
        if self._error is not None:
            raise self._error
        raw = self._responder(request) if self._responder else self._options
        return GenerationResponse(options=[OutfitOption.model_validate(option) for option in raw])


__all__ = [
    "FORMALITY_ANCHORS",
    "GeminiOutfitGenerator",
    "MockOutfitGenerator",
    "OutfitGenerator",
]
