"""Shared Gemini wiring for the multimodal collaborators."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional

import google.generativeai as genai

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


class ProviderResponseError(RuntimeError):
    """Raised when a collaborator answers with content that cannot be used."""


def configure_gemini(api_key: Optional[str]) -> None:
    """Configure the Gemini SDK once per process when a key is available."""

    if api_key:
        genai.configure(api_key=api_key)
    else:
        logger.warning("No Gemini API key configured; remote collaborators will fail until one is set")


def build_model(model_name: str, system_instruction: str | None = None, json_output: bool = False) -> Any:
    generation_config: Dict[str, Any] = {}
    if json_output:
        generation_config["response_mime_type"] = "application/json"
    return genai.GenerativeModel(
        model_name,
        system_instruction=system_instruction,
        generation_config=generation_config or None,
    )


def image_part(data: bytes, mime_type: str = "image/jpeg") -> Dict[str, Any]:
    return {"mime_type": mime_type, "data": data}


def parse_json_payload(text: str | None) -> Dict[str, Any]:
    """Parse model output as JSON, tolerating code fences and surrounding prose.

    Raises :class:`ProviderResponseError` when no JSON object can be recovered.
    """

    if not text:
        raise ProviderResponseError("Empty response from model")

    candidates = [text.strip()]
    fenced = _FENCED_JSON.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())
    first, last = text.find("{"), text.rfind("}")
    if first != -1 and last > first:
        candidates.append(text[first : last + 1])

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    raise ProviderResponseError("Model response did not contain a JSON object")


def response_text(response: Any) -> str:
    try:
        return response.text
    except ValueError as exc:
        # The SDK raises when a candidate carries no text parts (e.g. blocked output).
        raise ProviderResponseError(f"Model returned no text: {exc}") from exc


def extract_inline_image(response: Any) -> bytes:
    """Return the first inline image payload from a model response."""

    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline is not None and getattr(inline, "data", None):
                return bytes(inline.data)
    raise ProviderResponseError("Model response did not include an image")


__all__ = [
    "ProviderResponseError",
    "build_model",
    "configure_gemini",
    "extract_inline_image",
    "image_part",
    "parse_json_payload",
    "response_text",
]
