"""FastAPI server exposing the wardrobe app for deployment."""

import base64
import binascii
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from agents.orchestrator import GenerationOutcome
from glam_app.app import GlamWardrobeApp, NotSignedInError
from glam_app.logging_config import configure_logging
from logic.suitability import occasion_coverage
from models.outfit import CachedOutfit, Outfit
from models.taxonomy import OCCASIONS


class HydrateRequest(BaseModel):
    email: Optional[str] = Field(None, description="Email recorded on first sign-in")


class GenerateRequest(BaseModel):
    occasion: str
    universal_mode: bool = False


class VisualizeRequest(BaseModel):
    occasion: str
    outfit_id: str
    hd: bool = False


class PackRequest(BaseModel):
    pack_id: str = Field(..., description="starter, growth, pro or premium_monthly")


class UploadRequest(BaseModel):
    images: List[str] = Field(..., min_length=1, description="Base64-encoded photos")


class PortraitRequest(BaseModel):
    image: str = Field(..., description="Base64-encoded reference portrait")


def _decode_image(raw: str) -> bytes:
    payload = raw.split(",", 1)[1] if raw.startswith("data:") else raw
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=400, detail="Images must be base64 encoded") from exc


def _outfit_payload(outfit: Outfit) -> Dict[str, Any]:
    return {
        "id": outfit.outfit_id,
        "name": outfit.name,
        "item_ids": outfit.item_ids,
        "stylist_notes": outfit.stylist_notes,
        "occasion": outfit.occasion,
        "is_universal": outfit.is_universal,
    }


def _cached_payload(cached: CachedOutfit) -> Dict[str, Any]:
    return {
        "outfit": _outfit_payload(cached.outfit),
        "visualized_image_url": cached.visualized_image_url,
        "generated_at": cached.generated_at.isoformat(),
        "expires_at": cached.expires_at.isoformat(),
    }


def _outcome_payload(outcome: GenerationOutcome) -> Dict[str, Any]:
    return {
        "phase": outcome.phase.value,
        "phases": [phase.value for phase in outcome.phases],
        "occasion": outcome.occasion,
        "universal_mode": outcome.universal_mode,
        "exhausted": outcome.exhausted,
        "message": outcome.message,
        "outfits": [_outfit_payload(outfit) for outfit in outcome.outfits],
        "cached": _cached_payload(outcome.cached) if outcome.cached else None,
    }


def create_api(wardrobe_app: GlamWardrobeApp) -> FastAPI:
    """Build the FastAPI surface around one wardrobe app session."""

    api = FastAPI(title="Glam Wardrobe", version="0.1.0")

    @api.exception_handler(NotSignedInError)
    async def _not_signed_in(_request: Request, exc: NotSignedInError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @api.get("/healthz")
    async def healthcheck() -> dict:
        """Lightweight readiness probe."""

        return {
            "status": "ok",
            "service": "glam-wardrobe",
            "environment": wardrobe_app.config.environment or "local",
            "model": wardrobe_app.config.model,
        }

    @api.get("/occasions")
    async def list_occasions() -> dict:
        state = wardrobe_app.state.state
        return {"occasions": list(OCCASIONS), "coverage": occasion_coverage(state.items)}

    @api.post("/users/{user_id}/hydrate")
    async def hydrate(user_id: str, request: HydrateRequest) -> dict:
        state = wardrobe_app.hydrate(user_id, email=request.email)
        profile = state.profile
        return {
            "user_id": user_id,
            "item_count": len(state.items),
            "credits": profile.credits if profile else 0,
            "is_premium": profile.is_premium if profile else False,
            "cached_outfits": {occasion: _cached_payload(cached) for occasion, cached in state.outfit_cache.items()},
        }

    @api.get("/wardrobe")
    async def list_wardrobe() -> dict:
        wardrobe_app.require_user()
        return {"items": [asdict(item) for item in wardrobe_app.state.state.items]}

    @api.post("/wardrobe/uploads")
    async def upload_wardrobe(request: UploadRequest) -> dict:
        images = [_decode_image(raw) for raw in request.images]
        tasks = await wardrobe_app.upload_images(images)
        return {"tasks": [{**asdict(task), "status": task.status.value} for task in tasks]}

    @api.patch("/wardrobe/{item_id}")
    async def update_wardrobe_item(item_id: str, updates: Dict[str, Any]) -> dict:
        try:
            item = wardrobe_app.update_item(item_id, updates)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        if item is None:
            raise HTTPException(status_code=404, detail="Item not found")
        return asdict(item)

    @api.delete("/wardrobe/{item_id}")
    async def delete_wardrobe_item(item_id: str) -> dict:
        if not wardrobe_app.delete_item(item_id):
            raise HTTPException(status_code=404, detail="Item not found")
        return {"deleted": item_id}

    @api.post("/profile/portrait")
    async def upload_portrait(request: PortraitRequest) -> dict:
        profile = wardrobe_app.upload_portrait(_decode_image(request.image))
        return {"avatar_url": profile.avatar_url}

    @api.post("/outfits/generate")
    async def generate_outfits(request: GenerateRequest) -> dict:
        try:
            outcome = await wardrobe_app.generate(request.occasion, universal_mode=request.universal_mode)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _outcome_payload(outcome)

    @api.post("/outfits/visualize")
    async def visualize_outfit(request: VisualizeRequest) -> dict:
        try:
            outcome = await wardrobe_app.visualize(request.occasion, request.outfit_id, hd=request.hd)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _outcome_payload(outcome)

    @api.post("/credits/packs")
    async def purchase_pack(request: PackRequest) -> dict:
        try:
            profile = wardrobe_app.grant_pack(request.pack_id)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"credits": profile.credits, "is_premium": profile.is_premium}

    @api.post("/logout")
    async def logout() -> dict:
        wardrobe_app.logout()
        return {"status": "signed_out"}

    return api


def get_app() -> FastAPI:
    """Build the FastAPI instance for ASGI servers."""

    configure_logging()
    return create_api(GlamWardrobeApp())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.api:get_app", factory=True, host="0.0.0.0", port=int("8080"), reload=False)
