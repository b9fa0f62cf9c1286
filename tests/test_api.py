"""HTTP surface tests using FastAPI's TestClient."""

from __future__ import annotations

import base64

import pytest
from fastapi.testclient import TestClient

from glam_app.app import GlamWardrobeApp
from server.api import create_api
from tools.analysis_provider import MockGarmentAnalyzer
from tools.generation_provider import MockOutfitGenerator
from tools.visualization_provider import MockOutfitVisualizer

TOP = {"name": "Linen Shirt", "category": "shirt", "occasionSuitability": ["Weekend Brunch", "Casual"]}
SHORTS = {"name": "Chino Shorts", "category": "shorts", "occasionSuitability": "Weekend Brunch"}


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode()


def _brunch_options(request):
    ids = [summary.id for summary in request.candidate_pool]
    return [{"name": "Sunny", "itemIds": ids, "stylistNotes": "Light layers."}]


@pytest.fixture()
def client(app_config):
    wardrobe_app = GlamWardrobeApp(
        app_config,
        generator=MockOutfitGenerator(responder=_brunch_options),
        analyzer=MockGarmentAnalyzer(garments={b"photo-1": [TOP], b"photo-2": [SHORTS]}),
        visualizer=MockOutfitVisualizer(),
    )
    return TestClient(create_api(wardrobe_app))


def test_healthcheck_and_occasions(client: TestClient) -> None:
    health = client.get("/healthz")
    assert health.status_code == 200
    assert health.json()["status"] == "ok"
    assert health.json()["environment"] == "test"

    occasions = client.get("/occasions").json()
    assert occasions["occasions"][0] == "Casual"
    assert len(occasions["occasions"]) == 13


def test_user_scoped_routes_require_hydration(client: TestClient) -> None:
    assert client.get("/wardrobe").status_code == 409
    assert client.post("/outfits/generate", json={"occasion": "Work"}).status_code == 409


def test_full_styling_flow(client: TestClient) -> None:
    hydrated = client.post("/users/user-9/hydrate", json={"email": "nine@example.com"}).json()
    assert hydrated["credits"] == 50.0
    assert hydrated["item_count"] == 0

    uploads = client.post("/wardrobe/uploads", json={"images": [_b64(b"photo-1"), _b64(b"photo-2")]}).json()
    assert [task["status"] for task in uploads["tasks"]] == ["complete", "complete"]

    items = client.get("/wardrobe").json()["items"]
    assert [item["name"] for item in items] == ["Chino Shorts", "Linen Shirt"]
    assert client.get("/occasions").json()["coverage"]["Weekend Brunch"] == 2

    generated = client.post("/outfits/generate", json={"occasion": "weekend brunch"}).json()
    assert generated["phase"] == "complete"
    assert generated["phases"] == ["analyzing", "designing", "complete"]
    outfit = generated["outfits"][0]
    assert sorted(outfit["item_ids"]) == sorted(item["item_id"] for item in items)

    no_portrait = client.post(
        "/outfits/visualize", json={"occasion": "Weekend Brunch", "outfit_id": outfit["id"]}
    ).json()
    assert no_portrait["cached"] is None

    assert client.post("/profile/portrait", json={"image": _b64(b"face")}).status_code == 200
    visualized = client.post(
        "/outfits/visualize", json={"occasion": "Weekend Brunch", "outfit_id": outfit["id"]}
    ).json()
    assert visualized["phase"] == "complete"
    assert visualized["cached"]["outfit"]["id"] == outfit["id"]

    rehydrated = client.post("/users/user-9/hydrate", json={}).json()
    assert rehydrated["item_count"] == 2
    assert list(rehydrated["cached_outfits"]) == ["Weekend Brunch"]


def test_item_update_and_delete(client: TestClient) -> None:
    client.post("/users/user-3/hydrate", json={})
    client.post("/wardrobe/uploads", json={"images": [_b64(b"photo-1")]})
    item_id = client.get("/wardrobe").json()["items"][0]["item_id"]

    patched = client.patch(f"/wardrobe/{item_id}", json={"is_favorite": True, "occasion_suitability": "Work"})
    assert patched.status_code == 200
    assert patched.json()["is_favorite"] is True
    assert patched.json()["occasion_suitability"] == ["Work"]
    assert client.patch(f"/wardrobe/{item_id}", json={"category": "Hats"}).status_code == 400
    assert client.patch("/wardrobe/missing", json={"name": "x"}).status_code == 404

    assert client.delete(f"/wardrobe/{item_id}").json() == {"deleted": item_id}
    assert client.delete(f"/wardrobe/{item_id}").status_code == 404
    assert client.get("/wardrobe").json()["items"] == []


def test_generation_edge_responses(client: TestClient) -> None:
    client.post("/users/user-4/hydrate", json={})
    assert client.post("/outfits/generate", json={"occasion": "Picnic"}).status_code == 400

    empty = client.post("/outfits/generate", json={"occasion": "Formal"}).json()
    assert empty["phase"] == "no_suitable_items"


def test_credit_packs(client: TestClient) -> None:
    client.post("/users/user-5/hydrate", json={})

    starter = client.post("/credits/packs", json={"pack_id": "starter"}).json()
    assert starter == {"credits": 100.0, "is_premium": False}
    assert client.post("/credits/packs", json={"pack_id": "bogus"}).status_code == 400

    client.post("/logout")
    assert client.post("/credits/packs", json={"pack_id": "pro"}).status_code == 409


def test_bad_upload_payload(client: TestClient) -> None:
    client.post("/users/user-6/hydrate", json={})
    assert client.post("/wardrobe/uploads", json={"images": ["%%%"]}).status_code == 400
    assert client.post("/wardrobe/uploads", json={"images": []}).status_code == 422
