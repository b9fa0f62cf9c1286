"""Generation state machine: credit gates, escalation and visualization."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List

import pytest

from agents.orchestrator import RETRY_MESSAGE, GenerationPhase
from glam_app.app import GlamWardrobeApp
from memory.user_profile import UserProfile
from models.outfit import CachedOutfit, Outfit
from tools.analysis_provider import MockGarmentAnalyzer
from tools.entitlement_provider import OutOfCreditsError
from tools.generation_provider import MockOutfitGenerator
from tools.visualization_provider import MockOutfitVisualizer

PAIR = {"name": "Office Ease", "itemIds": ["top", "pants"], "stylistNotes": "Clean lines."}
FULL = {"name": "Office Edge", "itemIds": ["top", "pants", "loafers"], "stylistNotes": "Sharp."}


def _build_app(app_config, make_item, generator, visualizer=None, profile=None) -> GlamWardrobeApp:
    app = GlamWardrobeApp(
        app_config,
        generator=generator,
        analyzer=MockGarmentAnalyzer(),
        visualizer=visualizer or MockOutfitVisualizer(),
    )
    for item in (
        make_item("top", "Tops", occasions=["Work", "Casual"]),
        make_item("pants", "Bottoms", occasions="Work"),
        make_item("loafers", "Shoes", occasions=None),
    ):
        app.wardrobe_store.create_item(item)
    if profile is not None:
        app.profiles.save(profile)
    app.hydrate("user-1", email="user@example.com")
    return app


def test_generate_happy_path(app_config, make_item) -> None:
    app = _build_app(app_config, make_item, MockOutfitGenerator(options=[PAIR, FULL]))

    outcome = asyncio.run(app.generate("Work"))

    assert outcome.phase is GenerationPhase.COMPLETE
    assert outcome.phases == [GenerationPhase.ANALYZING, GenerationPhase.DESIGNING, GenerationPhase.COMPLETE]
    assert [outfit.name for outfit in outcome.outfits] == ["Office Ease", "Office Edge"]
    state = app.state.state
    assert len(state.suggestions["Work"]) == 2
    assert state.history["Work"] == ("pants,top", "loafers,pants,top")
    assert state.profile.total_generations == 1
    assert state.profile.credits == 50.0


def test_credit_gate_runs_before_anything(app_config, make_item) -> None:
    generator = MockOutfitGenerator(options=[PAIR])
    broke = UserProfile(user_id="user-1", credits=0, total_generations=15)
    app = _build_app(app_config, make_item, generator, profile=broke)

    outcome = asyncio.run(app.generate("Work"))

    assert outcome.phase is GenerationPhase.CREDIT_EXHAUSTED
    assert outcome.phases == [GenerationPhase.CREDIT_EXHAUSTED]
    assert generator.requests == []
    assert app.state.state.profile.total_generations == 15


def test_no_suitable_items_is_not_charged(app_config, make_item) -> None:
    generator = MockOutfitGenerator(options=[PAIR])
    app = _build_app(app_config, make_item, generator)

    outcome = asyncio.run(app.generate("Formal"))

    assert outcome.phase is GenerationPhase.NO_SUITABLE_ITEMS
    assert generator.requests == []
    assert app.state.state.profile.total_generations == 0


def test_credit_consumed_before_generator_call(app_config, make_item) -> None:
    seen: List[float] = []
    holder = {}

    def responder(_request):
        seen.append(holder["app"].state.state.profile.credits)
        return [PAIR]

    paying = UserProfile(user_id="user-1", credits=10, total_generations=15)
    app = _build_app(app_config, make_item, MockOutfitGenerator(responder=responder), profile=paying)
    holder["app"] = app

    outcome = asyncio.run(app.generate("Work"))

    assert outcome.phase is GenerationPhase.COMPLETE
    assert seen == [9.0]
    assert app.profiles.get_profile("user-1").credits == 9.0


def test_strict_failure_escalates_to_universal(app_config, make_item) -> None:
    def responder(request):
        if request.universal:
            return [{"itemIds": ["top", "loafers"]}]
        return [{"itemIds": ["top"]}]

    app = _build_app(app_config, make_item, MockOutfitGenerator(responder=responder))

    strict = asyncio.run(app.generate("Casual"))
    assert strict.phase is GenerationPhase.NEEDS_UNIVERSAL
    assert strict.exhausted is True
    assert strict.outfits == []

    retry = asyncio.run(app.generate("Casual", universal_mode=True))
    assert retry.phase is GenerationPhase.COMPLETE
    assert retry.universal_mode is True
    assert retry.outfits[0].is_universal is True
    assert app.state.state.profile.total_generations == 2


def test_universal_with_nothing_completes_with_message(app_config, make_item) -> None:
    app = _build_app(app_config, make_item, MockOutfitGenerator(options=[]))

    outcome = asyncio.run(app.generate("Gym", universal_mode=True))

    assert outcome.phase is GenerationPhase.COMPLETE
    assert outcome.outfits == []
    assert "different pieces" in outcome.message


def test_history_is_avoided_on_next_request(app_config, make_item) -> None:
    generator = MockOutfitGenerator(options=[PAIR])
    app = _build_app(app_config, make_item, generator)

    asyncio.run(app.generate("Work"))
    second = asyncio.run(app.generate("Work"))

    assert generator.requests[1].avoid_signatures == ["pants,top"]
    assert second.phase is GenerationPhase.NEEDS_UNIVERSAL
    assert "Work" not in app.state.state.suggestions


def test_unexpected_failure_returns_error_and_idles(app_config, make_item, monkeypatch) -> None:
    app = _build_app(app_config, make_item, MockOutfitGenerator(options=[PAIR]))

    def explode(_cost):
        raise RuntimeError("ledger offline")

    monkeypatch.setattr(app.credits, "consume_credit", explode)
    outcome = asyncio.run(app.generate("Work"))

    assert outcome.phase is GenerationPhase.ERROR
    assert outcome.message
    assert app.orchestrator.phase is GenerationPhase.IDLE


def test_invalid_occasion_raises(app_config, make_item) -> None:
    app = _build_app(app_config, make_item, MockOutfitGenerator(options=[PAIR]))
    with pytest.raises(ValueError):
        asyncio.run(app.generate("Picnic"))


def test_expired_cache_is_evicted_before_recompute(app_config, make_item) -> None:
    app = _build_app(app_config, make_item, MockOutfitGenerator(options=[FULL]))
    items = list(app.state.state.items)
    stale = CachedOutfit(
        outfit=Outfit("old", "Old", items[:2], "", "Work"),
        visualized_image_url=None,
        generated_at=datetime.now(timezone.utc) - timedelta(hours=25),
        combination_history=["pants,top"],
    )
    app.cache_store.save("user-1", stale)
    app.state.put_cached_outfit("Work", stale)

    outcome = asyncio.run(app.generate("Work"))

    assert outcome.phase is GenerationPhase.COMPLETE
    assert "Work" not in app.state.state.outfit_cache
    assert app.cache_store.fetch_active("user-1", items, now=stale.generated_at) == {}


def test_fresh_cache_history_is_avoided(app_config, make_item) -> None:
    generator = MockOutfitGenerator(options=[PAIR, FULL])
    app = _build_app(app_config, make_item, generator)
    items = list(app.state.state.items)
    fresh = CachedOutfit(
        outfit=Outfit("prev", "Prev", items[:2], "", "Work"),
        visualized_image_url=None,
        combination_history=["pants,top"],
    )
    app.state.put_cached_outfit("Work", fresh)

    outcome = asyncio.run(app.generate("Work"))

    assert [outfit.signature for outfit in outcome.outfits] == ["loafers,pants,top"]
    assert "pants,top" in generator.requests[0].avoid_signatures
    assert app.state.state.outfit_cache["Work"] is fresh


def test_visualize_caches_rendered_outfit(app_config, make_item) -> None:
    app = _build_app(app_config, make_item, MockOutfitGenerator(options=[FULL]))
    app.upload_portrait(b"portrait-bytes")
    generated = asyncio.run(app.generate("Work"))
    outfit_id = generated.outfits[0].outfit_id

    outcome = asyncio.run(app.visualize("Work", outfit_id))

    assert outcome.phase is GenerationPhase.COMPLETE
    assert outcome.phases == [GenerationPhase.VISUALIZING, GenerationPhase.COMPLETE]
    cached = outcome.cached
    assert cached is not None
    assert app.blob_store.verify_url(cached.visualized_image_url)
    assert app.blob_store.read(cached.visualized_image_url) == b"render:loafers,pants,top"
    assert cached.combination_history == ["loafers,pants,top"]
    assert app.state.state.outfit_cache["Work"] is cached
    stored = app.cache_store.fetch_active("user-1", app.state.state.items)
    assert stored["Work"].outfit.outfit_id == outfit_id
    assert app.state.state.profile.total_generations == 2


def test_visualize_failure_leaves_cache_untouched(app_config, make_item) -> None:
    app = _build_app(app_config, make_item, MockOutfitGenerator(options=[FULL]), MockOutfitVisualizer(fail=True))
    app.upload_portrait(b"portrait-bytes")
    generated = asyncio.run(app.generate("Work"))

    outcome = asyncio.run(app.visualize("Work", generated.outfits[0].outfit_id))

    assert outcome.phase is GenerationPhase.COMPLETE
    assert outcome.cached is None
    assert outcome.message
    assert "Work" not in app.state.state.outfit_cache
    assert app.cache_store.fetch_active("user-1", app.state.state.items) == {}
    assert app.state.state.profile.total_generations == 1


def test_visualize_requires_portrait_and_suggestion(app_config, make_item) -> None:
    visualizer = MockOutfitVisualizer()
    app = _build_app(app_config, make_item, MockOutfitGenerator(options=[FULL]), visualizer)
    generated = asyncio.run(app.generate("Work"))

    no_portrait = asyncio.run(app.visualize("Work", generated.outfits[0].outfit_id))
    assert no_portrait.phase is GenerationPhase.COMPLETE
    assert no_portrait.cached is None

    app.upload_portrait(b"face")
    unknown = asyncio.run(app.visualize("Work", "not-a-suggestion"))
    assert unknown.cached is None
    assert visualizer.rendered == []
    assert app.state.state.profile.total_generations == 1


def test_visualize_credit_gate(app_config, make_item) -> None:
    visualizer = MockOutfitVisualizer()
    paying = UserProfile(user_id="user-1", credits=3, total_generations=15)
    app = _build_app(app_config, make_item, MockOutfitGenerator(options=[FULL]), visualizer, profile=paying)
    app.upload_portrait(b"face")
    generated = asyncio.run(app.generate("Work"))
    assert app.state.state.profile.credits == 2.0

    outcome = asyncio.run(app.visualize("Work", generated.outfits[0].outfit_id))

    assert outcome.phase is GenerationPhase.CREDIT_EXHAUSTED
    assert visualizer.rendered == []


def test_unreachable_generator_is_a_retryable_error(app_config, make_item) -> None:
    generator = MockOutfitGenerator(error=ConnectionError("network down"))
    app = _build_app(app_config, make_item, generator)

    outcome = asyncio.run(app.generate("Work"))

    assert outcome.phase is GenerationPhase.ERROR
    assert outcome.phases == [GenerationPhase.ANALYZING, GenerationPhase.DESIGNING, GenerationPhase.ERROR]
    assert outcome.message == RETRY_MESSAGE
    assert app.orchestrator.phase is GenerationPhase.IDLE
    assert len(generator.requests) == 1
    assert "Work" not in app.state.state.suggestions


def test_refused_charge_keeps_current_suggestions(app_config, make_item, monkeypatch) -> None:
    app = _build_app(app_config, make_item, MockOutfitGenerator(options=[PAIR]))
    first = asyncio.run(app.generate("Work"))

    def refuse(_cost):
        raise OutOfCreditsError()

    monkeypatch.setattr(app.credits, "consume_credit", refuse)
    outcome = asyncio.run(app.generate("Work"))

    assert outcome.phase is GenerationPhase.CREDIT_EXHAUSTED
    assert app.state.state.suggestions["Work"] == tuple(first.outfits)


def test_item_edits_reach_suggestions_and_cache(app_config, make_item) -> None:
    app = _build_app(app_config, make_item, MockOutfitGenerator(options=[FULL]))
    app.upload_portrait(b"face")
    outfit_id = asyncio.run(app.generate("Work")).outfits[0].outfit_id
    asyncio.run(app.visualize("Work", outfit_id))

    app.update_item("top", {"name": "Silk Shell"})

    state = app.state.state
    suggested = state.find_suggestion("Work", outfit_id)
    assert [item.name for item in suggested.items if item.item_id == "top"] == ["Silk Shell"]
    assert [item.name for item in state.outfit_cache["Work"].outfit.items if item.item_id == "top"] == ["Silk Shell"]


def test_deleting_an_item_drops_outfits_built_from_it(app_config, make_item) -> None:
    app = _build_app(app_config, make_item, MockOutfitGenerator(options=[FULL]))
    app.upload_portrait(b"face")
    outfit_id = asyncio.run(app.generate("Work")).outfits[0].outfit_id
    rendered_url = asyncio.run(app.visualize("Work", outfit_id)).cached.visualized_image_url

    assert app.delete_item("pants") is True

    state = app.state.state
    assert "Work" not in state.suggestions
    assert "Work" not in state.outfit_cache
    assert app.cache_store.fetch_active("user-1", state.items) == {}
    assert app.blob_store.remove(rendered_url) is False
