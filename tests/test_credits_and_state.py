"""Profile service, credit ledger and application state tests."""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from memory.app_state import AppState, AppStateStore
from memory.user_profile import STARTUP_CREDITS, UserProfile, UserProfileService
from models.outfit import CachedOutfit, Outfit
from tools.entitlement_provider import (
    FREE_GENERATIONS,
    GENERATION_COST,
    HD_VISUALIZATION_COST,
    VISUALIZATION_COST,
    OutOfCreditsError,
    ProfileCreditLedger,
)


@pytest.fixture()
def profiles(tmp_path: Path) -> UserProfileService:
    return UserProfileService(str(tmp_path / "profiles"))


def _ledger(profiles: UserProfileService, profile: UserProfile) -> ProfileCreditLedger:
    state = AppStateStore()
    state.set_profile(profiles.save(profile))
    return ProfileCreditLedger(profiles, state)


def test_new_profiles_get_startup_credits(profiles: UserProfileService) -> None:
    profile = profiles.get_or_create("new-user", email="new@example.com")
    assert profile.credits == STARTUP_CREDITS == 50.0
    assert profiles.get_profile("new-user") == profile

    updated = profiles.update("new-user", {"preferred_style": "minimal", "unknown": 1, "user_id": "hijack"})
    assert updated.preferred_style == "minimal"
    assert updated.user_id == "new-user"
    assert updated.styling_hints() == {"preferred_style": "minimal", "language": "en"}

    assert profiles.delete("new-user") is True
    assert profiles.get_profile("new-user") is None


def test_free_generations_are_not_charged(profiles: UserProfileService) -> None:
    ledger = _ledger(profiles, UserProfile(user_id="u", credits=0))
    for _ in range(FREE_GENERATIONS):
        assert ledger.has_credit(GENERATION_COST)
        ledger.consume_credit(GENERATION_COST)

    assert ledger.state.state.profile.total_generations == FREE_GENERATIONS
    assert ledger.has_credit(GENERATION_COST) is False
    with pytest.raises(OutOfCreditsError) as excinfo:
        ledger.consume_credit(GENERATION_COST)
    assert str(excinfo.value) == "OUT_OF_CREDITS"


def test_paid_charges_deduct_costs(profiles: UserProfileService) -> None:
    ledger = _ledger(profiles, UserProfile(user_id="u", credits=8, total_generations=FREE_GENERATIONS))

    ledger.consume_credit(VISUALIZATION_COST)
    assert ledger.state.state.profile.credits == 5.5
    ledger.consume_credit(HD_VISUALIZATION_COST)
    assert profiles.get_profile("u").credits == 0.5
    assert ledger.has_credit(GENERATION_COST) is False


def test_premium_bypasses_credit_check(profiles: UserProfileService) -> None:
    ledger = _ledger(profiles, UserProfile(user_id="u", credits=0, total_generations=99, is_premium=True))
    assert ledger.has_credit(HD_VISUALIZATION_COST)
    ledger.consume_credit(HD_VISUALIZATION_COST)
    assert ledger.state.state.profile.credits == 0
    assert ledger.get_active_entitlements() == ["premium"]


def test_no_profile_means_no_credit(profiles: UserProfileService) -> None:
    ledger = ProfileCreditLedger(profiles, AppStateStore())
    assert ledger.has_credit(GENERATION_COST) is False
    assert ledger.get_active_entitlements() == []
    with pytest.raises(OutOfCreditsError):
        ledger.consume_credit(GENERATION_COST)


def test_credit_packs(profiles: UserProfileService) -> None:
    ledger = _ledger(profiles, UserProfile(user_id="u", credits=1))

    assert ledger.grant_pack("growth").credits == 201
    premium = ledger.grant_pack("premium_monthly")
    assert premium.is_premium is True
    assert premium.credits == 1201
    assert profiles.get_profile("u").is_premium is True
    with pytest.raises(ValueError):
        ledger.grant_pack("mega")


def test_state_updates_replace_snapshots(make_item) -> None:
    store = AppStateStore()
    before = store.state
    top, bottom = make_item("t"), make_item("b", "Bottoms")

    store.set_items([top])
    after_items = store.prepend_item(bottom)

    assert before.items == ()
    assert after_items.items == (bottom, top)
    with pytest.raises(FrozenInstanceError):
        after_items.hydrated = True  # type: ignore[misc]

    outfit = Outfit("o1", "Look", [top, bottom], "", "Work")
    store.set_suggestions("Work", [outfit])
    snapshot = store.state
    store.clear_suggestions("Work")
    assert snapshot.find_suggestion("Work", "o1") is outfit
    assert store.state.find_suggestion("Work", "o1") is None

    cached = CachedOutfit(outfit=outfit, visualized_image_url=None)
    store.put_cached_outfit("Work", cached)
    with_cache = store.state
    store.drop_cached_outfit("Work")
    assert with_cache.outfit_cache == {"Work": cached}
    assert store.state.outfit_cache == {}

    store.extend_history("Work", ["b,t"])
    store.extend_history("Work", ["b,t", "t"])
    assert store.state.history["Work"] == ("b,t", "t")

    store.remove_item("t")
    assert [item.item_id for item in store.state.items] == ["b"]
    assert store.clear() == AppState()
