"""Credit and entitlement checks for chargeable actions."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, List, Optional

from memory.app_state import AppStateStore
from memory.user_profile import UserProfile, UserProfileService

logger = logging.getLogger(__name__)

GENERATION_COST = 1.0
VISUALIZATION_COST = 2.5
HD_VISUALIZATION_COST = 5.0
FREE_GENERATIONS = 15

CREDIT_PACKS: Dict[str, float] = {"starter": 50.0, "growth": 200.0, "pro": 500.0}
PREMIUM_PACK = "premium_monthly"
PREMIUM_BONUS_CREDITS = 1000.0


class OutOfCreditsError(Exception):
    """Raised when a charge cannot be covered by the user's balance."""

    def __init__(self, message: str = "OUT_OF_CREDITS") -> None:
        super().__init__(message)


class EntitlementProvider(ABC):
    @abstractmethod
    def has_credit(self, cost: float) -> bool:
        ...

    @abstractmethod
    def consume_credit(self, cost: float) -> None:
        """Charge ``cost``; raises :class:`OutOfCreditsError` when it cannot be covered."""

    @abstractmethod
    def get_active_entitlements(self) -> List[str]:
        ...


class ProfileCreditLedger(EntitlementProvider):
    """Credits tracked on the signed-in user's profile.

    Every charge counts towards ``total_generations``; the first
    ``FREE_GENERATIONS`` charges are free and premium members are never charged.
    """

    def __init__(self, profiles: UserProfileService, state: AppStateStore) -> None:
        self.profiles = profiles
        self.state = state

    def _profile(self) -> Optional[UserProfile]:
        return self.state.state.profile

    def _commit(self, profile: UserProfile) -> UserProfile:
        self.profiles.save(profile)
        self.state.set_profile(profile)
        return profile

    @staticmethod
    def _is_free(profile: UserProfile) -> bool:
        return profile.is_premium or profile.total_generations < FREE_GENERATIONS

    def has_credit(self, cost: float) -> bool:
        profile = self._profile()
        if profile is None:
            return False
        return self._is_free(profile) or profile.credits >= cost

    def consume_credit(self, cost: float) -> None:
        profile = self._profile()
        if profile is None or not self.has_credit(cost):
            logger.info("Charge refused", extra={"cost": cost})
            raise OutOfCreditsError()
        credits = profile.credits if self._is_free(profile) else profile.credits - cost
        self._commit(replace(profile, credits=credits, total_generations=profile.total_generations + 1))

    def get_active_entitlements(self) -> List[str]:
        profile = self._profile()
        if profile is None:
            return []
        entitlements = ["premium"] if profile.is_premium else []
        if profile.total_generations < FREE_GENERATIONS:
            entitlements.append("free_generations")
        return entitlements

    def grant_pack(self, pack_id: str) -> UserProfile:
        """Apply a completed purchase to the signed-in profile."""

        profile = self._profile()
        if profile is None:
            raise ValueError("No signed-in profile to credit")
        if pack_id == PREMIUM_PACK:
            updated = replace(profile, is_premium=True, credits=profile.credits + PREMIUM_BONUS_CREDITS)
        elif pack_id in CREDIT_PACKS:
            updated = replace(profile, credits=profile.credits + CREDIT_PACKS[pack_id])
        else:
            raise ValueError(f"Unknown credit pack: {pack_id}")
        logger.info("Granted credit pack", extra={"pack": pack_id})
        return self._commit(updated)


__all__ = [
    "CREDIT_PACKS",
    "EntitlementProvider",
    "FREE_GENERATIONS",
    "GENERATION_COST",
    "HD_VISUALIZATION_COST",
    "OutOfCreditsError",
    "PREMIUM_PACK",
    "ProfileCreditLedger",
    "VISUALIZATION_COST",
]
