"""
Profile Store.

Per-user user_profiles rows holding collected answers, the onboarding step
cursor and the completion flag. Every write is a single row update so the
answers and the cursor move together.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from supabase import Client

from glowfit.db.client import get_service_client, utc_now
from glowfit.errors import PersistenceError
from glowfit.models.profile import OnboardingProgress

logger = logging.getLogger(__name__)

PROFILES_TABLE = "user_profiles"


class ProfileStore(ABC):
    """Contract for reading and writing onboarding profiles."""

    first_step: int = 1

    @abstractmethod
    async def read_profile(self, user_id: str) -> dict[str, Any] | None:
        """Return the raw profile row, or None if the user has no profile."""

    @abstractmethod
    async def create_profile(self, user_id: str, email: str | None = None) -> OnboardingProgress:
        """Create an empty profile at the first step."""

    @abstractmethod
    async def write_profile(
        self,
        user_id: str,
        merge: dict[str, Any],
        next_step: int,
        complete: bool,
    ) -> OnboardingProgress:
        """Merge answers and move the cursor in one write."""

    @abstractmethod
    async def write_calorie_targets(
        self,
        user_id: str,
        *,
        bmr: float,
        tdee: float,
        target_calories: int,
    ) -> None:
        """Store computed calorie data without touching the step cursor."""

    @abstractmethod
    async def reset_progress(self, user_id: str) -> OnboardingProgress:
        """Move the cursor back to the first step and clear the completion flag."""

    async def read_progress(self, user_id: str) -> OnboardingProgress | None:
        row = await self.read_profile(user_id)
        if row is None:
            return None
        return OnboardingProgress.from_row(row, first_step=self.first_step)

    async def get_or_create(self, user_id: str, email: str | None = None) -> OnboardingProgress:
        """
        Load existing progress or create a new profile.

        Called on first profile access.
        """
        progress = await self.read_progress(user_id)
        if progress is not None:
            return progress
        logger.info(f"Creating onboarding profile for user {user_id}")
        return await self.create_profile(user_id, email)


class SupabaseProfileStore(ProfileStore):
    """ProfileStore backed by the user_profiles table."""

    def __init__(self, client: Client | None = None, first_step: int = 1):
        self._client = client
        self.first_step = first_step

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_service_client()
        return self._client

    async def read_profile(self, user_id: str) -> dict[str, Any] | None:
        try:
            result = (
                self.client.table(PROFILES_TABLE)
                .select("*")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to load profile for user {user_id}: {e}")
            raise PersistenceError(f"Failed to load profile: {e}") from e

        if not result.data:
            return None
        return result.data[0]

    async def create_profile(self, user_id: str, email: str | None = None) -> OnboardingProgress:
        row = {
            "id": user_id,
            "email": email,
            "onboarding_step": self.first_step,
            "onboarding_complete": False,
        }
        try:
            result = self.client.table(PROFILES_TABLE).upsert(row).execute()
        except Exception as e:
            logger.error(f"Failed to create profile for user {user_id}: {e}")
            raise PersistenceError(f"Failed to create profile: {e}") from e

        return OnboardingProgress.from_row(result.data[0] if result.data else row, self.first_step)

    async def write_profile(
        self,
        user_id: str,
        merge: dict[str, Any],
        next_step: int,
        complete: bool,
    ) -> OnboardingProgress:
        update = {
            **merge,
            "onboarding_step": next_step,
            "onboarding_complete": complete,
            "updated_at": utc_now(),
        }
        try:
            result = (
                self.client.table(PROFILES_TABLE)
                .update(update)
                .eq("id", user_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to save onboarding step for user {user_id}: {e}")
            raise PersistenceError(f"Failed to save onboarding step: {e}") from e

        if not result.data:
            raise PersistenceError(f"No profile row for user {user_id}")
        return OnboardingProgress.from_row(result.data[0], self.first_step)

    async def write_calorie_targets(
        self,
        user_id: str,
        *,
        bmr: float,
        tdee: float,
        target_calories: int,
    ) -> None:
        try:
            self.client.table(PROFILES_TABLE).update(
                {
                    "bmr": bmr,
                    "tdee": tdee,
                    "target_calories": target_calories,
                    "updated_at": utc_now(),
                }
            ).eq("id", user_id).execute()
        except Exception as e:
            logger.error(f"Failed to save calorie data for user {user_id}: {e}")
            raise PersistenceError(f"Failed to save calorie data: {e}") from e

    async def reset_progress(self, user_id: str) -> OnboardingProgress:
        return await self.write_profile(user_id, {}, self.first_step, False)
