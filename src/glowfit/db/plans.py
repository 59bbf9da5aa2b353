"""
Plan Store.

Tracks plan generation lifecycle (generating → completed | failed) in the
user_plans table. A partial unique index on (user_id) where is_active and
generation_status = 'generating' makes record creation the single-flight lock:
a second concurrent create fails atomically and is reported as a conflict.

Terminal writes are guarded on generation_status = 'generating' so a completed
or failed version is never mutated again.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from postgrest.exceptions import APIError
from supabase import Client

from glowfit.db.client import get_service_client, utc_now
from glowfit.errors import GenerationConflictError, PersistenceError
from glowfit.models.plan import PlanRecord, PlanStatus, PlanType

logger = logging.getLogger(__name__)

PLANS_TABLE = "user_plans"

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"


class PlanStore(ABC):
    """Contract for persisted, versioned plan records."""

    @abstractmethod
    async def read_active_plan(self, user_id: str) -> PlanRecord | None:
        """Return the user's active plan record, if any."""

    @abstractmethod
    async def get_plan(self, plan_id: str) -> PlanRecord | None:
        """Return a plan record by ID."""

    @abstractmethod
    async def latest_version(self, user_id: str) -> int:
        """Highest version ever created for the user (0 if none)."""

    @abstractmethod
    async def create_plan(
        self,
        user_id: str,
        version: int,
        snapshot: dict[str, Any],
        plan_type: PlanType = PlanType.BOTH,
    ) -> PlanRecord:
        """
        Create an active record in generating status.

        Raises:
            GenerationConflictError: another active record is already generating
        """

    @abstractmethod
    async def update_plan_status(
        self,
        plan_id: str,
        status: PlanStatus,
        *,
        workout_plan: list[dict[str, Any]] | None = None,
        diet_plan: list[dict[str, Any]] | None = None,
        error_message: str | None = None,
    ) -> PlanRecord | None:
        """Write a terminal status. Returns None if the record was not generating."""

    @abstractmethod
    async def deactivate_active_plans(self, user_id: str) -> list[str]:
        """
        Deactivate the user's active records that are not generating. Returns their IDs.

        A generating record stays active so it keeps holding the single-flight lock.
        """

    @abstractmethod
    async def activate_plan(self, plan_id: str) -> None:
        """Mark a record active again (used to undo a deactivation)."""


class SupabasePlanStore(PlanStore):
    """PlanStore backed by the user_plans table."""

    def __init__(self, client: Client | None = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_service_client()
        return self._client

    async def read_active_plan(self, user_id: str) -> PlanRecord | None:
        try:
            result = (
                self.client.table(PLANS_TABLE)
                .select("*")
                .eq("user_id", user_id)
                .eq("is_active", True)
                .order("plan_version", desc=True)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to read active plan for user {user_id}: {e}")
            raise PersistenceError(f"Failed to read active plan: {e}") from e

        if not result.data:
            return None
        return PlanRecord.from_row(result.data[0])

    async def get_plan(self, plan_id: str) -> PlanRecord | None:
        try:
            result = self.client.table(PLANS_TABLE).select("*").eq("id", plan_id).limit(1).execute()
        except Exception as e:
            logger.error(f"Failed to get plan {plan_id}: {e}")
            raise PersistenceError(f"Failed to get plan: {e}") from e

        if not result.data:
            return None
        return PlanRecord.from_row(result.data[0])

    async def latest_version(self, user_id: str) -> int:
        try:
            result = (
                self.client.table(PLANS_TABLE)
                .select("plan_version")
                .eq("user_id", user_id)
                .order("plan_version", desc=True)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to read plan version for user {user_id}: {e}")
            raise PersistenceError(f"Failed to read plan version: {e}") from e

        if not result.data:
            return 0
        return int(result.data[0]["plan_version"])

    async def create_plan(
        self,
        user_id: str,
        version: int,
        snapshot: dict[str, Any],
        plan_type: PlanType = PlanType.BOTH,
    ) -> PlanRecord:
        try:
            result = (
                self.client.table(PLANS_TABLE)
                .insert(
                    {
                        "user_id": user_id,
                        "plan_version": version,
                        "is_active": True,
                        "generation_status": PlanStatus.GENERATING.value,
                        "plan_type": plan_type.value,
                        "user_snapshot": snapshot,
                    }
                )
                .execute()
            )
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                logger.info(f"Concurrent plan generation rejected for user {user_id}")
                raise GenerationConflictError(user_id) from e
            logger.error(f"Failed to create plan for user {user_id}: {e}")
            raise PersistenceError(f"Failed to create plan entry: {e}") from e
        except Exception as e:
            logger.error(f"Failed to create plan for user {user_id}: {e}")
            raise PersistenceError(f"Failed to create plan entry: {e}") from e

        if not result.data:
            raise PersistenceError("Failed to create plan entry: no row returned")
        return PlanRecord.from_row(result.data[0])

    async def update_plan_status(
        self,
        plan_id: str,
        status: PlanStatus,
        *,
        workout_plan: list[dict[str, Any]] | None = None,
        diet_plan: list[dict[str, Any]] | None = None,
        error_message: str | None = None,
    ) -> PlanRecord | None:
        update: dict[str, Any] = {
            "generation_status": status.value,
            "updated_at": utc_now(),
        }
        if workout_plan is not None:
            update["workout_plan"] = workout_plan
        if diet_plan is not None:
            update["diet_plan"] = diet_plan
        if error_message is not None:
            update["error_message"] = error_message

        try:
            result = (
                self.client.table(PLANS_TABLE)
                .update(update)
                .eq("id", plan_id)
                .eq("generation_status", PlanStatus.GENERATING.value)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to update plan {plan_id} to {status.value}: {e}")
            raise PersistenceError(f"Failed to update plan: {e}") from e

        if not result.data:
            logger.warning(f"Plan {plan_id} was not generating; {status.value} write skipped")
            return None
        return PlanRecord.from_row(result.data[0])

    async def deactivate_active_plans(self, user_id: str) -> list[str]:
        try:
            result = (
                self.client.table(PLANS_TABLE)
                .update({"is_active": False, "updated_at": utc_now()})
                .eq("user_id", user_id)
                .eq("is_active", True)
                .neq("generation_status", PlanStatus.GENERATING.value)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to deactivate plans for user {user_id}: {e}")
            raise PersistenceError(f"Failed to deactivate plans: {e}") from e

        return [str(row["id"]) for row in (result.data or [])]

    async def activate_plan(self, plan_id: str) -> None:
        try:
            self.client.table(PLANS_TABLE).update(
                {"is_active": True, "updated_at": utc_now()}
            ).eq("id", plan_id).execute()
        except Exception as e:
            logger.error(f"Failed to re-activate plan {plan_id}: {e}")
            raise PersistenceError(f"Failed to re-activate plan: {e}") from e
