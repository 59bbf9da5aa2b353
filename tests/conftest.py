"""
Pytest configuration and fixtures for Glowfit tests.
"""

import asyncio
import json
import os
import uuid
from typing import Any
from unittest.mock import MagicMock

import pytest

# Set test environment before importing glowfit modules
os.environ["GLOWFIT_ENV"] = "development"
os.environ["GLOWFIT_LOG_PROMPTS"] = "0"
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "service-role-test")

from glowfit.db.client import utc_now  # noqa: E402
from glowfit.db.plans import PlanStore  # noqa: E402
from glowfit.db.profiles import ProfileStore  # noqa: E402
from glowfit.errors import GenerationConflictError, PersistenceError  # noqa: E402
from glowfit.llm.client import LLMResponse  # noqa: E402
from glowfit.models.plan import DAY_NAMES, PlanRecord, PlanStatus, PlanType  # noqa: E402
from glowfit.models.profile import OnboardingProgress  # noqa: E402


def run(coro):
    """Run a coroutine to completion in a fresh event loop."""
    return asyncio.run(coro)


# =============================================================================
# In-memory stores
# =============================================================================


class InMemoryProfileStore(ProfileStore):
    """ProfileStore over a dict of user_profiles rows."""

    def __init__(self, rows: dict[str, dict[str, Any]] | None = None, first_step: int = 1):
        self.rows: dict[str, dict[str, Any]] = {key: dict(value) for key, value in (rows or {}).items()}
        self.first_step = first_step
        self.fail_writes = False
        self.fail_reads = False
        self.writes: list[dict[str, Any]] = []
        self.calorie_writes: list[dict[str, Any]] = []

    async def read_profile(self, user_id: str) -> dict[str, Any] | None:
        if self.fail_reads:
            raise PersistenceError("profile store unreachable")
        row = self.rows.get(user_id)
        return dict(row) if row is not None else None

    async def create_profile(self, user_id: str, email: str | None = None) -> OnboardingProgress:
        if self.fail_writes:
            raise PersistenceError("profile store unreachable")
        self.rows[user_id] = {
            "id": user_id,
            "email": email,
            "onboarding_step": self.first_step,
            "onboarding_complete": False,
            "created_at": utc_now(),
            "updated_at": utc_now(),
        }
        return OnboardingProgress.from_row(self.rows[user_id], self.first_step)

    async def write_profile(
        self,
        user_id: str,
        merge: dict[str, Any],
        next_step: int,
        complete: bool,
    ) -> OnboardingProgress:
        if self.fail_writes:
            raise PersistenceError("profile store unreachable")
        if user_id not in self.rows:
            raise PersistenceError(f"No profile row for user {user_id}")
        self.writes.append({"merge": dict(merge), "next_step": next_step, "complete": complete})
        row = self.rows[user_id]
        row.update(merge)
        row["onboarding_step"] = next_step
        row["onboarding_complete"] = complete
        row["updated_at"] = utc_now()
        return OnboardingProgress.from_row(row, self.first_step)

    async def write_calorie_targets(self, user_id: str, *, bmr: float, tdee: float, target_calories: int) -> None:
        if self.fail_writes:
            raise PersistenceError("profile store unreachable")
        self.calorie_writes.append({"bmr": bmr, "tdee": tdee, "target_calories": target_calories})
        self.rows[user_id].update({"bmr": bmr, "tdee": tdee, "target_calories": target_calories})

    async def reset_progress(self, user_id: str) -> OnboardingProgress:
        return await self.write_profile(user_id, {}, self.first_step, False)


class InMemoryPlanStore(PlanStore):
    """
    PlanStore over a dict of user_plans rows.

    create_plan enforces the same rule as the partial unique index: one active
    generating record per user.
    """

    def __init__(self):
        self.rows: dict[str, dict[str, Any]] = {}
        self.fail_reads = 0
        self.fail_create = False
        self.read_count = 0

    def _user_rows(self, user_id: str) -> list[dict[str, Any]]:
        return [row for row in self.rows.values() if row["user_id"] == user_id]

    def add(self, user_id: str, version: int, status: PlanStatus, **fields: Any) -> PlanRecord:
        """Insert a record directly (test setup)."""
        plan_id = str(uuid.uuid4())
        self.rows[plan_id] = {
            "id": plan_id,
            "user_id": user_id,
            "plan_version": version,
            "is_active": fields.pop("is_active", True),
            "generation_status": status.value,
            "plan_type": fields.pop("plan_type", PlanType.BOTH.value),
            "workout_plan": fields.pop("workout_plan", None),
            "diet_plan": fields.pop("diet_plan", None),
            "error_message": fields.pop("error_message", None),
            "user_snapshot": {},
            "created_at": utc_now(),
            "updated_at": utc_now(),
        }
        return PlanRecord.from_row(self.rows[plan_id])

    def records(self, user_id: str) -> list[PlanRecord]:
        rows = sorted(self._user_rows(user_id), key=lambda row: row["plan_version"])
        return [PlanRecord.from_row(row) for row in rows]

    async def read_active_plan(self, user_id: str) -> PlanRecord | None:
        self.read_count += 1
        # Yield so concurrent requests interleave like real network reads
        await asyncio.sleep(0)
        if self.fail_reads:
            self.fail_reads -= 1
            raise PersistenceError("plan store unreachable")
        active = [row for row in self._user_rows(user_id) if row["is_active"]]
        if not active:
            return None
        return PlanRecord.from_row(max(active, key=lambda row: row["plan_version"]))

    async def get_plan(self, plan_id: str) -> PlanRecord | None:
        row = self.rows.get(plan_id)
        return PlanRecord.from_row(row) if row else None

    async def latest_version(self, user_id: str) -> int:
        return max((row["plan_version"] for row in self._user_rows(user_id)), default=0)

    async def create_plan(
        self,
        user_id: str,
        version: int,
        snapshot: dict[str, Any],
        plan_type: PlanType = PlanType.BOTH,
    ) -> PlanRecord:
        if self.fail_create:
            raise PersistenceError("insert failed")
        for row in self._user_rows(user_id):
            if row["is_active"] and row["generation_status"] == PlanStatus.GENERATING.value:
                raise GenerationConflictError(user_id)
        record = self.add(user_id, version, PlanStatus.GENERATING, plan_type=plan_type.value)
        self.rows[record.id]["user_snapshot"] = snapshot
        return PlanRecord.from_row(self.rows[record.id])

    async def update_plan_status(
        self,
        plan_id: str,
        status: PlanStatus,
        *,
        workout_plan: list[dict[str, Any]] | None = None,
        diet_plan: list[dict[str, Any]] | None = None,
        error_message: str | None = None,
    ) -> PlanRecord | None:
        row = self.rows.get(plan_id)
        if row is None or row["generation_status"] != PlanStatus.GENERATING.value:
            return None
        row["generation_status"] = status.value
        if workout_plan is not None:
            row["workout_plan"] = workout_plan
        if diet_plan is not None:
            row["diet_plan"] = diet_plan
        if error_message is not None:
            row["error_message"] = error_message
        row["updated_at"] = utc_now()
        return PlanRecord.from_row(row)

    async def deactivate_active_plans(self, user_id: str) -> list[str]:
        deactivated = []
        for row in self._user_rows(user_id):
            if row["is_active"] and row["generation_status"] != PlanStatus.GENERATING.value:
                row["is_active"] = False
                deactivated.append(row["id"])
        return deactivated

    async def activate_plan(self, plan_id: str) -> None:
        self.rows[plan_id]["is_active"] = True


# =============================================================================
# Model fake
# =============================================================================


class FakeLLM:
    """Async stand-in for call_llm_text returning queued outputs or raising queued errors."""

    def __init__(self, *outputs: str | Exception, finish_reason: str = "stop"):
        self.outputs = list(outputs)
        self.finish_reason = finish_reason
        self.prompts: list[str] = []
        self.calls: list[dict[str, Any]] = []
        self.gate: asyncio.Event | None = None

    async def __call__(self, prompt: str, *, max_tokens: int | None = None, temperature: float | None = None) -> LLMResponse:
        self.prompts.append(prompt)
        self.calls.append({"max_tokens": max_tokens, "temperature": temperature})
        if self.gate is not None:
            await self.gate.wait()
        output = self.outputs.pop(0) if len(self.outputs) > 1 else self.outputs[0]
        if isinstance(output, Exception):
            raise output
        return LLMResponse(text=output, model="fake-model", finish_reason=self.finish_reason)


# =============================================================================
# Sample data
# =============================================================================


def make_workout_days(count: int = 7) -> list[dict[str, Any]]:
    return [
        {
            "day": DAY_NAMES[i % 7],
            "type": "rest" if i == 6 else "push",
            "routine": [] if i == 6 else [
                {"exercise": "Bench Press", "sets": 4, "reps": "6-8", "rest": "2 min"},
                {"exercise": "Lateral Raise", "sets": 3, "reps": "12-15", "rest": "60 sec"},
            ],
        }
        for i in range(count)
    ]


def make_diet_days(count: int = 7, kcal_per_meal: int = 700) -> list[dict[str, Any]]:
    return [
        {
            "day": DAY_NAMES[i % 7],
            "meals": [
                {"meal": "Breakfast", "description": "Oats with berries", "kcal": kcal_per_meal},
                {"meal": "Lunch", "description": "Chicken and rice", "kcal": kcal_per_meal},
                {"meal": "Dinner", "description": "Salmon and greens", "kcal": kcal_per_meal},
            ],
        }
        for i in range(count)
    ]


def make_plan_json(workout_days: int = 7, diet_days: int = 7) -> str:
    return json.dumps({"workout": make_workout_days(workout_days), "diet": make_diet_days(diet_days)}, indent=2)


def make_profile_row(user_id: str = "user-1", **overrides: Any) -> dict[str, Any]:
    row = {
        "id": user_id,
        "email": "user@example.com",
        "fitness_goal": "lose-fat",
        "gender": "female",
        "age": 30,
        "height_cm": 165,
        "weight_kg": 70,
        "target_weight_kg": 62,
        "target_timeline_weeks": 16,
        "activity_level": "lightly-active",
        "fitness_experience": "beginner",
        "dietary_preferences": "vegetarian",
        "meal_frequency": "3 meals",
        "allergies": ["peanuts"],
        "medical_conditions": [],
        "preferred_workout_time": "morning",
        "physique_inspiration": "",
        "bmr": 1450,
        "tdee": 1990,
        "target_calories": 2100,
        "onboarding_step": 22,
        "onboarding_complete": True,
    }
    row.update(overrides)
    return row


@pytest.fixture
def profile_row():
    return make_profile_row()


@pytest.fixture
def profiles(profile_row):
    return InMemoryProfileStore({profile_row["id"]: profile_row})


@pytest.fixture
def plans():
    return InMemoryPlanStore()


@pytest.fixture
def valid_plan_text():
    return make_plan_json()


@pytest.fixture
def mock_supabase():
    """Mock Supabase client for unit tests."""
    mock_client = MagicMock()

    # Mock table operations
    mock_table = MagicMock()
    mock_table.select.return_value = mock_table
    mock_table.insert.return_value = mock_table
    mock_table.update.return_value = mock_table
    mock_table.upsert.return_value = mock_table
    mock_table.eq.return_value = mock_table
    mock_table.neq.return_value = mock_table
    mock_table.order.return_value = mock_table
    mock_table.limit.return_value = mock_table
    mock_table.execute.return_value = MagicMock(data=[])

    mock_client.table.return_value = mock_table

    return mock_client
