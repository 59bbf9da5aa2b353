"""
Plan data contracts.

A PlanRecord is one persisted generation attempt (one version) and its outcome.
GenerationStatus is the caller-facing view derived from the active record.
"""

import re
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DAYS_PER_PLAN = 7
DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

_LEADING_NUMBER_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)")


def leading_number(value: Any) -> float | None:
    """Numeric value of `2100`, `"2100"` or `"2100 kcal"`; None for anything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = _LEADING_NUMBER_RE.match(value)
        if match:
            return float(match.group(1))
    return None


class PlanStatus(str, Enum):
    """Persisted generation status of a plan record."""
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class PlanType(str, Enum):
    """Which halves of the weekly plan a request generates."""
    BOTH = "both"
    WORKOUT = "workout"
    DIET = "diet"

    @property
    def includes_workout(self) -> bool:
        return self in (PlanType.BOTH, PlanType.WORKOUT)

    @property
    def includes_diet(self) -> bool:
        return self in (PlanType.BOTH, PlanType.DIET)


class GenerationState(str, Enum):
    """Caller-facing generation state."""
    IDLE = "idle"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (GenerationState.COMPLETED, GenerationState.FAILED)


# =============================================================================
# Day entries
# =============================================================================


class WorkoutDay(BaseModel):
    """One day of the workout plan. Unknown keys are preserved."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    day: str
    type: str | None = None
    routine: list[dict[str, Any]]


class DietDay(BaseModel):
    """One day of the diet plan. Unknown keys are preserved."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    day: str
    meals: list[dict[str, Any]]
    total_calories: float | None = None

    @field_validator("total_calories", mode="before")
    @classmethod
    def parse_calorie_string(cls, v: Any) -> Any:
        """Accept "2100 kcal" as left behind by unit quoting."""
        if isinstance(v, str):
            number = leading_number(v)
            return number if number is not None else v
        return v

    def meal_calories(self) -> float:
        """Sum of the kcal values reported for this day's meals."""
        total = 0.0
        for meal in self.meals:
            kcal = leading_number(meal.get("kcal"))
            if kcal is not None:
                total += kcal
        return total


class GeneratedPlan(BaseModel):
    """Validated output of one generation call."""

    workout: list[WorkoutDay] = Field(default_factory=list)
    diet: list[DietDay] = Field(default_factory=list)

    def workout_body(self) -> list[dict[str, Any]]:
        return [day.model_dump(exclude_none=True) for day in self.workout]

    def diet_body(self) -> list[dict[str, Any]]:
        return [day.model_dump(exclude_none=True) for day in self.diet]


# =============================================================================
# Records
# =============================================================================


class PlanRecord(BaseModel):
    """One row of user_plans."""

    id: str
    user_id: str
    version: int
    is_active: bool = True
    status: PlanStatus = PlanStatus.GENERATING
    plan_type: PlanType = PlanType.BOTH
    workout_plan: list[dict[str, Any]] = Field(default_factory=list)
    diet_plan: list[dict[str, Any]] = Field(default_factory=list)
    error_message: str | None = None
    profile_snapshot: dict[str, Any] = Field(default_factory=dict)
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "PlanRecord":
        """Map a user_plans row (column names as stored) to a record."""
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            version=row.get("plan_version") or 1,
            is_active=bool(row.get("is_active", True)),
            status=PlanStatus(row.get("generation_status") or PlanStatus.GENERATING.value),
            plan_type=PlanType(row.get("plan_type") or PlanType.BOTH.value),
            workout_plan=row.get("workout_plan") or [],
            diet_plan=row.get("diet_plan") or [],
            error_message=row.get("error_message"),
            profile_snapshot=row.get("user_snapshot") or {},
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    @property
    def has_full_body(self) -> bool:
        return len(self.workout_plan) == DAYS_PER_PLAN and len(self.diet_plan) == DAYS_PER_PLAN


class GenerationStatus(BaseModel):
    """What a caller sees when asking "is my plan ready?"."""

    user_id: str
    state: GenerationState
    plan_id: str | None = None
    version: int | None = None
    error_message: str | None = None
    observed_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())

    @classmethod
    def from_record(cls, user_id: str, record: PlanRecord | None) -> "GenerationStatus":
        if record is None:
            return cls(user_id=user_id, state=GenerationState.IDLE)
        return cls(
            user_id=user_id,
            state=GenerationState(record.status.value),
            plan_id=record.id,
            version=record.version,
            error_message=record.error_message,
        )

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal
