"""
Onboarding Forms - Step answers.

Each onboarding step submits a small payload of profile answers. All of them
are validated against one model so a value is checked the same way no matter
which step sends it:
- Unknown fields are rejected
- Numeric answers must be inside plausible physiological ranges
- List answers are normalized (trimmed, lowercased, de-duplicated)
"""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from glowfit.errors import ProfileValidationError
from glowfit.models.profile import (
    AGE_RANGE,
    HEIGHT_CM_RANGE,
    TIMELINE_WEEKS_RANGE,
    WEIGHT_KG_RANGE,
    ActivityLevel,
    FitnessGoal,
    Gender,
    fields_from_validation_error,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Options
# =============================================================================

FITNESS_GOALS = ["lose-fat", "gain-muscle", "maintain-weight", "other"]
GENDERS = ["male", "female", "other"]
ACTIVITY_LEVELS = ["sedentary", "lightly-active", "moderately-active", "very-active", "super-active"]
EXPERIENCE_LEVELS = ["beginner", "intermediate", "advanced"]
MEAL_FREQUENCIES = ["2 meals", "3 meals", "3 meals + snacks", "5-6 small meals"]
WORKOUT_TIMES = ["morning", "afternoon", "evening", "flexible"]

# Which screen collects which answer in the default 22-step flow
STEP_FIELDS: dict[int, list[str]] = {
    4: ["fitness_goal"],
    5: ["gender"],
    6: ["age"],
    7: ["height_cm", "weight_kg"],
    9: ["physique_inspiration"],
    10: ["activity_level"],
    11: ["fitness_experience"],
    12: ["target_weight_kg", "target_timeline_weeks"],
    13: ["dietary_preferences", "allergies"],
    14: ["medical_conditions"],
    15: ["meal_frequency"],
    16: ["fitness_obstacles"],
    17: ["preferred_workout_time"],
    18: ["motivation_level"],
}


# =============================================================================
# Form Model
# =============================================================================

class OnboardingAnswers(BaseModel):
    """
    Answers a single step may submit. Every field is optional; only the
    fields actually sent are merged into the profile.
    """

    model_config = ConfigDict(extra="forbid")

    fitness_goal: FitnessGoal | None = None
    gender: Gender | None = None
    age: int | None = Field(default=None, ge=AGE_RANGE[0], le=AGE_RANGE[1])
    height_cm: float | None = Field(default=None, ge=HEIGHT_CM_RANGE[0], le=HEIGHT_CM_RANGE[1])
    weight_kg: float | None = Field(default=None, ge=WEIGHT_KG_RANGE[0], le=WEIGHT_KG_RANGE[1])
    target_weight_kg: float | None = Field(default=None, ge=WEIGHT_KG_RANGE[0], le=WEIGHT_KG_RANGE[1])
    target_timeline_weeks: int | None = Field(
        default=None,
        ge=TIMELINE_WEEKS_RANGE[0],
        le=TIMELINE_WEEKS_RANGE[1],
    )
    activity_level: ActivityLevel | None = None
    fitness_experience: str | None = Field(default=None, min_length=1, max_length=50)
    physique_inspiration: str | None = Field(default=None, max_length=200)
    dietary_preferences: str | None = Field(default=None, min_length=1, max_length=100)
    meal_frequency: str | None = Field(default=None, min_length=1, max_length=50)
    preferred_workout_time: str | None = Field(default=None, max_length=50)
    workout_frequency: int | None = Field(default=None, ge=1, le=7)
    workout_duration: int | None = Field(default=None, ge=10, le=240)
    motivation_level: int | None = Field(default=None, ge=1, le=10)
    additional_notes: str | None = Field(default=None, max_length=1000)

    allergies: list[str] | None = None
    medical_conditions: list[str] | None = None
    equipment_available: list[str] | None = None
    fitness_obstacles: list[str] | None = None

    @field_validator("allergies", "medical_conditions", "equipment_available", "fitness_obstacles", mode="before")
    @classmethod
    def normalize_list(cls, v: Any) -> list[str] | None:
        """Trim, lowercase and de-duplicate list answers, dropping empties."""
        if v is None:
            return None
        if isinstance(v, str):
            v = [v]
        normalized = []
        for item in v:
            if not isinstance(item, str) or not item.strip():
                continue
            value = item.lower().strip()
            if value not in normalized:
                normalized.append(value)
        return normalized

    @field_validator("fitness_experience", "dietary_preferences", "meal_frequency", "preferred_workout_time", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v


def validate_answers(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Validate a step payload and return only the fields it actually set.

    Raises:
        ProfileValidationError: unknown field or out-of-range value
    """
    try:
        form = OnboardingAnswers.model_validate(payload)
    except ValidationError as e:
        raise ProfileValidationError(fields_from_validation_error(e)) from e

    answers = form.model_dump(mode="json", exclude_unset=True)
    return {key: value for key, value in answers.items() if value is not None}


def get_form_options() -> dict[str, Any]:
    """Selectable values for the choice-based steps."""
    return {
        "fitness_goals": FITNESS_GOALS,
        "genders": GENDERS,
        "activity_levels": ACTIVITY_LEVELS,
        "experience_levels": EXPERIENCE_LEVELS,
        "meal_frequencies": MEAL_FREQUENCIES,
        "workout_times": WORKOUT_TIMES,
        "ranges": {
            "age": AGE_RANGE,
            "height_cm": HEIGHT_CM_RANGE,
            "weight_kg": WEIGHT_KG_RANGE,
            "target_timeline_weeks": TIMELINE_WEEKS_RANGE,
        },
        "step_fields": STEP_FIELDS,
    }
