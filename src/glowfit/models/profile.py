"""
Profile data contracts.

ProfileSnapshot is the frozen view of a user's answers used to build one
generation request. OnboardingProgress is the step cursor plus accumulated
answers as stored in user_profiles.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from glowfit.errors import ProfileValidationError

Gender = Literal["male", "female", "other"]
FitnessGoal = Literal["lose-fat", "gain-muscle", "maintain-weight", "other"]
ActivityLevel = Literal[
    "sedentary",
    "lightly-active",
    "moderately-active",
    "very-active",
    "super-active",
]

MAINTAIN_GOAL = "maintain-weight"

# Plausible physiological ranges shared by the onboarding form and the snapshot
AGE_RANGE = (13, 100)
HEIGHT_CM_RANGE = (100, 250)
WEIGHT_KG_RANGE = (30, 350)
TIMELINE_WEEKS_RANGE = (1, 104)
TARGET_CALORIES_RANGE = (800, 6000)

# Columns in user_profiles that are bookkeeping, not answers
PROGRESS_COLUMNS = {"id", "email", "onboarding_step", "onboarding_complete", "created_at", "updated_at"}


class ProfileSnapshot(BaseModel):
    """Immutable profile view used to render a generation prompt."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    user_id: str
    age: int = Field(ge=AGE_RANGE[0], le=AGE_RANGE[1])
    gender: Gender
    height_cm: float = Field(ge=HEIGHT_CM_RANGE[0], le=HEIGHT_CM_RANGE[1])
    weight_kg: float = Field(ge=WEIGHT_KG_RANGE[0], le=WEIGHT_KG_RANGE[1])
    target_weight_kg: float = Field(ge=WEIGHT_KG_RANGE[0], le=WEIGHT_KG_RANGE[1])
    target_timeline_weeks: int = Field(ge=TIMELINE_WEEKS_RANGE[0], le=TIMELINE_WEEKS_RANGE[1])
    fitness_goal: FitnessGoal
    fitness_experience: str = Field(min_length=1)
    activity_level: ActivityLevel
    dietary_preferences: str = Field(min_length=1)
    meal_frequency: str = Field(min_length=1)
    allergies: tuple[str, ...] = ()
    medical_conditions: tuple[str, ...] = ()
    preferred_workout_time: str = ""
    physique_inspiration: str = ""
    target_calories: int = Field(ge=TARGET_CALORIES_RANGE[0], le=TARGET_CALORIES_RANGE[1])
    bmr: float | None = None
    tdee: float | None = None

    @property
    def is_maintain_goal(self) -> bool:
        return self.fitness_goal == MAINTAIN_GOAL

    @classmethod
    def from_profile(cls, profile: dict[str, Any]) -> "ProfileSnapshot":
        """
        Build a snapshot from a stored profile row.

        Empty values count as missing. For a maintain-weight goal the target
        weight falls back to the current weight.

        Raises:
            ProfileValidationError: listing every missing or invalid field
        """
        data = {key: value for key, value in profile.items() if value not in (None, "", [])}
        if "user_id" not in data and "id" in data:
            data["user_id"] = data["id"]
        if data.get("fitness_goal") == MAINTAIN_GOAL and "target_weight_kg" not in data:
            if "weight_kg" in data:
                data["target_weight_kg"] = data["weight_kg"]
        for list_field in ("allergies", "medical_conditions"):
            value = data.get(list_field)
            if isinstance(value, list):
                data[list_field] = tuple(value)

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ProfileValidationError(fields_from_validation_error(e)) from e

    def to_record(self) -> dict[str, Any]:
        """JSON-safe dict for storing alongside a plan record."""
        return self.model_dump(mode="json")


class OnboardingProgress(BaseModel):
    """Step cursor, completion flag and merged answers for one user."""

    user_id: str
    current_step: int = 1
    complete: bool = False
    answers: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_row(cls, row: dict[str, Any], first_step: int = 1) -> "OnboardingProgress":
        """Build progress from a user_profiles row."""
        answers = {
            key: value
            for key, value in row.items()
            if key not in PROGRESS_COLUMNS and value is not None
        }
        return cls(
            user_id=row["id"],
            current_step=max(first_step, row.get("onboarding_step") or first_step),
            complete=bool(row.get("onboarding_complete")),
            answers=answers,
        )

    @property
    def has_calorie_target(self) -> bool:
        return bool(self.answers.get("target_calories"))


def fields_from_validation_error(error: ValidationError) -> dict[str, str]:
    """Flatten pydantic errors into {field: reason}."""
    fields: dict[str, str] = {}
    for item in error.errors():
        name = str(item["loc"][0]) if item.get("loc") else "__root__"
        reason = "missing" if item.get("type") == "missing" else item.get("msg", "invalid")
        fields.setdefault(name, reason)
    return fields
