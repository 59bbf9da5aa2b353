"""
Glowfit - Calorie targets.

Harris-Benedict BMR, activity-scaled TDEE and a goal-adjusted daily target.
Computed once per user during onboarding and stored on the profile; plan
generation uses the stored target and never recomputes it.
"""

import logging
import math

from pydantic import BaseModel, Field, ValidationError

from glowfit.db.profiles import ProfileStore
from glowfit.errors import ProfileValidationError
from glowfit.models.profile import (
    AGE_RANGE,
    HEIGHT_CM_RANGE,
    TARGET_CALORIES_RANGE,
    WEIGHT_KG_RANGE,
    ActivityLevel,
    FitnessGoal,
    Gender,
    fields_from_validation_error,
)

logger = logging.getLogger(__name__)

ACTIVITY_FACTORS: dict[str, float] = {
    "sedentary": 1.2,
    "lightly-active": 1.375,
    "moderately-active": 1.55,
    # Capped at moderately-active
    "very-active": 1.55,
    "super-active": 1.55,
}
CAPPED_ACTIVITY_LEVELS = {"very-active", "super-active"}
ACTIVITY_CAP_MESSAGE = (
    'Your activity level was capped at "Moderately active" for safety. This prevents '
    "overestimation unless you have manual labor plus intense training."
)

DEFICIT_KCAL = 450
SURPLUS_KCAL = 350

REQUIRED_FIELDS = ("age", "gender", "height_cm", "weight_kg", "activity_level", "fitness_goal")


class CalorieInputs(BaseModel):
    age: int = Field(ge=AGE_RANGE[0], le=AGE_RANGE[1])
    gender: Gender
    height_cm: float = Field(ge=HEIGHT_CM_RANGE[0], le=HEIGHT_CM_RANGE[1])
    weight_kg: float = Field(ge=WEIGHT_KG_RANGE[0], le=WEIGHT_KG_RANGE[1])
    activity_level: ActivityLevel
    fitness_goal: FitnessGoal


class CalorieTargets(BaseModel):
    bmr: float
    tdee: float
    target_calories: int
    activity_capped: bool = False
    activity_capped_message: str | None = None


def round_to_nearest_10(value: float) -> float:
    """Half-up rounding to a multiple of ten."""
    return math.floor(value / 10 + 0.5) * 10


def calculate_bmr(*, age: int, gender: str, height_cm: float, weight_kg: float) -> float:
    """Harris-Benedict BMR. Anything other than "female" uses the male formula."""
    if gender == "female":
        return 447.593 + 9.247 * weight_kg + 3.098 * height_cm - 4.330 * age
    return 88.362 + 13.397 * weight_kg + 4.799 * height_cm - 5.677 * age


def goal_adjusted_target(tdee: float, fitness_goal: str) -> float:
    if fitness_goal == "lose-fat":
        return tdee - DEFICIT_KCAL
    if fitness_goal == "gain-muscle":
        return tdee + SURPLUS_KCAL
    return tdee


def calculate_calories(inputs: CalorieInputs) -> CalorieTargets:
    """Compute BMR, TDEE and the daily target, each rounded to the nearest 10."""
    bmr = calculate_bmr(
        age=inputs.age,
        gender=inputs.gender,
        height_cm=inputs.height_cm,
        weight_kg=inputs.weight_kg,
    )
    tdee = bmr * ACTIVITY_FACTORS[inputs.activity_level]
    target = round_to_nearest_10(goal_adjusted_target(tdee, inputs.fitness_goal))

    low, high = TARGET_CALORIES_RANGE
    if not low <= target <= high:
        logger.warning(f"Calorie target {target:.0f} outside {low}-{high}; clamping")
        target = min(max(target, low), high)

    capped = inputs.activity_level in CAPPED_ACTIVITY_LEVELS
    return CalorieTargets(
        bmr=round_to_nearest_10(bmr),
        tdee=round_to_nearest_10(tdee),
        target_calories=int(target),
        activity_capped=capped,
        activity_capped_message=ACTIVITY_CAP_MESSAGE if capped else None,
    )


def has_calorie_inputs(answers: dict) -> bool:
    return all(answers.get(name) not in (None, "") for name in REQUIRED_FIELDS)


def inputs_from_answers(answers: dict) -> CalorieInputs:
    """
    Raises:
        ProfileValidationError: a required field is missing or out of range
    """
    try:
        return CalorieInputs.model_validate(
            {name: answers[name] for name in REQUIRED_FIELDS if answers.get(name) is not None}
        )
    except ValidationError as e:
        raise ProfileValidationError(fields_from_validation_error(e)) from e


async def ensure_calorie_target(profiles: ProfileStore, user_id: str) -> CalorieTargets | None:
    """
    Compute and store calorie targets for a user who has none yet.

    Returns:
        The stored or newly computed targets, or None if the profile is missing
        or not yet complete enough to compute from

    Raises:
        ProfileValidationError: the inputs are present but out of range
        PersistenceError: the profile could not be read or written
    """
    profile = await profiles.read_profile(user_id)
    if profile is None:
        logger.warning(f"No profile for user {user_id}; skipping calorie calculation")
        return None

    if profile.get("target_calories"):
        return CalorieTargets(
            bmr=profile.get("bmr") or 0,
            tdee=profile.get("tdee") or 0,
            target_calories=profile["target_calories"],
        )

    if not has_calorie_inputs(profile):
        logger.info(f"Profile for user {user_id} is missing calorie inputs; skipping")
        return None

    targets = calculate_calories(inputs_from_answers(profile))
    await profiles.write_calorie_targets(
        user_id,
        bmr=targets.bmr,
        tdee=targets.tdee,
        target_calories=targets.target_calories,
    )
    logger.info(f"Stored calorie target {targets.target_calories} kcal for user {user_id}")
    return targets
