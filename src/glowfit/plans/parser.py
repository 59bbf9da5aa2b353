"""
Plan Parser.

Turns raw model output into a validated GeneratedPlan:

1. Strip Markdown code fences
2. Extract the first balanced JSON object
3. Reject truncated output (unbalanced braces/brackets)
4. Repair known model mistakes
5. Parse strictly, falling back to aggressive normalization once
6. Check the shape: exactly seven workout days and seven diet days
"""

import json
import logging
from typing import Any

from pydantic import ValidationError

from glowfit.errors import InvalidShapeError, UnparseableOutputError
from glowfit.models.plan import DAYS_PER_PLAN, DietDay, GeneratedPlan, PlanType, WorkoutDay
from glowfit.plans.repair import (
    check_balance,
    error_context,
    extract_json_object,
    normalize_aggressively,
    repair_json,
    strip_code_fences,
)

logger = logging.getLogger(__name__)


def parse_plan_text(raw: str, plan_type: PlanType = PlanType.BOTH) -> GeneratedPlan:
    """
    Parse model output into a GeneratedPlan.

    Args:
        raw: Model output, possibly fenced or wrapped in prose
        plan_type: Which halves the output must contain

    Raises:
        TruncatedOutputError: braces or brackets do not balance
        UnparseableOutputError: still not JSON after repair and normalization
        InvalidShapeError: parsed, but not seven days of each requested half
    """
    candidate = extract_json_object(strip_code_fences(raw))
    check_balance(candidate)
    data = parse_json_with_fallback(candidate)
    return validate_plan_shape(data, plan_type)


def parse_json_with_fallback(candidate: str) -> dict[str, Any]:
    """Strict parse of the repaired text, then one aggressive retry."""
    repaired = repair_json(candidate)
    try:
        return _load_object(repaired)
    except json.JSONDecodeError as e:
        logger.info(f"Strict parse failed ({e.msg} at {e.pos}); trying aggressive normalization")

    normalized = repair_json(normalize_aggressively(repaired))
    try:
        return _load_object(normalized)
    except json.JSONDecodeError as e:
        logger.warning(f"Plan output unparseable: {e.msg} at offset {e.pos}")
        raise UnparseableOutputError(e.msg, e.pos, error_context(normalized, e.pos)) from e


def _load_object(text: str) -> dict[str, Any]:
    data = json.loads(text)
    if not isinstance(data, dict):
        raise InvalidShapeError(f"top-level value is a {type(data).__name__}, expected an object")
    return data


def validate_plan_shape(data: dict[str, Any], plan_type: PlanType = PlanType.BOTH) -> GeneratedPlan:
    """
    Check that each requested half has exactly seven well-formed days.

    Raises:
        InvalidShapeError: a half is missing, has the wrong day count, or a day is malformed
    """
    workout_raw = data.get("workout")
    diet_raw = data.get("diet")
    workout_days = len(workout_raw) if isinstance(workout_raw, list) else None
    diet_days = len(diet_raw) if isinstance(diet_raw, list) else None

    halves = []
    if plan_type.includes_workout:
        halves.append(("workout", workout_raw, workout_days, WorkoutDay))
    if plan_type.includes_diet:
        halves.append(("diet", diet_raw, diet_days, DietDay))

    parsed: dict[str, list] = {"workout": [], "diet": []}
    for name, raw_days, count, model in halves:
        if count is None:
            raise InvalidShapeError(
                f"'{name}' is missing or not an array",
                workout_days=workout_days,
                diet_days=diet_days,
            )
        if count != DAYS_PER_PLAN:
            raise InvalidShapeError(
                f"'{name}' has {count} days, expected {DAYS_PER_PLAN}",
                workout_days=workout_days,
                diet_days=diet_days,
            )
        for index, day in enumerate(raw_days):
            try:
                parsed[name].append(model.model_validate(day))
            except ValidationError as e:
                first = e.errors()[0]
                location = ".".join(str(part) for part in first.get("loc", ())) or "day"
                raise InvalidShapeError(
                    f"'{name}' day {index + 1} is malformed: {location} {first.get('msg', 'invalid')}",
                    workout_days=workout_days,
                    diet_days=diet_days,
                ) from e

    return GeneratedPlan(workout=parsed["workout"], diet=parsed["diet"])
