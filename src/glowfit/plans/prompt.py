"""
Plan Prompt - Instruction text for one generation call.

The prompt is a pure function of the snapshot and plan type: the same inputs
always render the same text. The model is told to use the stored calorie
target as-is and never recompute BMR/TDEE.
"""

from glowfit.models.plan import DAYS_PER_PLAN, PlanType
from glowfit.models.profile import ProfileSnapshot

CALORIE_TOLERANCE_KCAL = 25


# =============================================================================
# Workout splits
# =============================================================================

WORKOUT_SPLITS = {
    "full-body": """**Full Body Split (3 days/week - Mon/Wed/Fri):**
- Monday: Full Body A (Squat, Bench Press, Row, Overhead Press, Bicep Curl, Tricep Extension)
- Wednesday: Full Body B (Deadlift, Incline Press, Pull-up, Lateral Raise, Hammer Curl, Close-grip Press)
- Friday: Full Body C (Lunges, Chest Fly, Lat Pulldown, Face Pull, Preacher Curl, Overhead Extension)
- Tuesday, Thursday, Saturday, Sunday: Rest""",
    "upper-lower": """**Upper/Lower Split (4 days/week - Mon/Tue/Thu/Fri):**
- Monday: Upper Body A (Bench Press, Row, Overhead Press, Lat Pulldown, Bicep Curl, Tricep Dip)
- Tuesday: Lower Body A (Squat, Romanian Deadlift, Leg Press, Leg Curl, Calf Raise, Hip Thrust)
- Thursday: Upper Body B (Incline Press, Pull-up, Lateral Raise, Face Pull, Hammer Curl, Close-grip Press)
- Friday: Lower Body B (Deadlift, Bulgarian Split Squat, Leg Extension, Leg Curl, Standing Calf Raise, Glute Bridge)
- Wednesday, Saturday, Sunday: Rest""",
    "push-pull-legs": """**Push/Pull/Legs Split (6 days/week):**
- Monday: Push A (Bench Press, Overhead Press, Incline Press, Lateral Raise, Tricep Dip, Overhead Extension)
- Tuesday: Pull A (Deadlift, Pull-up, Row, Face Pull, Bicep Curl, Hammer Curl)
- Wednesday: Legs A (Squat, Romanian Deadlift, Leg Press, Leg Curl, Calf Raise, Hip Thrust)
- Thursday: Push B (Incline Press, Overhead Press, Chest Fly, Lateral Raise, Close-grip Press, Tricep Extension)
- Friday: Pull B (Barbell Row, Lat Pulldown, Face Pull, Rear Delt Fly, Preacher Curl, Cable Curl)
- Saturday: Legs B (Deadlift, Bulgarian Split Squat, Leg Extension, Leg Curl, Standing Calf Raise, Glute Bridge)
- Sunday: Rest""",
    "bodybuilder": """**Bodybuilder Split (6 days/week):**
- Monday: Chest/Triceps (Bench Press, Incline Press, Chest Fly, Dips, Close-grip Press, Overhead Extension)
- Tuesday: Back/Biceps (Deadlift, Pull-up, Row, Lat Pulldown, Bicep Curl, Hammer Curl)
- Wednesday: Shoulders (Overhead Press, Lateral Raise, Face Pull, Rear Delt Fly, Shrug, Upright Row)
- Thursday: Legs (Squat, Romanian Deadlift, Leg Press, Leg Curl, Calf Raise, Hip Thrust)
- Friday: Arms (Bicep Curl, Tricep Dip, Hammer Curl, Close-grip Press, Preacher Curl, Overhead Extension)
- Saturday: Rest/Active Recovery
- Sunday: Rest""",
}

EXERCISES_PER_DAY = {
    "full-body": "6-8",
    "upper-lower": "6-8",
    "push-pull-legs": "5-7",
    "bodybuilder": "4-6",
}


def select_workout_split(snapshot: ProfileSnapshot) -> str:
    """Pick a split from experience first, then goal."""
    experience = snapshot.fitness_experience.lower()
    goal = snapshot.fitness_goal.lower()

    if "beginner" in experience or "novice" in experience:
        return "full-body"
    if "intermediate" in experience:
        return "push-pull-legs"
    if "advanced" in experience or "expert" in experience:
        return "bodybuilder"
    if "muscle" in goal or "strength" in goal:
        return "push-pull-legs"
    return "upper-lower"


# =============================================================================
# Sections
# =============================================================================

WORKOUT_RULES = """**EXERCISE VARIETY RULES:**
- Never create a training day with only one exercise
- Every exercise has a specific name, sets (3-5), reps (e.g. "8-12") and rest (e.g. "90 sec")
- If a muscle group appears on several days, use different exercises each time
- Vary rep ranges across the week: heavy (4-6), moderate (8-12), light (12-15)
- Progress from compound to isolation movements within each session
- Rest days are included as days with "type": "rest" and an empty routine
- Include at least one full rest day per week"""

DIET_RULES = """**MEAL VARIETY RULES:**
- Use healthy, minimally processed whole foods
- Do not repeat the same meal on consecutive days
- Vary protein sources, vegetables, grains and cooking methods across the week
- Every meal lists kcal, protein_g, carbs_g, fat_g, ingredients with amounts,
  step-by-step instructions, cooking_time and serving_size"""

JSON_RULES = """**OUTPUT FORMAT (STRICT):**
- Output exactly one JSON object and nothing else: no Markdown, no code fences, no commentary
- Every property name and every string value uses double quotes
- Numbers are never quoted ("sets": 3, not "sets": "3")
- Rep ranges, durations and intensities are strings ("reps": "8-12", "rest": "2 min", "intensity": "moderate")
- No trailing commas, no comments"""

EXAMPLE_WORKOUT_DAY = """{
  "day": "Monday",
  "type": "push",
  "routine": [
    { "exercise": "Bench Press", "sets": 4, "reps": "6-8", "rest": "2-3 min" },
    { "exercise": "Overhead Press", "sets": 3, "reps": "8-10", "rest": "2 min" }
  ]
}"""

EXAMPLE_DIET_DAY = """{
  "day": "Monday",
  "meals": [
    {
      "meal": "Breakfast",
      "description": "Tofu scramble with vegetables",
      "kcal": 450,
      "protein_g": 20,
      "carbs_g": 50,
      "fat_g": 15,
      "ingredients": ["200g firm tofu", "1/2 cup mixed vegetables", "1 tbsp olive oil"],
      "instructions": ["Press the tofu", "Heat the oil", "Cook tofu and vegetables for 6 minutes"],
      "cooking_time": "15 minutes",
      "serving_size": "1 serving"
    }
  ],
  "total_calories": 2000
}"""


def _join(values: tuple[str, ...]) -> str:
    return ", ".join(values) if values else "None"


def _profile_section(snapshot: ProfileSnapshot) -> str:
    goal_weight = f"{snapshot.target_weight_kg:g} kg"
    if snapshot.is_maintain_goal:
        goal_weight += " (maintaining current weight)"

    lines = [
        "**User Profile:**",
        f"- Age: {snapshot.age}",
        f"- Gender: {snapshot.gender}",
        f"- Height: {snapshot.height_cm:g} cm",
        f"- Current weight: {snapshot.weight_kg:g} kg",
        f"- Goal weight: {goal_weight}",
        f"- Goal: {snapshot.fitness_goal}",
        f"- Goal timeframe: {snapshot.target_timeline_weeks} weeks",
        f"- Fitness level: {snapshot.fitness_experience}",
        f"- Activity level: {snapshot.activity_level}",
        f"- Dietary preference: {snapshot.dietary_preferences}",
        f"- Meal frequency: {snapshot.meal_frequency}",
        f"- Allergies/food restrictions: {_join(snapshot.allergies)}",
        f"- Medical conditions: {_join(snapshot.medical_conditions)}",
        f"- Daily calorie target: {snapshot.target_calories} kcal",
    ]
    if snapshot.preferred_workout_time:
        lines.append(f"- Preferred workout time: {snapshot.preferred_workout_time}")
    if snapshot.physique_inspiration:
        lines.append(f"- Physique inspiration: {snapshot.physique_inspiration}")
    return "\n".join(lines)


def _workout_section(snapshot: ProfileSnapshot) -> str:
    split = select_workout_split(snapshot)
    return f"""**WORKOUT PROGRAM:**
Based on fitness level "{snapshot.fitness_experience}", use the {split} split with
{EXERCISES_PER_DAY[split]} exercises per training day.

{WORKOUT_SPLITS[split]}

{WORKOUT_RULES}"""


def _diet_section(snapshot: ProfileSnapshot) -> str:
    return f"""**MEAL PLAN:**
- Each day's meals add up to {snapshot.target_calories} kcal (±{CALORIE_TOLERANCE_KCAL} kcal)
- Report each day's sum as "total_calories"
- Avoid every allergy and restriction: {_join(snapshot.allergies)}
- Follow the dietary preference: {snapshot.dietary_preferences}
- Structure each day for this meal frequency: {snapshot.meal_frequency}

{DIET_RULES}"""


def _shape_section(plan_type: PlanType) -> str:
    keys = []
    examples = []
    if plan_type.includes_workout:
        keys.append(f'"workout": [ {DAYS_PER_PLAN} day objects, Monday to Sunday ]')
        examples.append(f"Example workout day:\n{EXAMPLE_WORKOUT_DAY}")
    if plan_type.includes_diet:
        keys.append(f'"diet": [ {DAYS_PER_PLAN} day objects, Monday to Sunday ]')
        examples.append(f"Example diet day:\n{EXAMPLE_DIET_DAY}")

    structure = "{\n  " + ",\n  ".join(keys) + "\n}"
    return f"""The response must have exactly this structure:
{structure}

{JSON_RULES}

""" + "\n\n".join(examples)


def build_plan_prompt(snapshot: ProfileSnapshot, plan_type: PlanType = PlanType.BOTH) -> str:
    """
    Render the generation prompt for a snapshot.

    Args:
        snapshot: Validated profile view
        plan_type: Which halves to request

    Returns:
        Prompt text (deterministic for the same inputs)
    """
    plan_type = PlanType(plan_type)
    halves = []
    if plan_type.includes_workout:
        halves.append(f"{DAYS_PER_PLAN}-day workout")
    if plan_type.includes_diet:
        halves.append(f"{DAYS_PER_PLAN}-day meal")

    sections = [
        "You are an expert personal trainer and sports nutritionist.",
        f"Generate a fully personalized {' and '.join(halves)} plan for the user below. "
        "Use ONLY the provided daily calorie target; do not recalculate BMR, TDEE or calories.",
        _profile_section(snapshot),
    ]
    if plan_type.includes_workout:
        sections.append(_workout_section(snapshot))
    if plan_type.includes_diet:
        sections.append(_diet_section(snapshot))
    sections.append(_shape_section(plan_type))
    sections.append("Do NOT add explanations or any text outside the JSON object.")

    return "\n\n".join(sections)
