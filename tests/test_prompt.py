"""
Tests for prompt rendering and workout split selection.
"""

import pytest

from conftest import make_profile_row
from glowfit.models.plan import PlanType
from glowfit.models.profile import ProfileSnapshot
from glowfit.plans.prompt import build_plan_prompt, select_workout_split


@pytest.fixture
def snapshot():
    return ProfileSnapshot.from_profile(make_profile_row())


class TestBuildPlanPrompt:
    """Tests for build_plan_prompt."""

    def test_is_deterministic(self, snapshot):
        assert build_plan_prompt(snapshot) == build_plan_prompt(snapshot)

    def test_uses_stored_calorie_target(self, snapshot):
        prompt = build_plan_prompt(snapshot)
        assert "Daily calorie target: 2100 kcal" in prompt
        assert "add up to 2100 kcal (±25 kcal)" in prompt
        assert "do not recalculate BMR, TDEE or calories" in prompt

    def test_includes_profile_answers(self, snapshot):
        prompt = build_plan_prompt(snapshot)
        assert "- Age: 30" in prompt
        assert "Allergies/food restrictions: peanuts" in prompt
        assert "Dietary preference: vegetarian" in prompt
        assert "Preferred workout time: morning" in prompt
        assert "Physique inspiration" not in prompt

    def test_both_halves_requested(self, snapshot):
        prompt = build_plan_prompt(snapshot)
        assert "7-day workout and 7-day meal plan" in prompt
        assert '"workout": [ 7 day objects' in prompt
        assert '"diet": [ 7 day objects' in prompt

    def test_workout_only(self, snapshot):
        prompt = build_plan_prompt(snapshot, PlanType.WORKOUT)
        assert "**WORKOUT PROGRAM:**" in prompt
        assert "**MEAL PLAN:**" not in prompt
        assert '"diet": [' not in prompt

    def test_diet_only(self, snapshot):
        prompt = build_plan_prompt(snapshot, "diet")
        assert "**MEAL PLAN:**" in prompt
        assert "**WORKOUT PROGRAM:**" not in prompt

    def test_maintain_goal_notes_current_weight(self):
        row = make_profile_row(fitness_goal="maintain-weight", target_weight_kg=None)
        prompt = build_plan_prompt(ProfileSnapshot.from_profile(row))
        assert "Goal weight: 70 kg (maintaining current weight)" in prompt

    def test_demands_json_only(self, snapshot):
        prompt = build_plan_prompt(snapshot)
        assert "Output exactly one JSON object and nothing else" in prompt
        assert prompt.endswith("Do NOT add explanations or any text outside the JSON object.")


class TestSelectWorkoutSplit:
    """Tests for split selection."""

    @pytest.mark.parametrize(
        ("experience", "goal", "expected"),
        [
            ("beginner", "lose-fat", "full-body"),
            ("Novice", "gain-muscle", "full-body"),
            ("intermediate", "lose-fat", "push-pull-legs"),
            ("advanced", "maintain-weight", "bodybuilder"),
            ("returning after a break", "gain-muscle", "push-pull-legs"),
            ("returning after a break", "lose-fat", "upper-lower"),
        ],
    )
    def test_split(self, snapshot, experience, goal, expected):
        profile = snapshot.model_copy(update={"fitness_experience": experience, "fitness_goal": goal})
        assert select_workout_split(profile) == expected

    def test_split_appears_in_prompt(self, snapshot):
        assert "Full Body Split" in build_plan_prompt(snapshot)
