"""
Tests for the Supabase-backed stores against a mocked client.
"""

from unittest.mock import MagicMock

import pytest
from postgrest.exceptions import APIError

from conftest import run
from glowfit.db.plans import SupabasePlanStore
from glowfit.db.profiles import SupabaseProfileStore
from glowfit.errors import GenerationConflictError, PersistenceError
from glowfit.models.plan import PlanStatus, PlanType


def _plan_row(**overrides):
    row = {
        "id": "plan-1",
        "user_id": "user-1",
        "plan_version": 2,
        "is_active": True,
        "generation_status": "generating",
        "plan_type": "both",
        "workout_plan": None,
        "diet_plan": None,
        "error_message": None,
        "user_snapshot": {"age": 30},
    }
    row.update(overrides)
    return row


class TestSupabasePlanStore:
    """Tests for SupabasePlanStore."""

    def test_read_active_plan_maps_row(self, mock_supabase):
        table = mock_supabase.table.return_value
        table.execute.return_value = MagicMock(data=[_plan_row(generation_status="completed")])
        store = SupabasePlanStore(mock_supabase)

        record = run(store.read_active_plan("user-1"))

        mock_supabase.table.assert_called_with("user_plans")
        table.eq.assert_any_call("is_active", True)
        assert record.id == "plan-1"
        assert record.version == 2
        assert record.status == PlanStatus.COMPLETED

    def test_read_active_plan_none(self, mock_supabase):
        assert run(SupabasePlanStore(mock_supabase).read_active_plan("user-1")) is None

    def test_read_failure_is_persistence_error(self, mock_supabase):
        mock_supabase.table.return_value.execute.side_effect = ConnectionError("reset by peer")
        with pytest.raises(PersistenceError):
            run(SupabasePlanStore(mock_supabase).read_active_plan("user-1"))

    def test_latest_version(self, mock_supabase):
        mock_supabase.table.return_value.execute.return_value = MagicMock(data=[{"plan_version": 4}])
        assert run(SupabasePlanStore(mock_supabase).latest_version("user-1")) == 4

    def test_latest_version_without_records(self, mock_supabase):
        assert run(SupabasePlanStore(mock_supabase).latest_version("user-1")) == 0

    def test_create_plan(self, mock_supabase):
        table = mock_supabase.table.return_value
        table.execute.return_value = MagicMock(data=[_plan_row(plan_type="diet")])
        store = SupabasePlanStore(mock_supabase)

        record = run(store.create_plan("user-1", 2, {"age": 30}, PlanType.DIET))

        inserted = table.insert.call_args[0][0]
        assert inserted["generation_status"] == "generating"
        assert inserted["is_active"] is True
        assert inserted["plan_type"] == "diet"
        assert inserted["user_snapshot"] == {"age": 30}
        assert record.plan_type == PlanType.DIET

    def test_unique_violation_is_conflict(self, mock_supabase):
        mock_supabase.table.return_value.execute.side_effect = APIError(
            {"code": "23505", "message": "duplicate key value violates unique constraint"}
        )
        with pytest.raises(GenerationConflictError):
            run(SupabasePlanStore(mock_supabase).create_plan("user-1", 2, {}))

    def test_other_api_error_is_persistence_error(self, mock_supabase):
        mock_supabase.table.return_value.execute.side_effect = APIError(
            {"code": "42501", "message": "permission denied"}
        )
        with pytest.raises(PersistenceError):
            run(SupabasePlanStore(mock_supabase).create_plan("user-1", 2, {}))

    def test_terminal_write_is_guarded_on_generating(self, mock_supabase):
        table = mock_supabase.table.return_value
        table.execute.return_value = MagicMock(data=[_plan_row(generation_status="failed", error_message="x")])
        store = SupabasePlanStore(mock_supabase)

        record = run(store.update_plan_status("plan-1", PlanStatus.FAILED, error_message="x"))

        table.eq.assert_any_call("generation_status", "generating")
        update = table.update.call_args[0][0]
        assert update["generation_status"] == "failed"
        assert update["error_message"] == "x"
        assert "workout_plan" not in update
        assert record.status == PlanStatus.FAILED

    def test_terminal_write_on_finished_record_returns_none(self, mock_supabase):
        store = SupabasePlanStore(mock_supabase)
        assert run(store.update_plan_status("plan-1", PlanStatus.COMPLETED)) is None

    def test_deactivate_skips_generating_records(self, mock_supabase):
        table = mock_supabase.table.return_value
        table.execute.return_value = MagicMock(data=[{"id": "a"}, {"id": "b"}])

        ids = run(SupabasePlanStore(mock_supabase).deactivate_active_plans("user-1"))

        assert ids == ["a", "b"]
        table.neq.assert_called_with("generation_status", "generating")


class TestSupabaseProfileStore:
    """Tests for SupabaseProfileStore."""

    def test_write_profile_moves_cursor_with_answers(self, mock_supabase):
        table = mock_supabase.table.return_value
        table.execute.return_value = MagicMock(data=[
            {"id": "user-1", "onboarding_step": 6, "onboarding_complete": False, "gender": "female"},
        ])
        store = SupabaseProfileStore(mock_supabase)

        progress = run(store.write_profile("user-1", {"gender": "female"}, 6, False))

        update = table.update.call_args[0][0]
        assert update["gender"] == "female"
        assert update["onboarding_step"] == 6
        assert update["onboarding_complete"] is False
        assert progress.current_step == 6
        assert progress.answers == {"gender": "female"}

    def test_write_profile_without_row_fails(self, mock_supabase):
        with pytest.raises(PersistenceError):
            run(SupabaseProfileStore(mock_supabase).write_profile("user-1", {}, 2, False))

    def test_get_or_create_creates_missing_profile(self, mock_supabase):
        table = mock_supabase.table.return_value
        store = SupabaseProfileStore(mock_supabase, first_step=1)

        progress = run(store.get_or_create("user-1", "user@example.com"))

        row = table.upsert.call_args[0][0]
        assert row["id"] == "user-1"
        assert row["onboarding_step"] == 1
        assert progress.current_step == 1
        assert progress.complete is False

    def test_read_failure_is_persistence_error(self, mock_supabase):
        mock_supabase.table.return_value.execute.side_effect = TimeoutError("timed out")
        with pytest.raises(PersistenceError):
            run(SupabaseProfileStore(mock_supabase).read_profile("user-1"))
