"""
Tests for PlanStore against a mocked Supabase client.

The query builder is a chain of MagicMocks; only execute() results matter.
"""

from unittest.mock import MagicMock

import pytest

from homemate.db.plans import DAY_CONFLICT_KEY, WEEK_CONFLICT_KEY, PlanStore, StorageError


@pytest.fixture
def mock_supabase():
    """Mock Supabase client whose query builder always returns itself."""
    mock_client = MagicMock()

    mock_table = MagicMock()
    for method in ("select", "upsert", "delete", "eq", "maybe_single"):
        getattr(mock_table, method).return_value = mock_table
    mock_table.execute.return_value = MagicMock(data=[])

    mock_client.table.return_value = mock_table
    return mock_client


class TestBodyMetrics:
    def test_list(self, mock_supabase):
        mock_supabase.table.return_value.execute.return_value = MagicMock(data=[{"user_id": "u1"}])

        assert PlanStore(mock_supabase).list_body_metrics() == [{"user_id": "u1"}]
        mock_supabase.table.assert_called_with("body_metrics")

    def test_get_missing_row(self, mock_supabase):
        """maybe_single() yields no response at all when there is no row."""
        mock_supabase.table.return_value.execute.return_value = None
        assert PlanStore(mock_supabase).get_body_metrics("u1") is None

    def test_errors_are_wrapped(self, mock_supabase):
        mock_supabase.table.return_value.execute.side_effect = Exception("network down")

        with pytest.raises(StorageError, match="Failed to load body metrics"):
            PlanStore(mock_supabase).list_body_metrics()


class TestWeekPlans:
    def test_upsert_returns_id(self, mock_supabase):
        table = mock_supabase.table.return_value
        table.execute.return_value = MagicMock(data=[{"id": "week-1"}])

        week_id = PlanStore(mock_supabase).upsert_week_plan(
            "meal", user_id="u1", week_start="2024-01-08", timezone="UTC", generated_by="cron"
        )

        assert week_id == "week-1"
        mock_supabase.table.assert_called_with("meal_week_plans")
        table.upsert.assert_called_once_with(
            {"user_id": "u1", "week_start_date": "2024-01-08", "timezone": "UTC", "generated_by": "cron"},
            on_conflict=WEEK_CONFLICT_KEY,
        )

    def test_upsert_without_row_fails(self, mock_supabase):
        with pytest.raises(StorageError):
            PlanStore(mock_supabase).upsert_week_plan(
                "workout", user_id="u1", week_start="2024-01-08", timezone="UTC", generated_by="cron"
            )

    def test_find_week_plan_id(self, mock_supabase):
        mock_supabase.table.return_value.execute.return_value = MagicMock(data={"id": "week-9"})
        assert PlanStore(mock_supabase).find_week_plan_id("workout", "u1", "2024-01-08") == "week-9"

        mock_supabase.table.return_value.execute.return_value = None
        assert PlanStore(mock_supabase).find_week_plan_id("workout", "u1", "2024-01-08") is None

    def test_get_week_plan_sorts_days(self, mock_supabase):
        table = mock_supabase.table.return_value
        table.execute.return_value = MagicMock(
            data={
                "id": "week-1",
                "week_start_date": "2024-01-08",
                "meal_day_plans": [{"date": "2024-01-10"}, {"date": "2024-01-08"}],
            }
        )

        week, days = PlanStore(mock_supabase).get_week_plan("meal", "u1", "2024-01-08")

        assert week == {"id": "week-1", "week_start_date": "2024-01-08"}
        assert [day["date"] for day in days] == ["2024-01-08", "2024-01-10"]
        table.select.assert_called_with("*, meal_day_plans(*)")

    def test_delete(self, mock_supabase):
        table = mock_supabase.table.return_value
        PlanStore(mock_supabase).delete_week_plan("workout", "week-3")

        mock_supabase.table.assert_called_with("workout_week_plans")
        table.eq.assert_called_with("id", "week-3")


class TestDayPlans:
    def test_upsert_rows(self, mock_supabase):
        rows = [{"week_plan_id": "week-1", "date": "2024-01-08", "cardio": "Run"}]
        PlanStore(mock_supabase).upsert_day_plans("workout", rows)

        mock_supabase.table.assert_called_with("workout_day_plans")
        mock_supabase.table.return_value.upsert.assert_called_once_with(rows, on_conflict=DAY_CONFLICT_KEY)

    def test_empty_rows_skip_the_call(self, mock_supabase):
        PlanStore(mock_supabase).upsert_day_plans("meal", [])
        mock_supabase.table.assert_not_called()
