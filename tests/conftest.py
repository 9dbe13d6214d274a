"""
Pytest configuration and fixtures for HomeMate tests.

FakePlanStore mirrors PlanStore over in-memory dicts, with failure
injection for any operation (optionally per plan kind).
"""

import json
from typing import Any

import pytest

from homemate.config import get_settings
from homemate.db.plans import StorageError

_ENV_KEYS = (
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
    "ZHIPUAI_API_KEY",
    "ZHIPUAI_API_BASE",
    "ZHIPUAI_MODEL",
    "HEALTH_LLM_API_KEY",
    "HEALTH_LLM_MODEL",
    "HEALTH_LLM_API_BASE",
    "HEALTH_CRON_SECRET",
    "HEALTH_CRON_TIMEZONE",
    "HOMEMATE_ENV",
    "HOMEMATE_LOG_PROMPTS",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def homemate_env(monkeypatch):
    """Fully configured test environment; tests unset what they need to."""
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)

    monkeypatch.setenv("HOMEMATE_ENV", "development")
    monkeypatch.setenv("SUPABASE_URL", "https://test.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key-not-real")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-key-not-real")
    monkeypatch.setenv("ZHIPUAI_API_KEY", "zhipu-key-not-real")
    monkeypatch.setenv("HEALTH_CRON_SECRET", "cron-secret")

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakePlanStore:
    """In-memory stand-in for PlanStore."""

    def __init__(self, metrics: list[dict[str, Any]] | None = None):
        self.metrics = list(metrics or [])
        self.weeks: dict[str, dict[str, dict[str, Any]]] = {"meal": {}, "workout": {}}
        self.days: dict[str, dict[tuple[str, str], dict[str, Any]]] = {"meal": {}, "workout": {}}
        self.fail_on: set[str] = set()
        self.deleted: list[tuple[str, str]] = []
        self._next_id = 0

    def _maybe_fail(self, operation: str, kind: str | None = None) -> None:
        if operation in self.fail_on or f"{operation}:{kind}" in self.fail_on:
            raise StorageError(f"{operation} failed")

    def list_body_metrics(self) -> list[dict[str, Any]]:
        self._maybe_fail("list_body_metrics")
        return list(self.metrics)

    def get_body_metrics(self, user_id: str) -> dict[str, Any] | None:
        self._maybe_fail("get_body_metrics")
        return next((row for row in self.metrics if row.get("user_id") == user_id), None)

    def _find_week(self, kind: str, user_id: str, week_start: str) -> dict[str, Any] | None:
        for week in self.weeks[kind].values():
            if week["user_id"] == user_id and week["week_start_date"] == week_start:
                return week
        return None

    def find_week_plan_id(self, kind: str, user_id: str, week_start: str) -> str | None:
        self._maybe_fail("find_week_plan_id", kind)
        week = self._find_week(kind, user_id, week_start)
        return week["id"] if week else None

    def upsert_week_plan(self, kind: str, *, user_id: str, week_start: str, timezone: str, generated_by: str) -> str:
        self._maybe_fail("upsert_week_plan", kind)
        week = self._find_week(kind, user_id, week_start)
        if week is None:
            self._next_id += 1
            week = {"id": f"{kind}-week-{self._next_id}", "user_id": user_id, "week_start_date": week_start}
            self.weeks[kind][week["id"]] = week
        week.update(timezone=timezone, generated_by=generated_by)
        return week["id"]

    def delete_week_plan(self, kind: str, week_plan_id: str) -> None:
        self._maybe_fail("delete_week_plan", kind)
        self.deleted.append((kind, week_plan_id))
        self.weeks[kind].pop(week_plan_id, None)
        for key in [key for key in self.days[kind] if key[0] == week_plan_id]:
            del self.days[kind][key]

    def get_week_plan(self, kind: str, user_id: str, week_start: str):
        self._maybe_fail("get_week_plan", kind)
        week = self._find_week(kind, user_id, week_start)
        if week is None:
            return None
        return dict(week), self.day_rows(kind, week["id"])

    def upsert_day_plans(self, kind: str, rows: list[dict[str, Any]]) -> None:
        if not rows:
            return
        self._maybe_fail("upsert_day_plans", kind)
        for row in rows:
            key = (row["week_plan_id"], row["date"])
            self.days[kind].setdefault(key, {}).update(row)

    # Test helpers

    def day_rows(self, kind: str, week_plan_id: str) -> list[dict[str, Any]]:
        rows = [dict(row) for (week_id, _), row in self.days[kind].items() if week_id == week_plan_id]
        return sorted(rows, key=lambda row: row["date"])

    def day_row(self, kind: str, week_plan_id: str, date: str) -> dict[str, Any] | None:
        return self.days[kind].get((week_plan_id, date))


@pytest.fixture
def store():
    """Empty in-memory plan store."""
    return FakePlanStore()


@pytest.fixture
def sample_metrics():
    """Body metrics rows for three users."""
    return [
        {"user_id": "user-a", "height_cm": 170, "weight_kg": 65, "gender": "female", "age": 31},
        {"user_id": "user-b", "height_cm": 182, "weight_kg": 99, "gender": "male", "age": 45},
        {"user_id": "user-c", "height_cm": 160, "weight_kg": 52, "gender": "female", "age": 27},
    ]


@pytest.fixture
def week_output():
    """Build a model response covering every day of a week."""

    def _build(days: list[str]) -> str:
        return json.dumps(
            {
                "meals": [
                    {
                        "date": day,
                        "breakfast": "Oatmeal",
                        "lunch": "Chicken salad",
                        "dinner": "Salmon and rice",
                        "snacks": "Apple",
                        "notes": None,
                    }
                    for day in days
                ],
                "workouts": [
                    {
                        "date": day,
                        "cardio": "Brisk walk",
                        "strength": None,
                        "duration_min": 30,
                        "intensity": "moderate",
                        "notes": None,
                    }
                    for day in days
                ],
            }
        )

    return _build
