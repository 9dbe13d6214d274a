"""
HomeMate - Plan storage.

Week plans and day plans live in one pair of tables per plan kind:

    meal_week_plans     (id, user_id, week_start_date, timezone, generated_by)
    meal_day_plans      (week_plan_id, date, breakfast, lunch, dinner, snacks, notes)
    workout_week_plans  (id, user_id, week_start_date, timezone, generated_by)
    workout_day_plans   (week_plan_id, date, cardio, strength, duration_min, intensity, notes)

Week rows are unique per (user_id, week_start_date); day rows per
(week_plan_id, date). Writes are upserts on those keys.
"""

from typing import Any, Literal

from supabase import Client

PlanKind = Literal["meal", "workout"]

WEEK_CONFLICT_KEY = "user_id,week_start_date"
DAY_CONFLICT_KEY = "week_plan_id,date"

BODY_METRICS_COLUMNS = (
    "user_id,height_cm,weight_kg,gender,age,body_fat_pct,muscle_pct,"
    "subcutaneous_fat,visceral_fat,bmi,water_pct,protein_pct,bone_mass,bmr"
)


class StorageError(Exception):
    """A Supabase read or write failed."""


def week_table(kind: PlanKind) -> str:
    return f"{kind}_week_plans"


def day_table(kind: PlanKind) -> str:
    return f"{kind}_day_plans"


class PlanStore:
    """
    Typed access to plan tables over a Supabase client.

    Every method raises StorageError on failure; callers decide whether
    that skips a user, fails a request or becomes a tool status message.
    """

    def __init__(self, client: Client):
        self.client = client

    # -------------------------------------------------------------------------
    # Body metrics (read-only here)
    # -------------------------------------------------------------------------

    def list_body_metrics(self) -> list[dict[str, Any]]:
        """All body metrics rows (service client only)."""
        try:
            result = self.client.table("body_metrics").select(BODY_METRICS_COLUMNS).execute()
        except Exception as e:
            raise StorageError("Failed to load body metrics") from e
        return result.data or []

    def get_body_metrics(self, user_id: str) -> dict[str, Any] | None:
        try:
            result = (
                self.client.table("body_metrics")
                .select(BODY_METRICS_COLUMNS)
                .eq("user_id", user_id)
                .maybe_single()
                .execute()
            )
        except Exception as e:
            raise StorageError("Failed to load body metrics") from e
        if result is None:
            return None
        return result.data

    # -------------------------------------------------------------------------
    # Week plans
    # -------------------------------------------------------------------------

    def find_week_plan_id(self, kind: PlanKind, user_id: str, week_start: str) -> str | None:
        try:
            result = (
                self.client.table(week_table(kind))
                .select("id")
                .eq("user_id", user_id)
                .eq("week_start_date", week_start)
                .maybe_single()
                .execute()
            )
        except Exception as e:
            raise StorageError(f"Failed to load {kind} week plan") from e
        if result is None or not result.data:
            return None
        return result.data["id"]

    def upsert_week_plan(
        self,
        kind: PlanKind,
        *,
        user_id: str,
        week_start: str,
        timezone: str,
        generated_by: str,
    ) -> str:
        """Insert or update the week row; returns its id."""
        row = {
            "user_id": user_id,
            "week_start_date": week_start,
            "timezone": timezone,
            "generated_by": generated_by,
        }
        try:
            result = self.client.table(week_table(kind)).upsert(row, on_conflict=WEEK_CONFLICT_KEY).execute()
        except Exception as e:
            raise StorageError(f"Failed to upsert {kind} week plan") from e
        if not result.data:
            raise StorageError(f"Failed to upsert {kind} week plan")
        return result.data[0]["id"]

    def delete_week_plan(self, kind: PlanKind, week_plan_id: str) -> None:
        try:
            self.client.table(week_table(kind)).delete().eq("id", week_plan_id).execute()
        except Exception as e:
            raise StorageError(f"Failed to delete {kind} week plan") from e

    def get_week_plan(
        self, kind: PlanKind, user_id: str, week_start: str
    ) -> tuple[dict[str, Any], list[dict[str, Any]]] | None:
        """
        Week row plus its day rows sorted by date.

        Returns None if the user has no plan for that week.
        """
        days_table = day_table(kind)
        try:
            result = (
                self.client.table(week_table(kind))
                .select(f"*, {days_table}(*)")
                .eq("user_id", user_id)
                .eq("week_start_date", week_start)
                .maybe_single()
                .execute()
            )
        except Exception as e:
            raise StorageError(f"Failed to load {kind} plan") from e
        if result is None or not result.data:
            return None

        week = dict(result.data)
        days = week.pop(days_table, None) or []
        return week, sorted(days, key=lambda day: day.get("date") or "")

    # -------------------------------------------------------------------------
    # Day plans
    # -------------------------------------------------------------------------

    def upsert_day_plans(self, kind: PlanKind, rows: list[dict[str, Any]]) -> None:
        """Upsert day rows. Each row must carry week_plan_id and date."""
        if not rows:
            return
        try:
            self.client.table(day_table(kind)).upsert(rows, on_conflict=DAY_CONFLICT_KEY).execute()
        except Exception as e:
            raise StorageError(f"Failed to upsert {kind} day plans") from e
