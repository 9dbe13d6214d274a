"""
HomeMate - Weekly plan generation.

Per user:
    metrics loaded -> prompted -> parsed -> validated
        -> week rows committed -> day rows committed

There is no cross-table transaction. When a later write fails, the week
rows created by this attempt are deleted again (best effort) so that no
empty week plan is left behind. Rows that already existed before the
attempt are never deleted.

The bulk path runs users one after another and skips failing users;
the single-user path raises GenerationError.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from homemate.db.plans import PlanKind, PlanStore, StorageError
from homemate.health.parser import WeekPlans, has_plan_content, parse_plans
from homemate.health.week import build_week_days
from homemate.llm.client import extract_text

logger = logging.getLogger(__name__)

ModelInvoke = Callable[[list[dict[str, Any]]], Awaitable[Any]]

SYSTEM_PROMPT = "You are a health planning assistant. Return JSON only, no markdown."

GENERATED_BY_CRON = "cron"
GENERATED_BY_USER = "user"


class GenerationError(Exception):
    """A generation attempt for one user failed."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def build_generation_messages(
    week_start: str,
    timezone: str,
    days: list[str],
    metrics: dict[str, Any],
) -> list[dict[str, str]]:
    """System + user messages for one user's week. user_id is never sent."""
    metrics_for_prompt = {key: value for key, value in metrics.items() if key != "user_id"}

    user_prompt = "\n".join(
        [
            "Create a simple 7-day meal and workout plan.",
            f"Week start: {week_start}",
            f"Timezone: {timezone}",
            f"Dates: {', '.join(days)}",
            f"User metrics: {json.dumps(metrics_for_prompt, separators=(',', ':'), ensure_ascii=False)}",
            "Return JSON with keys meals and workouts.",
            "Meals: array of 7 items with date, breakfast, lunch, dinner, snacks, notes.",
            "Workouts: array of 7 items with date, cardio, strength, duration_min, intensity, notes.",
            "Use short plain text. Use null for rest day fields. Duration_min should be an integer or null.",
        ]
    )

    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


def _delete_created_week(store: PlanStore, kind: PlanKind, week_plan_id: str, user_id: str) -> None:
    """Compensating delete. Failures are logged, never raised."""
    try:
        store.delete_week_plan(kind, week_plan_id)
    except StorageError:
        logger.warning(f"Failed to cleanup {kind} week plan {week_plan_id} for user {user_id}")


async def _request_plans(
    invoke: ModelInvoke,
    *,
    user_id: str,
    metrics: dict[str, Any],
    week_start: str,
    timezone: str,
    days: list[str],
) -> WeekPlans:
    messages = build_generation_messages(week_start, timezone, days, metrics)

    try:
        response_content = await invoke(messages)
    except Exception as e:
        logger.warning(f"LLM request failed for user {user_id}: {e}")
        raise GenerationError("LLM request failed", 502) from e

    content = extract_text(response_content)
    if not content:
        raise GenerationError("Empty LLM response", 502)

    plans = parse_plans(content, days)
    if plans is None:
        raise GenerationError("Invalid LLM response", 502)

    if not has_plan_content(plans):
        raise GenerationError("Empty plan output", 502)

    return plans


def _write_plans(
    store: PlanStore,
    plans: WeekPlans,
    *,
    user_id: str,
    week_start: str,
    timezone: str,
    generated_by: str,
) -> None:
    week_fields = {
        "user_id": user_id,
        "week_start": week_start,
        "timezone": timezone,
        "generated_by": generated_by,
    }

    try:
        meal_week_was_created = store.find_week_plan_id("meal", user_id, week_start) is None
        workout_week_was_created = store.find_week_plan_id("workout", user_id, week_start) is None
    except StorageError as e:
        raise GenerationError("Failed to load existing week plans") from e

    try:
        meal_week_id = store.upsert_week_plan("meal", **week_fields)
    except StorageError as e:
        raise GenerationError("Failed to upsert meal week plan") from e

    try:
        workout_week_id = store.upsert_week_plan("workout", **week_fields)
    except StorageError as e:
        if meal_week_was_created:
            _delete_created_week(store, "meal", meal_week_id, user_id)
        raise GenerationError("Failed to upsert workout week plan") from e

    def rollback() -> None:
        # Workout week first, then meal week
        if workout_week_was_created:
            _delete_created_week(store, "workout", workout_week_id, user_id)
        if meal_week_was_created:
            _delete_created_week(store, "meal", meal_week_id, user_id)

    meal_rows = [{"week_plan_id": meal_week_id, **day.model_dump()} for day in plans.meals]
    try:
        store.upsert_day_plans("meal", meal_rows)
    except StorageError as e:
        rollback()
        raise GenerationError("Failed to upsert meal day plans") from e

    workout_rows = [{"week_plan_id": workout_week_id, **day.model_dump()} for day in plans.workouts]
    try:
        store.upsert_day_plans("workout", workout_rows)
    except StorageError as e:
        rollback()
        raise GenerationError("Failed to upsert workout day plans") from e


async def generate_week_for_user(
    store: PlanStore,
    invoke: ModelInvoke,
    *,
    user_id: str,
    metrics: dict[str, Any],
    week_start: str,
    timezone: str,
    generated_by: str,
) -> None:
    """
    Generate and store one user's meal and workout week.

    Raises:
        GenerationError: with an HTTP-style status; any week rows this
            attempt created have already been cleaned up.
    """
    days = build_week_days(week_start)
    plans = await _request_plans(
        invoke,
        user_id=user_id,
        metrics=metrics,
        week_start=week_start,
        timezone=timezone,
        days=days,
    )
    _write_plans(
        store,
        plans,
        user_id=user_id,
        week_start=week_start,
        timezone=timezone,
        generated_by=generated_by,
    )


async def regenerate_week_for_user(
    store: PlanStore,
    invoke: ModelInvoke,
    *,
    user_id: str,
    week_start: str,
    timezone: str,
) -> None:
    """Interactive regeneration for the signed-in user."""
    try:
        metrics = store.get_body_metrics(user_id)
    except StorageError as e:
        raise GenerationError("Failed to load body metrics") from e

    if not metrics:
        raise GenerationError("Missing body metrics. Please fill your profile metrics first.", 400)

    await generate_week_for_user(
        store,
        invoke,
        user_id=user_id,
        metrics=metrics,
        week_start=week_start,
        timezone=timezone,
        generated_by=GENERATED_BY_USER,
    )


async def generate_week_for_all(
    store: PlanStore,
    invoke: ModelInvoke,
    *,
    week_start: str,
    timezone: str,
) -> int:
    """
    Generate the week for every user with body metrics.

    Users are processed sequentially. A failing user is logged and
    skipped; the others are unaffected.

    Returns:
        Number of users whose plans were fully written.

    Raises:
        StorageError: if the body metrics list itself cannot be loaded.
    """
    users = store.list_body_metrics()
    generated_count = 0

    for metrics in users:
        user_id = metrics.get("user_id")
        if not user_id:
            logger.warning("Skipping body metrics row without user_id")
            continue

        try:
            await generate_week_for_user(
                store,
                invoke,
                user_id=user_id,
                metrics=metrics,
                week_start=week_start,
                timezone=timezone,
                generated_by=GENERATED_BY_CRON,
            )
        except GenerationError as e:
            logger.warning(f"Skipping user {user_id}: {e.message}")
            continue
        except Exception:
            logger.exception(f"Skipping user {user_id}: unexpected error")
            continue

        generated_count += 1

    logger.info(f"Weekly generation for {week_start} complete: {generated_count}/{len(users)} users")
    return generated_count
