"""
HomeMate - Weekly plan parser.

Turns free-form model output into exactly seven meal days and seven
workout days for the requested week. Days the model skipped come back
with every field set to None.
"""

import json
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from homemate.health.normalize import MEAL_FIELDS, WORKOUT_FIELDS, duration_or_none, text_or_none


class MealDayPlan(BaseModel):
    """One day of a meal week plan."""

    date: str
    breakfast: str | None = None
    lunch: str | None = None
    dinner: str | None = None
    snacks: str | None = None
    notes: str | None = None

    def has_content(self) -> bool:
        return any(getattr(self, field) is not None for field in MEAL_FIELDS)


class WorkoutDayPlan(BaseModel):
    """One day of a workout week plan."""

    date: str
    cardio: str | None = None
    strength: str | None = None
    duration_min: int | None = None
    intensity: str | None = None
    notes: str | None = None

    def has_content(self) -> bool:
        return any(getattr(self, field) is not None for field in WORKOUT_FIELDS)


@dataclass
class WeekPlans:
    meals: list[MealDayPlan]
    workouts: list[WorkoutDayPlan]


def _load_json_object(raw_content: str) -> Any:
    """
    Parse JSON, tolerating prose around a single object.

    Raises ValueError if nothing parseable is found.
    """
    try:
        return json.loads(raw_content)
    except json.JSONDecodeError:
        pass

    start = raw_content.find("{")
    end = raw_content.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise ValueError("No JSON object in model output")

    try:
        return json.loads(raw_content[start : end + 1])
    except json.JSONDecodeError as e:
        raise ValueError("Invalid JSON object in model output") from e


def _index_by_date(items: Any) -> dict[str, dict[str, Any]]:
    """Map date -> entry. Later duplicates overwrite earlier ones."""
    if not isinstance(items, list):
        return {}
    indexed: dict[str, dict[str, Any]] = {}
    for item in items:
        if isinstance(item, dict) and isinstance(item.get("date"), str):
            indexed[item["date"]] = item
    return indexed


def parse_plans(raw_content: str, days: list[str]) -> WeekPlans | None:
    """
    Parse model output into a date-complete week.

    Args:
        raw_content: Text returned by the model
        days: The seven target dates, in order

    Returns:
        WeekPlans with one meal and one workout record per date,
        or None if the output holds no JSON object.
    """
    try:
        parsed = _load_json_object(raw_content)
    except ValueError:
        return None

    if not isinstance(parsed, dict):
        return None

    meal_map = _index_by_date(parsed.get("meals"))
    workout_map = _index_by_date(parsed.get("workouts"))

    meals = []
    workouts = []
    for day in days:
        meal = meal_map.get(day, {})
        meals.append(
            MealDayPlan(
                date=day,
                **{field: text_or_none(meal.get(field)) for field in MEAL_FIELDS},
            )
        )

        workout = workout_map.get(day, {})
        workouts.append(
            WorkoutDayPlan(
                date=day,
                cardio=text_or_none(workout.get("cardio")),
                strength=text_or_none(workout.get("strength")),
                duration_min=duration_or_none(workout.get("duration_min")),
                intensity=text_or_none(workout.get("intensity")),
                notes=text_or_none(workout.get("notes")),
            )
        )

    return WeekPlans(meals=meals, workouts=workouts)


def has_plan_content(plans: WeekPlans) -> bool:
    """True if any day of either plan has at least one field set."""
    return any(day.has_content() for day in plans.meals) or any(
        day.has_content() for day in plans.workouts
    )
