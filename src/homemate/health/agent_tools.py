"""
HomeMate - Plan editing tools for the health chat agent.

Each tool takes the raw JSON arguments string produced by the model and
returns a short status sentence for the agent to relay. Tools never raise
and never create week plans; they only edit days of the week the chat is
bound to.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

from homemate.db.plans import PlanKind, PlanStore, StorageError
from homemate.health.normalize import (
    MEAL_SLOTS,
    build_meal_updates,
    build_workout_updates,
    is_valid_meal_value,
    normalize_text,
)
from homemate.health.week import is_date_in_week, parse_iso_date

logger = logging.getLogger(__name__)


@dataclass
class AgentToolContext:
    """What a tool call is allowed to touch."""

    store: PlanStore
    user_id: str
    week_start: str
    timezone: str


def _parse_json_input(raw: str) -> dict[str, Any] | None:
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return None
    return payload if isinstance(payload, dict) else None


def _validate_week_start(payload: dict[str, Any], context: AgentToolContext) -> str | None:
    """weekStart may be omitted, but never point at another week."""
    if "weekStart" not in payload:
        return context.week_start
    value = payload["weekStart"]
    if parse_iso_date(value) is None or value != context.week_start:
        return None
    return value


def _validate_date(value: Any, week_start: str) -> str | None:
    if parse_iso_date(value) is None or not is_date_in_week(value, week_start):
        return None
    return value


def _load_week_plan_id(context: AgentToolContext, kind: PlanKind, week_start: str) -> str | None:
    try:
        return context.store.find_week_plan_id(kind, context.user_id, week_start)
    except StorageError:
        logger.warning(f"Failed to load {kind} week plan for user {context.user_id}")
        return None


def _upsert_day(context: AgentToolContext, kind: PlanKind, row: dict[str, Any]) -> bool:
    try:
        context.store.upsert_day_plans(kind, [row])
    except StorageError:
        logger.warning(f"Tool failed to upsert {kind} day {row.get('date')} for user {context.user_id}")
        return False
    return True


def update_meal_item(raw_input: str, context: AgentToolContext) -> str:
    """Set one meal slot (breakfast, lunch, dinner or snacks) for one day."""
    payload = _parse_json_input(raw_input)
    if payload is None:
        return "Invalid tool input. Provide JSON."

    week_start = _validate_week_start(payload, context)
    if not week_start:
        return "Invalid weekStart."

    date = _validate_date(payload.get("date"), week_start)
    if not date:
        return "Invalid date."

    meal_type = payload.get("mealType")
    if meal_type is None:
        meal_type = payload.get("slotType")
    if not isinstance(meal_type, str) or meal_type not in MEAL_SLOTS:
        return "Invalid meal type."

    if "content" not in payload:
        return "Invalid meal content."
    content = normalize_text(payload["content"])
    if not is_valid_meal_value(meal_type, content):
        return "Invalid meal content."

    week_plan_id = _load_week_plan_id(context, "meal", week_start)
    if not week_plan_id:
        return "Meal week plan not found."

    if not _upsert_day(context, "meal", {"week_plan_id": week_plan_id, "date": date, meal_type: content}):
        return "Failed to update meal plan."
    return "Meal plan updated."


def update_meal_day(raw_input: str, context: AgentToolContext) -> str:
    """Set any of breakfast/lunch/dinner/snacks/notes for one day."""
    payload = _parse_json_input(raw_input)
    if payload is None:
        return "Invalid tool input. Provide JSON."

    week_start = _validate_week_start(payload, context)
    if not week_start:
        return "Invalid weekStart."

    date = _validate_date(payload.get("date"), week_start)
    if not date:
        return "Invalid date."

    updates = build_meal_updates(payload)
    if not updates:
        return "Invalid meal updates."

    week_plan_id = _load_week_plan_id(context, "meal", week_start)
    if not week_plan_id:
        return "Meal week plan not found."

    if not _upsert_day(context, "meal", {"week_plan_id": week_plan_id, "date": date, **updates}):
        return "Failed to update meal plan."
    return "Meal day plan updated."


def update_workout_day(raw_input: str, context: AgentToolContext) -> str:
    """Set any of cardio/strength/duration_min/intensity/notes for one day."""
    payload = _parse_json_input(raw_input)
    if payload is None:
        return "Invalid tool input. Provide JSON."

    week_start = _validate_week_start(payload, context)
    if not week_start:
        return "Invalid weekStart."

    date = _validate_date(payload.get("date"), week_start)
    if not date:
        return "Invalid date."

    updates = build_workout_updates(payload)
    if not updates:
        return "Invalid workout updates."

    week_plan_id = _load_week_plan_id(context, "workout", week_start)
    if not week_plan_id:
        return "Workout week plan not found."

    if not _upsert_day(context, "workout", {"week_plan_id": week_plan_id, "date": date, **updates}):
        return "Failed to update workout plan."
    return "Workout day plan updated."


TOOL_HANDLERS = {
    "update_meal_item": update_meal_item,
    "update_meal_day": update_meal_day,
    "update_workout_day": update_workout_day,
}


def _nullable(type_name: str, description: str) -> dict[str, Any]:
    return {"type": [type_name, "null"], "description": description}


_DATE_PROPERTIES = {
    "weekStart": {"type": "string", "description": "Week start (Monday), YYYY-MM-DD. Must match the current week."},
    "date": {"type": "string", "description": "Day to update, YYYY-MM-DD, within the current week."},
}

TOOL_SCHEMAS: list[dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": "update_meal_item",
            "description": "Update a single meal slot. Input JSON: { weekStart, date, mealType|slotType, content }",
            "parameters": {
                "type": "object",
                "properties": {
                    **_DATE_PROPERTIES,
                    "mealType": {"type": "string", "enum": list(MEAL_SLOTS)},
                    "slotType": {"type": "string", "description": "Alias of mealType"},
                    "content": _nullable("string", "New text for the slot, null to clear it"),
                },
                "required": ["date", "content"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "update_meal_day",
            "description": "Update meal plan for a day. Input JSON: { weekStart, date, breakfast, lunch, dinner, snacks, notes }",
            "parameters": {
                "type": "object",
                "properties": {
                    **_DATE_PROPERTIES,
                    "breakfast": _nullable("string", "Breakfast"),
                    "lunch": _nullable("string", "Lunch"),
                    "dinner": _nullable("string", "Dinner"),
                    "snacks": _nullable("string", "Snacks"),
                    "notes": _nullable("string", "Notes for the day"),
                },
                "required": ["date"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "update_workout_day",
            "description": "Update workout plan for a day. Input JSON: { weekStart, date, cardio, strength, duration_min, intensity, notes }",
            "parameters": {
                "type": "object",
                "properties": {
                    **_DATE_PROPERTIES,
                    "cardio": _nullable("string", "Cardio session"),
                    "strength": _nullable("string", "Strength session"),
                    "duration_min": _nullable("integer", "Total minutes, positive integer"),
                    "intensity": _nullable("string", "e.g. low, moderate, high"),
                    "notes": _nullable("string", "Notes for the day"),
                },
                "required": ["date"],
            },
        },
    },
]


def run_tool(name: str, raw_arguments: str, context: AgentToolContext) -> str:
    """Dispatch a model tool call by name."""
    handler = TOOL_HANDLERS.get(name)
    if handler is None:
        return "Unknown tool."
    result = handler(raw_arguments, context)
    logger.info(f"Tool {name} for user {context.user_id}: {result}")
    return result
