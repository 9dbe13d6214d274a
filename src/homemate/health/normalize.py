"""
HomeMate - Plan field normalization.

Shared by the weekly generator, the agent tools and the update endpoints.

After normalization:
- text fields are a non-empty trimmed string or None
- duration_min is a positive int or None
Values of the wrong type are passed through untouched so that callers
can reject them with the is_valid_* checks.
"""

import math
from typing import Any

MEAL_SLOTS = ("breakfast", "lunch", "dinner", "snacks")
MEAL_FIELDS = (*MEAL_SLOTS, "notes")
WORKOUT_FIELDS = ("cardio", "strength", "duration_min", "intensity", "notes")


def normalize_text(value: Any) -> Any:
    """
    Trim a text value.

    Examples:
        normalize_text("  ok ") -> "ok"
        normalize_text("   ") -> None
        normalize_text(None) -> None
        normalize_text(42) -> 42  (left for the caller to reject)
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    trimmed = value.strip()
    return trimmed or None


def _positive_rounded(number: float) -> int | None:
    if not math.isfinite(number) or number <= 0:
        return None
    # Half-up rounding: 12.5 -> 13
    return math.floor(number + 0.5)


def normalize_duration(value: Any) -> Any:
    """
    Coerce a duration in minutes to a positive int.

    Examples:
        normalize_duration("45") -> 45
        normalize_duration(12.7) -> 13
        normalize_duration(0) -> None
        normalize_duration(-3) -> None
        normalize_duration("abc") -> None
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        try:
            return _positive_rounded(float(value))
        except OverflowError:
            return None
    if not isinstance(value, str):
        return value
    trimmed = value.strip()
    if not trimmed:
        return None
    try:
        parsed = float(trimmed)
    except ValueError:
        return None
    return _positive_rounded(parsed)


def is_valid_duration(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def is_valid_meal_value(field: str, value: Any) -> bool:
    if value is None:
        return True
    return field in MEAL_FIELDS and isinstance(value, str)


def is_valid_workout_value(field: str, value: Any) -> bool:
    if value is None:
        return True
    if field == "duration_min":
        return is_valid_duration(value)
    return field in WORKOUT_FIELDS and isinstance(value, str)


def text_or_none(value: Any) -> str | None:
    """normalize_text, with anything that is not text collapsed to None."""
    normalized = normalize_text(value)
    return normalized if isinstance(normalized, str) else None


def duration_or_none(value: Any) -> int | None:
    normalized = normalize_duration(value)
    return normalized if is_valid_duration(normalized) else None


def build_meal_updates(payload: dict[str, Any]) -> dict[str, str | None] | None:
    """
    Normalize the meal fields present in payload.

    Returns None if no meal field is present or any present value is invalid.
    """
    updates: dict[str, str | None] = {}
    for field in MEAL_FIELDS:
        if field not in payload:
            continue
        normalized = normalize_text(payload[field])
        if not is_valid_meal_value(field, normalized):
            return None
        updates[field] = normalized
    return updates or None


def build_workout_updates(payload: dict[str, Any]) -> dict[str, str | int | None] | None:
    """Workout counterpart of build_meal_updates."""
    updates: dict[str, str | int | None] = {}
    for field in WORKOUT_FIELDS:
        if field not in payload:
            continue
        if field == "duration_min":
            normalized = normalize_duration(payload[field])
        else:
            normalized = normalize_text(payload[field])
        if not is_valid_workout_value(field, normalized):
            return None
        updates[field] = normalized
    return updates or None
