"""
Health planning API endpoints.

Weekly generation (scheduler and interactive), the chat agent, and
reading/editing a week's meal and workout plans.
"""

import logging
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from homemate.config import get_settings
from homemate.db.client import get_authenticated_client, get_service_client
from homemate.db.plans import PlanKind, PlanStore, StorageError
from homemate.health.agent import run_health_agent
from homemate.health.agent_tools import AgentToolContext
from homemate.health.generation import (
    GenerationError,
    ModelInvoke,
    generate_week_for_all,
    regenerate_week_for_user,
)
from homemate.health.normalize import (
    MEAL_FIELDS,
    WORKOUT_FIELDS,
    is_valid_meal_value,
    is_valid_workout_value,
    normalize_duration,
    normalize_text,
)
from homemate.health.week import is_date_in_week, is_valid_timezone, parse_iso_date
from homemate.llm.client import get_llm_config, invoke_generation_model
from homemate.web.auth import AuthenticatedUser, get_current_user, require_cron_secret

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


# =============================================================================
# Request Models
# =============================================================================


class WeekRequest(BaseModel):
    """Week to generate. Values are validated by hand for precise errors."""
    weekStart: Any = None
    timezone: Any = None


class ChatSelection(BaseModel):
    date: str | None = None
    slotType: str | None = None
    view: Literal["meals", "workouts"] | None = None


class ChatRequest(BaseModel):
    message: Any = None
    weekStart: Any = None
    timezone: Any = None
    context: ChatSelection | None = None


class DayUpdateRequest(BaseModel):
    date: Any = None
    weekStart: Any = None
    updates: Any = None


# =============================================================================
# Dependencies
# =============================================================================


def get_service_store() -> PlanStore:
    """Plan store on the service-role client (bypasses RLS)."""
    if not get_settings().has_service_role:
        raise HTTPException(status_code=500, detail="Missing Supabase service role configuration")
    return PlanStore(get_service_client())


def get_user_store(user: AuthenticatedUser = Depends(get_current_user)) -> PlanStore:
    """Plan store acting as the signed-in user (RLS applies)."""
    return PlanStore(get_authenticated_client(user.access_token))


def require_llm_config() -> None:
    if get_llm_config() is None:
        raise HTTPException(status_code=500, detail="Missing LLM configuration")


def get_generation_invoke() -> ModelInvoke:
    require_llm_config()
    return invoke_generation_model


# =============================================================================
# Validation helpers
# =============================================================================


def _require_week_start(value: Any) -> str:
    if not isinstance(value, str) or parse_iso_date(value) is None:
        raise HTTPException(status_code=400, detail="Missing or invalid weekStart")
    return value


def _require_timezone(value: Any) -> str:
    if not is_valid_timezone(value):
        raise HTTPException(status_code=400, detail="Missing or invalid timezone")
    return value


async def _read_week_request(request: Request) -> WeekRequest:
    """Read the JSON body inside the handler, after the secret check."""
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    return WeekRequest.model_validate(payload)


def _plan_response(store: PlanStore, kind: PlanKind, user_id: str, week_start: str) -> dict[str, Any] | None:
    try:
        plan = store.get_week_plan(kind, user_id, week_start)
    except StorageError:
        raise HTTPException(status_code=500, detail=f"Failed to load {kind} plan")
    if plan is None:
        return None
    week_plan, day_plans = plan
    return {"weekPlan": week_plan, "dayPlans": day_plans}


# =============================================================================
# Generation
# =============================================================================


@router.post("/weekly-generate", dependencies=[Depends(require_cron_secret)])
async def weekly_generate(
    request: Request,
    store: PlanStore = Depends(get_service_store),
    invoke: ModelInvoke = Depends(get_generation_invoke),
) -> dict[str, Any]:
    """Generate next week's plans for every user with body metrics."""
    body = await _read_week_request(request)
    week_start = _require_week_start(body.weekStart)
    timezone = _require_timezone(body.timezone)

    try:
        generated_count = await generate_week_for_all(store, invoke, week_start=week_start, timezone=timezone)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to load body metrics")

    return {"ok": True, "generatedCount": generated_count}


@router.post("/regenerate-week")
async def regenerate_week(
    body: WeekRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    store: PlanStore = Depends(get_service_store),
    invoke: ModelInvoke = Depends(get_generation_invoke),
) -> dict[str, Any]:
    """Regenerate the signed-in user's plans for one week."""
    week_start = _require_week_start(body.weekStart)
    timezone = _require_timezone(body.timezone)

    try:
        await regenerate_week_for_user(store, invoke, user_id=user.id, week_start=week_start, timezone=timezone)
    except GenerationError as e:
        logger.warning(f"Regeneration failed for user {user.id}: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return {"ok": True}


# =============================================================================
# Chat agent
# =============================================================================


@router.post("/agent-chat", dependencies=[Depends(require_llm_config)])
async def agent_chat(
    body: ChatRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    store: PlanStore = Depends(get_user_store),
) -> dict[str, Any]:
    """One chat turn with the plan-editing assistant."""
    message = body.message.strip() if isinstance(body.message, str) else ""
    if not message:
        raise HTTPException(status_code=400, detail="Missing or invalid message")

    week_start = _require_week_start(body.weekStart)
    timezone = _require_timezone(body.timezone)

    selection = body.context.model_dump(exclude_unset=True) if body.context else None
    context = AgentToolContext(store=store, user_id=user.id, week_start=week_start, timezone=timezone)

    try:
        reply = await run_health_agent(message, context, selection)
    except Exception:
        logger.exception(f"Agent execution failed for user {user.id}")
        raise HTTPException(status_code=502, detail="Agent execution failed")

    if not reply:
        raise HTTPException(status_code=502, detail="Empty agent response")

    return {"reply": reply, "context": selection}


# =============================================================================
# Week plans
# =============================================================================


async def _get_plan(kind: PlanKind, week_start: str | None, user: AuthenticatedUser, store: PlanStore):
    week_start = _require_week_start(week_start)
    response = _plan_response(store, kind, user.id, week_start)
    return response or {"weekPlan": None, "dayPlans": []}


@router.get("/meal")
async def get_meal_plan(
    weekStart: str | None = None,
    user: AuthenticatedUser = Depends(get_current_user),
    store: PlanStore = Depends(get_user_store),
) -> dict[str, Any]:
    """The user's meal plan for a week (empty if none)."""
    return await _get_plan("meal", weekStart, user, store)


@router.get("/workout")
async def get_workout_plan(
    weekStart: str | None = None,
    user: AuthenticatedUser = Depends(get_current_user),
    store: PlanStore = Depends(get_user_store),
) -> dict[str, Any]:
    """The user's workout plan for a week (empty if none)."""
    return await _get_plan("workout", weekStart, user, store)


def _clean_updates(kind: PlanKind, updates: dict[str, Any]) -> dict[str, Any]:
    fields = MEAL_FIELDS if kind == "meal" else WORKOUT_FIELDS
    is_valid = is_valid_meal_value if kind == "meal" else is_valid_workout_value

    if any(key not in fields for key in updates):
        raise HTTPException(status_code=400, detail="Invalid update fields")

    cleaned = {
        key: normalize_duration(value) if key == "duration_min" else normalize_text(value)
        for key, value in updates.items()
    }
    if not cleaned:
        raise HTTPException(status_code=400, detail="Missing or invalid updates")

    for key, value in cleaned.items():
        if not is_valid(key, value):
            raise HTTPException(status_code=400, detail="Invalid update value")
    return cleaned


async def _update_day(kind: PlanKind, body: DayUpdateRequest, user: AuthenticatedUser, store: PlanStore):
    if not isinstance(body.date, str) or parse_iso_date(body.date) is None:
        raise HTTPException(status_code=400, detail="Missing or invalid date")
    week_start = _require_week_start(body.weekStart)

    if not isinstance(body.updates, dict):
        raise HTTPException(status_code=400, detail="Missing or invalid updates")
    cleaned = _clean_updates(kind, body.updates)

    if not is_date_in_week(body.date, week_start):
        raise HTTPException(status_code=400, detail="Date is outside the requested week")

    try:
        week_plan_id = store.find_week_plan_id(kind, user.id, week_start)
    except StorageError:
        raise HTTPException(status_code=500, detail=f"Failed to load {kind} plan")
    if not week_plan_id:
        raise HTTPException(status_code=404, detail="Week plan not found")

    try:
        store.upsert_day_plans(kind, [{"week_plan_id": week_plan_id, "date": body.date, **cleaned}])
    except StorageError:
        raise HTTPException(status_code=500, detail=f"Failed to update {kind} plan")

    response = _plan_response(store, kind, user.id, week_start)
    if response is None:
        raise HTTPException(status_code=404, detail="Week plan not found")
    return response


@router.post("/meal/update")
async def update_meal_day_plan(
    body: DayUpdateRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    store: PlanStore = Depends(get_user_store),
) -> dict[str, Any]:
    """Edit fields of one meal day; returns the refreshed week."""
    return await _update_day("meal", body, user, store)


@router.post("/workout/update")
async def update_workout_day_plan(
    body: DayUpdateRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    store: PlanStore = Depends(get_user_store),
) -> dict[str, Any]:
    """Edit fields of one workout day; returns the refreshed week."""
    return await _update_day("workout", body, user, store)
