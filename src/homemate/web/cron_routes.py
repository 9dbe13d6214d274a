"""
Scheduled job endpoints.

GET /api/cron/health-weekly is hit once a week by the scheduler and
forwards to the bulk generation endpoint for next week.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from homemate.config import get_settings
from homemate.health.cron import is_cron_request_authorized, trigger_weekly_generation
from homemate.health.week import compute_next_monday_week_start, is_valid_timezone

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])


def _utc_now() -> datetime:
    return datetime.now(UTC)


@router.get("/health-weekly")
async def health_weekly(
    request: Request,
    secret: str | None = None,
    x_cron_secret: str | None = Header(None),
    user_agent: str | None = Header(None),
) -> Any:
    """Generate plans for next week for every user."""
    settings = get_settings()
    expected_secret = settings.health_cron_secret

    if not is_cron_request_authorized(secret or x_cron_secret, user_agent, expected_secret):
        raise HTTPException(status_code=401, detail="Unauthorized")

    if not expected_secret:
        raise HTTPException(status_code=500, detail="Missing HEALTH_CRON_SECRET configuration")

    timezone = settings.health_cron_timezone
    if not is_valid_timezone(timezone):
        raise HTTPException(status_code=500, detail="Invalid HEALTH_CRON_TIMEZONE")

    week_start = compute_next_monday_week_start(_utc_now(), timezone)
    if not week_start:
        raise HTTPException(status_code=500, detail="Failed to compute weekStart")

    ok, payload = await trigger_weekly_generation(str(request.base_url), expected_secret, week_start, timezone)

    if not ok:
        return JSONResponse(
            status_code=502,
            content={
                "error": "Weekly generation failed",
                "weekStart": week_start,
                "timezone": timezone,
                "details": payload,
            },
        )

    return {"ok": True, "weekStart": week_start, "timezone": timezone, "result": payload}
