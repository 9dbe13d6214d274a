"""
HomeMate - Weekly generation trigger.

The scheduler hits the cron route once a week; the route works out next
Monday in HEALTH_CRON_TIMEZONE and forwards to the bulk generation
endpoint with the shared secret.
"""

import hmac
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

SCHEDULER_USER_AGENT = "vercel-cron/1.0"
WEEKLY_GENERATE_PATH = "/api/health/weekly-generate"


def secrets_match(provided: str | None, expected: str | None) -> bool:
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def is_cron_request_authorized(
    provided_secret: str | None,
    user_agent: str | None,
    expected_secret: str | None,
) -> bool:
    """
    Check a scheduler request.

    With a configured secret, the request must present it. Without one,
    the scheduler's user agent is accepted (local/dev only, not secure).
    """
    if expected_secret:
        return secrets_match(provided_secret, expected_secret)
    return SCHEDULER_USER_AGENT in (user_agent or "")


async def trigger_weekly_generation(
    base_url: str,
    secret: str,
    week_start: str,
    timezone: str,
) -> tuple[bool, Any]:
    """
    POST to the bulk generation endpoint.

    Returns:
        (ok, payload) where payload is the decoded JSON body or None.
    """
    url = f"{base_url.rstrip('/')}{WEEKLY_GENERATE_PATH}"
    logger.info(f"Triggering weekly generation for {week_start} ({timezone})")

    try:
        # A bulk run has no upper bound on duration
        async with httpx.AsyncClient(timeout=None) as client:
            response = await client.post(
                url,
                json={"weekStart": week_start, "timezone": timezone},
                headers={"x-cron-secret": secret},
            )
    except httpx.HTTPError as e:
        logger.warning(f"Weekly generation request failed: {e}")
        return False, None

    try:
        payload = response.json()
    except ValueError:
        payload = None

    if not response.is_success:
        logger.warning(f"Weekly generation returned {response.status_code}: {payload}")
    return response.is_success, payload
