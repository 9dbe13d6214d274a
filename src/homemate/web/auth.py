"""
Authentication dependencies for FastAPI routes.

- Users: Supabase JWT in "Authorization: Bearer <token>"
- Scheduler: shared secret in the x-cron-secret header
"""

import logging

from fastapi import Header, HTTPException
from pydantic import BaseModel

from homemate.config import get_settings
from homemate.db.client import get_service_client
from homemate.health.cron import secrets_match

logger = logging.getLogger(__name__)


class AuthenticatedUser(BaseModel):
    """Authenticated user info from Supabase JWT."""
    id: str
    email: str | None
    access_token: str


async def get_current_user(authorization: str | None = Header(None)) -> AuthenticatedUser:
    """
    Validate Supabase JWT and extract user info.

    Expects Authorization header: "Bearer <access_token>"
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")

    access_token = authorization[7:]  # Remove "Bearer " prefix

    try:
        client = get_service_client()
        user_response = client.auth.get_user(access_token)
    except Exception as e:
        logger.warning(f"Auth validation failed: {e}")
        raise HTTPException(status_code=401, detail="Unauthorized")

    if not user_response or not user_response.user:
        raise HTTPException(status_code=401, detail="Unauthorized")

    user = user_response.user
    return AuthenticatedUser(
        id=user.id,
        email=user.email,
        access_token=access_token,
    )


async def require_cron_secret(x_cron_secret: str | None = Header(None)) -> None:
    """Only the scheduler (or the cron route) may trigger bulk generation."""
    if not secrets_match(x_cron_secret, get_settings().health_cron_secret):
        raise HTTPException(status_code=401, detail="Unauthorized")
