"""HomeMate database access (Supabase)."""

from homemate.db.client import get_authenticated_client, get_service_client
from homemate.db.plans import PlanKind, PlanStore, StorageError

__all__ = [
    "PlanKind",
    "PlanStore",
    "StorageError",
    "get_authenticated_client",
    "get_service_client",
]
