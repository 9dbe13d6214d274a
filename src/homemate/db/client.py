"""
HomeMate - Supabase Client.

Two flavours of client:
- service client: service-role key, bypasses RLS (weekly generation, auth checks)
- authenticated client: anon key plus the user's JWT, so RLS applies
"""

from supabase import Client, create_client

from homemate.config import get_settings

# Singleton service client instance
_service_client: Client | None = None


def get_service_client() -> Client:
    """
    Get the service-role Supabase client.

    Uses singleton pattern to reuse connection.
    """
    global _service_client

    if _service_client is None:
        settings = get_settings()
        if not settings.has_service_role:
            raise RuntimeError("Missing Supabase service role configuration")
        _service_client = create_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
        )

    return _service_client


def get_authenticated_client(access_token: str) -> Client:
    """
    Get a client that acts as the signed-in user.

    A new client per request; the JWT is attached to PostgREST calls.
    """
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_anon_key:
        raise RuntimeError("Missing Supabase configuration")

    client = create_client(settings.supabase_url, settings.supabase_anon_key)
    client.postgrest.auth(access_token)
    return client
