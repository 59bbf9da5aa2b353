"""
Glowfit - Supabase Client.

Low-level database access. All store queries go through the service client.
"""

from datetime import UTC, datetime

from supabase import Client, create_client

from glowfit.config import settings

# Singleton client instance
_service_client: Client | None = None


def get_service_client() -> Client:
    """
    Get the service-role Supabase client.

    Uses singleton pattern to reuse connection.
    """
    global _service_client

    if _service_client is None:
        _service_client = create_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
        )

    return _service_client


def utc_now() -> str:
    """Get current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()
