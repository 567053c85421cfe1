"""
Supabase Client Configuration

The worker, sweeper and API all run server-side, so only the service-role
client is needed.
"""

from functools import lru_cache

from supabase import create_client, Client

from fablecast.config import config
from fablecast.utils.logging import storage_logger


class SupabaseClientError(Exception):
    """Raised when Supabase client cannot be initialized."""
    pass


@lru_cache(maxsize=1)
def get_supabase_admin_client() -> Client:
    """
    Get Supabase client with service role key (admin access).

    WARNING: This client bypasses Row Level Security!
    """
    if not config.SUPABASE_URL:
        raise SupabaseClientError(
            "SUPABASE_URL is not configured. "
            "Set it in your .env file or environment variables."
        )

    if not config.SUPABASE_SERVICE_KEY:
        raise SupabaseClientError(
            "SUPABASE_SERVICE_KEY is not configured. "
            "Set it in your .env file or environment variables."
        )

    return create_client(
        config.SUPABASE_URL,
        config.SUPABASE_SERVICE_KEY
    )


def verify_supabase_connection() -> bool:
    """Run a trivial query against story_jobs; used by the health endpoint."""
    try:
        client = get_supabase_admin_client()
        client.table("story_jobs").select("id").limit(1).execute()
        return True
    except Exception as e:
        storage_logger.warning("Supabase connection failed", error=str(e))
        return False
