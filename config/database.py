"""
Supabase clients for the user store.

get_supabase_client() uses the anon key and is required. get_admin_client()
uses the service role key when one is configured; user creation prefers it
so inserts are not blocked by row-level security on the users table.
"""

from supabase import create_client, Client
from functools import lru_cache
from typing import Optional
import structlog

from config.settings import settings
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)


@lru_cache()
def get_supabase_client() -> Client:
    """
    Cached anon-key client. Call get_supabase_client.cache_clear() to reconnect.

    Raises:
        DatabaseError: If the client cannot be created
    """
    logger.info("connecting_to_supabase", url=settings.supabase_url[:30] + "...")

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise DatabaseError("connect", str(e)) from e


@lru_cache()
def get_admin_client() -> Optional[Client]:
    """Cached service-role client, or None when no service key is set."""
    if not settings.supabase_service_key:
        logger.info("admin_client_not_configured")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_service_key)
    except Exception as e:
        logger.error("admin_client_failed", error=str(e))
        return None


def check_connection() -> dict:
    """
    Count the users table to confirm the store is reachable.

    Returns:
        dict: status, users_table, service_role and either users_count or error
    """
    status = {
        "users_table": settings.users_table,
        "service_role": bool(settings.supabase_service_key),
    }

    try:
        users = (
            get_supabase_client()
            .table(settings.users_table)
            .select("id", count="exact")
            .execute()
        )
        return {"status": "healthy", "users_count": users.count, **status}
    except Exception as e:
        logger.warning("database_health_check_failed", error=str(e))
        return {"status": "unhealthy", "error": str(e), **status}
