"""
Supabase client for the mappings and products tables.

Services call get_supabase_client() lazily so tests can hand them a mock
instead.
"""

from functools import lru_cache
from typing import Optional

from supabase import create_client, Client
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)


class DatabaseConnectionError(Exception):
    """The Supabase client could not be created or reached."""


@lru_cache()
def get_supabase_client() -> Client:
    """
    Create the shared client once, preferring the service role key.

    A one-row read of the mappings table confirms the credentials work
    before the client is cached. Call reset_connection() to rebuild it.

    Raises:
        DatabaseConnectionError: If the client cannot reach the project
    """
    key = settings.supabase_service_key or settings.supabase_key
    logger.info(
        "connecting_to_supabase",
        url=settings.supabase_url[:30] + "...",
        service_role=settings.supabase_service_key is not None
    )

    try:
        client = create_client(settings.supabase_url, key)
        client.table(settings.mappings_table).select("id").limit(1).execute()
    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise DatabaseConnectionError(f"Failed to connect to Supabase: {e}") from e

    logger.info("supabase_connected")
    return client


db = get_supabase_client


def _row_count(client: Client, table: str, column: str) -> Optional[int]:
    result = client.table(table).select(column, count="exact").limit(1).execute()
    return result.count


def check_connection() -> dict:
    """Health summary: status plus row counts of both tables."""
    try:
        client = get_supabase_client()
        return {
            "status": "healthy",
            "mappings_count": _row_count(client, settings.mappings_table, "id"),
            "products_count": _row_count(client, settings.products_table, "sku"),
        }
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}


def reset_connection():
    """Drop the cached client; the next call reconnects."""
    get_supabase_client.cache_clear()
    logger.info("database_connection_reset")
