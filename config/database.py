"""
Database connection management.

Provides the Supabase client singleton used by the catalog, vendor and
profile services.
"""

from supabase import create_client, Client
from functools import lru_cache
from typing import Optional
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)


class DatabaseError(Exception):
    """Base exception for database errors."""
    pass


class ConnectionError(DatabaseError):
    """Failed to connect to database."""
    pass


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get cached Supabase client instance.

    Uses lru_cache to ensure only one client is created.
    Call get_supabase_client.cache_clear() to reconnect.

    Returns:
        Client: Supabase client

    Raises:
        ConnectionError: If connection fails
    """
    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )

        client = create_client(
            settings.supabase_url,
            settings.supabase_key
        )

        # Cheap probe against a table this service owns
        client.table("import_profiles").select("id").limit(1).execute()

        logger.info(
            "supabase_connected",
            status="success"
        )

        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise ConnectionError(f"Failed to connect to Supabase: {e}") from e


# Convenience alias
db = get_supabase_client


class DatabaseSession:
    """
    Context manager for database operations with logging.

    Usage:
        with DatabaseSession("apply_catalog_import") as db:
            db.rpc("apply_catalog_import", {...}).execute()
    """

    def __init__(self, operation_name: str, client: Optional[Client] = None):
        self.operation_name = operation_name
        self.client: Optional[Client] = client

    def __enter__(self) -> Client:
        logger.debug(
            "db_operation_start",
            operation=self.operation_name
        )
        if self.client is None:
            self.client = get_supabase_client()
        return self.client

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "db_operation_failed",
                operation=self.operation_name,
                error=str(exc_val),
                error_type=exc_type.__name__
            )
        else:
            logger.debug(
                "db_operation_complete",
                operation=self.operation_name
            )
        return False  # Don't suppress exceptions


# ===================
# HELPER FUNCTIONS
# ===================

def check_connection() -> dict:
    """
    Check database connection health.

    Returns:
        dict: Connection status with details
    """
    try:
        client = get_supabase_client()

        products = client.table("products").select("id", count="exact").execute()
        profiles = client.table("import_profiles").select("id", count="exact").execute()

        return {
            "status": "healthy",
            "products_count": products.count,
            "profiles_count": profiles.count
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }


def reset_connection():
    """
    Reset the cached database connection.

    Call this if connection becomes stale or after config changes.
    """
    get_supabase_client.cache_clear()
    logger.info("database_connection_reset")
