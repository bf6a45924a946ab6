import functools
import logging
import time
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from app.core.config import settings
from app.core.errors import NotFound, TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Postgres SQLSTATE codes surfaced by PostgREST
UNIQUE_VIOLATION = "23505"
CHECK_VIOLATION = "23514"
INVALID_TEXT_REPRESENTATION = "22P02"  # e.g. a malformed UUID in a filter
INVALID_PARAMETER_VALUE = "22023"
NO_DATA_FOUND = "P0002"

# Raised by the ledger functions in database/schema.py
INSUFFICIENT_POINTS = "LY001"
NO_UNIQUE_CODE = "LY002"

# PostgREST: function not in the schema cache (migration not applied)
FUNCTION_NOT_FOUND = "PGRST202"


def init_db():
    """Initialize database connection - verify Supabase connection.

    Note: Schema is managed via the DDL in database/schema.py, applied as a
    Supabase migration, not here.
    """
    if not settings.supabase_url or not settings.supabase_secret_key:
        logger.warning("Supabase credentials not configured. Database features disabled.")
        return

    try:
        from .supabase_client import get_supabase_client
        client = get_supabase_client()
        # Try a simple query - may fail if migrations haven't run yet
        client.table("profiles").select("id").limit(1).execute()
        logger.info("Supabase connection verified")
    except Exception as e:
        logger.warning(f"Supabase connection check failed: {e}")
        logger.warning("Make sure migrations have been run and credentials are correct.")


def get_db() -> Client:
    """Get database client - Supabase compatible."""
    from .supabase_client import get_supabase_client
    return get_supabase_client()


def with_retry(max_retries: int = 2, delay: float = 0.1) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator that retries database operations on connection errors.

    Handles transient HTTP connection errors like "Server disconnected" by
    resetting the connection and retrying. Only apply it to reads and to
    writes that are safe to repeat; balance mutations and ledger inserts
    must not be wrapped.

    Args:
        max_retries: Maximum number of retry attempts (default 2)
        delay: Delay in seconds between retries (default 0.1)
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            from .supabase_client import reset_supabase_client

            last_error = None
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except (httpx.RemoteProtocolError, httpx.ConnectError) as e:
                    last_error = e
                    if attempt < max_retries:
                        logger.warning(
                            f"Connection error in {func.__name__}, retrying ({attempt + 1}/{max_retries}): {e}"
                        )
                        reset_supabase_client()
                        time.sleep(delay)
                    else:
                        logger.error(f"Connection error in {func.__name__} after {max_retries} retries: {e}")
                        raise
            raise last_error  # Should never reach here, but for type safety
        return wrapper
    return decorator


@contextmanager
def store_errors(operation: str, resource: str = "Record") -> Iterator[None]:
    """Translate datastore failures into ``TransientStoreError``.

    Raw PostgREST/HTTP details are logged here and never propagated to
    callers; domain errors raised inside the block pass through untouched.
    An identifier the database cannot parse (SQLSTATE 22P02) cannot match
    any row, so it becomes ``NotFound(resource)``.
    """
    try:
        yield
    except APIError as e:
        if e.code == INVALID_TEXT_REPRESENTATION:
            logger.warning(f"Malformed identifier during {operation}: {e.message}")
            raise NotFound(f"{operation}: {e.message}", resource=resource) from e
        logger.error(f"Datastore error during {operation}: code={e.code} message={e.message}")
        raise TransientStoreError(f"{operation} failed") from e
    except httpx.HTTPError as e:
        logger.error(f"Datastore unreachable during {operation}: {e}")
        raise TransientStoreError(f"{operation} failed") from e
