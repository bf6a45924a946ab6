import threading

from supabase import create_client, Client

from app.core.config import settings

# Thread-local storage for Supabase client to avoid connection pool sharing issues
_thread_local = threading.local()


def _require_credentials(key: str) -> None:
    if not settings.supabase_url or not key:
        raise RuntimeError(
            "Supabase credentials not configured. "
            "Set SUPABASE_URL, SUPABASE_SECRET_KEY and SUPABASE_PUBLISHABLE_KEY environment variables."
        )


def get_supabase_client() -> Client:
    """Get a thread-local Supabase client (service role) for table access.

    Each thread gets its own client instance, preventing "Server disconnected"
    errors that occur when stale pooled connections are reused across threads.
    """
    _require_credentials(settings.supabase_secret_key)

    if not hasattr(_thread_local, "client"):
        _thread_local.client = create_client(
            settings.supabase_url,
            settings.supabase_secret_key,
        )
    return _thread_local.client


def get_auth_client() -> Client:
    """Get a fresh Supabase client bound to the publishable key.

    Sign-up and sign-in store a session on the client they run on, so these
    calls never share the service-role client.
    """
    _require_credentials(settings.supabase_publishable_key)
    return create_client(settings.supabase_url, settings.supabase_publishable_key)


def reset_supabase_client() -> None:
    """Reset the thread-local Supabase client.

    Call this after catching a connection error to force a fresh connection
    on the next request.
    """
    if hasattr(_thread_local, "client"):
        delattr(_thread_local, "client")
