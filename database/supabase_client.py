import threading

from supabase import Client, ClientOptions, create_client

from app.core.config import settings

# One client per worker thread; the underlying HTTP/2 pool must not be shared
_thread_local = threading.local()


def get_supabase_client() -> Client:
    """Get the Supabase client bound to the current thread.

    Uses the service-role key: row-level security is bypassed and store
    scoping is enforced by the repositories and route dependencies instead.
    """
    if not settings.supabase_url or not settings.supabase_secret_key:
        raise RuntimeError(
            "Supabase credentials not configured. "
            "Set SUPABASE_URL and SUPABASE_SECRET_KEY environment variables."
        )

    if not hasattr(_thread_local, "client"):
        _thread_local.client = create_client(
            settings.supabase_url,
            settings.supabase_secret_key,
            options=ClientOptions(
                schema=settings.supabase_schema,
                postgrest_client_timeout=settings.supabase_timeout,
            ),
        )
    return _thread_local.client


def reset_supabase_client() -> None:
    """Drop this thread's client so the next call opens a fresh connection."""
    if hasattr(_thread_local, "client"):
        delattr(_thread_local, "client")
