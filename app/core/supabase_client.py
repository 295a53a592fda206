from functools import lru_cache
from supabase import create_client, Client
from app.core.config import settings

@lru_cache
def get_supabase() -> Client:
    """
    Returns the process-wide Supabase client, created on first use so that
    importing the app never requires credentials.
    """
    return create_client(settings.supabase_url, settings.supabase_key)
