from supabase import create_client, Client
from lenddesk.config import get_settings


def get_supabase_admin() -> Client:
    """Service role client. Bypasses RLS, for server-side operations."""
    settings = get_settings()
    return create_client(
        settings.supabase_url,
        settings.supabase_service_role_key
    )
