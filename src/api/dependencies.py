"""FastAPI dependencies for injection."""
from core.auth import (
    get_bookmark_gateway,
    get_current_user,
    get_optional_user,
)
from core.config import get_settings
from core.supabase import get_supabase_client
from services.bookmark_form import get_form_registry

__all__ = [
    "get_bookmark_gateway",
    "get_current_user",
    "get_form_registry",
    "get_optional_user",
    "get_settings",
    "get_supabase_client",
]
