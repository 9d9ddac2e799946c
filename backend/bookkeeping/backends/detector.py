"""
Runtime backend detection

The backend is chosen per process from configuration:
- BACKEND=supabase|leancloud forces a backend
- otherwise Supabase is used when its URL and anon key are configured,
  and LeanCloud is the fallback
"""

from typing import Any, Dict, Optional

from bookkeeping.infrastructure.settings import Settings, get_settings

BACKEND_SUPABASE = "supabase"
BACKEND_LEANCLOUD = "leancloud"


def detect_backend(settings: Optional[Settings] = None) -> str:
    """Return "supabase" or "leancloud" for the given settings"""
    settings = settings or get_settings()

    if settings.BACKEND in (BACKEND_LEANCLOUD, BACKEND_SUPABASE):
        return settings.BACKEND

    if settings.SUPABASE_URL and settings.SUPABASE_ANON_KEY:
        return BACKEND_SUPABASE

    return BACKEND_LEANCLOUD


def is_leancloud_mode(settings: Optional[Settings] = None) -> bool:
    return detect_backend(settings) == BACKEND_LEANCLOUD


def is_supabase_mode(settings: Optional[Settings] = None) -> bool:
    return detect_backend(settings) == BACKEND_SUPABASE


def get_backend_info(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Describe the active backend configuration.

    Keys are never returned; the LeanCloud app id is masked to its
    first 8 characters.
    """
    settings = settings or get_settings()
    app_id = settings.LEANCLOUD_APP_ID

    return {
        "backend": detect_backend(settings),
        "supabase_configured": bool(settings.SUPABASE_URL and settings.SUPABASE_ANON_KEY),
        "leancloud_configured": bool(app_id and settings.LEANCLOUD_APP_KEY and settings.LEANCLOUD_SERVER_URL),
        "leancloud_app_id": f"{app_id[:8]}..." if app_id else None,
    }
