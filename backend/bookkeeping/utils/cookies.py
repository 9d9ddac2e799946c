"""
Session cookie options shared by both auth backends
"""

from typing import Any, Dict, Optional

from bookkeeping.infrastructure.settings import Settings, get_settings


def cookie_options(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """httponly, lax, site-wide; secure in production; 7-day lifetime by default"""
    settings = settings or get_settings()
    return {
        "httponly": True,
        "secure": settings.cookie_secure,
        "samesite": "lax",
        "path": "/",
        "max_age": settings.SESSION_COOKIE_MAX_AGE,
    }
