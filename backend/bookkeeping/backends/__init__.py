"""
Backend selection and vendor REST clients (Supabase GoTrue, LeanCloud)
"""

from bookkeeping.backends.detector import (
    BACKEND_LEANCLOUD,
    BACKEND_SUPABASE,
    detect_backend,
    get_backend_info,
    is_leancloud_mode,
    is_supabase_mode,
)

__all__ = [
    "BACKEND_LEANCLOUD",
    "BACKEND_SUPABASE",
    "detect_backend",
    "get_backend_info",
    "is_leancloud_mode",
    "is_supabase_mode",
]
