"""
Success envelope for route handlers
"""

from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder


def success(data: Any = None, count: Optional[int] = None) -> Dict[str, Any]:
    """{"success": true, "data": ..., "error": null}; list routes pass count"""
    body: Dict[str, Any] = {"success": True, "data": jsonable_encoder(data), "error": None}
    if count is not None:
        body["count"] = count
    return body
