"""
LeanCloud session cookies

A LeanCloud session is carried in four cookies. The session is only
considered present when token, user id and username are all set; the
company code cookie is optional.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from starlette.requests import Request
from starlette.responses import Response

from bookkeeping.backends.leancloud.client import LeanCloudClient, LeanCloudError
from bookkeeping.infrastructure.settings import Settings
from bookkeeping.utils.cookies import cookie_options

logger = logging.getLogger(__name__)

LC_SESSION_COOKIE = "lc_session"
LC_USER_ID_COOKIE = "lc_user_id"
LC_USERNAME_COOKIE = "lc_username"
LC_COMPANY_CODE_COOKIE = "lc_company_code"

LC_COOKIE_NAMES = (
    LC_SESSION_COOKIE,
    LC_USER_ID_COOKIE,
    LC_USERNAME_COOKIE,
    LC_COMPANY_CODE_COOKIE,
)


@dataclass
class LCSession:
    """Session data read from LeanCloud cookies"""
    session_token: str
    user_id: str
    username: str
    company_code: Optional[str] = None


def get_lc_session(request: Request) -> Optional[LCSession]:
    """Read the LeanCloud session from request cookies"""
    session_token = request.cookies.get(LC_SESSION_COOKIE)
    user_id = request.cookies.get(LC_USER_ID_COOKIE)
    username = request.cookies.get(LC_USERNAME_COOKIE)

    if not session_token or not user_id or not username:
        return None

    return LCSession(
        session_token=session_token,
        user_id=user_id,
        username=username,
        company_code=request.cookies.get(LC_COMPANY_CODE_COOKIE) or None,
    )


def set_lc_session_cookies(
    response: Response,
    session_token: str,
    user_id: str,
    username: str,
    company_code: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> None:
    """Write the session cookies onto a response"""
    options = cookie_options(settings)
    response.set_cookie(LC_SESSION_COOKIE, session_token, **options)
    response.set_cookie(LC_USER_ID_COOKIE, user_id, **options)
    response.set_cookie(LC_USERNAME_COOKIE, username, **options)
    if company_code:
        response.set_cookie(LC_COMPANY_CODE_COOKIE, company_code, **options)


def clear_lc_session_cookies(response: Response) -> None:
    """Expire all four session cookies"""
    for name in LC_COOKIE_NAMES:
        response.delete_cookie(name, path="/")


def verify_lc_session(client: LeanCloudClient, session_token: str) -> Optional[Dict[str, Any]]:
    """
    Check a session token against LeanCloud.

    Returns the /users/me payload, or None when the token is rejected.
    """
    try:
        return client.request("GET", "/users/me", session_token=session_token)
    except LeanCloudError as e:
        logger.info(f"LeanCloud session rejected: {e.message}", extra={"lc_code": e.code})
        return None
