"""
LeanCloud auth adapter

Users live in LeanCloud's _User class with namespaced usernames
("{CODE}_{username}"); the session is the LeanCloud session token kept
in the lc_* cookies.
"""

import json
import logging
from typing import Any, Dict, Optional

from starlette.requests import Request
from starlette.responses import Response

from bookkeeping.auth.adapters import AuthAdapter, SessionUser
from bookkeeping.auth.username import (
    build_namespaced_username,
    extract_company_code,
    extract_original_username,
)
from bookkeeping.backends.leancloud.client import (
    ERROR_EMAIL_TAKEN,
    ERROR_USER_NOT_FOUND,
    ERROR_USERNAME_PASSWORD_MISMATCH,
    ERROR_USERNAME_TAKEN,
    LeanCloudClient,
    LeanCloudError,
)
from bookkeeping.backends.leancloud.cookies import (
    clear_lc_session_cookies,
    get_lc_session,
    set_lc_session_cookies,
    verify_lc_session,
)
from bookkeeping.infrastructure.logging_config import mask_token
from bookkeeping.services.errors import (
    BackendError,
    EmailTakenError,
    InvalidCredentialsError,
    UsernameTakenError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def user_from_lc(obj: Dict[str, Any], session_token: Optional[str] = None) -> SessionUser:
    """Build a SessionUser from a LeanCloud _User payload"""
    account_name = obj.get("username") or ""
    return SessionUser(
        id=obj.get("objectId"),
        username=extract_original_username(account_name),
        account_name=account_name,
        email=obj.get("email"),
        full_name=obj.get("fullName"),
        company_code=extract_company_code(account_name),
        session_token=obj.get("sessionToken") or session_token,
    )


class LeanCloudAuthAdapter(AuthAdapter):
    """Auth over LeanCloud REST (/login, /users)"""

    name = "leancloud"

    def __init__(self, client: LeanCloudClient):
        self.client = client

    def sign_in(self, username: str, password: str, company_code: Optional[str] = None) -> SessionUser:
        account_name = (
            build_namespaced_username(company_code, username)
            if company_code
            else username.lower()
        )
        logger.info("LeanCloud login attempt", extra={"account_name": account_name})

        try:
            result = self.client.request("POST", "/login", json={"username": account_name, "password": password})
        except LeanCloudError as e:
            if e.code in (ERROR_USERNAME_PASSWORD_MISMATCH, ERROR_USER_NOT_FOUND):
                raise InvalidCredentialsError("公司码、用户名或密码错误")
            logger.error(f"LeanCloud login failed: {e.message}", extra={"lc_code": e.code})
            raise BackendError(e.message or "登录失败")

        user = user_from_lc(result)
        logger.info(
            "LeanCloud login succeeded",
            extra={"user_id": user.id, "session": mask_token(user.session_token)},
        )
        return user

    def sign_up(
        self,
        username: str,
        password: str,
        full_name: Optional[str] = None,
        email: Optional[str] = None,
        company_code: Optional[str] = None,
    ) -> SessionUser:
        account_name = (
            build_namespaced_username(company_code, username)
            if company_code
            else username.lower()
        )
        payload = {"username": account_name, "password": password}
        if email:
            payload["email"] = email
        if full_name:
            payload["fullName"] = full_name

        try:
            result = self.client.request("POST", "/users", json=payload)
        except LeanCloudError as e:
            if e.code == ERROR_USERNAME_TAKEN:
                raise UsernameTakenError("用户名已存在")
            if e.code == ERROR_EMAIL_TAKEN:
                raise EmailTakenError("邮箱已被使用")
            logger.error(f"LeanCloud sign-up failed: {e.message}", extra={"lc_code": e.code})
            raise BackendError(e.message or "注册失败")

        # POST /users returns objectId, createdAt and sessionToken only
        return user_from_lc({**payload, **result})

    def get_user(self, request: Request) -> Optional[SessionUser]:
        session = get_lc_session(request)
        if session is None:
            return None

        me = verify_lc_session(self.client, session.session_token)
        if me is None:
            return None

        user = user_from_lc(me, session.session_token)
        if not user.company_code:
            user.company_code = session.company_code
        return user

    def set_session(self, response: Response, user: SessionUser) -> None:
        set_lc_session_cookies(
            response,
            session_token=user.session_token,
            user_id=user.id,
            username=user.account_name,
            company_code=user.company_code,
        )

    def clear_session(self, response: Response) -> None:
        clear_lc_session_cookies(response)

    def update_password(self, user: SessionUser, old_password: str, new_password: str) -> None:
        try:
            self.client.request("POST", "/login", json={"username": user.account_name, "password": old_password})
        except LeanCloudError:
            raise ValidationError("原密码错误")

        try:
            self.client.request(
                "PUT",
                f"/users/{user.id}",
                json={"password": new_password},
                session_token=user.session_token,
            )
        except LeanCloudError as e:
            raise BackendError(e.message or "修改密码失败")

    def update_user_info(self, user: SessionUser, full_name: Optional[str] = None, email: Optional[str] = None) -> None:
        payload: Dict[str, Any] = {}
        if full_name is not None:
            payload["fullName"] = full_name
        if email is not None:
            payload["email"] = email or None
        if not payload:
            return

        try:
            self.client.request("PUT", f"/users/{user.id}", json=payload, session_token=user.session_token)
        except LeanCloudError as e:
            if e.code == ERROR_EMAIL_TAKEN:
                raise EmailTakenError("邮箱已被使用")
            raise BackendError(e.message or "更新用户信息失败")

    def delete_user(self, user_id: str) -> None:
        try:
            self.client.request("DELETE", f"/users/{user_id}", use_master_key=True)
        except LeanCloudError as e:
            raise BackendError(e.message or "删除用户失败")

    def find_company_code_by_email(self, email: str) -> Optional[str]:
        # _User is only queryable with the master key
        result = self.client.request(
            "GET",
            "/users",
            params={"where": json.dumps({"email": email}), "limit": 1},
            use_master_key=self.client.has_master_key,
        )
        users = result.get("results") or []
        if not users:
            return None
        return extract_company_code(users[0].get("username") or "")

    def check_connection(self) -> bool:
        return self.client.check_connection()
