"""
Supabase auth adapter

Users sign in with an internal email derived from their username.
The access token travels in the sb-access-token cookie (or an
Authorization: Bearer header) and is verified locally.
"""

import logging
from typing import Any, Dict, Optional

from jwt.exceptions import ExpiredSignatureError, InvalidTokenError
from starlette.requests import Request
from starlette.responses import Response

from bookkeeping.auth.adapters import AuthAdapter, SessionUser
from bookkeeping.auth.username import email_to_username, username_to_email
from bookkeeping.backends.supabase.client import (
    SupabaseAuthClient,
    SupabaseAuthError,
    SupabaseConfigError,
)
from bookkeeping.services.errors import (
    BackendError,
    InvalidCredentialsError,
    UnsupportedOperationError,
    UsernameTakenError,
    ValidationError,
)
from bookkeeping.utils.cookies import cookie_options

logger = logging.getLogger(__name__)

SB_ACCESS_TOKEN_COOKIE = "sb-access-token"
SB_REFRESH_TOKEN_COOKIE = "sb-refresh-token"


def user_from_supabase(user: Dict[str, Any], access_token: Optional[str] = None, refresh_token: Optional[str] = None) -> SessionUser:
    """Build a SessionUser from a GoTrue user object"""
    metadata = user.get("user_metadata") or {}
    email = user.get("email")
    return SessionUser(
        id=user.get("id"),
        username=metadata.get("username") or (email_to_username(email) if email else None),
        account_name=email,
        email=email,
        full_name=metadata.get("full_name"),
        session_token=access_token,
        refresh_token=refresh_token,
    )


def user_from_claims(claims: Dict[str, Any], access_token: str) -> SessionUser:
    """Build a SessionUser from verified access-token claims"""
    return user_from_supabase(
        {
            "id": claims.get("sub"),
            "email": claims.get("email"),
            "user_metadata": claims.get("user_metadata") or {},
        },
        access_token=access_token,
    )


def extract_access_token(request: Request) -> Optional[str]:
    """Access token from the session cookie, falling back to a Bearer header"""
    token = request.cookies.get(SB_ACCESS_TOKEN_COOKIE)
    if token:
        return token
    auth_header = request.headers.get("Authorization")
    if auth_header:
        parts = auth_header.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]
    return None


class SupabaseAuthAdapter(AuthAdapter):
    """Auth over Supabase GoTrue"""

    name = "supabase"

    def __init__(self, client: SupabaseAuthClient):
        self.client = client

    def sign_in(self, username: str, password: str, company_code: Optional[str] = None) -> SessionUser:
        # Supabase emails are global; the company code is checked against the profile by the caller
        email = username_to_email(username)
        try:
            result = self.client.sign_in_with_password(email, password)
        except SupabaseAuthError as e:
            if e.is_invalid_credentials or e.status_code in (400, 401):
                raise InvalidCredentialsError("用户名或密码错误")
            logger.error(f"Supabase sign-in failed: {e.message}", extra={"status_code": e.status_code})
            raise BackendError(e.message or "登录失败")

        user = user_from_supabase(
            result.get("user") or {},
            access_token=result.get("access_token"),
            refresh_token=result.get("refresh_token"),
        )
        user.company_code = company_code.upper() if company_code else None
        return user

    def sign_up(
        self,
        username: str,
        password: str,
        full_name: Optional[str] = None,
        email: Optional[str] = None,
        company_code: Optional[str] = None,
    ) -> SessionUser:
        internal_email = username_to_email(username)
        metadata = {
            "full_name": full_name or username,
            "username": username.lower(),
            "recovery_email": email or None,
        }

        try:
            if self.client.settings.SUPABASE_SERVICE_ROLE_KEY:
                # Internal emails cannot receive confirmation mail: create confirmed
                created = self.client.admin_create_user(internal_email, password, user_metadata=metadata)
            else:
                created = self.client.sign_up(internal_email, password, data=metadata)
        except SupabaseAuthError as e:
            if e.is_already_registered:
                raise UsernameTakenError("用户名已存在")
            logger.error(f"Supabase sign-up failed: {e.message}", extra={"status_code": e.status_code})
            raise BackendError(e.message or "注册失败")

        # /signup wraps the user when a session is issued; admin create returns the user itself
        user = created.get("user") if isinstance(created.get("user"), dict) else created
        result = user_from_supabase(user, access_token=created.get("access_token"))
        result.company_code = company_code.upper() if company_code else None
        return result

    def get_user(self, request: Request) -> Optional[SessionUser]:
        token = extract_access_token(request)
        if not token:
            return None
        try:
            claims = self.client.verify_access_token(token)
        except ExpiredSignatureError:
            logger.info("Supabase access token expired")
            return None
        except InvalidTokenError as e:
            logger.info(f"Supabase access token rejected: {e}")
            return None
        return user_from_claims(claims, token)

    def set_session(self, response: Response, user: SessionUser) -> None:
        options = cookie_options()
        response.set_cookie(SB_ACCESS_TOKEN_COOKIE, user.session_token, **options)
        if user.refresh_token:
            response.set_cookie(SB_REFRESH_TOKEN_COOKIE, user.refresh_token, **options)

    def clear_session(self, response: Response) -> None:
        response.delete_cookie(SB_ACCESS_TOKEN_COOKIE, path="/")
        response.delete_cookie(SB_REFRESH_TOKEN_COOKIE, path="/")

    def sign_out(self, user: Optional[SessionUser], response: Response) -> None:
        if user and user.session_token:
            try:
                self.client.sign_out(user.session_token)
            except SupabaseAuthError as e:
                # The session is dropped client-side regardless
                logger.warning(f"Supabase sign-out failed: {e.message}")
        self.clear_session(response)

    def update_password(self, user: SessionUser, old_password: str, new_password: str) -> None:
        try:
            self.client.sign_in_with_password(user.email, old_password)
        except SupabaseAuthError as e:
            if e.is_network_error:
                raise BackendError(e.message)
            raise ValidationError("当前密码错误")

        try:
            self.client.update_user(user.session_token, {"password": new_password})
        except SupabaseAuthError as e:
            raise BackendError(e.message or "更新密码失败")

    def update_user_info(self, user: SessionUser, full_name: Optional[str] = None, email: Optional[str] = None) -> None:
        data: Dict[str, Any] = {}
        if email is not None:
            data["recovery_email"] = email or None
        if full_name is not None:
            data["full_name"] = full_name
        if not data:
            return

        try:
            self.client.update_user(user.session_token, {"data": data})
        except SupabaseAuthError as e:
            raise BackendError(e.message or "更新用户信息失败")

    def delete_user(self, user_id: str) -> None:
        try:
            self.client.admin_delete_user(user_id)
        except (SupabaseAuthError, SupabaseConfigError) as e:
            raise BackendError(str(e) or "删除用户失败")

    def find_company_code_by_email(self, email: str) -> Optional[str]:
        raise UnsupportedOperationError("Supabase 模式暂不支持找回公司码")

    def check_connection(self) -> bool:
        return self.client.health()
