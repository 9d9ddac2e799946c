"""
Supabase GoTrue REST client

Password sign-in, sign-up and user updates go through the public API
with the anon key; user creation/deletion go through the admin API with
the service-role key. Access tokens are verified locally with the
project's JWT secret.
"""

import logging
from typing import Any, Dict, Optional

import httpx
import jwt

from bookkeeping.infrastructure.settings import Settings, get_settings

logger = logging.getLogger(__name__)

# error_code for requests that never got a response
NETWORK_ERROR = "network_error"


class SupabaseAuthError(Exception):
    """Error response returned by GoTrue"""

    def __init__(self, message: str, status_code: Optional[int] = None, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code

    @property
    def is_already_registered(self) -> bool:
        return self.error_code in ("user_already_exists", "email_exists") or "already registered" in self.message

    @property
    def is_network_error(self) -> bool:
        return self.error_code == NETWORK_ERROR

    @property
    def is_invalid_credentials(self) -> bool:
        return self.error_code in ("invalid_credentials", "invalid_grant") or "Invalid login credentials" in self.message


class SupabaseConfigError(Exception):
    """Raised when an admin call is made without a service-role key"""
    pass


class SupabaseAuthClient:
    """Synchronous GoTrue client"""

    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.BaseTransport] = None):
        self.settings = settings or get_settings()
        self._http = httpx.Client(
            base_url=f"{self.settings.SUPABASE_URL.rstrip('/')}/auth/v1",
            timeout=self.settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        return {
            "apikey": self.settings.SUPABASE_ANON_KEY,
            "Authorization": f"Bearer {access_token or self.settings.SUPABASE_ANON_KEY}",
            "Content-Type": "application/json",
        }

    def _admin_headers(self) -> Dict[str, str]:
        key = self.settings.SUPABASE_SERVICE_ROLE_KEY
        if not key:
            raise SupabaseConfigError("SUPABASE_SERVICE_ROLE_KEY is not configured")
        return {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, headers: Dict[str, str], **kwargs) -> Dict[str, Any]:
        try:
            response = self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Supabase auth unreachable: {e}", extra={"method": method, "path": path})
            raise SupabaseAuthError("认证服务暂时不可用", error_code=NETWORK_ERROR) from e
        if response.is_success:
            return response.json() if response.content else {}

        try:
            body = response.json()
        except ValueError:
            body = {}
        message = (
            body.get("msg")
            or body.get("error_description")
            or body.get("message")
            or body.get("error")
            or f"Supabase auth request failed with HTTP {response.status_code}"
        )
        raise SupabaseAuthError(
            message,
            status_code=response.status_code,
            error_code=body.get("error_code") or body.get("error"),
        )

    def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        """Returns {access_token, refresh_token, expires_in, user}"""
        return self._request(
            "POST",
            "/token",
            headers=self._headers(),
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )

    def sign_up(self, email: str, password: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/signup",
            headers=self._headers(),
            json={"email": email, "password": password, "data": data or {}},
        )

    def sign_out(self, access_token: str) -> None:
        self._request("POST", "/logout", headers=self._headers(access_token))

    def get_user(self, access_token: str) -> Dict[str, Any]:
        return self._request("GET", "/user", headers=self._headers(access_token))

    def update_user(self, access_token: str, attributes: Dict[str, Any]) -> Dict[str, Any]:
        """attributes: {"password": ...} and/or {"data": {...user_metadata}}"""
        return self._request("PUT", "/user", headers=self._headers(access_token), json=attributes)

    def admin_create_user(
        self,
        email: str,
        password: str,
        user_metadata: Optional[Dict[str, Any]] = None,
        email_confirm: bool = True,
    ) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/admin/users",
            headers=self._admin_headers(),
            json={
                "email": email,
                "password": password,
                "email_confirm": email_confirm,
                "user_metadata": user_metadata or {},
            },
        )

    def admin_delete_user(self, user_id: str) -> None:
        self._request("DELETE", f"/admin/users/{user_id}", headers=self._admin_headers())

    def health(self) -> bool:
        try:
            self._request("GET", "/health", headers=self._headers())
            return True
        except SupabaseAuthError as e:
            logger.error(f"Supabase auth health check failed: {e}")
            return False

    def verify_access_token(self, token: str) -> Dict[str, Any]:
        """
        Verify an access token locally (HS256, project JWT secret).

        Raises:
            jwt.ExpiredSignatureError: If token is expired
            jwt.InvalidTokenError: If token is invalid
            SupabaseConfigError: If SUPABASE_JWT_SECRET is not configured
        """
        if not self.settings.SUPABASE_JWT_SECRET:
            raise SupabaseConfigError("SUPABASE_JWT_SECRET is not configured")
        return jwt.decode(
            token,
            self.settings.SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            audience=self.settings.SUPABASE_JWT_AUDIENCE,
            options={"require": ["exp", "sub"]},
        )


_client: Optional[SupabaseAuthClient] = None


def get_supabase_auth_client() -> SupabaseAuthClient:
    """Get process-wide GoTrue client (lazy initialization)"""
    global _client
    if _client is None:
        _client = SupabaseAuthClient()
    return _client
