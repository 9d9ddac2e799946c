"""
LeanCloud REST API client

Requests go to {server_url}/1.1{path} with X-LC-Id / X-LC-Key headers.
A session token (X-LC-Session) scopes a request to a user; privileged
lookups use the master key ("{masterKey},master") instead.
"""

import logging
import re
import time
from typing import Any, Callable, Dict, Optional

import httpx

from bookkeeping.infrastructure.settings import Settings, get_settings

logger = logging.getLogger(__name__)

# LeanCloud error codes
ERROR_OBJECT_NOT_FOUND = 101
ERROR_USERNAME_TAKEN = 202
ERROR_EMAIL_TAKEN = 203
ERROR_USERNAME_PASSWORD_MISMATCH = 210
ERROR_USER_NOT_FOUND = 211


class LeanCloudError(Exception):
    """Error response returned by the LeanCloud REST API"""

    def __init__(self, message: str, code: Optional[int] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


class LeanCloudConfigError(Exception):
    """Raised when a request needs configuration that is missing"""
    pass


CLASS_QUERY_PATH = re.compile(r"^/classes/[^/]+/?$")


def _is_missing_class_error(error: LeanCloudError, path: str) -> bool:
    """True when the error means the queried class has no rows yet"""
    message = error.message or ""
    if "doesn't exist" in message or "Class or object" in message:
        return True
    return error.code == ERROR_OBJECT_NOT_FOUND and bool(CLASS_QUERY_PATH.match(path))


class LeanCloudClient:
    """
    Thin synchronous LeanCloud REST client.

    Network failures (httpx.TransportError) are retried with exponential
    backoff; HTTP error responses are raised immediately as LeanCloudError.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings or get_settings()
        self._sleep = sleep
        self._http = httpx.Client(
            base_url=f"{self.settings.leancloud_api_url}/1.1",
            timeout=self.settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    @property
    def has_master_key(self) -> bool:
        return bool(self.settings.LEANCLOUD_MASTER_KEY)

    def headers(self, session_token: Optional[str] = None) -> Dict[str, str]:
        """Headers for an app-key (optionally user-scoped) request"""
        headers = {
            "X-LC-Id": self.settings.LEANCLOUD_APP_ID,
            "X-LC-Key": self.settings.LEANCLOUD_APP_KEY,
            "Content-Type": "application/json",
        }
        if session_token:
            headers["X-LC-Session"] = session_token
        return headers

    def master_headers(self) -> Dict[str, str]:
        """Headers for a master-key request"""
        if not self.settings.LEANCLOUD_MASTER_KEY:
            raise LeanCloudConfigError("LEANCLOUD_MASTER_KEY is not configured")
        return {
            "X-LC-Id": self.settings.LEANCLOUD_APP_ID,
            "X-LC-Key": f"{self.settings.LEANCLOUD_MASTER_KEY},master",
            "Content-Type": "application/json",
        }

    def retry_delay(self, attempt: int) -> float:
        """Backoff delay before retry number `attempt` (0-based)"""
        return min(
            self.settings.LEANCLOUD_RETRY_BASE_DELAY * (2 ** attempt),
            self.settings.LEANCLOUD_RETRY_MAX_DELAY,
        )

    def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        max_retries = self.settings.LEANCLOUD_MAX_RETRIES
        for attempt in range(max_retries + 1):
            try:
                return self._http.request(method, path, **kwargs)
            except httpx.TransportError as e:
                if attempt >= max_retries:
                    raise
                delay = self.retry_delay(attempt)
                logger.warning(
                    f"LeanCloud request failed, retrying in {delay}s ({attempt + 1}/{max_retries})",
                    extra={"method": method, "path": path, "error": str(e)},
                )
                self._sleep(delay)
        raise RuntimeError("unreachable")  # pragma: no cover

    def request(
        self,
        method: str,
        path: str,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        session_token: Optional[str] = None,
        use_master_key: bool = False,
    ) -> Dict[str, Any]:
        """
        Send a request and return the decoded JSON body.

        Raises:
            LeanCloudError: on a non-2xx response
            LeanCloudConfigError: if use_master_key is set without a master key
            httpx.TransportError: when all retries are exhausted
        """
        headers = self.master_headers() if use_master_key else self.headers(session_token)
        response = self._send(method, path, json=json, params=params, headers=headers)

        if response.is_success:
            if not response.content:
                return {}
            return response.json()

        try:
            body = response.json()
        except ValueError:
            body = {}
        error = LeanCloudError(
            body.get("error") or f"LeanCloud request failed with HTTP {response.status_code}",
            code=body.get("code"),
            status_code=response.status_code,
        )

        # Querying a class that has never been written to: treat as empty
        if method.upper() == "GET" and _is_missing_class_error(error, path):
            logger.debug(f"LeanCloud class missing for {path}, returning empty results")
            return {"results": []}

        raise error

    def check_connection(self) -> bool:
        """Ping the server clock endpoint"""
        try:
            self.request("GET", "/date")
            return True
        except (LeanCloudError, httpx.HTTPError) as e:
            logger.error(f"LeanCloud connection check failed: {e}")
            return False


_client: Optional[LeanCloudClient] = None


def get_leancloud_client() -> LeanCloudClient:
    """Get process-wide LeanCloud client (lazy initialization)"""
    global _client
    if _client is None:
        _client = LeanCloudClient()
    return _client
