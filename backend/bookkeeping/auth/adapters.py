"""
Auth adapter interface

Both backends expose the same operations so routes and services never
branch on the backend themselves; get_auth_adapter() picks the
implementation for the detected backend.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from starlette.requests import Request
from starlette.responses import Response


@dataclass
class SessionUser:
    """Authenticated user as seen by the auth backend"""
    id: str
    username: Optional[str] = None  # name typed at login (company prefix removed)
    account_name: Optional[str] = None  # backend login name: namespaced username or internal email
    email: Optional[str] = None
    full_name: Optional[str] = None
    company_code: Optional[str] = None
    session_token: Optional[str] = None  # LeanCloud session token or Supabase access token
    refresh_token: Optional[str] = None


class AuthAdapter(ABC):
    """Backend-specific authentication operations"""

    name: str = ""

    @abstractmethod
    def sign_in(self, username: str, password: str, company_code: Optional[str] = None) -> SessionUser:
        """
        Authenticate with username and password.

        Raises:
            InvalidCredentialsError: If the credentials are rejected
        """

    @abstractmethod
    def sign_up(
        self,
        username: str,
        password: str,
        full_name: Optional[str] = None,
        email: Optional[str] = None,
        company_code: Optional[str] = None,
    ) -> SessionUser:
        """
        Create a user account.

        Raises:
            UsernameTakenError: If the username already exists
            EmailTakenError: If the email is bound to another user
        """

    @abstractmethod
    def get_user(self, request: Request) -> Optional[SessionUser]:
        """Resolve the session on a request; None when absent or invalid"""

    @abstractmethod
    def set_session(self, response: Response, user: SessionUser) -> None:
        """Write session cookies for a signed-in user"""

    @abstractmethod
    def clear_session(self, response: Response) -> None:
        """Remove session cookies"""

    def sign_out(self, user: Optional[SessionUser], response: Response) -> None:
        self.clear_session(response)

    @abstractmethod
    def update_password(self, user: SessionUser, old_password: str, new_password: str) -> None:
        """Change the password after re-checking the old one"""

    @abstractmethod
    def update_user_info(self, user: SessionUser, full_name: Optional[str] = None, email: Optional[str] = None) -> None:
        """Update auth-side user attributes"""

    @abstractmethod
    def delete_user(self, user_id: str) -> None:
        """Delete an auth user (privileged)"""

    @abstractmethod
    def find_company_code_by_email(self, email: str) -> Optional[str]:
        """Company code of the user bound to an email, if any"""

    @abstractmethod
    def check_connection(self) -> bool:
        """Connectivity check used by /ready"""
