"""
Authentication dependencies for FastAPI
"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from bookkeeping.auth.adapters import AuthAdapter, SessionUser
from bookkeeping.auth.leancloud import LeanCloudAuthAdapter
from bookkeeping.auth.service import get_current_profile as load_profile
from bookkeeping.auth.supabase import SupabaseAuthAdapter
from bookkeeping.backends.detector import BACKEND_LEANCLOUD, detect_backend
from bookkeeping.backends.leancloud.client import get_leancloud_client
from bookkeeping.backends.leancloud.cookies import get_lc_session
from bookkeeping.backends.supabase.client import get_supabase_auth_client
from bookkeeping.infrastructure.database import get_db
from bookkeeping.repositories.base import Repository, Row
from bookkeeping.repositories.leancloud import LeanCloudRepository
from bookkeeping.repositories.sql import SqlRepository
from bookkeeping.services.errors import NotAuthenticatedError


def get_auth_adapter() -> AuthAdapter:
    """Auth adapter for the detected backend"""
    if detect_backend() == BACKEND_LEANCLOUD:
        return LeanCloudAuthAdapter(get_leancloud_client())
    return SupabaseAuthAdapter(get_supabase_auth_client())


def get_repository(request: Request, db: Session = Depends(get_db)) -> Repository:
    """
    Data repository scoped to the caller.

    LeanCloud requests carry the session token from the cookies; the SQL
    repository relies on the company checks in the services.
    """
    if detect_backend() == BACKEND_LEANCLOUD:
        session = get_lc_session(request)
        return LeanCloudRepository(
            get_leancloud_client(),
            session_token=session.session_token if session else None,
        )
    return SqlRepository(db)


def get_privileged_repository(db: Session = Depends(get_db)) -> Repository:
    """
    Repository for flows without a session yet (registration, invitations).

    LeanCloud uses the master key when one is configured.
    """
    if detect_backend() == BACKEND_LEANCLOUD:
        client = get_leancloud_client()
        return LeanCloudRepository(client, use_master_key=client.has_master_key)
    return SqlRepository(db)


def get_current_user(
    request: Request,
    adapter: AuthAdapter = Depends(get_auth_adapter),
) -> SessionUser:
    """
    Resolve the signed-in user from the session cookies.

    Raises:
        NotAuthenticatedError: If there is no valid session
    """
    user = adapter.get_user(request)
    if user is None:
        raise NotAuthenticatedError("请先登录")
    request.state.actor_id = user.id
    return user


def get_current_profile(
    request: Request,
    user: SessionUser = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> Row:
    """
    Profile of the signed-in user.

    Raises:
        NotAuthenticatedError: If the user has no profile
    """
    profile = load_profile(repo, user)
    if profile is None:
        raise NotAuthenticatedError("用户资料不存在")
    request.state.actor_role = profile.get("role")
    request.state.actor_company_id = profile.get("company_id")
    return profile
