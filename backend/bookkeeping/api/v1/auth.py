"""
Auth API endpoints

Sign-in, owner registration and the caller's own account. Session
cookies are written by the active backend's adapter.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, Response

from bookkeeping.api.responses import success
from bookkeeping.auth import service as auth_service
from bookkeeping.auth.adapters import AuthAdapter, SessionUser
from bookkeeping.auth.dependencies import (
    get_auth_adapter,
    get_current_user,
    get_privileged_repository,
    get_repository,
)
from bookkeeping.backends.detector import get_backend_info
from bookkeeping.repositories.base import Repository, Row
from bookkeeping.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    RecoverCompanyCodeRequest,
    RegisterOwnerRequest,
    UpdateMeRequest,
)
from bookkeeping.security.permissions import get_user_permissions

router = APIRouter()
logger = logging.getLogger(__name__)


def user_payload(user: SessionUser, profile: Optional[Row] = None, company: Optional[Row] = None) -> Dict[str, Any]:
    """Public view of a session user (tokens stay in cookies)"""
    return {
        "id": user.id,
        "username": user.username,
        "email": (profile or {}).get("email") or user.email,
        "full_name": (profile or {}).get("full_name") or user.full_name,
        "company_code": (company or {}).get("code") or user.company_code,
        "profile": profile,
        "company": company,
    }


@router.post("/login")
def login(
    body: LoginRequest,
    response: Response,
    repo: Repository = Depends(get_privileged_repository),
    adapter: AuthAdapter = Depends(get_auth_adapter),
):
    """Sign in with company code, username and password"""
    user, profile = auth_service.login(
        repo,
        adapter,
        body.username.strip(),
        body.password,
        company_code=body.company_code.strip(),
    )
    company = auth_service.get_company_by_id(repo, profile["company_id"])
    adapter.set_session(response, user)
    return success(user_payload(user, profile, company))


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    adapter: AuthAdapter = Depends(get_auth_adapter),
):
    """Clear the session (succeeds without one)"""
    adapter.sign_out(adapter.get_user(request), response)
    return success()


@router.post("/register-owner")
def register_owner(
    body: RegisterOwnerRequest,
    response: Response,
    repo: Repository = Depends(get_privileged_repository),
    adapter: AuthAdapter = Depends(get_auth_adapter),
):
    """Create a company and its owner account, then sign in"""
    result = auth_service.register_owner(
        repo,
        adapter,
        body.username,
        body.password,
        body.full_name,
        body.company_name,
        email=body.email,
        company_code=body.company_code,
    )
    repo.commit()

    user = result["user"]
    if user.session_token:
        adapter.set_session(response, user)
    return success({
        "user": user_payload(user, company=result["company"]),
        "company": result["company"],
        "company_code": result["company_code"],
    })


@router.post("/recover-company-code")
def recover_company_code(
    body: RecoverCompanyCodeRequest,
    adapter: AuthAdapter = Depends(get_auth_adapter),
):
    """
    Look up the company code bound to an email.

    The answer does not reveal whether an account exists.
    """
    code = auth_service.recover_company_code(adapter, body.email)
    if code:
        logger.info("Company code recovered")
    return success({"company_code": code, "message": "如果该邮箱已绑定账号，将显示对应的公司码"})


@router.get("/me")
def me(
    user: SessionUser = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    """Signed-in user with profile, company and effective permissions"""
    profile = auth_service.get_current_profile(repo, user)
    company = None
    if profile and profile.get("company_id"):
        company = auth_service.get_company_by_id(repo, profile["company_id"])
    payload = user_payload(user, profile, company)
    payload["permissions"] = get_user_permissions(profile)
    return success(payload)


@router.patch("/me")
def update_me(
    body: UpdateMeRequest,
    user: SessionUser = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
    adapter: AuthAdapter = Depends(get_auth_adapter),
):
    """Update full name and recovery email"""
    profile = auth_service.update_user_info(repo, adapter, user, full_name=body.full_name, email=body.email)
    repo.commit()
    return success(profile)


@router.post("/password")
def change_password(
    body: ChangePasswordRequest,
    user: SessionUser = Depends(get_current_user),
    adapter: AuthAdapter = Depends(get_auth_adapter),
):
    auth_service.change_password(adapter, user, body.old_password, body.new_password)
    return success()


@router.get("/backend")
def backend_info():
    """Active backend and which vendors are configured (no keys)"""
    return success(get_backend_info())

