"""
Company users API endpoints
"""

from fastapi import APIRouter, Depends

from bookkeeping.api.responses import success
from bookkeeping.auth import service as auth_service
from bookkeeping.auth.adapters import AuthAdapter
from bookkeeping.auth.dependencies import get_auth_adapter, get_current_profile, get_repository
from bookkeeping.repositories.base import Repository, Row
from bookkeeping.schemas.auth import CreateUserRequest
from bookkeeping.schemas.members import UserRoleUpdate, UserStoresUpdate
from bookkeeping.services import users as user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("")
def list_users(
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    users = user_service.get_company_users(repo, profile)
    return success(users, count=len(users))


@router.post("")
def create_user(
    body: CreateUserRequest,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
    adapter: AuthAdapter = Depends(get_auth_adapter),
):
    """Owner creates a company account without an invitation"""
    created = auth_service.create_user_account(
        repo,
        adapter,
        profile,
        body.username,
        body.password,
        body.full_name,
        body.role,
        managed_store_ids=body.managed_store_ids,
    )
    repo.commit()
    return success(created)


@router.put("/{profile_id}/role")
def update_user_role(
    profile_id: str,
    body: UserRoleUpdate,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    updated = user_service.update_user_role(
        repo, profile, profile_id, body.role, managed_store_ids=body.managed_store_ids
    )
    repo.commit()
    return success(updated)


@router.put("/{profile_id}/stores")
def update_user_stores(
    profile_id: str,
    body: UserStoresUpdate,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    updated = user_service.update_user_stores(repo, profile, profile_id, body.managed_store_ids)
    repo.commit()
    return success(updated)


@router.delete("/{profile_id}")
def remove_user(
    profile_id: str,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
    adapter: AuthAdapter = Depends(get_auth_adapter),
):
    user_service.remove_user(repo, adapter, profile, profile_id)
    repo.commit()
    return success({"id": profile_id})
