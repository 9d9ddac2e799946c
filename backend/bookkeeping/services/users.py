"""
Company members: listing, role and store assignment, removal
"""

import logging
from typing import List, Optional

from bookkeeping.auth.adapters import AuthAdapter
from bookkeeping.core.users.models import UserRole
from bookkeeping.repositories.base import Repository, Row, Table, eq
from bookkeeping.security.permissions import is_admin, is_owner
from bookkeeping.services.errors import NotFoundError, PermissionDeniedError, ValidationError
from bookkeeping.services.scope import require_company_id

logger = logging.getLogger(__name__)

# Roles limited to their managed stores
STORE_SCOPED_ROLES = (UserRole.MANAGER.value, UserRole.USER.value)


def get_company_users(repo: Repository, profile: Row) -> List[Row]:
    company_id = require_company_id(profile)
    if not is_admin(profile):
        raise PermissionDeniedError("无权限查看用户列表")
    return repo.find(Table.PROFILES, [eq("company_id", company_id)], order_by=["created_at"])


def _get_member(repo: Repository, company_id: str, profile_id: str) -> Row:
    member = repo.get(Table.PROFILES, profile_id)
    if member is None:
        raise NotFoundError("用户不存在")
    if member.get("company_id") != company_id:
        raise PermissionDeniedError("无权限修改此用户")
    return member


def update_user_role(
    repo: Repository,
    profile: Row,
    profile_id: str,
    role: str,
    managed_store_ids: Optional[List[str]] = None,
) -> Row:
    """
    Change a member's role.

    Store assignments are kept only for store-scoped roles; explicit
    managed_store_ids replace the current ones.
    """
    company_id = require_company_id(profile)
    if not is_owner(profile):
        raise PermissionDeniedError("只有老板可以修改用户角色")
    if profile_id == profile.get("id"):
        raise ValidationError("不能修改自己的角色")
    try:
        role = UserRole(role).value
    except ValueError:
        raise ValidationError("请选择有效的角色")
    if role == UserRole.OWNER.value:
        raise ValidationError("不能将用户设为老板")

    member = _get_member(repo, company_id, profile_id)

    if role in STORE_SCOPED_ROLES:
        stores = managed_store_ids if managed_store_ids is not None else member.get("managed_store_ids")
        stores = list(stores or [])
    else:
        stores = []

    updated = repo.update(Table.PROFILES, profile_id, {"role": role, "managed_store_ids": stores})
    logger.info("User role changed", extra={"profile_id": profile_id, "role": role})
    return updated


def update_user_stores(repo: Repository, profile: Row, profile_id: str, managed_store_ids: List[str]) -> Row:
    company_id = require_company_id(profile)
    if not is_owner(profile):
        raise PermissionDeniedError("只有老板可以修改用户店铺")
    member = _get_member(repo, company_id, profile_id)
    if member.get("role") not in STORE_SCOPED_ROLES:
        raise ValidationError("此角色不需要指定店铺")
    return repo.update(Table.PROFILES, profile_id, {"managed_store_ids": list(managed_store_ids or [])})


def remove_user(repo: Repository, adapter: AuthAdapter, profile: Row, profile_id: str) -> None:
    """Delete a member's profile and their auth account"""
    company_id = require_company_id(profile)
    if not is_owner(profile):
        raise PermissionDeniedError("只有老板可以移除用户")
    if profile_id == profile.get("id"):
        raise ValidationError("不能移除自己")
    member = _get_member(repo, company_id, profile_id)
    if member.get("role") == UserRole.OWNER.value:
        raise ValidationError("不能移除老板")

    repo.delete(Table.PROFILES, profile_id)
    adapter.delete_user(member["user_id"])
    logger.info("User removed", extra={"profile_id": profile_id, "user_id": member["user_id"]})
