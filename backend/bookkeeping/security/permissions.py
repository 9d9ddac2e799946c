"""
Role-based permissions

Profiles are rows with at least `role` and `managed_store_ids`.
Owner and accountant see every store; manager and user are limited to
their managed stores.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from bookkeeping.core.users.models import UserRole

Profile = Dict[str, Any]


@dataclass
class RolePermissions:
    can_view: bool = False
    can_create: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_manage_users: bool = False
    can_manage_stores: bool = False
    can_access_all_stores: bool = False


@dataclass
class Permission(RolePermissions):
    """Effective permissions; accessible_store_ids is empty when all stores are accessible"""
    accessible_store_ids: List[str] = field(default_factory=list)


ROLE_PERMISSIONS: Dict[UserRole, RolePermissions] = {
    UserRole.OWNER: RolePermissions(
        can_view=True,
        can_create=True,
        can_edit=True,
        can_delete=True,
        can_manage_users=True,
        can_manage_stores=True,
        can_access_all_stores=True,
    ),
    UserRole.ACCOUNTANT: RolePermissions(
        can_view=True,
        can_create=True,
        can_edit=True,
        can_delete=True,
        can_manage_users=False,
        can_manage_stores=True,
        can_access_all_stores=True,
    ),
    UserRole.MANAGER: RolePermissions(
        can_view=True,
        can_create=True,
        can_edit=True,  # transactions of managed stores only
        can_delete=True,
        can_manage_users=False,
        can_manage_stores=False,
        can_access_all_stores=False,
    ),
    UserRole.USER: RolePermissions(
        can_view=True,
        can_create=True,
        can_edit=False,
        can_delete=False,
        can_manage_users=False,
        can_manage_stores=False,
        can_access_all_stores=False,
    ),
}

ROLE_NAMES = {
    UserRole.OWNER: "老板",
    UserRole.ACCOUNTANT: "财务",
    UserRole.MANAGER: "店长",
    UserRole.USER: "员工",
}

INVITABLE_ROLES = (UserRole.ACCOUNTANT, UserRole.MANAGER, UserRole.USER)


def _role(profile: Optional[Profile]) -> Optional[UserRole]:
    if not profile or not profile.get("role"):
        return None
    try:
        return UserRole(profile["role"])
    except ValueError:
        return None


def get_user_permissions(profile: Optional[Profile]) -> Permission:
    role = _role(profile)
    if role is None:
        return Permission()

    base = ROLE_PERMISSIONS[role]
    return Permission(
        can_view=base.can_view,
        can_create=base.can_create,
        can_edit=base.can_edit,
        can_delete=base.can_delete,
        can_manage_users=base.can_manage_users,
        can_manage_stores=base.can_manage_stores,
        can_access_all_stores=base.can_access_all_stores,
        accessible_store_ids=[] if base.can_access_all_stores else list(profile.get("managed_store_ids") or []),
    )


def has_permission(profile: Optional[Profile], permission: str) -> bool:
    """has_permission(profile, "can_edit")"""
    return bool(getattr(get_user_permissions(profile), permission, False))


def can_access_store(profile: Optional[Profile], store_id: str) -> bool:
    if not profile:
        return False
    permissions = get_user_permissions(profile)
    if permissions.can_access_all_stores:
        return True
    return store_id in permissions.accessible_store_ids


def get_accessible_store_ids(profile: Optional[Profile]) -> Optional[List[str]]:
    """None means every store; otherwise the managed store ids"""
    permissions = get_user_permissions(profile)
    if permissions.can_access_all_stores:
        return None
    return permissions.accessible_store_ids


def _can_modify_transaction(profile: Optional[Profile], transaction: Dict[str, Any], allowed: bool) -> bool:
    if not profile or not allowed:
        return False

    role = _role(profile)
    if role in (UserRole.OWNER, UserRole.ACCOUNTANT):
        return True

    # Store-less records belong to the whole company
    if role == UserRole.MANAGER:
        store_id = transaction.get("store_id")
        return bool(store_id) and store_id in (profile.get("managed_store_ids") or [])

    return False


def can_edit_transaction(profile: Optional[Profile], transaction: Dict[str, Any]) -> bool:
    return _can_modify_transaction(profile, transaction, get_user_permissions(profile).can_edit)


def can_delete_transaction(profile: Optional[Profile], transaction: Dict[str, Any]) -> bool:
    return _can_modify_transaction(profile, transaction, get_user_permissions(profile).can_delete)


def is_admin(profile: Optional[Profile]) -> bool:
    return _role(profile) in (UserRole.OWNER, UserRole.ACCOUNTANT)


def is_owner(profile: Optional[Profile]) -> bool:
    return _role(profile) == UserRole.OWNER


def get_role_name(role: str) -> str:
    try:
        return ROLE_NAMES[UserRole(role)]
    except ValueError:
        return role


def get_invitable_roles() -> List[Dict[str, str]]:
    return [{"value": role.value, "label": ROLE_NAMES[role]} for role in INVITABLE_ROLES]
