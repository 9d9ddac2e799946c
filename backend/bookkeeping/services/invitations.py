"""
Company invitations

An owner invites someone by email with a role; the invitee accepts with
the token from the link, which creates their account and profile.
"""

import logging
import secrets
import string
from datetime import timedelta
from typing import List, Optional

from bookkeeping.auth.adapters import AuthAdapter, SessionUser
from bookkeeping.auth.service import get_company_by_id, validate_password, validate_username
from bookkeeping.infrastructure.settings import get_settings
from bookkeeping.repositories.base import Repository, Row, Table, eq
from bookkeeping.security.permissions import INVITABLE_ROLES, is_admin, is_owner
from bookkeeping.services.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from bookkeeping.services.scope import get_company_record, require_company_id
from bookkeeping.utils.amounts import as_datetime, utc_now

logger = logging.getLogger(__name__)

TOKEN_ALPHABET = string.ascii_letters + string.digits
TOKEN_LENGTH = 64

INVITATION_INVALID = "邀请链接无效或已过期"


def generate_token() -> str:
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))


def _expiry():
    return utc_now() + timedelta(days=get_settings().INVITATION_EXPIRY_DAYS)


def is_pending(invitation: Row) -> bool:
    """Not accepted and not expired"""
    if invitation.get("accepted_at"):
        return False
    expires_at = as_datetime(invitation.get("expires_at"))
    return expires_at is not None and expires_at > utc_now()


def create_invitation(
    repo: Repository,
    profile: Row,
    email: str,
    role: str,
    managed_store_ids: Optional[List[str]] = None,
) -> Row:
    company_id = require_company_id(profile)
    if not is_owner(profile):
        raise PermissionDeniedError("只有老板可以邀请用户")

    email = (email or "").strip()
    if "@" not in email:
        raise ValidationError("请输入有效的邮箱地址")
    if role not in INVITABLE_ROLES:
        raise ValidationError("请选择有效的角色")

    existing = repo.find(Table.INVITATIONS, [eq("company_id", company_id), eq("email", email)])
    if any(is_pending(inv) for inv in existing):
        raise ConflictError("该邮箱已有待处理的邀请")

    invitation = repo.insert(Table.INVITATIONS, {
        "company_id": company_id,
        "email": email,
        "role": role,
        "managed_store_ids": list(managed_store_ids or []),
        "invited_by": profile.get("user_id"),
        "token": generate_token(),
        "expires_at": _expiry().isoformat(),
    })
    logger.info("Invitation created", extra={"company_id": company_id, "invitation_id": invitation["id"], "role": role})
    return invitation


def get_invitations(repo: Repository, profile: Row) -> List[Row]:
    company_id = require_company_id(profile)
    if not is_admin(profile):
        raise PermissionDeniedError("无权限查看邀请列表")
    return repo.find(Table.INVITATIONS, [eq("company_id", company_id)], order_by=["-created_at"])


def verify_invitation(repo: Repository, token: str) -> Row:
    """
    Pending invitation for a token, with the company name attached.

    Raises:
        NotFoundError: If the token is unknown, used or expired
    """
    invitation = repo.find_one(Table.INVITATIONS, [eq("token", token)]) if token else None
    if invitation is None or not is_pending(invitation):
        raise NotFoundError(INVITATION_INVALID)

    company = get_company_by_id(repo, invitation["company_id"])
    return {**invitation, "company_name": company.get("name") if company else None}


def accept_invitation(
    repo: Repository,
    adapter: AuthAdapter,
    token: str,
    username: str,
    password: str,
    full_name: str,
) -> SessionUser:
    """Create the invitee's account and profile, then mark the invitation used"""
    invitation = verify_invitation(repo, token)
    username = validate_username(username)
    validate_password(password)
    if not full_name or not full_name.strip():
        raise ValidationError("请输入姓名")

    company = get_company_by_id(repo, invitation["company_id"])
    user = adapter.sign_up(
        username,
        password,
        full_name=full_name.strip(),
        email=invitation["email"],
        company_code=company.get("code") if company else None,
    )

    repo.bind_session(user.session_token)
    repo.insert(Table.PROFILES, {
        "user_id": user.id,
        "company_id": invitation["company_id"],
        "full_name": full_name.strip(),
        "email": invitation["email"],
        "role": invitation["role"],
        "managed_store_ids": invitation.get("managed_store_ids") or [],
    })
    repo.update(Table.INVITATIONS, invitation["id"], {"accepted_at": utc_now().isoformat()})
    logger.info("Invitation accepted", extra={"invitation_id": invitation["id"], "user_id": user.id})
    return user


def delete_invitation(repo: Repository, profile: Row, invitation_id: str) -> None:
    company_id = require_company_id(profile)
    if not is_owner(profile):
        raise PermissionDeniedError("只有老板可以删除邀请")
    get_company_record(repo, Table.INVITATIONS, invitation_id, company_id, "邀请不存在")
    repo.delete(Table.INVITATIONS, invitation_id)


def resend_invitation(repo: Repository, profile: Row, invitation_id: str) -> Row:
    """Issue a fresh token and expiry for an invitation"""
    company_id = require_company_id(profile)
    if not is_owner(profile):
        raise PermissionDeniedError("只有老板可以重新发送邀请")
    invitation = get_company_record(repo, Table.INVITATIONS, invitation_id, company_id, "邀请不存在")
    if invitation.get("accepted_at"):
        raise ValidationError("邀请已被接受")
    return repo.update(Table.INVITATIONS, invitation_id, {
        "token": generate_token(),
        "expires_at": _expiry().isoformat(),
    })
