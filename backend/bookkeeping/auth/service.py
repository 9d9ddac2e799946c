"""
Session-level auth operations

Everything here works on a Repository plus an AuthAdapter, so the same
code serves both backends.
"""

import logging
import re
import secrets
from typing import Any, Dict, List, Optional, Tuple

from bookkeeping.auth.adapters import AuthAdapter, SessionUser
from bookkeeping.repositories.base import Repository, Row, Table, eq
from bookkeeping.security.permissions import INVITABLE_ROLES, is_owner
from bookkeeping.services.errors import (
    BookkeepingError,
    CompanyCodeGenerationError,
    ConflictError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    PermissionDeniedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

COMPANY_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"  # no I, O, 0, 1
COMPANY_CODE_LENGTH = 6
COMPANY_CODE_MAX_ATTEMPTS = 10

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")


def get_current_profile(repo: Repository, user: Optional[SessionUser]) -> Optional[Row]:
    if user is None:
        return None
    return repo.find_one(Table.PROFILES, [eq("user_id", user.id)])


def get_current_company_id(repo: Repository, user: Optional[SessionUser]) -> Optional[str]:
    profile = get_current_profile(repo, user)
    return profile.get("company_id") if profile else None


def get_current_user_role(repo: Repository, user: Optional[SessionUser]) -> Optional[str]:
    profile = get_current_profile(repo, user)
    return profile.get("role") if profile else None


def check_system_has_users(repo: Repository) -> bool:
    return repo.count(Table.PROFILES) > 0


def get_company_by_id(repo: Repository, company_id: str) -> Optional[Row]:
    return repo.get(Table.COMPANIES, company_id)


def get_company_by_code(repo: Repository, code: str) -> Optional[Row]:
    if not code:
        return None
    return repo.find_one(Table.COMPANIES, [eq("code", code.upper())])


def _random_company_code() -> str:
    return "".join(secrets.choice(COMPANY_CODE_ALPHABET) for _ in range(COMPANY_CODE_LENGTH))


def generate_company_code(repo: Repository) -> str:
    """
    Generate an unused 6-character company code.

    Raises:
        CompanyCodeGenerationError: If every attempt collided
    """
    for _ in range(COMPANY_CODE_MAX_ATTEMPTS):
        code = _random_company_code()
        if get_company_by_code(repo, code) is None:
            return code
    raise CompanyCodeGenerationError("生成公司码失败，请重试")


def validate_username(username: Optional[str]) -> str:
    username = (username or "").strip()
    if len(username) < 2:
        raise ValidationError("用户名至少2个字符")
    if not USERNAME_PATTERN.match(username):
        raise ValidationError("用户名只能包含字母、数字和下划线")
    return username


def validate_password(password: Optional[str], message: str = "密码至少6位") -> str:
    if not password or len(password) < 6:
        raise ValidationError(message)
    return password


def _discard_registration(repo: Repository, adapter: AuthAdapter, company: Row, user: Optional[SessionUser]) -> None:
    """Undo a half-finished owner registration"""
    repo.rollback()
    if user is not None:
        try:
            adapter.delete_user(user.id)
        except BookkeepingError as e:
            logger.error(f"Could not delete auth user after failed registration: {e.message}", extra={"user_id": user.id})
    repo.delete(Table.COMPANIES, company["id"])
    repo.commit()


def register_owner(
    repo: Repository,
    adapter: AuthAdapter,
    username: str,
    password: str,
    full_name: str,
    company_name: str,
    email: Optional[str] = None,
    company_code: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create a company together with its owner account.

    The company is created first so its code can namespace the username;
    it is removed again if the account cannot be created.

    Returns:
        dict with user (SessionUser), company (row) and company_code
    """
    username = validate_username(username)
    validate_password(password)
    if not full_name or len(full_name.strip()) < 2:
        raise ValidationError("姓名至少2个字符")
    if not company_name or len(company_name.strip()) < 2:
        raise ValidationError("公司名称至少2个字符")

    if company_code:
        code = company_code.upper()
        if len(code) != COMPANY_CODE_LENGTH:
            raise ValidationError("公司码必须是6位")
        if get_company_by_code(repo, code) is not None:
            raise ConflictError("该公司码已被使用，请重新生成")
    else:
        code = generate_company_code(repo)

    company = repo.insert(Table.COMPANIES, {"name": company_name.strip(), "code": code})
    # The company row must be visible before the account references its code
    repo.commit()

    user = None
    try:
        user = adapter.sign_up(
            username,
            password,
            full_name=full_name.strip(),
            email=email or None,
            company_code=code,
        )
        repo.bind_session(user.session_token)
        repo.insert(Table.PROFILES, {
            "user_id": user.id,
            "company_id": company["id"],
            "full_name": full_name.strip(),
            "email": email or None,
            "role": "owner",
            "managed_store_ids": [],
        })
        company = repo.update(Table.COMPANIES, company["id"], {"owner_id": user.id}) or company
    except Exception:
        logger.warning("Owner registration failed, removing company", extra={"company_id": company["id"]})
        _discard_registration(repo, adapter, company, user)
        raise

    logger.info("Owner registered", extra={"company_id": company["id"], "user_id": user.id})
    return {"user": user, "company": company, "company_code": code}


def login(
    repo: Repository,
    adapter: AuthAdapter,
    username: str,
    password: str,
    company_code: Optional[str],
) -> Tuple[SessionUser, Row]:
    """
    Sign in and load the profile.

    Supabase accounts are not namespaced by company, so the code is checked
    against the profile's company here. A user without a profile or company
    cannot sign in.
    """
    if not company_code or len(company_code) != COMPANY_CODE_LENGTH:
        raise ValidationError("公司码必须是6位")
    if not username:
        raise ValidationError("请输入用户名")
    validate_password(password)

    user = adapter.sign_in(username, password, company_code=company_code)
    repo.bind_session(user.session_token)
    profile = get_current_profile(repo, user)
    company = get_company_by_id(repo, profile["company_id"]) if profile and profile.get("company_id") else None

    if company is None or (company.get("code") or "").upper() != company_code.upper():
        logger.info("Login rejected: company does not match", extra={"user_id": user.id})
        raise InvalidCredentialsError("公司码、用户名或密码错误")
    user.company_code = company.get("code")
    return user, profile


def recover_company_code(adapter: AuthAdapter, email: str) -> Optional[str]:
    if not email or not email.strip():
        raise ValidationError("请输入邮箱地址")
    return adapter.find_company_code_by_email(email.strip())


def change_password(adapter: AuthAdapter, user: SessionUser, old_password: str, new_password: str) -> None:
    if not old_password:
        raise ValidationError("请输入原密码")
    validate_password(new_password, "新密码至少6位")
    adapter.update_password(user, old_password, new_password)


def update_user_info(
    repo: Repository,
    adapter: AuthAdapter,
    user: SessionUser,
    full_name: Optional[str] = None,
    email: Optional[str] = None,
) -> Optional[Row]:
    """Update name/email on the auth user and mirror them onto the profile"""
    if full_name is not None and not full_name.strip():
        raise ValidationError("姓名不能为空")
    adapter.update_user_info(user, full_name=full_name, email=email)

    profile = get_current_profile(repo, user)
    if profile is None:
        return None
    values: Dict[str, Any] = {}
    if full_name is not None:
        values["full_name"] = full_name.strip()
    if email is not None:
        values["email"] = email or None
    if not values:
        return profile
    return repo.update(Table.PROFILES, profile["id"], values)


def create_user_account(
    repo: Repository,
    adapter: AuthAdapter,
    current_profile: Optional[Row],
    username: str,
    password: str,
    full_name: str,
    role: str,
    managed_store_ids: Optional[List[str]] = None,
) -> Row:
    """Owner creates an account in their company directly (no invitation)"""
    if not current_profile or not current_profile.get("company_id"):
        raise NotAuthenticatedError("用户未关联公司")
    if not is_owner(current_profile):
        raise PermissionDeniedError("只有老板可以创建用户")

    username = validate_username(username)
    validate_password(password)
    if not full_name or not full_name.strip():
        raise ValidationError("请输入姓名")
    if role not in INVITABLE_ROLES:
        raise ValidationError("请选择有效的角色")

    company = get_company_by_id(repo, current_profile["company_id"])
    user = adapter.sign_up(
        username,
        password,
        full_name=full_name.strip(),
        company_code=company.get("code") if company else None,
    )

    try:
        return repo.insert(Table.PROFILES, {
            "user_id": user.id,
            "company_id": current_profile["company_id"],
            "full_name": full_name.strip(),
            "role": role,
            "managed_store_ids": list(managed_store_ids or []) if role in ("manager", "user") else [],
        })
    except Exception:
        logger.exception("Profile creation failed, removing account", extra={"user_id": user.id})
        adapter.delete_user(user.id)
        raise
