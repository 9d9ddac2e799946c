"""
Profile and invitation models
"""

import enum
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON
from bookkeeping.core.common.base_model import BaseModel, enum_type


class UserRole(str, enum.Enum):
    """Company roles, from most to least privileged"""
    OWNER = "owner"
    ACCOUNTANT = "accountant"
    MANAGER = "manager"
    USER = "user"


class Profile(BaseModel):
    """Per-user record carrying role and company association"""

    __tablename__ = "profiles"

    user_id = Column(String(64), unique=True, nullable=False, index=True)  # auth user id
    company_id = Column(String(36), ForeignKey("companies.id", name="fk_profiles_company_id"), nullable=True, index=True)
    full_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    role = Column(enum_type(UserRole, "user_role"), nullable=False, default=UserRole.USER)
    managed_store_ids = Column(JSON, nullable=False, default=list)


class Invitation(BaseModel):
    """Pending invitation for a new company member"""

    __tablename__ = "invitations"

    company_id = Column(String(36), ForeignKey("companies.id", name="fk_invitations_company_id"), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    role = Column(enum_type(UserRole, "user_role"), nullable=False)
    managed_store_ids = Column(JSON, nullable=False, default=list)
    token = Column(String(64), unique=True, nullable=False, index=True)
    invited_by = Column(String(64), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
