"""
Pydantic schemas for the users and invitations APIs
"""

from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class UserRoleUpdate(BaseModel):
    role: str
    managed_store_ids: Optional[List[str]] = Field(None, description="Replaces current stores when given")


class UserStoresUpdate(BaseModel):
    managed_store_ids: List[str] = Field(default_factory=list)


class InvitationCreate(BaseModel):
    email: EmailStr
    role: str = Field(..., description="accountant, manager or user")
    managed_store_ids: List[str] = Field(default_factory=list)


class InvitationAccept(BaseModel):
    username: str
    password: str
    full_name: str
