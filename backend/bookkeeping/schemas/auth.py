"""
Pydantic schemas for the auth API

Field contents (lengths, username characters) are checked by the auth
service so every rule answers with the same error envelope.
"""

from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    company_code: str = Field("", description="6-character company code")
    username: str = Field("", description="Username without company prefix")
    password: str = ""


class RegisterOwnerRequest(BaseModel):
    username: str
    password: str
    full_name: str
    company_name: str
    email: Optional[EmailStr] = Field(None, description="Recovery email (optional)")
    company_code: Optional[str] = Field(None, description="Pre-generated company code (optional)")


class RecoverCompanyCodeRequest(BaseModel):
    email: str = ""


class ChangePasswordRequest(BaseModel):
    old_password: str = ""
    new_password: str = ""


class UpdateMeRequest(BaseModel):
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None


class CreateUserRequest(BaseModel):
    """Owner creates a company account directly"""
    username: str
    password: str
    full_name: str
    role: str = Field(..., description="accountant, manager or user")
    managed_store_ids: List[str] = Field(default_factory=list)
