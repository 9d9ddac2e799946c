"""
Company model
"""

from sqlalchemy import Column, String
from bookkeeping.core.common.base_model import BaseModel


class Company(BaseModel):
    """
    Company (tenant) record.

    `code` is the 6-character company code users type at login; on the
    LeanCloud backend it also prefixes every username.
    """

    __tablename__ = "companies"

    name = Column(String(255), nullable=False)
    code = Column(String(6), unique=True, nullable=False, index=True)
    owner_id = Column(String(64), nullable=True, index=True)
