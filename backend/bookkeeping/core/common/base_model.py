"""
Base model with common fields
"""

import enum
import uuid
from typing import Type

from sqlalchemy import Column, DateTime, String, Enum as SQLEnum
from sqlalchemy.sql import func
from bookkeeping.infrastructure.database import Base


def new_id() -> str:
    """Generate a record id (UUID string)"""
    return str(uuid.uuid4())


def enum_type(enum_cls: Type[enum.Enum], name: str) -> SQLEnum:
    """
    Enum column type persisting member values (lower-case strings).

    Values are shared with the LeanCloud backend, so rows carry the
    same strings regardless of where they are stored.
    """
    return SQLEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


class BaseModel(Base):
    """
    Base model with common fields

    All models inherit from this base class and get:
    - id: UUID string primary key (string so ids match LeanCloud objectIds in shape)
    - created_at: Timezone-aware timestamp
    - updated_at: Timezone-aware timestamp (nullable)
    """
    __abstract__ = True

    id = Column(String(36), primary_key=True, default=new_id, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
