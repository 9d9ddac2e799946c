"""
Store model
"""

import enum
from sqlalchemy import Column, String, Date, Numeric, Text, ForeignKey
from bookkeeping.core.common.base_model import BaseModel, enum_type


class StoreType(str, enum.Enum):
    """Store operating model"""
    DIRECT = "direct"
    FRANCHISE = "franchise"
    ONLINE = "online"
    OTHER = "other"


class StoreStatus(str, enum.Enum):
    """Store lifecycle status"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    CLOSED = "closed"


class Store(BaseModel):
    """
    Store (branch) belonging to a company.

    initial_balance / initial_balance_date seed the store's cash position;
    no transaction may be dated before initial_balance_date.
    """

    __tablename__ = "stores"

    company_id = Column(String(36), ForeignKey("companies.id", name="fk_stores_company_id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=True)
    type = Column(enum_type(StoreType, "store_type"), nullable=False, default=StoreType.DIRECT)
    status = Column(enum_type(StoreStatus, "store_status"), nullable=False, default=StoreStatus.ACTIVE, index=True)
    address = Column(String(500), nullable=True)
    phone = Column(String(50), nullable=True)
    manager_name = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    province = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    initial_balance = Column(Numeric(14, 2), nullable=True)
    initial_balance_date = Column(Date, nullable=True)
