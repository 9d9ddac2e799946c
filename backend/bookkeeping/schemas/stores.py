"""
Pydantic schemas for the stores API
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class StoreCreate(BaseModel):
    name: str
    code: Optional[str] = Field(None, max_length=50, description="Unique per company")
    type: Optional[str] = Field(None, description="direct, franchise, online or other")
    status: Optional[str] = Field(None, description="active, inactive or closed")
    address: Optional[str] = None
    phone: Optional[str] = None
    manager_name: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    description: Optional[str] = None
    initial_balance: Optional[Decimal] = None
    initial_balance_date: Optional[date] = None


class StoreUpdate(BaseModel):
    name: Optional[str] = None
    code: Optional[str] = Field(None, max_length=50)
    type: Optional[str] = None
    status: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    manager_name: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    description: Optional[str] = None
    initial_balance: Optional[Decimal] = None
    initial_balance_date: Optional[date] = None
