"""
Pydantic schemas for the transactions API
"""

from datetime import date as date_type
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class TransactionCreate(BaseModel):
    type: str = Field(..., description="income or expense")
    category: str = Field(..., description="Category name")
    amount: Decimal
    description: Optional[str] = None
    date: Optional[date_type] = Field(None, description="Defaults to today")
    payment_method: Optional[str] = None
    invoice_number: Optional[str] = None
    input_method: Optional[str] = None
    store_id: Optional[str] = None


class TransactionUpdate(BaseModel):
    type: Optional[str] = None
    category: Optional[str] = None
    amount: Optional[Decimal] = None
    description: Optional[str] = None
    date: Optional[date_type] = None
    payment_method: Optional[str] = None
    invoice_number: Optional[str] = None
    input_method: Optional[str] = None
    store_id: Optional[str] = None


class TransactionTextParse(BaseModel):
    text: str = Field("", description="Dictated or typed bookkeeping notes")
    input_method: str = Field("text", description="text or voice")
