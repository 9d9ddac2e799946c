"""
Pydantic schemas for the financial settings API
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class FinancialSettingsUpdate(BaseModel):
    initial_cash_balance: Decimal
    initial_balance_date: date
    notes: Optional[str] = None
