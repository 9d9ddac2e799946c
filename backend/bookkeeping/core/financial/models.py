"""
Financial settings model
"""

from sqlalchemy import Column, String, Date, Numeric, Text, ForeignKey
from bookkeeping.core.common.base_model import BaseModel


class FinancialSettings(BaseModel):
    """Company-wide opening cash position"""

    __tablename__ = "financial_settings"

    company_id = Column(String(36), ForeignKey("companies.id", name="fk_financial_settings_company_id"), unique=True, nullable=False, index=True)
    initial_cash_balance = Column(Numeric(14, 2), nullable=False, default=0)
    initial_balance_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
