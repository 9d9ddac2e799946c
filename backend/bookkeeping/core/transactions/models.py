"""
Transaction and category models
"""

import enum
from sqlalchemy import Column, String, Date, Numeric, Text, Boolean, Integer, ForeignKey
from bookkeeping.core.common.base_model import BaseModel, enum_type


class TransactionType(str, enum.Enum):
    """Transaction direction"""
    INCOME = "income"
    EXPENSE = "expense"


class CashFlowActivity(str, enum.Enum):
    """Cash-flow statement section"""
    OPERATING = "operating"
    INVESTING = "investing"
    FINANCING = "financing"


class TransactionNature(str, enum.Enum):
    """Profit/loss classification"""
    OPERATING = "operating"
    NON_OPERATING = "non_operating"
    INCOME_TAX = "income_tax"


class PaymentMethod(str, enum.Enum):
    """How the money moved"""
    CASH = "cash"
    TRANSFER = "transfer"
    WECHAT = "wechat"
    ALIPAY = "alipay"
    CARD = "card"


class InputMethod(str, enum.Enum):
    """How the record was entered"""
    VOICE = "voice"
    TEXT = "text"
    MANUAL = "manual"


class TransactionCategory(BaseModel):
    """
    Company-scoped category.

    The category carries the reporting classification (cash-flow activity,
    profit/loss nature) that is copied onto each transaction at write time.
    """

    __tablename__ = "transaction_categories"

    company_id = Column(String(36), ForeignKey("companies.id", name="fk_categories_company_id"), nullable=True, index=True)
    name = Column(String(100), nullable=False)
    type = Column(enum_type(TransactionType, "transaction_type"), nullable=False, index=True)
    cash_flow_activity = Column(enum_type(CashFlowActivity, "cash_flow_activity"), nullable=False, default=CashFlowActivity.OPERATING)
    transaction_nature = Column(enum_type(TransactionNature, "transaction_nature"), nullable=False, default=TransactionNature.OPERATING)
    include_in_profit_loss = Column(Boolean, nullable=False, default=True)
    is_system = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0)


class Transaction(BaseModel):
    """Single income or expense record"""

    __tablename__ = "transactions"

    company_id = Column(String(36), ForeignKey("companies.id", name="fk_transactions_company_id"), nullable=False, index=True)
    store_id = Column(String(36), ForeignKey("stores.id", name="fk_transactions_store_id"), nullable=True, index=True)
    type = Column(enum_type(TransactionType, "transaction_type"), nullable=False, index=True)
    category = Column(String(100), nullable=False, index=True)
    category_id = Column(String(36), nullable=True)
    amount = Column(Numeric(14, 2), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(Date, nullable=False, index=True)
    payment_method = Column(enum_type(PaymentMethod, "payment_method"), nullable=True)
    invoice_number = Column(String(100), nullable=True)
    input_method = Column(enum_type(InputMethod, "input_method"), nullable=True)
    # Nullable: rows written before categories carried a classification
    cash_flow_activity = Column(enum_type(CashFlowActivity, "cash_flow_activity"), nullable=True)
    transaction_nature = Column(enum_type(TransactionNature, "transaction_nature"), nullable=True)
    include_in_profit_loss = Column(Boolean, nullable=False, default=True)
    created_by = Column(String(64), nullable=True)
