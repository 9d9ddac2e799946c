"""
Core domain models - Export all models so metadata is complete
"""

from bookkeeping.core.companies.models import Company
from bookkeeping.core.users.models import Profile, Invitation
from bookkeeping.core.stores.models import Store
from bookkeeping.core.transactions.models import TransactionCategory, Transaction
from bookkeeping.core.financial.models import FinancialSettings

__all__ = [
    "Company",
    "Profile",
    "Invitation",
    "Store",
    "TransactionCategory",
    "Transaction",
    "FinancialSettings",
]
