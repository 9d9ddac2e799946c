"""
Company financial settings (opening cash balance)
"""

import logging
from typing import Any, Optional

from bookkeeping.repositories.base import Repository, Row, Table, eq
from bookkeeping.services.errors import ValidationError
from bookkeeping.utils.amounts import as_date, to_decimal

logger = logging.getLogger(__name__)


def get_financial_settings(repo: Repository, company_id: str) -> Optional[Row]:
    return repo.find_one(Table.FINANCIAL_SETTINGS, [eq("company_id", company_id)])


def upsert_financial_settings(
    repo: Repository,
    company_id: str,
    initial_cash_balance: Any,
    initial_balance_date: Any,
    notes: Optional[str] = None,
) -> Row:
    """Create or replace the company's opening balance"""
    try:
        balance_date = as_date(initial_balance_date)
    except ValueError:
        raise ValidationError("期初余额日期格式错误")
    if balance_date is None:
        raise ValidationError("请选择期初余额日期")

    values = {
        "initial_cash_balance": to_decimal(initial_cash_balance),
        "initial_balance_date": balance_date.isoformat(),
        "notes": notes,
    }

    existing = get_financial_settings(repo, company_id)
    if existing:
        row = repo.update(Table.FINANCIAL_SETTINGS, existing["id"], values)
    else:
        row = repo.insert(Table.FINANCIAL_SETTINGS, {**values, "company_id": company_id})

    logger.info("Financial settings saved", extra={"company_id": company_id, "initial_balance_date": values["initial_balance_date"]})
    return row
