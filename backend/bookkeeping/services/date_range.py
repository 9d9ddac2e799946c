"""
Report date-range validation against the opening balance date
"""

from datetime import date
from typing import Any, Dict, Optional

from bookkeeping.repositories.base import Repository
from bookkeeping.services.errors import ValidationError
from bookkeeping.services.transactions import get_initial_balance_date
from bookkeeping.utils.amounts import DateLike, as_date

ADJUSTMENT_REASON = "查询起始日期早于期初余额日期，已自动调整"


def validate_date_range(
    repo: Repository,
    company_id: str,
    start_date: Optional[DateLike] = None,
    end_date: Optional[DateLike] = None,
    store_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Report range that never starts before the opening balance date.

    Defaults to the first of the current month through today. When the
    start is earlier than the store's (or company's) initial balance date
    it is moved up to that date and date_adjusted is set.
    """
    today = date.today()
    try:
        start = as_date(start_date) or today.replace(day=1)
        end = as_date(end_date) or today
    except ValueError:
        raise ValidationError("日期格式错误")
    if start > end:
        raise ValidationError("开始日期不能晚于结束日期")

    initial = get_initial_balance_date(repo, company_id, store_id)
    result: Dict[str, Any] = {
        "start_date": start,
        "end_date": end,
        "initial_balance_date": initial,
        "date_adjusted": False,
        "original_start_date": None,
        "adjustment_reason": None,
    }
    if initial and start < initial:
        result.update({
            "start_date": initial,
            "date_adjusted": True,
            "original_start_date": start,
            "adjustment_reason": ADJUSTMENT_REASON,
        })
    return result
