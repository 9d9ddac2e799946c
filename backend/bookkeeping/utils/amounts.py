"""
Amount and date helpers shared by the services

Rows coming from SQL carry Decimal amounts and ISO date strings; rows
coming from LeanCloud carry floats. Everything is normalized here.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Union

ZERO = Decimal("0")

DateLike = Union[date, datetime, str]


def to_decimal(value: Any) -> Decimal:
    """Convert an amount to Decimal (None counts as zero)"""
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def as_date(value: Optional[DateLike]) -> Optional[date]:
    """Parse a date, datetime or ISO string into a date"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def month_key(value: DateLike) -> str:
    """YYYY-MM for a date value"""
    return as_date(value).strftime("%Y-%m")


def in_range(value: Optional[DateLike], start: Optional[DateLike], end: Optional[DateLike]) -> bool:
    """Inclusive date range check; open ends match everything"""
    d = as_date(value)
    if d is None:
        return False
    start_d = as_date(start)
    end_d = as_date(end)
    if start_d and d < start_d:
        return False
    if end_d and d > end_d:
        return False
    return True


def percentage(part: Decimal, total: Decimal) -> float:
    """part / total * 100, 0 when total is not positive"""
    if total <= 0:
        return 0.0
    return float(part / total * 100)


def as_datetime(value: Optional[Union[datetime, str]]) -> Optional[datetime]:
    """Parse an ISO timestamp into an aware datetime (naive values are UTC)"""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
