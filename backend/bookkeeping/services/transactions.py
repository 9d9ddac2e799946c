"""
Transaction recording and queries

A transaction's reporting classification is derived when it is written:
from the matching company category if there is one, otherwise from the
built-in category mapping.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from bookkeeping.core.transactions.models import InputMethod, PaymentMethod, TransactionType
from bookkeeping.repositories.base import Repository, Row, Table, eq, gte, in_, lte
from bookkeeping.security.permissions import (
    can_access_store,
    can_delete_transaction,
    can_edit_transaction,
    get_accessible_store_ids,
    has_permission,
)
from bookkeeping.services.cash_flow_config import get_category_mapping
from bookkeeping.services.categories import find_category
from bookkeeping.services.errors import NotFoundError, PermissionDeniedError, ValidationError
from bookkeeping.services.financial_settings import get_financial_settings
from bookkeeping.services.scope import get_company_record, require_company_id
from bookkeeping.utils.amounts import ZERO, as_date, month_key, to_decimal

logger = logging.getLogger(__name__)

TRANSACTION_NOT_FOUND = "交易记录不存在"

EDITABLE_FIELDS = (
    "type",
    "category",
    "amount",
    "description",
    "date",
    "payment_method",
    "invoice_number",
    "input_method",
    "store_id",
)


def parse_store_ids(store_ids: Optional[Any]) -> Optional[List[str]]:
    """Accept a list or a comma-separated string of store ids"""
    if store_ids is None:
        return None
    if isinstance(store_ids, str):
        store_ids = store_ids.split(",")
    parsed = [s.strip() for s in store_ids if s and s.strip()]
    return parsed or None


def _validate_choice(value: Optional[str], enum_cls, message: str) -> Optional[str]:
    if value is None or value == "":
        return None
    try:
        return enum_cls(value).value
    except ValueError:
        raise ValidationError(message)


def _parse_date(value: Any) -> Optional[date]:
    try:
        return as_date(value)
    except ValueError:
        raise ValidationError("日期格式错误")


def get_initial_balance_date(repo: Repository, company_id: str, store_id: Optional[str] = None) -> Optional[date]:
    """Opening date of the store when set, else of the company"""
    if store_id:
        store = repo.get(Table.STORES, store_id)
        if store and store.get("company_id") == company_id and store.get("initial_balance_date"):
            return as_date(store["initial_balance_date"])
    settings = get_financial_settings(repo, company_id)
    if settings and settings.get("initial_balance_date"):
        return as_date(settings["initial_balance_date"])
    return None


def check_not_before_initial_balance(repo: Repository, company_id: str, transaction_date: date, store_id: Optional[str] = None) -> None:
    initial = get_initial_balance_date(repo, company_id, store_id)
    if initial and transaction_date < initial:
        raise ValidationError(
            f"不能录入期初余额日期（{initial.isoformat()}）之前的交易记录。如需调整期初余额，请前往财务设置页面修改。"
        )


def classify(repo: Repository, company_id: str, category: str, transaction_type: str) -> Dict[str, Any]:
    """category_id and reporting classification for a category name"""
    record = find_category(repo, company_id, category, transaction_type)
    if record is not None:
        return {
            "category_id": record["id"],
            "cash_flow_activity": record.get("cash_flow_activity"),
            "transaction_nature": record.get("transaction_nature"),
            "include_in_profit_loss": record.get("include_in_profit_loss") is not False,
        }
    mapping = get_category_mapping(category, transaction_type)
    return {
        "category_id": None,
        "cash_flow_activity": mapping.activity,
        "transaction_nature": "operating",
        "include_in_profit_loss": True,
    }


def _check_store(repo: Repository, profile: Row, company_id: str, store_id: Optional[str]) -> None:
    if not store_id:
        # Roles limited to managed stores only work inside them
        if get_accessible_store_ids(profile) is not None:
            raise ValidationError("请选择店铺")
        return
    get_company_record(repo, Table.STORES, store_id, company_id, "店铺不存在或无权限访问")
    if not can_access_store(profile, store_id):
        raise PermissionDeniedError("无权操作该店铺的交易")


def create_transaction(repo: Repository, profile: Row, values: Dict[str, Any], created_by: Optional[str] = None) -> Row:
    """
    Record an income or expense.

    Raises:
        ValidationError: On invalid input or a date before the opening balance
        PermissionDeniedError: If the caller cannot record for the store
    """
    company_id = require_company_id(profile)
    if not has_permission(profile, "can_create"):
        raise PermissionDeniedError("无权录入交易")

    transaction_type = _validate_choice(values.get("type"), TransactionType, "请选择交易类型")
    if transaction_type is None:
        raise ValidationError("请选择交易类型")
    category = (values.get("category") or "").strip()
    if not category:
        raise ValidationError("请选择分类")
    amount = to_decimal(values.get("amount"))
    if amount <= 0:
        raise ValidationError("金额必须大于0")
    payment_method = _validate_choice(values.get("payment_method"), PaymentMethod, "支付方式无效")
    input_method = _validate_choice(values.get("input_method"), InputMethod, "录入方式无效")
    store_id = values.get("store_id") or None
    transaction_date = _parse_date(values.get("date")) or date.today()

    _check_store(repo, profile, company_id, store_id)
    check_not_before_initial_balance(repo, company_id, transaction_date, store_id)

    row = repo.insert(Table.TRANSACTIONS, {
        "company_id": company_id,
        "store_id": store_id,
        "type": transaction_type,
        "category": category,
        "amount": amount,
        "description": values.get("description"),
        "date": transaction_date.isoformat(),
        "payment_method": payment_method,
        "invoice_number": values.get("invoice_number"),
        "input_method": input_method,
        "created_by": created_by,
        **classify(repo, company_id, category, transaction_type),
    })
    logger.info(
        "Transaction created",
        extra={"company_id": company_id, "transaction_id": row["id"], "type": transaction_type},
    )
    return row


def _scope_filters(
    profile: Row,
    company_id: str,
    start_date: Optional[Any] = None,
    end_date: Optional[Any] = None,
    store_id: Optional[str] = None,
    store_ids: Optional[Any] = None,
    transaction_type: Optional[str] = None,
) -> Optional[list]:
    """Query filters for the caller; None when nothing can match"""
    filters = [eq("company_id", company_id)]
    if start_date:
        filters.append(gte("date", _parse_date(start_date).isoformat()))
    if end_date:
        filters.append(lte("date", _parse_date(end_date).isoformat()))
    if transaction_type:
        filters.append(eq("type", _validate_choice(transaction_type, TransactionType, "交易类型无效")))

    requested = parse_store_ids(store_ids)
    if store_id:
        requested = [store_id]
    accessible = get_accessible_store_ids(profile)
    if accessible is not None:
        requested = [s for s in (requested or accessible) if s in accessible]
        if not requested:
            return None
    if requested:
        filters.append(in_("store_id", requested) if len(requested) > 1 else eq("store_id", requested[0]))
    return filters


def get_transactions(
    repo: Repository,
    profile: Row,
    start_date: Optional[Any] = None,
    end_date: Optional[Any] = None,
    store_id: Optional[str] = None,
    store_ids: Optional[Any] = None,
    transaction_type: Optional[str] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> Tuple[List[Row], int]:
    """
    Transactions of the caller's company, newest first.

    Returns:
        (rows, total count matching the filters)
    """
    company_id = require_company_id(profile)
    filters = _scope_filters(profile, company_id, start_date, end_date, store_id, store_ids, transaction_type)
    if filters is None:
        return [], 0
    rows = repo.find(Table.TRANSACTIONS, filters, order_by=["-date", "-created_at"], limit=limit, offset=offset)
    return rows, repo.count(Table.TRANSACTIONS, filters)


def list_company_transactions(
    repo: Repository,
    profile: Row,
    start_date: Optional[Any] = None,
    end_date: Optional[Any] = None,
    store_ids: Optional[Sequence[str]] = None,
) -> List[Row]:
    """Every transaction visible to the caller in a range, for reports"""
    company_id = require_company_id(profile)
    filters = _scope_filters(profile, company_id, start_date, end_date, store_ids=store_ids)
    if filters is None:
        return []
    return repo.find(Table.TRANSACTIONS, filters, order_by=["date"])


def get_transaction(repo: Repository, profile: Row, transaction_id: str) -> Row:
    company_id = require_company_id(profile)
    row = get_company_record(repo, Table.TRANSACTIONS, transaction_id, company_id, TRANSACTION_NOT_FOUND)
    if not can_access_store(profile, row.get("store_id")):
        raise NotFoundError(TRANSACTION_NOT_FOUND)
    return row


def update_transaction(repo: Repository, profile: Row, transaction_id: str, values: Dict[str, Any]) -> Row:
    company_id = require_company_id(profile)
    current = get_transaction(repo, profile, transaction_id)
    if not can_edit_transaction(profile, current):
        raise PermissionDeniedError("无权修改该交易记录")

    changes = {k: v for k, v in values.items() if k in EDITABLE_FIELDS}
    if "type" in changes:
        changes["type"] = _validate_choice(changes["type"], TransactionType, "交易类型无效") or current["type"]
    if "category" in changes:
        changes["category"] = (changes["category"] or "").strip()
        if not changes["category"]:
            raise ValidationError("请选择分类")
    if "amount" in changes:
        changes["amount"] = to_decimal(changes["amount"])
        if changes["amount"] <= 0:
            raise ValidationError("金额必须大于0")
    if "payment_method" in changes:
        changes["payment_method"] = _validate_choice(changes["payment_method"], PaymentMethod, "支付方式无效")
    if "input_method" in changes:
        changes["input_method"] = _validate_choice(changes["input_method"], InputMethod, "录入方式无效")
    if "store_id" in changes:
        changes["store_id"] = changes["store_id"] or None
        _check_store(repo, profile, company_id, changes["store_id"])
        if not can_edit_transaction(profile, changes):
            raise PermissionDeniedError("无权修改该交易记录")

    if "date" in changes or "store_id" in changes:
        transaction_date = _parse_date(changes.get("date")) or as_date(current["date"])
        changes["date"] = transaction_date.isoformat()
        check_not_before_initial_balance(repo, company_id, transaction_date, changes.get("store_id", current.get("store_id")))

    new_type = changes.get("type", current["type"])
    new_category = changes.get("category", current["category"])
    if new_type != current["type"] or new_category != current["category"]:
        changes.update(classify(repo, company_id, new_category, new_type))

    if not changes:
        return current
    return repo.update(Table.TRANSACTIONS, transaction_id, changes)


def delete_transaction(repo: Repository, profile: Row, transaction_id: str) -> None:
    current = get_transaction(repo, profile, transaction_id)
    if not can_delete_transaction(profile, current):
        raise PermissionDeniedError("无权删除该交易记录")
    repo.delete(Table.TRANSACTIONS, transaction_id)
    logger.info("Transaction deleted", extra={"transaction_id": transaction_id})


def _period(year: Optional[int], month: Optional[int]) -> Tuple[date, date]:
    today = date.today()
    year = year or today.year
    if month:
        if not 1 <= month <= 12:
            raise ValidationError("月份无效")
        end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
        return date(year, month, 1), date.fromordinal(end.toordinal() - 1)
    return date(year, 1, 1), date(year, 12, 31)


def get_monthly_summary(
    repo: Repository,
    profile: Row,
    year: Optional[int] = None,
    month: Optional[int] = None,
    store_ids: Optional[Any] = None,
) -> List[Dict[str, Any]]:
    """Income, expense and net per month of a year (or of one month)"""
    start, end = _period(year, month)
    by_month: Dict[str, Dict[str, Any]] = {}
    for t in list_company_transactions(repo, profile, start, end, parse_store_ids(store_ids)):
        entry = by_month.setdefault(month_key(t["date"]), {
            "income": ZERO,
            "expense": ZERO,
            "income_count": 0,
            "expense_count": 0,
        })
        amount = to_decimal(t.get("amount"))
        if t.get("type") == "income":
            entry["income"] += amount
            entry["income_count"] += 1
        else:
            entry["expense"] += amount
            entry["expense_count"] += 1

    return [
        {"month": key, **data, "net": data["income"] - data["expense"]}
        for key, data in sorted(by_month.items())
    ]


def get_category_summary(
    repo: Repository,
    profile: Row,
    year: Optional[int] = None,
    month: Optional[int] = None,
    store_ids: Optional[Any] = None,
) -> List[Dict[str, Any]]:
    """Totals per (type, category) for one month, defaulting to the current one"""
    today = date.today()
    start, end = _period(year or today.year, month or today.month)
    totals: Dict[Tuple[str, str], Dict[str, Any]] = {}
    for t in list_company_transactions(repo, profile, start, end, parse_store_ids(store_ids)):
        entry = totals.setdefault((t["type"], t["category"]), {"amount": ZERO, "count": 0})
        entry["amount"] += to_decimal(t.get("amount"))
        entry["count"] += 1

    rows = [
        {"type": key[0], "category": key[1], "month": start.strftime("%Y-%m"), **data}
        for key, data in totals.items()
    ]
    rows.sort(key=lambda r: (r["type"], -r["amount"]))
    return rows
