"""
Cash flow statement

Transactions are split into operating, investing and financing activity
using their own cash_flow_activity, falling back to the built-in category
mapping. Income is an inflow, expense an outflow.

The consolidated variants combine several stores, each of which has its
own opening balance and opening date:
- stores open on or before the period start contribute their balance at
  the start to the beginning balance;
- stores opening inside the period contribute their opening balance as a
  financing inflow (新店资本投入);
- stores opening after the period are left out.
"""

import calendar
from collections import OrderedDict
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bookkeeping.services.cash_flow_config import ACTIVITIES, get_category_mapping
from bookkeeping.services.profit_loss import filter_transactions_by_date_range, group_by_month
from bookkeeping.utils.amounts import DateLike, ZERO, as_date, in_range, to_decimal

NEW_STORE_CAPITAL_CATEGORY = "__new_store_capital__"
NEW_STORE_CAPITAL_LABEL = "新店资本投入"

PERIODS = ("month", "quarter", "year", "custom")


def resolve_activity(transaction: Dict[str, Any]) -> Tuple[str, str]:
    """(activity, label) for a transaction"""
    category = transaction.get("category") or ""
    activity = transaction.get("cash_flow_activity")
    if activity:
        return activity, category
    mapping = get_category_mapping(category, transaction.get("type"))
    return mapping.activity, mapping.label


def _empty_section() -> Dict[str, Any]:
    return {
        "inflows": [],
        "outflows": [],
        "subtotal_inflow": ZERO,
        "subtotal_outflow": ZERO,
        "net_cash_flow": ZERO,
    }


def _flow_items(aggregated: "OrderedDict[str, Dict[str, Any]]") -> List[Dict[str, Any]]:
    items = [
        {"category": category, "label": data["label"], "amount": data["amount"], "count": data["count"]}
        for category, data in aggregated.items()
    ]
    items.sort(key=lambda item: item["amount"], reverse=True)
    return items


def calculate_cash_flow(
    transactions: Iterable[Dict[str, Any]],
    beginning_balance: Any = 0,
) -> Dict[str, Any]:
    """
    Build the cash flow statement.

    Returns one section per activity (inflows, outflows, subtotals and net)
    and a summary with total_inflow, total_outflow, net_increase,
    beginning_balance and ending_balance.
    """
    beginning = to_decimal(beginning_balance)
    aggregated = {
        activity: {"inflow": OrderedDict(), "outflow": OrderedDict()}
        for activity in ACTIVITIES
    }

    for t in transactions:
        activity, label = resolve_activity(t)
        if activity not in aggregated:
            activity = "operating"
        direction = "inflow" if t.get("type") == "income" else "outflow"
        category = t.get("category") or ""
        entry = aggregated[activity][direction].setdefault(
            category, {"label": label, "amount": ZERO, "count": 0}
        )
        entry["amount"] += to_decimal(t.get("amount"))
        entry["count"] += 1

    result: Dict[str, Any] = {}
    total_inflow = ZERO
    total_outflow = ZERO
    for activity in ACTIVITIES:
        section = _empty_section()
        section["inflows"] = _flow_items(aggregated[activity]["inflow"])
        section["outflows"] = _flow_items(aggregated[activity]["outflow"])
        section["subtotal_inflow"] = sum((i["amount"] for i in section["inflows"]), ZERO)
        section["subtotal_outflow"] = sum((i["amount"] for i in section["outflows"]), ZERO)
        section["net_cash_flow"] = section["subtotal_inflow"] - section["subtotal_outflow"]
        total_inflow += section["subtotal_inflow"]
        total_outflow += section["subtotal_outflow"]
        result[activity] = section

    net_increase = total_inflow - total_outflow
    result["summary"] = {
        "total_inflow": total_inflow,
        "total_outflow": total_outflow,
        "net_increase": net_increase,
        "beginning_balance": beginning,
        "ending_balance": beginning + net_increase,
    }
    return result


def calculate_beginning_balance(
    initial_balance: Any,
    initial_balance_date: DateLike,
    start_date: DateLike,
    transactions: Iterable[Dict[str, Any]],
) -> Decimal:
    """
    Balance at the start of a query period.

    The initial balance plus net cash movement between the initial balance
    date (inclusive) and the query start (exclusive).
    """
    initial = to_decimal(initial_balance)
    initial_date = as_date(initial_balance_date)
    start = as_date(start_date)
    if initial_date is None or start <= initial_date:
        return initial

    movement = ZERO
    for t in filter_transactions_by_date_range(transactions, initial_date, start - timedelta(days=1)):
        amount = to_decimal(t.get("amount"))
        movement += amount if t.get("type") == "income" else -amount
    return initial + movement


def _monthly_row(month: str, statement: Dict[str, Any], beginning: Decimal, extra_financing: Decimal = ZERO) -> Dict[str, Any]:
    financing = statement["financing"]["net_cash_flow"] + extra_financing
    net_increase = statement["summary"]["net_increase"] + extra_financing
    return {
        "month": month,
        "operating": statement["operating"]["net_cash_flow"],
        "investing": statement["investing"]["net_cash_flow"],
        "financing": financing,
        "net_increase": net_increase,
        "beginning_balance": beginning,
        "ending_balance": beginning + net_increase,
    }


def calculate_monthly_cash_flow(
    transactions: Iterable[Dict[str, Any]],
    start: DateLike,
    end: DateLike,
    initial_balance: Any = 0,
    initial_balance_date: Optional[DateLike] = None,
) -> List[Dict[str, Any]]:
    """
    Per-month net flows for months that have transactions.

    Each month's beginning balance is the previous month's ending balance;
    the first one is derived from the initial balance when its date is known.
    """
    transactions = list(transactions)
    months = group_by_month(transactions, start, end)
    beginning = to_decimal(initial_balance)
    if months and initial_balance_date:
        first_month_start = f"{next(iter(months))}-01"
        beginning = calculate_beginning_balance(initial_balance, initial_balance_date, first_month_start, transactions)

    result = []
    for month, month_transactions in months.items():
        row = _monthly_row(month, calculate_cash_flow(month_transactions), beginning)
        result.append(row)
        beginning = row["ending_balance"]
    return result


def get_date_range(
    period: str,
    custom_start: Optional[DateLike] = None,
    custom_end: Optional[DateLike] = None,
    today: Optional[date] = None,
) -> Tuple[date, date]:
    """
    (start, end) for a reporting period relative to today.

    Raises:
        ValueError: For an unknown period, or custom without both dates
    """
    today = today or date.today()
    if period == "month":
        last_day = calendar.monthrange(today.year, today.month)[1]
        return date(today.year, today.month, 1), date(today.year, today.month, last_day)
    if period == "quarter":
        first_month = (today.month - 1) // 3 * 3 + 1
        last_month = first_month + 2
        last_day = calendar.monthrange(today.year, last_month)[1]
        return date(today.year, first_month, 1), date(today.year, last_month, last_day)
    if period == "year":
        return date(today.year, 1, 1), date(today.year, 12, 31)
    if period == "custom":
        if not custom_start or not custom_end:
            raise ValueError("Custom date range requires start and end dates")
        return as_date(custom_start), as_date(custom_end)
    raise ValueError(f"Unknown period: {period}")


def classify_stores(
    stores: Iterable[Dict[str, Any]],
    start: DateLike,
    end: DateLike,
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """Split stores into (existing, new) for a period; later openings are dropped"""
    start_d = as_date(start)
    end_d = as_date(end)
    existing, new = [], []
    for store in stores:
        opened = as_date(store.get("initial_balance_date"))
        if opened is None or opened <= start_d:
            existing.append(store)
        elif opened <= end_d:
            new.append(store)
    return existing, new


def _store_transactions(transactions: List[Dict[str, Any]], store_id: str) -> List[Dict[str, Any]]:
    return [t for t in transactions if t.get("store_id") == store_id]


def calc_consolidated_cash_flow(
    stores: Iterable[Dict[str, Any]],
    transactions: Iterable[Dict[str, Any]],
    start: DateLike,
    end: DateLike,
) -> Dict[str, Any]:
    """
    Cash flow statement combined across stores.

    Adds new_store_capital_investments and a per-store store_breakdown to
    the regular statement. The beginning balance is the sum of existing
    stores' balances at the start; the ending balance is the sum of every
    included store's ending balance.
    """
    transactions = list(transactions)
    start_d = as_date(start)
    end_d = as_date(end)
    existing, new = classify_stores(stores, start_d, end_d)

    breakdown = []
    beginning_total = ZERO
    period_transactions = []

    for store in existing:
        store_transactions = _store_transactions(transactions, store["id"])
        initial = to_decimal(store.get("initial_balance"))
        if store.get("initial_balance_date"):
            beginning = calculate_beginning_balance(
                initial, store["initial_balance_date"], start_d, store_transactions
            )
        else:
            beginning = initial
        beginning_total += beginning

        in_period = filter_transactions_by_date_range(store_transactions, start_d, end_d)
        period_transactions.extend(in_period)
        net = calculate_cash_flow(in_period)["summary"]["net_increase"]
        breakdown.append({
            "store_id": store["id"],
            "store_name": store.get("name"),
            "beginning_balance": beginning,
            "ending_balance": beginning + net,
            "net_cash_flow": net,
            "is_new_store": False,
        })

    investments = []
    new_capital = ZERO
    for store in new:
        initial = to_decimal(store.get("initial_balance"))
        opened = as_date(store["initial_balance_date"])
        investments.append({
            "store_id": store["id"],
            "store_name": store.get("name"),
            "amount": initial,
            "date": opened.isoformat(),
        })
        new_capital += initial

        in_period = filter_transactions_by_date_range(
            _store_transactions(transactions, store["id"]), opened, end_d
        )
        period_transactions.extend(in_period)
        net = calculate_cash_flow(in_period)["summary"]["net_increase"]
        breakdown.append({
            "store_id": store["id"],
            "store_name": store.get("name"),
            "beginning_balance": initial,
            "ending_balance": initial + net,
            "net_cash_flow": net,
            "is_new_store": True,
        })

    statement = calculate_cash_flow(period_transactions, beginning_total)

    if new_capital > 0:
        financing = statement["financing"]
        financing["inflows"].insert(0, {
            "category": NEW_STORE_CAPITAL_CATEGORY,
            "label": NEW_STORE_CAPITAL_LABEL,
            "amount": new_capital,
            "count": len(new),
        })
        financing["subtotal_inflow"] += new_capital
        financing["net_cash_flow"] += new_capital
        statement["summary"]["total_inflow"] += new_capital
        statement["summary"]["net_increase"] += new_capital

    statement["summary"]["beginning_balance"] = beginning_total
    statement["summary"]["ending_balance"] = sum((s["ending_balance"] for s in breakdown), ZERO)
    statement["new_store_capital_investments"] = investments
    statement["store_breakdown"] = breakdown
    return statement


def iter_months(start: DateLike, end: DateLike) -> List[str]:
    """Every YYYY-MM from start's month through end's month"""
    start_d = as_date(start)
    end_d = as_date(end)
    year, month = start_d.year, start_d.month
    months = []
    while (year, month) <= (end_d.year, end_d.month):
        months.append(f"{year:04d}-{month:02d}")
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return months


def calc_consolidated_monthly_cash_flow(
    stores: Iterable[Dict[str, Any]],
    transactions: Iterable[Dict[str, Any]],
    start: DateLike,
    end: DateLike,
) -> List[Dict[str, Any]]:
    """
    Monthly flows combined across stores, one row for every month in range.

    A store opening during the range adds its opening balance to financing
    in its opening month. Empty when no store has an opening date.
    """
    stores = list(stores)
    transactions = list(transactions)
    if not any(store.get("initial_balance_date") for store in stores):
        return []

    start_d = as_date(start)
    end_d = as_date(end)
    by_month = group_by_month(transactions, start_d, end_d)

    beginning = ZERO
    for store in stores:
        opened = as_date(store.get("initial_balance_date"))
        if opened is not None and opened <= start_d:
            beginning += calculate_beginning_balance(
                store.get("initial_balance"), opened, start_d, _store_transactions(transactions, store["id"])
            )

    result = []
    for month in iter_months(start_d, end_d):
        year, month_number = int(month[:4]), int(month[5:])
        month_start = date(year, month_number, 1)
        month_end = date(year, month_number, calendar.monthrange(year, month_number)[1])

        opening_capital = ZERO
        for store in stores:
            opened = as_date(store.get("initial_balance_date"))
            if opened is not None and opened > start_d and in_range(opened, month_start, month_end):
                opening_capital += to_decimal(store.get("initial_balance"))

        statement = calculate_cash_flow(by_month.get(month, []))
        row = _monthly_row(month, statement, beginning, opening_capital)
        result.append(row)
        beginning = row["ending_balance"]
    return result
