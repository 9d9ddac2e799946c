"""
Profit and loss statement

Transactions flagged include_in_profit_loss=False are left out; a missing
transaction_nature counts as operating.
"""

from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional

from bookkeeping.utils.amounts import DateLike, ZERO, in_range, month_key, percentage, to_decimal

NATURE_OPERATING = "operating"
NATURE_NON_OPERATING = "non_operating"
NATURE_INCOME_TAX = "income_tax"


def transaction_nature(transaction: Dict[str, Any]) -> str:
    return transaction.get("transaction_nature") or NATURE_OPERATING


def counts_in_profit_loss(transaction: Dict[str, Any]) -> bool:
    return transaction.get("include_in_profit_loss") is not False


def _bucket_key(transaction: Dict[str, Any]) -> Optional[str]:
    """Which statement line a transaction lands on"""
    if not counts_in_profit_loss(transaction):
        return None
    nature = transaction_nature(transaction)
    is_income = transaction.get("type") == "income"
    if nature == NATURE_OPERATING:
        return "revenue" if is_income else "cost"
    if nature == NATURE_NON_OPERATING:
        return "non_operating_income" if is_income else "non_operating_expense"
    if nature == NATURE_INCOME_TAX and not is_income:
        return "income_tax"
    return None


def _build_bucket(transactions: List[Dict[str, Any]]) -> Dict[str, Any]:
    by_category: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    total = ZERO
    for t in transactions:
        amount = to_decimal(t.get("amount"))
        total += amount
        entry = by_category.setdefault(t.get("category") or "", {"amount": ZERO, "count": 0})
        entry["amount"] += amount
        entry["count"] += 1

    items = [
        {
            "category": category,
            "amount": data["amount"],
            "count": data["count"],
            "percentage": percentage(data["amount"], total),
        }
        for category, data in by_category.items()
    ]
    items.sort(key=lambda item: item["amount"], reverse=True)
    return {"items": items, "total": total}


def calculate_profit_loss(transactions: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Build the profit and loss statement.

    Returns revenue, cost, non_operating_income, non_operating_expense and
    income_tax buckets (items per category with amount, count and share of
    the bucket) plus operating_profit, total_profit and net_profit.
    """
    grouped: Dict[str, List[Dict[str, Any]]] = {
        "revenue": [],
        "cost": [],
        "non_operating_income": [],
        "non_operating_expense": [],
        "income_tax": [],
    }
    for t in transactions:
        key = _bucket_key(t)
        if key:
            grouped[key].append(t)

    buckets = {key: _build_bucket(items) for key, items in grouped.items()}

    operating_profit = buckets["revenue"]["total"] - buckets["cost"]["total"]
    total_profit = (
        operating_profit
        + buckets["non_operating_income"]["total"]
        - buckets["non_operating_expense"]["total"]
    )
    net_profit = total_profit - buckets["income_tax"]["total"]

    return {
        "revenue": buckets["revenue"],
        "cost": buckets["cost"],
        "operating_profit": operating_profit,
        "non_operating_income": buckets["non_operating_income"],
        "non_operating_expense": buckets["non_operating_expense"],
        "total_profit": total_profit,
        "income_tax": buckets["income_tax"],
        "net_profit": net_profit,
    }


def group_by_month(
    transactions: Iterable[Dict[str, Any]],
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
) -> "OrderedDict[str, List[Dict[str, Any]]]":
    """Transactions within [start, end] grouped by YYYY-MM, months ascending"""
    by_month: Dict[str, List[Dict[str, Any]]] = {}
    for t in transactions:
        if not in_range(t.get("date"), start, end):
            continue
        by_month.setdefault(month_key(t["date"]), []).append(t)
    return OrderedDict(sorted(by_month.items()))


def calculate_monthly_profit_loss(
    transactions: Iterable[Dict[str, Any]],
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
) -> List[Dict[str, Any]]:
    """Per-month revenue, cost and profit for months that have transactions"""
    result = []
    for month, month_transactions in group_by_month(transactions, start, end).items():
        statement = calculate_profit_loss(month_transactions)
        result.append({
            "month": month,
            "revenue": statement["revenue"]["total"],
            "cost": statement["cost"]["total"],
            "profit": statement["net_profit"],
            "non_operating_income": statement["non_operating_income"]["total"],
            "non_operating_expense": statement["non_operating_expense"]["total"],
            "income_tax": statement["income_tax"]["total"],
        })
    return result


def filter_transactions_by_date_range(
    transactions: Iterable[Dict[str, Any]],
    start: Optional[DateLike],
    end: Optional[DateLike],
) -> List[Dict[str, Any]]:
    return [t for t in transactions if in_range(t.get("date"), start, end)]

