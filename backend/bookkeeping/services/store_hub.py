"""
Store hub: company-wide summary across stores

Totals and profit and loss cover the query period; the cash flow is
consolidated over active stores and uses every transaction up to the
period end, so new and existing stores get the right opening balances.
"""

from typing import Any, Dict, List, Optional, Sequence

from bookkeeping.core.stores.models import StoreStatus
from bookkeeping.repositories.base import Repository, Row
from bookkeeping.services.cash_flow import calc_consolidated_cash_flow
from bookkeeping.services.metrics import calc_all_metrics
from bookkeeping.services.profit_loss import calculate_profit_loss, filter_transactions_by_date_range
from bookkeeping.services.stores import get_stores
from bookkeeping.services.transactions import list_company_transactions
from bookkeeping.utils.amounts import ZERO, DateLike, to_decimal


def _by_store(stores: List[Row], transactions: List[Row]) -> List[Dict[str, Any]]:
    totals: Dict[str, Dict[str, Any]] = {}
    for t in transactions:
        entry = totals.setdefault(t.get("store_id") or "unknown", {
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

    rows = []
    for store in stores:
        data = totals.get(store["id"], {"income": ZERO, "expense": ZERO, "income_count": 0, "expense_count": 0})
        rows.append({
            "store_id": store["id"],
            "store_name": store.get("name"),
            "total_income": data["income"],
            "total_expense": data["expense"],
            "net_profit": data["income"] - data["expense"],
            "income_count": data["income_count"],
            "expense_count": data["expense_count"],
        })
    rows.sort(key=lambda r: r["net_profit"], reverse=True)
    return rows


def get_store_hub_metrics(
    repo: Repository,
    profile: Row,
    start_date: DateLike,
    end_date: DateLike,
    store_ids: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    """
    Summary and per-store figures for the stores the caller can see.

    Returns:
        dict with summary and by_store (sorted by net profit, highest first)
    """
    stores = get_stores(repo, profile)
    if store_ids:
        stores = [s for s in stores if s["id"] in store_ids]
    active_stores = [s for s in stores if s.get("status") == StoreStatus.ACTIVE.value]

    all_transactions = list_company_transactions(repo, profile, end_date=end_date, store_ids=store_ids)
    period = filter_transactions_by_date_range(all_transactions, start_date, end_date)

    metrics = calc_all_metrics(period)
    income_count = sum(1 for t in period if t.get("type") == "income")
    expense_count = len(period) - income_count
    store_count = len(stores)

    cash_flow = calc_consolidated_cash_flow(active_stores, all_transactions, start_date, end_date)
    profit_loss = calculate_profit_loss(period)

    summary = {
        "total_income": metrics["total_income"],
        "total_expense": metrics["total_expense"],
        "income_count": income_count,
        "expense_count": expense_count,
        "total_count": len(period),
        "store_count": store_count,
        "active_store_count": len(active_stores),
        "avg_income_per_store": metrics["total_income"] / store_count if store_count else ZERO,
        "avg_expense_per_store": metrics["total_expense"] / store_count if store_count else ZERO,
        "operating_cash_flow": cash_flow["operating"]["net_cash_flow"],
        "investing_cash_flow": cash_flow["investing"]["net_cash_flow"],
        "financing_cash_flow": cash_flow["financing"]["net_cash_flow"],
        "net_cash_flow": cash_flow["summary"]["net_increase"],
        "beginning_balance": cash_flow["summary"]["beginning_balance"],
        "ending_balance": cash_flow["summary"]["ending_balance"],
        "revenue": profit_loss["revenue"]["total"],
        "cost": profit_loss["cost"]["total"],
        "operating_profit": profit_loss["operating_profit"],
        "non_operating_income": profit_loss["non_operating_income"]["total"],
        "non_operating_expense": profit_loss["non_operating_expense"]["total"],
        "total_profit": profit_loss["total_profit"],
        "income_tax": profit_loss["income_tax"]["total"],
        "net_profit": profit_loss["net_profit"],
    }
    return {"summary": summary, "by_store": _by_store(stores, period)}
