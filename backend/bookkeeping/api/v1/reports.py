"""
Reports API endpoints

Profit and loss, cash flow, metrics and the store hub. Report ranges are
resolved from a named period (month, quarter, year, custom) or explicit
dates, then moved so they never start before the opening balance date.
"""

from datetime import date
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, Query

from bookkeeping.api.responses import success
from bookkeeping.auth.dependencies import get_current_profile, get_repository
from bookkeeping.repositories.base import Repository, Row
from bookkeeping.services.cash_flow import (
    calc_consolidated_cash_flow,
    calc_consolidated_monthly_cash_flow,
    calculate_beginning_balance,
    calculate_cash_flow,
    calculate_monthly_cash_flow,
    get_date_range,
)
from bookkeeping.services.date_range import validate_date_range
from bookkeeping.services.errors import ValidationError
from bookkeeping.services.financial_settings import get_financial_settings
from bookkeeping.services.metrics import calc_global_overview
from bookkeeping.services.profit_loss import (
    calculate_monthly_profit_loss,
    calculate_profit_loss,
    filter_transactions_by_date_range,
)
from bookkeeping.services.scope import require_company_id
from bookkeeping.services.store_hub import get_store_hub_metrics
from bookkeeping.services.stores import get_active_stores, get_store
from bookkeeping.services.transactions import list_company_transactions, parse_store_ids
from bookkeeping.utils.amounts import ZERO

router = APIRouter(prefix="/reports", tags=["reports"])


def resolve_range(
    repo: Repository,
    profile: Row,
    period: Optional[str],
    start_date: Optional[date],
    end_date: Optional[date],
    store_id: Optional[str] = None,
    default_period: Optional[str] = None,
) -> Dict[str, Any]:
    """Validated report range (see validate_date_range for the keys)"""
    if not period and start_date is None and end_date is None:
        period = default_period
    if period:
        try:
            start_date, end_date = get_date_range(period, start_date, end_date)
        except ValueError:
            raise ValidationError("无效的报表期间")
    return validate_date_range(repo, require_company_id(profile), start_date, end_date, store_id=store_id)


def _store_scope(store_id: Optional[str], store_ids: Optional[str]):
    if store_id:
        return [store_id]
    return parse_store_ids(store_ids)


def _opening_balance(repo: Repository, profile: Row, store_id: Optional[str]) -> Tuple[Any, Optional[str]]:
    """(initial balance, its date) of one store, else of the company"""
    if store_id:
        store = get_store(repo, profile, store_id)
        if store.get("initial_balance_date"):
            return store.get("initial_balance") or ZERO, store["initial_balance_date"]
    settings = get_financial_settings(repo, require_company_id(profile))
    if settings:
        return settings.get("initial_cash_balance") or ZERO, settings.get("initial_balance_date")
    return ZERO, None


@router.get("/date-range")
def date_range(
    period: Optional[str] = Query(None, description="month, quarter, year or custom"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    store_id: Optional[str] = Query(None),
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    return success(resolve_range(repo, profile, period, start_date, end_date, store_id))


@router.get("/profit-loss")
def profit_loss(
    period: Optional[str] = Query(None, description="month, quarter, year or custom"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    store_id: Optional[str] = Query(None),
    store_ids: Optional[str] = Query(None, description="Comma-separated store ids"),
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    dates = resolve_range(repo, profile, period, start_date, end_date, store_id)
    transactions = list_company_transactions(
        repo, profile, dates["start_date"], dates["end_date"], _store_scope(store_id, store_ids)
    )
    statement = calculate_profit_loss(transactions)
    return success({**statement, "date_range": dates, "transaction_count": len(transactions)})


@router.get("/profit-loss/monthly")
def profit_loss_monthly(
    period: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    store_id: Optional[str] = Query(None),
    store_ids: Optional[str] = Query(None),
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    dates = resolve_range(repo, profile, period, start_date, end_date, store_id, default_period="year")
    transactions = list_company_transactions(
        repo, profile, dates["start_date"], dates["end_date"], _store_scope(store_id, store_ids)
    )
    rows = calculate_monthly_profit_loss(transactions, dates["start_date"], dates["end_date"])
    return success(rows, count=len(rows))


@router.get("/cash-flow")
def cash_flow(
    period: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    store_id: Optional[str] = Query(None),
    store_ids: Optional[str] = Query(None),
    consolidated: bool = Query(False, description="Combine active stores with their own opening balances"),
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    """
    Cash flow statement for the range.

    The beginning balance rolls the opening balance forward through every
    transaction before the range start.
    """
    dates = resolve_range(repo, profile, period, start_date, end_date, store_id)
    start, end = dates["start_date"], dates["end_date"]
    scope = _store_scope(store_id, store_ids)
    transactions = list_company_transactions(repo, profile, end_date=end, store_ids=scope)

    if consolidated:
        stores = get_active_stores(repo, profile)
        if scope:
            stores = [s for s in stores if s["id"] in scope]
        statement = calc_consolidated_cash_flow(stores, transactions, start, end)
    else:
        initial, initial_date = _opening_balance(repo, profile, store_id)
        beginning = calculate_beginning_balance(initial, initial_date, start, transactions)
        statement = calculate_cash_flow(filter_transactions_by_date_range(transactions, start, end), beginning)
    return success({**statement, "date_range": dates})


@router.get("/cash-flow/monthly")
def cash_flow_monthly(
    period: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    store_id: Optional[str] = Query(None),
    store_ids: Optional[str] = Query(None),
    consolidated: bool = Query(False),
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    dates = resolve_range(repo, profile, period, start_date, end_date, store_id, default_period="year")
    start, end = dates["start_date"], dates["end_date"]
    scope = _store_scope(store_id, store_ids)
    transactions = list_company_transactions(repo, profile, end_date=end, store_ids=scope)

    if consolidated:
        stores = get_active_stores(repo, profile)
        if scope:
            stores = [s for s in stores if s["id"] in scope]
        rows = calc_consolidated_monthly_cash_flow(stores, transactions, start, end)
    else:
        initial, initial_date = _opening_balance(repo, profile, store_id)
        rows = calculate_monthly_cash_flow(transactions, start, end, initial, initial_date)
    return success(rows, count=len(rows))


@router.get("/metrics")
def metrics(
    period: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    store_ids: Optional[str] = Query(None),
    include_by_store: bool = Query(False),
    include_by_month: bool = Query(False),
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    """Rule-based metrics with profit and cash-flow summaries"""
    dates = resolve_range(repo, profile, period, start_date, end_date)
    start, end = dates["start_date"], dates["end_date"]
    scope = parse_store_ids(store_ids)
    transactions = list_company_transactions(repo, profile, end_date=end, store_ids=scope)

    initial, initial_date = _opening_balance(repo, profile, None)
    beginning = calculate_beginning_balance(initial, initial_date, start, transactions)
    overview = calc_global_overview(
        transactions,
        store_ids=scope,
        start_date=start,
        end_date=end,
        beginning_balance=beginning,
        include_by_store=include_by_store,
        include_by_month=include_by_month,
    )
    return success({**overview, "date_range": dates})


@router.get("/store-hub")
def store_hub(
    period: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    store_ids: Optional[str] = Query(None),
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    """Company-wide summary with a per-store ranking"""
    if period:
        try:
            start_date, end_date = get_date_range(period, start_date, end_date)
        except ValueError:
            raise ValidationError("无效的报表期间")
    elif start_date is None or end_date is None:
        start_date, end_date = get_date_range("month")
    result = get_store_hub_metrics(repo, profile, start_date, end_date, store_ids=parse_store_ids(store_ids))
    return success({**result, "start_date": start_date, "end_date": end_date})
