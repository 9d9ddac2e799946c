"""
Rule-driven financial metrics

Each metric is a filter over transactions (type, nature, activity and the
profit-and-loss flag) summed by amount. Profit and cash-flow summaries are
derived from the base metrics. Used for the multi-store overview.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

from bookkeeping.utils.amounts import DateLike, ZERO, in_range, month_key, to_decimal


@dataclass(frozen=True)
class MetricRule:
    type: Optional[str] = None
    nature: Optional[str] = None
    activity: Optional[str] = None
    include_profit_loss: bool = False  # skip transactions excluded from P/L


METRIC_RULES: Dict[str, MetricRule] = {
    "total_income": MetricRule(type="income"),
    "total_expense": MetricRule(type="expense"),
    # Profit and loss
    "operating_income": MetricRule(type="income", nature="operating", include_profit_loss=True),
    "operating_expense": MetricRule(type="expense", nature="operating", include_profit_loss=True),
    "non_operating_income": MetricRule(type="income", nature="non_operating", include_profit_loss=True),
    "non_operating_expense": MetricRule(type="expense", nature="non_operating", include_profit_loss=True),
    "income_tax": MetricRule(type="expense", nature="income_tax", include_profit_loss=True),
    # Cash flow
    "operating_cash_inflow": MetricRule(type="income", activity="operating"),
    "operating_cash_outflow": MetricRule(type="expense", activity="operating"),
    "investing_cash_inflow": MetricRule(type="income", activity="investing"),
    "investing_cash_outflow": MetricRule(type="expense", activity="investing"),
    "financing_cash_inflow": MetricRule(type="income", activity="financing"),
    "financing_cash_outflow": MetricRule(type="expense", activity="financing"),
}


def match_rule(transaction: Dict[str, Any], rule: MetricRule) -> bool:
    if rule.type and transaction.get("type") != rule.type:
        return False
    # Missing nature and activity both default to operating
    if rule.nature and (transaction.get("transaction_nature") or "operating") != rule.nature:
        return False
    if rule.activity and (transaction.get("cash_flow_activity") or "operating") != rule.activity:
        return False
    if rule.include_profit_loss and transaction.get("include_in_profit_loss") is False:
        return False
    return True


def calc_metric(transactions: Iterable[Dict[str, Any]], rule: MetricRule) -> Decimal:
    """Sum of amounts of transactions matching one rule"""
    return sum(
        (to_decimal(t.get("amount")) for t in transactions if match_rule(t, rule)),
        ZERO,
    )


def calc_all_metrics(transactions: Iterable[Dict[str, Any]]) -> Dict[str, Decimal]:
    """Every metric in METRIC_RULES computed in a single pass"""
    result = {key: ZERO for key in METRIC_RULES}
    for t in transactions:
        amount = to_decimal(t.get("amount"))
        for key, rule in METRIC_RULES.items():
            if match_rule(t, rule):
                result[key] += amount
    return result


def calc_profit_loss_summary(metrics: Dict[str, Decimal]) -> Dict[str, Decimal]:
    operating_profit = metrics["operating_income"] - metrics["operating_expense"]
    non_operating_net = metrics["non_operating_income"] - metrics["non_operating_expense"]
    total_profit = operating_profit + non_operating_net
    return {
        "operating_income": metrics["operating_income"],
        "operating_expense": metrics["operating_expense"],
        "operating_profit": operating_profit,
        "non_operating_income": metrics["non_operating_income"],
        "non_operating_expense": metrics["non_operating_expense"],
        "non_operating_net": non_operating_net,
        "total_profit": total_profit,
        "income_tax": metrics["income_tax"],
        "net_profit": total_profit - metrics["income_tax"],
    }


def calc_cash_flow_summary(metrics: Dict[str, Decimal], beginning_balance: Any = 0) -> Dict[str, Any]:
    beginning = to_decimal(beginning_balance)
    result: Dict[str, Any] = {"beginning_balance": beginning}
    net_cash_flow = ZERO
    for activity in ("operating", "investing", "financing"):
        inflow = metrics[f"{activity}_cash_inflow"]
        outflow = metrics[f"{activity}_cash_outflow"]
        result[activity] = {"inflow": inflow, "outflow": outflow, "net": inflow - outflow}
        net_cash_flow += inflow - outflow
    result["net_cash_flow"] = net_cash_flow
    result["ending_balance"] = beginning + net_cash_flow
    return result


def calc_metrics_by_store(transactions: Iterable[Dict[str, Any]]) -> Dict[str, Dict[str, Decimal]]:
    """Metrics per store_id; transactions without a store go under 'unknown'"""
    by_store: Dict[str, List[Dict[str, Any]]] = {}
    for t in transactions:
        by_store.setdefault(t.get("store_id") or "unknown", []).append(t)
    return {store_id: calc_all_metrics(items) for store_id, items in by_store.items()}


def calc_metrics_by_month(transactions: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Metrics per YYYY-MM, months ascending"""
    by_month: Dict[str, List[Dict[str, Any]]] = {}
    for t in transactions:
        by_month.setdefault(month_key(t["date"]), []).append(t)
    return [
        {"month": month, "metrics": calc_all_metrics(by_month[month])}
        for month in sorted(by_month)
    ]


def calc_global_overview(
    transactions: Iterable[Dict[str, Any]],
    store_ids: Optional[Sequence[str]] = None,
    start_date: Optional[DateLike] = None,
    end_date: Optional[DateLike] = None,
    beginning_balance: Any = 0,
    include_by_store: bool = False,
    include_by_month: bool = False,
) -> Dict[str, Any]:
    """
    One-stop overview across stores.

    Args:
        transactions: Transactions of every store
        store_ids: Restrict to these stores (None means all)
        start_date: Inclusive lower bound on transaction date
        end_date: Inclusive upper bound on transaction date
        beginning_balance: Opening balance for the cash-flow summary
        include_by_store: Add per-store metrics
        include_by_month: Add per-month metrics

    Returns:
        dict with metrics, profit_loss, cash_flow and optionally
        by_store and by_month
    """
    selected = [
        t for t in transactions
        if (store_ids is None or t.get("store_id") in store_ids)
        and (start_date is None and end_date is None or in_range(t.get("date"), start_date, end_date))
    ]

    metrics = calc_all_metrics(selected)
    result: Dict[str, Any] = {
        "metrics": metrics,
        "profit_loss": calc_profit_loss_summary(metrics),
        "cash_flow": calc_cash_flow_summary(metrics, beginning_balance),
    }
    if include_by_store:
        result["by_store"] = calc_metrics_by_store(selected)
    if include_by_month:
        result["by_month"] = calc_metrics_by_month(selected)
    return result
