"""
Rule-driven metrics tests
"""

from decimal import Decimal

from bookkeeping.services.metrics import (
    METRIC_RULES,
    MetricRule,
    calc_all_metrics,
    calc_global_overview,
    calc_metric,
    match_rule,
)


def tx(type, amount, date="2026-03-10", store_id="s1", **extra):
    return {"type": type, "category": "x", "amount": Decimal(str(amount)), "date": date, "store_id": store_id, **extra}


TRANSACTIONS = [
    tx("income", 1000),
    tx("expense", 300),
    tx("income", 200, transaction_nature="non_operating"),
    tx("expense", 100, transaction_nature="income_tax"),
    tx("income", 5000, cash_flow_activity="financing", include_in_profit_loss=False),
    tx("expense", 800, cash_flow_activity="investing", store_id="s2"),
    tx("income", 50, date="2026-04-02", store_id=None),
]


def test_missing_nature_and_activity_default_to_operating():
    assert match_rule(tx("income", 1), METRIC_RULES["operating_income"])
    assert match_rule(tx("income", 1), METRIC_RULES["operating_cash_inflow"])
    assert not match_rule(tx("income", 1), MetricRule(type="expense"))


def test_profit_loss_rules_skip_excluded_transactions():
    rule = METRIC_RULES["operating_income"]
    assert calc_metric(TRANSACTIONS, rule) == Decimal("1050")
    assert calc_metric(TRANSACTIONS, METRIC_RULES["total_income"]) == Decimal("6250")


def test_all_metrics_in_one_pass():
    metrics = calc_all_metrics(TRANSACTIONS)
    assert set(metrics) == set(METRIC_RULES)
    assert metrics["total_expense"] == Decimal("1200")
    assert metrics["non_operating_income"] == Decimal("200")
    assert metrics["income_tax"] == Decimal("100")
    assert metrics["financing_cash_inflow"] == Decimal("5000")
    assert metrics["investing_cash_outflow"] == Decimal("800")


def test_global_overview_summaries():
    overview = calc_global_overview(TRANSACTIONS, beginning_balance=100)

    profit_loss = overview["profit_loss"]
    # operating income 1050; expense 300 + 800 (investing purchases still count in P/L)
    assert profit_loss["operating_profit"] == Decimal("-50")
    assert profit_loss["total_profit"] == Decimal("150")
    assert profit_loss["net_profit"] == Decimal("50")

    cash_flow = overview["cash_flow"]
    assert cash_flow["financing"] == {"inflow": Decimal("5000"), "outflow": 0, "net": Decimal("5000")}
    assert cash_flow["net_cash_flow"] == Decimal("5050")
    assert cash_flow["ending_balance"] == Decimal("5150")
    assert "by_store" not in overview


def test_global_overview_filters_and_breakdowns():
    overview = calc_global_overview(
        TRANSACTIONS,
        store_ids=["s1"],
        start_date="2026-03-01",
        end_date="2026-03-31",
        include_by_store=True,
        include_by_month=True,
    )
    assert overview["metrics"]["total_income"] == Decimal("6200")
    assert list(overview["by_store"]) == ["s1"]
    assert [m["month"] for m in overview["by_month"]] == ["2026-03"]


def test_by_store_groups_unassigned_transactions_as_unknown():
    overview = calc_global_overview(TRANSACTIONS, include_by_store=True)
    assert set(overview["by_store"]) == {"s1", "s2", "unknown"}
    assert overview["by_store"]["unknown"]["total_income"] == Decimal("50")
