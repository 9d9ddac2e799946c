"""
Report endpoint tests (profit and loss, cash flow, metrics, store hub)
"""

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from bookkeeping.services.date_range import ADJUSTMENT_REASON, validate_date_range
from bookkeeping.services.errors import ValidationError
from bookkeeping.services.financial_settings import upsert_financial_settings
from bookkeeping.services.store_hub import get_store_hub_metrics
from tests.auth_utils import auth_headers


@pytest.fixture
def ledger(repo, owner, make_store, make_transaction):
    """
    Company opening balance 10000 on 2026-01-01 and one store.

    January: +1000 operating. February: -200 operating, -3000 investing,
    +5000 financing (outside P/L), -100 income tax.
    """
    upsert_financial_settings(repo, owner["company_id"], 10000, "2026-01-01")
    repo.commit()
    store = make_store("一号店")
    make_transaction("income", "房费收入", 1000, "2026-01-10", store_id=store["id"])
    make_transaction("expense", "水电费", 200, "2026-02-05", store_id=store["id"])
    make_transaction("expense", "装修改造", 3000, "2026-02-20", store_id=store["id"], cash_flow_activity="investing")
    make_transaction(
        "income", "股东投资", 5000, "2026-02-25",
        store_id=store["id"], cash_flow_activity="financing", include_in_profit_loss=False,
    )
    make_transaction("expense", "所得税", 100, "2026-02-26", store_id=store["id"], transaction_nature="income_tax")
    return store


@pytest.fixture
def branches(owner, make_store, make_transaction):
    """One store open since January, one opened mid-February"""
    old = make_store("老店", initial_balance=2000, initial_balance_date="2026-01-01")
    new = make_store("新店", initial_balance=500, initial_balance_date="2026-02-10")
    make_transaction("income", "房费收入", 300, "2026-01-15", store_id=old["id"])
    make_transaction("income", "房费收入", 400, "2026-02-03", store_id=old["id"])
    make_transaction("expense", "清洁费", 100, "2026-02-12", store_id=new["id"])
    return old, new


FEBRUARY = "start_date=2026-02-01&end_date=2026-02-28"


def test_date_range_moves_start_to_opening_balance(repo, owner):
    upsert_financial_settings(repo, owner["company_id"], 0, "2026-01-01")

    result = validate_date_range(repo, owner["company_id"], "2025-12-01", "2026-01-31")
    assert result["start_date"] == date(2026, 1, 1)
    assert result["date_adjusted"] is True
    assert result["original_start_date"] == date(2025, 12, 1)
    assert result["adjustment_reason"] == ADJUSTMENT_REASON

    result = validate_date_range(repo, owner["company_id"], "2026-01-05", "2026-01-31")
    assert result["date_adjusted"] is False
    assert result["initial_balance_date"] == date(2026, 1, 1)


def test_date_range_rejects_inverted_range(repo, owner):
    with pytest.raises(ValidationError):
        validate_date_range(repo, owner["company_id"], "2026-02-01", "2026-01-01")


def test_date_range_uses_store_opening_date(repo, owner, make_store):
    upsert_financial_settings(repo, owner["company_id"], 0, "2026-01-01")
    store = make_store("新店", initial_balance_date="2026-03-01")
    result = validate_date_range(repo, owner["company_id"], "2026-02-01", "2026-03-31", store_id=store["id"])
    assert result["start_date"] == date(2026, 3, 1)


def test_date_range_route(client: TestClient, ledger, owner_headers):
    response = client.get("/api/reports/date-range?start_date=2025-12-01&end_date=2026-01-31", headers=owner_headers)
    data = response.json()["data"]
    assert data["start_date"] == "2026-01-01"
    assert data["original_start_date"] == "2025-12-01"
    assert data["date_adjusted"] is True


def test_profit_loss_route(client: TestClient, ledger, owner_headers):
    response = client.get(f"/api/reports/profit-loss?{FEBRUARY}", headers=owner_headers)
    assert response.status_code == 200
    data = response.json()["data"]

    assert data["revenue"]["total"] == 0
    assert data["cost"]["total"] == 3200
    assert [item["category"] for item in data["cost"]["items"]] == ["装修改造", "水电费"]
    assert data["income_tax"]["total"] == 100
    assert data["operating_profit"] == -3200
    assert data["net_profit"] == -3300
    assert data["transaction_count"] == 4
    assert data["date_range"]["date_adjusted"] is False


def test_monthly_profit_loss_route(client: TestClient, ledger, owner_headers):
    response = client.get("/api/reports/profit-loss/monthly?start_date=2026-01-01&end_date=2026-02-28", headers=owner_headers)
    rows = response.json()["data"]
    assert [(r["month"], r["profit"]) for r in rows] == [("2026-01", 1000), ("2026-02", -3300)]


def test_cash_flow_route_rolls_beginning_balance_forward(client: TestClient, ledger, owner_headers):
    response = client.get(f"/api/reports/cash-flow?{FEBRUARY}", headers=owner_headers)
    data = response.json()["data"]

    assert data["operating"]["net_cash_flow"] == -300
    assert data["investing"]["net_cash_flow"] == -3000
    assert data["financing"]["net_cash_flow"] == 5000
    assert data["summary"] == {
        "total_inflow": 5000,
        "total_outflow": 3300,
        "net_increase": 1700,
        "beginning_balance": 11000,
        "ending_balance": 12700,
    }


def test_monthly_cash_flow_route(client: TestClient, ledger, owner_headers):
    response = client.get("/api/reports/cash-flow/monthly?start_date=2026-01-01&end_date=2026-02-28", headers=owner_headers)
    rows = response.json()["data"]
    assert [(r["month"], r["beginning_balance"], r["ending_balance"]) for r in rows] == [
        ("2026-01", 10000, 11000),
        ("2026-02", 11000, 12700),
    ]


def test_consolidated_cash_flow_route(client: TestClient, branches, owner_headers):
    old, new = branches
    response = client.get(f"/api/reports/cash-flow?consolidated=true&{FEBRUARY}", headers=owner_headers)
    data = response.json()["data"]

    assert data["summary"]["beginning_balance"] == 2300
    assert data["summary"]["net_increase"] == 800
    assert data["summary"]["ending_balance"] == 3100
    assert data["financing"]["inflows"][0]["amount"] == 500
    assert data["new_store_capital_investments"] == [
        {"store_id": new["id"], "store_name": "新店", "amount": 500, "date": "2026-02-10"},
    ]
    breakdown = {s["store_id"]: s for s in data["store_breakdown"]}
    assert breakdown[old["id"]]["ending_balance"] == 2700
    assert breakdown[new["id"]]["is_new_store"] is True


def test_metrics_route(client: TestClient, ledger, owner_headers):
    response = client.get(f"/api/reports/metrics?{FEBRUARY}&include_by_month=true", headers=owner_headers)
    data = response.json()["data"]

    assert data["metrics"]["total_income"] == 5000
    assert data["profit_loss"]["net_profit"] == -3300
    assert data["cash_flow"]["net_cash_flow"] == 1700
    assert data["cash_flow"]["ending_balance"] == 12700
    assert [m["month"] for m in data["by_month"]] == ["2026-02"]


def test_invalid_period_is_rejected(client: TestClient, owner_headers):
    response = client.get("/api/reports/profit-loss?period=decade", headers=owner_headers)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "无效的报表期间"

    response = client.get("/api/reports/profit-loss?period=custom&start_date=2026-01-01", headers=owner_headers)
    assert response.status_code == 400


def test_reports_are_scoped_to_managed_stores(client: TestClient, ledger, make_member, make_store, make_transaction):
    other = make_store("二号店")
    make_transaction("income", "房费收入", 777, "2026-02-10", store_id=other["id"])
    manager = make_member("manager", managed_store_ids=[other["id"]])

    response = client.get(f"/api/reports/profit-loss?{FEBRUARY}", headers=auth_headers(manager["user_id"]))
    data = response.json()["data"]
    assert data["revenue"]["total"] == 777
    assert data["transaction_count"] == 1


def test_store_hub_metrics(repo, owner, branches):
    old, new = branches
    result = get_store_hub_metrics(repo, owner, "2026-02-01", "2026-02-28")

    summary = result["summary"]
    assert summary["total_income"] == Decimal("400")
    assert summary["total_expense"] == Decimal("100")
    assert summary["store_count"] == 2
    assert summary["active_store_count"] == 2
    assert summary["avg_income_per_store"] == Decimal("200")
    assert summary["net_cash_flow"] == Decimal("800")
    assert summary["ending_balance"] == Decimal("3100")
    assert [s["store_id"] for s in result["by_store"]] == [old["id"], new["id"]]


def test_store_hub_route(client: TestClient, branches, owner_headers):
    response = client.get(f"/api/reports/store-hub?{FEBRUARY}", headers=owner_headers)
    data = response.json()["data"]
    assert data["start_date"] == "2026-02-01"
    assert data["summary"]["total_count"] == 2
    assert data["by_store"][0]["net_profit"] == 400


def test_financial_settings_routes(client: TestClient, owner_headers, make_member):
    response = client.get("/api/financial-settings", headers=owner_headers)
    assert response.json()["data"] is None

    response = client.put(
        "/api/financial-settings",
        json={"initial_cash_balance": 8000, "initial_balance_date": "2026-01-01", "notes": "开业资金"},
        headers=owner_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["initial_balance_date"] == "2026-01-01"

    response = client.put(
        "/api/financial-settings",
        json={"initial_cash_balance": 9000, "initial_balance_date": "2026-02-01"},
        headers=owner_headers,
    )
    data = client.get("/api/financial-settings", headers=owner_headers).json()["data"]
    assert data["initial_cash_balance"] == 9000
    assert data["initial_balance_date"] == "2026-02-01"

    manager = make_member("manager")
    response = client.put(
        "/api/financial-settings",
        json={"initial_cash_balance": 1, "initial_balance_date": "2026-01-01"},
        headers=auth_headers(manager["user_id"]),
    )
    assert response.status_code == 403
