"""
Transaction category tests
"""

import pytest
from fastapi.testclient import TestClient

from bookkeeping.repositories.base import Table
from bookkeeping.services.categories import (
    add_category,
    delete_category,
    get_categories,
    get_category_usage_count,
    merge_categories,
    update_category,
)
from bookkeeping.services.errors import ConflictError, PermissionDeniedError, ValidationError
from tests.auth_utils import auth_headers


def test_add_category_defaults(repo, owner):
    category = add_category(repo, owner, {"name": " 房费收入 ", "type": "income"})
    assert category["name"] == "房费收入"
    assert category["cash_flow_activity"] == "operating"
    assert category["transaction_nature"] == "operating"
    assert category["include_in_profit_loss"] is True
    assert category["is_system"] is False


def test_add_category_validation(repo, owner):
    with pytest.raises(ValidationError):
        add_category(repo, owner, {"name": "", "type": "income"})
    with pytest.raises(ValidationError):
        add_category(repo, owner, {"name": "租金"})
    with pytest.raises(ValidationError):
        add_category(repo, owner, {"name": "租金", "type": "expense", "cash_flow_activity": "gambling"})

    add_category(repo, owner, {"name": "租金", "type": "expense"})
    with pytest.raises(ConflictError):
        add_category(repo, owner, {"name": "租金", "type": "expense"})
    # same name under the other type is a different category
    assert add_category(repo, owner, {"name": "租金", "type": "income"})["type"] == "income"


def test_only_admins_manage_categories(repo, owner, accountant, make_member):
    manager = make_member("manager")
    with pytest.raises(PermissionDeniedError):
        add_category(repo, manager, {"name": "杂费", "type": "expense"})
    assert add_category(repo, accountant, {"name": "杂费", "type": "expense"})


def test_list_categories_by_type(repo, owner):
    add_category(repo, owner, {"name": "房费收入", "type": "income", "sort_order": 2})
    add_category(repo, owner, {"name": "押金", "type": "income", "sort_order": 1})
    add_category(repo, owner, {"name": "水电", "type": "expense"})

    assert [c["name"] for c in get_categories(repo, owner, "income")] == ["押金", "房费收入"]
    assert len(get_categories(repo, owner)) == 3
    with pytest.raises(ValidationError):
        get_categories(repo, owner, "transfer")


def test_rename_cascades_to_transactions(repo, owner, make_transaction):
    category = add_category(repo, owner, {"name": "水电", "type": "expense"})
    tx = make_transaction("expense", "水电", 80, "2026-03-01")
    other = make_transaction("income", "水电", 10, "2026-03-01")

    update_category(repo, owner, category["id"], {"name": "水电燃气"})

    assert repo.get(Table.TRANSACTIONS, tx["id"])["category"] == "水电燃气"
    assert repo.get(Table.TRANSACTIONS, other["id"])["category"] == "水电"


def test_reclassification_cascades_to_linked_transactions(repo, owner, make_transaction):
    category = add_category(repo, owner, {"name": "装修", "type": "expense"})
    linked = make_transaction("expense", "装修", 5000, "2026-03-01", category_id=category["id"])

    updated = update_category(repo, owner, category["id"], {
        "cash_flow_activity": "investing",
        "include_in_profit_loss": False,
    })

    assert updated["cash_flow_activity"] == "investing"
    row = repo.get(Table.TRANSACTIONS, linked["id"])
    assert row["cash_flow_activity"] == "investing"
    assert row["include_in_profit_loss"] is False
    assert row["transaction_nature"] == "operating"


def test_rename_rejects_duplicates_and_system_type_changes(repo, owner):
    first = add_category(repo, owner, {"name": "水电", "type": "expense"})
    add_category(repo, owner, {"name": "网费", "type": "expense"})
    with pytest.raises(ConflictError):
        update_category(repo, owner, first["id"], {"name": "网费"})

    system = repo.insert(Table.CATEGORIES, {
        "company_id": owner["company_id"],
        "name": "房费收入",
        "type": "income",
        "is_system": True,
    })
    with pytest.raises(ValidationError):
        update_category(repo, owner, system["id"], {"type": "expense"})


def test_usage_and_delete(repo, owner, make_transaction):
    used = add_category(repo, owner, {"name": "水电", "type": "expense"})
    unused = add_category(repo, owner, {"name": "网费", "type": "expense"})
    make_transaction("expense", "水电", 80, "2026-03-01")
    make_transaction("expense", "水电", 20, "2026-03-02")

    assert get_category_usage_count(repo, owner, used["id"]) == 2
    with pytest.raises(ConflictError):
        delete_category(repo, owner, used["id"])

    delete_category(repo, owner, unused["id"])
    assert repo.get(Table.CATEGORIES, unused["id"]) is None


def test_merge_moves_transactions_and_deletes_source(repo, owner, make_transaction):
    source = add_category(repo, owner, {"name": "电费", "type": "expense"})
    target = add_category(repo, owner, {"name": "水电", "type": "expense", "cash_flow_activity": "operating"})
    tx = make_transaction("expense", "电费", 60, "2026-03-01", cash_flow_activity="investing")

    result = merge_categories(repo, owner, source["id"], target["id"])

    assert result["moved"] == 1
    row = repo.get(Table.TRANSACTIONS, tx["id"])
    assert row["category"] == "水电"
    assert row["category_id"] == target["id"]
    assert row["cash_flow_activity"] == "operating"
    assert repo.get(Table.CATEGORIES, source["id"]) is None


def test_merge_rules(repo, owner):
    expense = add_category(repo, owner, {"name": "杂费", "type": "expense"})
    income = add_category(repo, owner, {"name": "杂项收入", "type": "income"})
    with pytest.raises(ValidationError):
        merge_categories(repo, owner, expense["id"], expense["id"])
    with pytest.raises(ValidationError):
        merge_categories(repo, owner, expense["id"], income["id"])


def test_category_routes(client: TestClient, owner, owner_headers):
    response = client.post("/api/categories", json={"name": "房费收入", "type": "income"}, headers=owner_headers)
    assert response.status_code == 200
    category = response.json()["data"]

    response = client.get("/api/categories?type=income", headers=owner_headers)
    body = response.json()
    assert body["count"] == 1
    assert body["data"][0]["id"] == category["id"]

    response = client.put(f"/api/categories/{category['id']}", json={"name": "客房收入"}, headers=owner_headers)
    assert response.json()["data"]["name"] == "客房收入"

    response = client.get(f"/api/categories/{category['id']}/usage", headers=owner_headers)
    assert response.json()["data"] == {"id": category["id"], "usage_count": 0}

    response = client.delete(f"/api/categories/{category['id']}", headers=owner_headers)
    assert response.json()["success"] is True


def test_duplicate_category_returns_conflict(client: TestClient, owner_headers):
    client.post("/api/categories", json={"name": "水电", "type": "expense"}, headers=owner_headers)
    response = client.post("/api/categories", json={"name": "水电", "type": "expense"}, headers=owner_headers)
    assert response.status_code == 409
    assert response.json()["error"] == {
        "code": "CONFLICT",
        "message": "该类型名称已存在",
        "trace_id": response.headers["X-Trace-ID"],
    }


def test_user_role_cannot_add_category(client: TestClient, make_member):
    user = make_member("user")
    response = client.post(
        "/api/categories",
        json={"name": "水电", "type": "expense"},
        headers=auth_headers(user["user_id"]),
    )
    assert response.status_code == 403
