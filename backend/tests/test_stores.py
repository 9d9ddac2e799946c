"""
Store management tests
"""

import pytest
from fastapi.testclient import TestClient

from bookkeeping.repositories.base import Table
from bookkeeping.services.errors import ConflictError, PermissionDeniedError, ValidationError
from bookkeeping.services.stores import create_store, delete_store, get_active_stores, get_store, get_stores, update_store
from tests.auth_utils import auth_headers


def test_create_store_defaults(repo, owner):
    store = create_store(repo, owner, {"name": "  一号店 ", "code": "S01", "initial_balance": "1000.50", "initial_balance_date": "2026-01-01"})
    assert store["name"] == "一号店"
    assert store["type"] == "direct"
    assert store["status"] == "active"
    assert store["company_id"] == owner["company_id"]
    assert str(store["initial_balance"]) == "1000.50"
    assert store["initial_balance_date"] == "2026-01-01"


def test_create_store_validation(repo, owner):
    with pytest.raises(ValidationError):
        create_store(repo, owner, {"name": "   "})
    with pytest.raises(ValidationError):
        create_store(repo, owner, {"name": "店", "type": "spaceship"})
    with pytest.raises(ValidationError):
        create_store(repo, owner, {"name": "店", "initial_balance_date": "not-a-date"})


def test_store_codes_unique_per_company(repo, owner, make_member):
    create_store(repo, owner, {"name": "一号店", "code": "S01"})
    with pytest.raises(ConflictError):
        create_store(repo, owner, {"name": "二号店", "code": "S01"})

    other = repo.insert(Table.COMPANIES, {"name": "别家", "code": "XYZ789"})
    other_owner = make_member("owner", company_id=other["id"])
    assert create_store(repo, other_owner, {"name": "别家一号店", "code": "S01"})["code"] == "S01"


def test_only_store_managers_can_change_stores(repo, owner, make_member):
    manager = make_member("manager")
    with pytest.raises(PermissionDeniedError):
        create_store(repo, manager, {"name": "店"})

    accountant = make_member("accountant")
    store = create_store(repo, accountant, {"name": "财务建的店"})
    with pytest.raises(PermissionDeniedError):
        update_store(repo, manager, store["id"], {"name": "改名"})


def test_update_store_keeps_code_unique(repo, owner):
    first = create_store(repo, owner, {"name": "一号店", "code": "S01"})
    second = create_store(repo, owner, {"name": "二号店", "code": "S02"})

    assert update_store(repo, owner, first["id"], {"code": "S01", "status": "inactive"})["status"] == "inactive"
    with pytest.raises(ConflictError):
        update_store(repo, owner, second["id"], {"code": "S01"})


def test_scoped_roles_only_see_their_stores(repo, owner, make_member):
    first = create_store(repo, owner, {"name": "一号店"})
    second = create_store(repo, owner, {"name": "二号店", "status": "inactive"})
    manager = make_member("manager", managed_store_ids=[first["id"]])

    assert {s["id"] for s in get_stores(repo, owner)} == {first["id"], second["id"]}
    assert [s["id"] for s in get_active_stores(repo, owner)] == [first["id"]]
    assert [s["id"] for s in get_stores(repo, manager)] == [first["id"]]
    with pytest.raises(PermissionDeniedError):
        get_store(repo, manager, second["id"])


def test_delete_store_closes_when_transactions_exist(repo, owner, make_transaction):
    used = create_store(repo, owner, {"name": "有流水"})
    unused = create_store(repo, owner, {"name": "空店"})
    make_transaction("income", "房费收入", 100, "2026-03-01", store_id=used["id"])

    assert delete_store(repo, owner, used["id"]) == {"id": used["id"], "action": "closed"}
    assert repo.get(Table.STORES, used["id"])["status"] == "closed"
    assert delete_store(repo, owner, unused["id"]) == {"id": unused["id"], "action": "deleted"}
    assert repo.get(Table.STORES, unused["id"]) is None


def test_store_routes(client: TestClient, owner, owner_headers):
    response = client.post("/api/stores", json={"name": "一号店", "code": "S01", "initial_balance": 500}, headers=owner_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["error"] is None
    store = body["data"]
    assert store["initial_balance"] == 500

    response = client.get("/api/stores", headers=owner_headers)
    assert response.json()["count"] == 1

    response = client.put(f"/api/stores/{store['id']}", json={"status": "inactive"}, headers=owner_headers)
    assert response.json()["data"]["status"] == "inactive"

    response = client.get("/api/stores?active_only=true", headers=owner_headers)
    assert response.json()["data"] == []

    response = client.delete(f"/api/stores/{store['id']}", headers=owner_headers)
    assert response.json()["data"]["action"] == "deleted"

    response = client.get(f"/api/stores/{store['id']}", headers=owner_headers)
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "店铺不存在或无权限访问"


def test_store_from_another_company_is_not_found(client: TestClient, repo, owner, make_member):
    store = create_store(repo, owner, {"name": "一号店"})
    repo.commit()
    other = repo.insert(Table.COMPANIES, {"name": "别家", "code": "XYZ789"})
    outsider = make_member("owner", company_id=other["id"])

    response = client.get(f"/api/stores/{store['id']}", headers=auth_headers(outsider["user_id"]))
    assert response.status_code == 404


def test_manager_cannot_create_store_via_api(client: TestClient, make_member):
    manager = make_member("manager")
    response = client.post("/api/stores", json={"name": "店"}, headers=auth_headers(manager["user_id"]))
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"
