"""
Company members and invitation tests
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from bookkeeping.repositories.base import Table
from bookkeeping.services.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from bookkeeping.services.invitations import (
    TOKEN_LENGTH,
    create_invitation,
    delete_invitation,
    get_invitations,
    is_pending,
    resend_invitation,
    verify_invitation,
)
from bookkeeping.services.users import get_company_users, remove_user, update_user_role, update_user_stores
from bookkeeping.utils.amounts import utc_now
from tests.auth_utils import auth_headers
from tests.conftest import TEST_COMPANY_CODE, TEST_PASSWORD


def test_only_admins_list_users(repo, owner, accountant, make_member):
    manager = make_member("manager")
    assert {p["id"] for p in get_company_users(repo, accountant)} == {owner["id"], accountant["id"], manager["id"]}
    with pytest.raises(PermissionDeniedError):
        get_company_users(repo, manager)


def test_update_user_role_rules(repo, owner, accountant, make_member):
    manager = make_member("manager", managed_store_ids=["s1"])

    with pytest.raises(PermissionDeniedError):
        update_user_role(repo, accountant, manager["id"], "user")
    with pytest.raises(ValidationError):
        update_user_role(repo, owner, owner["id"], "accountant")
    with pytest.raises(ValidationError):
        update_user_role(repo, owner, manager["id"], "owner")
    with pytest.raises(ValidationError):
        update_user_role(repo, owner, manager["id"], "janitor")

    # store-scoped roles keep their stores, admin roles drop them
    assert update_user_role(repo, owner, manager["id"], "user")["managed_store_ids"] == ["s1"]
    assert update_user_role(repo, owner, manager["id"], "manager", managed_store_ids=["s2"])["managed_store_ids"] == ["s2"]
    promoted = update_user_role(repo, owner, manager["id"], "accountant")
    assert promoted["role"] == "accountant"
    assert promoted["managed_store_ids"] == []


def test_members_of_other_companies_are_off_limits(repo, owner, make_member):
    other = repo.insert(Table.COMPANIES, {"name": "别家", "code": "XYZ789"})
    outsider = make_member("manager", company_id=other["id"])

    with pytest.raises(PermissionDeniedError):
        update_user_role(repo, owner, outsider["id"], "user")
    with pytest.raises(NotFoundError):
        update_user_role(repo, owner, "missing-id", "user")


def test_update_user_stores_only_for_scoped_roles(repo, owner, accountant, make_member):
    manager = make_member("manager")
    assert update_user_stores(repo, owner, manager["id"], ["s1", "s2"])["managed_store_ids"] == ["s1", "s2"]
    with pytest.raises(ValidationError):
        update_user_stores(repo, owner, accountant["id"], ["s1"])


def test_remove_user_deletes_profile_and_account(repo, auth_adapter, gotrue, owner, make_member):
    manager = make_member("manager")
    assert manager["user_id"] in gotrue.users

    with pytest.raises(ValidationError):
        remove_user(repo, auth_adapter, owner, owner["id"])

    remove_user(repo, auth_adapter, owner, manager["id"])
    assert repo.get(Table.PROFILES, manager["id"]) is None
    assert manager["user_id"] not in gotrue.users


def test_create_invitation(repo, owner):
    invitation = create_invitation(repo, owner, " staff@example.com ", "manager", managed_store_ids=["s1"])

    assert invitation["email"] == "staff@example.com"
    assert invitation["managed_store_ids"] == ["s1"]
    assert invitation["invited_by"] == owner["user_id"]
    assert len(invitation["token"]) == TOKEN_LENGTH
    assert is_pending(invitation)

    with pytest.raises(ConflictError):
        create_invitation(repo, owner, "staff@example.com", "user")


def test_create_invitation_rules(repo, owner, accountant):
    with pytest.raises(PermissionDeniedError):
        create_invitation(repo, accountant, "a@example.com", "user")
    with pytest.raises(ValidationError):
        create_invitation(repo, owner, "not-an-email", "user")
    with pytest.raises(ValidationError):
        create_invitation(repo, owner, "a@example.com", "owner")


def test_expired_and_accepted_invitations_are_not_pending():
    assert not is_pending({"expires_at": (utc_now() - timedelta(minutes=1)).isoformat()})
    assert not is_pending({"expires_at": (utc_now() + timedelta(days=1)).isoformat(), "accepted_at": utc_now().isoformat()})
    assert not is_pending({})
    # naive timestamps (SQLite) are read as UTC
    assert is_pending({"expires_at": (utc_now() + timedelta(hours=1)).replace(tzinfo=None).isoformat()})


def test_verify_invitation(repo, owner, company):
    invitation = create_invitation(repo, owner, "staff@example.com", "user")
    verified = verify_invitation(repo, invitation["token"])
    assert verified["company_name"] == company["name"]

    with pytest.raises(NotFoundError):
        verify_invitation(repo, "unknown-token")
    with pytest.raises(NotFoundError):
        verify_invitation(repo, "")


def test_resend_and_delete_invitation(repo, owner, accountant):
    invitation = create_invitation(repo, owner, "staff@example.com", "user")

    resent = resend_invitation(repo, owner, invitation["id"])
    assert resent["token"] != invitation["token"]
    assert [i["id"] for i in get_invitations(repo, accountant)] == [invitation["id"]]

    repo.update(Table.INVITATIONS, invitation["id"], {"accepted_at": utc_now().isoformat()})
    with pytest.raises(ValidationError):
        resend_invitation(repo, owner, invitation["id"])

    delete_invitation(repo, owner, invitation["id"])
    assert repo.get(Table.INVITATIONS, invitation["id"]) is None


def test_invitation_flow(client: TestClient, repo, owner, owner_headers, gotrue, make_store):
    store = make_store("一号店")
    response = client.post(
        "/api/invitations",
        json={"email": "staff@example.com", "role": "manager", "managed_store_ids": [store["id"]]},
        headers=owner_headers,
    )
    assert response.status_code == 200
    token = response.json()["data"]["token"]

    response = client.get(f"/api/invitations/{token}/verify")
    data = response.json()["data"]
    assert data["email"] == "staff@example.com"
    assert data["role"] == "manager"
    assert data["company_name"] == "测试公司"
    assert "token" not in data

    response = client.post(
        f"/api/invitations/{token}/accept",
        json={"username": "xiaozhang", "password": "pass1234", "full_name": "小张"},
    )
    assert response.status_code == 200
    accepted = response.json()["data"]
    assert accepted["username"] == "xiaozhang"
    assert accepted["company_code"] == TEST_COMPANY_CODE

    profiles = {p["user_id"]: p for p in repo.find(Table.PROFILES)}
    assert profiles[accepted["id"]]["role"] == "manager"
    assert profiles[accepted["id"]]["managed_store_ids"] == [store["id"]]
    assert gotrue.find_by_email("xiaozhang@local.homestay")["user_metadata"]["recovery_email"] == "staff@example.com"

    # a used link cannot be accepted twice
    response = client.get(f"/api/invitations/{token}/verify")
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "邀请链接无效或已过期"

    response = client.post("/api/auth/login", json={
        "company_code": TEST_COMPANY_CODE,
        "username": "xiaozhang",
        "password": "pass1234",
    })
    assert response.status_code == 200
    assert response.json()["data"]["profile"]["role"] == "manager"


def test_invitable_roles_route(client: TestClient):
    response = client.get("/api/invitations/roles")
    assert response.json()["data"] == [
        {"value": "accountant", "label": "财务"},
        {"value": "manager", "label": "店长"},
        {"value": "user", "label": "员工"},
    ]


def test_owner_creates_user_directly(client: TestClient, owner_headers, gotrue):
    response = client.post("/api/users", json={
        "username": "cashier",
        "password": TEST_PASSWORD,
        "full_name": "收银员",
        "role": "accountant",
        "managed_store_ids": ["ignored"],
    }, headers=owner_headers)
    assert response.status_code == 200
    created = response.json()["data"]
    assert created["role"] == "accountant"
    assert created["managed_store_ids"] == []
    assert gotrue.find_by_email("cashier@local.homestay") is not None

    response = client.get("/api/users", headers=owner_headers)
    assert response.json()["count"] == 2


def test_user_routes(client: TestClient, owner_headers, make_member, gotrue):
    member = make_member("user")

    response = client.put(f"/api/users/{member['id']}/role", json={"role": "manager", "managed_store_ids": ["s1"]}, headers=owner_headers)
    assert response.json()["data"]["role"] == "manager"

    response = client.put(f"/api/users/{member['id']}/stores", json={"managed_store_ids": ["s2"]}, headers=owner_headers)
    assert response.json()["data"]["managed_store_ids"] == ["s2"]

    response = client.delete(f"/api/users/{member['id']}", headers=owner_headers)
    assert response.json()["data"] == {"id": member["id"]}
    assert member["user_id"] not in gotrue.users


def test_non_owner_cannot_invite(client: TestClient, accountant):
    response = client.post(
        "/api/invitations",
        json={"email": "staff@example.com", "role": "user"},
        headers=auth_headers(accountant["user_id"]),
    )
    assert response.status_code == 403
    assert response.json()["error"]["message"] == "只有老板可以邀请用户"
