"""
Supabase auth adapter tests (GoTrue served by FakeGoTrue)
"""

import pytest
from starlette.requests import Request
from starlette.responses import Response

from bookkeeping.auth.supabase import SB_ACCESS_TOKEN_COOKIE, SB_REFRESH_TOKEN_COOKIE
from bookkeeping.services.errors import (
    InvalidCredentialsError,
    UnsupportedOperationError,
    UsernameTakenError,
    ValidationError,
)
from tests.auth_utils import create_access_token


def bearer_request(token: str) -> Request:
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(b"authorization", f"Bearer {token}".encode())],
    })


def cookie_request(token: str) -> Request:
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(b"cookie", f"{SB_ACCESS_TOKEN_COOKIE}={token}".encode())],
    })


def test_sign_in_uses_internal_email(auth_adapter, gotrue):
    gotrue.add_user("alice@local.homestay", "secret123", {"username": "alice", "full_name": "Alice"})
    user = auth_adapter.sign_in("Alice", "secret123", company_code="abc234")

    assert user.username == "alice"
    assert user.email == "alice@local.homestay"
    assert user.full_name == "Alice"
    assert user.company_code == "ABC234"
    assert user.session_token
    assert user.refresh_token


def test_sign_in_rejects_wrong_password(auth_adapter, gotrue):
    gotrue.add_user("alice@local.homestay", "secret123")
    with pytest.raises(InvalidCredentialsError):
        auth_adapter.sign_in("alice", "wrong-pass")


def test_sign_up_creates_confirmed_user_with_service_key(auth_adapter, gotrue):
    user = auth_adapter.sign_up("Bob", "secret123", full_name="Bob", email="bob@example.com", company_code="abc234")

    assert gotrue.requests[-1].url.path == "/auth/v1/admin/users"
    assert user.email == "bob@local.homestay"
    assert user.username == "bob"
    assert user.company_code == "ABC234"
    stored = gotrue.find_by_email("bob@local.homestay")
    assert stored["user_metadata"]["recovery_email"] == "bob@example.com"

    with pytest.raises(UsernameTakenError):
        auth_adapter.sign_up("bob", "secret123")


def test_get_user_from_cookie_or_bearer(auth_adapter):
    token = create_access_token("user-1", email="carol@local.homestay", user_metadata={"username": "carol"})

    for request in (cookie_request(token), bearer_request(token)):
        user = auth_adapter.get_user(request)
        assert user.id == "user-1"
        assert user.username == "carol"
        assert user.session_token == token


def test_get_user_rejects_bad_tokens(auth_adapter):
    expired = create_access_token("user-1", expires_in=-60)
    wrong_audience = create_access_token("user-1", audience="anon")
    forged = create_access_token("user-1", secret="another-secret-another-secret-xx")

    for token in (expired, wrong_audience, forged, "not-a-jwt"):
        assert auth_adapter.get_user(bearer_request(token)) is None
    assert auth_adapter.get_user(Request({"type": "http", "method": "GET", "path": "/", "headers": []})) is None


def test_session_cookies(auth_adapter, gotrue):
    gotrue.add_user("alice@local.homestay", "secret123")
    user = auth_adapter.sign_in("alice", "secret123")

    response = Response()
    auth_adapter.set_session(response, user)
    names = {v.decode().split("=", 1)[0] for k, v in response.raw_headers if k == b"set-cookie"}
    assert names == {SB_ACCESS_TOKEN_COOKIE, SB_REFRESH_TOKEN_COOKIE}

    cleared = Response()
    auth_adapter.sign_out(user, cleared)
    assert gotrue.requests[-1].url.path == "/auth/v1/logout"
    assert all("Max-Age=0" in v.decode() for k, v in cleared.raw_headers if k == b"set-cookie")


def test_update_password_rechecks_old_password(auth_adapter, gotrue):
    gotrue.add_user("alice@local.homestay", "secret123")
    user = auth_adapter.sign_in("alice", "secret123")

    with pytest.raises(ValidationError):
        auth_adapter.update_password(user, "wrong-old", "newpass1")

    auth_adapter.update_password(user, "secret123", "newpass1")
    assert gotrue.find_by_email("alice@local.homestay")["password"] == "newpass1"


def test_delete_user_uses_admin_api(auth_adapter, gotrue):
    stored = gotrue.add_user("alice@local.homestay", "secret123")
    auth_adapter.delete_user(stored["id"])
    assert stored["id"] not in gotrue.users


def test_company_code_recovery_is_not_supported(auth_adapter):
    with pytest.raises(UnsupportedOperationError):
        auth_adapter.find_company_code_by_email("a@example.com")
