"""
Backend detection, session cookie and username helper tests
"""

import pytest
from starlette.requests import Request
from starlette.responses import Response

from bookkeeping.auth.username import (
    build_namespaced_username,
    email_to_username,
    extract_company_code,
    extract_original_username,
    username_to_email,
)
from bookkeeping.backends.detector import detect_backend, get_backend_info, is_leancloud_mode
from bookkeeping.backends.leancloud.cookies import (
    LC_COOKIE_NAMES,
    clear_lc_session_cookies,
    get_lc_session,
    set_lc_session_cookies,
)
from bookkeeping.infrastructure.settings import Settings


def make_settings(**values) -> Settings:
    defaults = {
        "BACKEND": "",
        "SUPABASE_URL": "",
        "SUPABASE_ANON_KEY": "",
        "LEANCLOUD_APP_ID": "",
        "LEANCLOUD_APP_KEY": "",
        "LEANCLOUD_SERVER_URL": "",
    }
    return Settings(**{**defaults, **values})


def request_with_cookies(cookies: dict) -> Request:
    header = "; ".join(f"{k}={v}" for k, v in cookies.items())
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(b"cookie", header.encode())] if header else [],
    })


def test_explicit_backend_wins():
    settings = make_settings(BACKEND="LeanCloud", SUPABASE_URL="https://x.supabase.co", SUPABASE_ANON_KEY="k")
    assert detect_backend(settings) == "leancloud"
    assert is_leancloud_mode(settings)


def test_supabase_detected_from_credentials():
    assert detect_backend(make_settings(SUPABASE_URL="https://x.supabase.co", SUPABASE_ANON_KEY="k")) == "supabase"


@pytest.mark.parametrize("values", [{}, {"SUPABASE_URL": "https://x.supabase.co"}, {"BACKEND": "mysql"}])
def test_leancloud_is_the_fallback(values):
    assert detect_backend(make_settings(**values)) == "leancloud"


def test_backend_info_masks_app_id():
    info = get_backend_info(make_settings(
        LEANCLOUD_APP_ID="abcdefghijklmnop",
        LEANCLOUD_APP_KEY="key",
        LEANCLOUD_SERVER_URL="https://lc.example.com",
    ))
    assert info == {
        "backend": "leancloud",
        "supabase_configured": False,
        "leancloud_configured": True,
        "leancloud_app_id": "abcdefgh...",
    }


def test_lc_session_requires_token_user_and_username():
    cookies = {"lc_session": "tok", "lc_user_id": "u1", "lc_username": "ABC234_alice"}
    session = get_lc_session(request_with_cookies(cookies))
    assert session.session_token == "tok"
    assert session.company_code is None

    for missing in ("lc_session", "lc_user_id", "lc_username"):
        partial = {k: v for k, v in cookies.items() if k != missing}
        assert get_lc_session(request_with_cookies(partial)) is None


def test_lc_session_cookie_round_trip():
    response = Response()
    set_lc_session_cookies(response, "tok", "u1", "ABC234_alice", company_code="ABC234")
    set_cookies = [v.decode() for k, v in response.raw_headers if k == b"set-cookie"]
    assert len(set_cookies) == 4
    assert all("httponly" in c.lower() and "samesite=lax" in c.lower() and "Path=/" in c for c in set_cookies)

    cleared = Response()
    clear_lc_session_cookies(cleared)
    cleared_cookies = [v.decode() for k, v in cleared.raw_headers if k == b"set-cookie"]
    assert [c.split("=", 1)[0] for c in cleared_cookies] == list(LC_COOKIE_NAMES)


def test_namespaced_usernames():
    assert build_namespaced_username("abc234", "Alice") == "ABC234_alice"
    assert extract_original_username("ABC234_alice_w") == "alice_w"
    assert extract_company_code("ABC234_alice") == "ABC234"
    assert extract_company_code("alice") is None
    assert extract_original_username("alice") == "alice"


def test_internal_emails():
    assert username_to_email("Alice") == "alice@local.homestay"
    assert email_to_username("alice@local.homestay") == "alice"
    assert email_to_username("bob@example.com") == "bob"
