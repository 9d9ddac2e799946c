"""
Username helpers

LeanCloud has one global user table, so usernames are namespaced by
company code: "{CODE}_{username}". Supabase authenticates by email, so
plain usernames map onto an internal email domain.
"""

from typing import Optional

USERNAME_EMAIL_SUFFIX = "@local.homestay"


def build_namespaced_username(company_code: str, username: str) -> str:
    return f"{company_code.upper()}_{username.lower()}"


def extract_original_username(namespaced_username: str) -> str:
    """Strip the company-code prefix (everything up to the first "_")"""
    parts = namespaced_username.split("_")
    if len(parts) >= 2:
        return "_".join(parts[1:])
    return namespaced_username


def extract_company_code(namespaced_username: str) -> Optional[str]:
    parts = namespaced_username.split("_")
    if len(parts) >= 2:
        return parts[0]
    return None


def username_to_email(username: str) -> str:
    return f"{username.lower()}{USERNAME_EMAIL_SUFFIX}"


def email_to_username(email: str) -> str:
    if email.endswith(USERNAME_EMAIL_SUFFIX):
        return email[: -len(USERNAME_EMAIL_SUFFIX)]
    return email.split("@")[0]
