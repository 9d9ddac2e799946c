"""
Role permission tests
"""

import pytest

from bookkeeping.security.permissions import (
    can_access_store,
    can_delete_transaction,
    can_edit_transaction,
    get_accessible_store_ids,
    get_invitable_roles,
    get_role_name,
    get_user_permissions,
    has_permission,
    is_admin,
    is_owner,
)


def profile(role, stores=None):
    return {"role": role, "managed_store_ids": stores or []}


@pytest.mark.parametrize("role", ["owner", "accountant"])
def test_admin_roles_access_every_store(role):
    permissions = get_user_permissions(profile(role, ["s1"]))
    assert permissions.can_access_all_stores
    assert permissions.accessible_store_ids == []
    assert get_accessible_store_ids(profile(role)) is None
    assert can_access_store(profile(role), "any-store")


def test_only_owner_manages_users():
    assert has_permission(profile("owner"), "can_manage_users")
    assert not has_permission(profile("accountant"), "can_manage_users")
    assert has_permission(profile("accountant"), "can_manage_stores")
    assert not has_permission(profile("manager"), "can_manage_stores")


def test_manager_limited_to_managed_stores():
    manager = profile("manager", ["s1", "s2"])
    permissions = get_user_permissions(manager)
    assert not permissions.can_access_all_stores
    assert permissions.accessible_store_ids == ["s1", "s2"]
    assert can_access_store(manager, "s1")
    assert not can_access_store(manager, "s3")


def test_user_can_create_but_not_edit():
    user = profile("user", ["s1"])
    assert has_permission(user, "can_create")
    assert not has_permission(user, "can_edit")
    assert not can_edit_transaction(user, {"store_id": "s1"})
    assert not can_delete_transaction(user, {"store_id": "s1"})


def test_manager_edits_transactions_of_own_stores_only():
    manager = profile("manager", ["s1"])
    assert can_edit_transaction(manager, {"store_id": "s1"})
    assert not can_edit_transaction(manager, {"store_id": None})
    assert not can_edit_transaction(manager, {"store_id": "s2"})
    assert can_delete_transaction(manager, {"store_id": "s1"})
    assert not can_delete_transaction(manager, {"store_id": "s2"})


def test_missing_or_unknown_role_has_no_permissions():
    for candidate in (None, {}, {"role": "superuser"}):
        permissions = get_user_permissions(candidate)
        assert not permissions.can_view
        assert not can_access_store(candidate, "s1")
    assert not is_admin(None)
    assert not is_owner({"role": "accountant"})


def test_role_names_and_invitable_roles():
    assert get_role_name("owner") == "老板"
    assert get_role_name("mystery") == "mystery"
    assert [r["value"] for r in get_invitable_roles()] == ["accountant", "manager", "user"]
