"""
Capability table tests.

Verifies:
- admins hold only counter capabilities
- superadmins hold every capability
- unknown roles and unknown actions are denied
"""

import pytest

from platepos.permissions import (
    CapabilityCategory,
    ROLE_CAPABILITIES,
    capabilities_for,
    get_all_capability_codes,
    get_capabilities_by_category,
    get_capability_definition,
    is_allowed,
)


@pytest.mark.parametrize(
    "action",
    [
        "CREATE_SALE",
        "EDIT_SALE",
        "DELETE_SALE",
        "VIEW_OWN_SALES",
        "VIEW_PRODUCTS",
        "VIEW_ORDER_TAKERS",
        "UPDATE_ORDER_TAKER_BALANCE",
    ],
)
def test_admin_allowed(action):
    assert is_allowed("admin", action)


@pytest.mark.parametrize(
    "action",
    [
        "VIEW_ALL_SALES",
        "MANAGE_ALL_SALES",
        "BULK_DELETE_SALES",
        "MANAGE_CATALOG",
        "MANAGE_ORDER_TAKERS",
        "MANAGE_USERS",
        "VIEW_ACTIVITY",
    ],
)
def test_admin_denied(action):
    assert not is_allowed("admin", action)


def test_superadmin_holds_every_capability():
    for code in get_all_capability_codes():
        assert is_allowed("superadmin", code), code


def test_fails_closed():
    assert not is_allowed(None, "CREATE_SALE")
    assert not is_allowed("cashier", "CREATE_SALE")
    assert not is_allowed("superadmin", "LAUNCH_ROCKETS")


def test_every_role_capability_is_defined():
    codes = set(get_all_capability_codes())
    for role, capabilities in ROLE_CAPABILITIES.items():
        assert set(capabilities) <= codes, role


def test_capabilities_for_is_sorted():
    caps = capabilities_for("admin")
    assert caps == sorted(caps)
    assert capabilities_for("nobody") == []


def test_definition_lookup():
    definition = get_capability_definition("BULK_DELETE_SALES")
    assert definition["category"] == CapabilityCategory.SALES
    assert get_capability_definition("NOPE") is None
    assert {c[0] for c in get_capabilities_by_category(CapabilityCategory.AUDIT)} == {"VIEW_ACTIVITY"}
