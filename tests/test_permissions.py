import pytest

from app.core import roles
from app.core.permissions import (
    ALLOW,
    API_KEYS,
    CAMPAIGNS,
    COMPANIES,
    DENY,
    PENDING_ORDERS,
    READ,
    READWRITE,
    AccessGrant,
    ApiKeyGrant,
    PermissionContext,
    evaluate,
    grantable_modules,
    normalize_module,
    normalize_permission_level,
)


def _ctx(**overrides) -> PermissionContext:
    values = {
        "role": roles.USER,
        "company_id": "company-1",
        "module": CAMPAIGNS,
        "method": "GET",
    }
    values.update(overrides)
    return PermissionContext(**values)


def test_admin_is_allowed_everywhere():
    assert evaluate(_ctx(role=roles.ADMIN, company_id=None, module=API_KEYS, method="DELETE")) == ALLOW


def test_owner_is_allowed_without_any_grant():
    assert evaluate(_ctx(module=PENDING_ORDERS, method="PUT", is_owner=True)) == ALLOW


def test_api_key_grants_are_checked_before_role():
    grants = (ApiKeyGrant(module=PENDING_ORDERS, permission=READ),)
    assert evaluate(_ctx(module=PENDING_ORDERS, method="GET", api_key_permissions=grants)) == ALLOW
    assert evaluate(_ctx(module=PENDING_ORDERS, method="POST", api_key_permissions=grants)) == DENY
    # The key's scopes bound even an administrator's request.
    assert evaluate(
        _ctx(role=roles.ADMIN, module=CAMPAIGNS, method="GET", api_key_permissions=grants)
    ) == DENY


def test_disabled_or_empty_api_key_grants_deny():
    disabled = (ApiKeyGrant(module=CAMPAIGNS, permission=READWRITE, is_enabled=False),)
    assert evaluate(_ctx(api_key_permissions=disabled)) == DENY
    assert evaluate(_ctx(is_owner=True, api_key_permissions=())) == DENY


def test_company_administrator_default_wins_over_company_override():
    overrides = [AccessGrant(module=CAMPAIGNS, role=roles.COMPANY_ADMINISTRATOR, permission="none")]
    ctx = _ctx(role=roles.COMPANY_ADMINISTRATOR, method="PUT", company_permissions=overrides)
    assert evaluate(ctx) == ALLOW


def test_company_override_replaces_default():
    manager = _ctx(role=roles.CAMPAIGN_MANAGER, module=COMPANIES)
    assert evaluate(manager) == ALLOW
    assert evaluate(_ctx(role=roles.CAMPAIGN_MANAGER, module=COMPANIES, method="PUT")) == DENY

    upgrade = [AccessGrant(module=COMPANIES, role=roles.CAMPAIGN_MANAGER, permission=READWRITE)]
    assert evaluate(
        _ctx(role=roles.CAMPAIGN_MANAGER, module=COMPANIES, method="PUT", company_permissions=upgrade)
    ) == ALLOW

    revoke = [AccessGrant(module=CAMPAIGNS, role=roles.EMPLOYEE, permission="none")]
    assert evaluate(_ctx(role=roles.EMPLOYEE, company_permissions=revoke)) == DENY


def test_override_for_another_role_is_ignored():
    overrides = [AccessGrant(module=PENDING_ORDERS, role=roles.EMPLOYEE, permission=READWRITE)]
    assert evaluate(_ctx(role=roles.USER, module=PENDING_ORDERS, company_permissions=overrides)) == DENY


def test_user_without_company_is_denied_even_with_a_default_grant():
    assert evaluate(_ctx(role=roles.USER, company_id=None, module=CAMPAIGNS)) == DENY


def test_missing_default_denies():
    assert evaluate(_ctx(role=roles.EMPLOYEE, module=PENDING_ORDERS)) == DENY


def test_grantable_modules_follow_readwrite_defaults():
    assert grantable_modules(roles.CAMPAIGN_MANAGER) == {"campaignAddresses", "campaigns", "orders", "pendingOrders"}
    assert API_KEYS not in grantable_modules(roles.COMPANY_ADMINISTRATOR)
    assert grantable_modules(roles.USER) == set()
    assert API_KEYS in grantable_modules(roles.ADMIN)


def test_module_and_level_normalization():
    assert normalize_module("PENDINGORDERS") == PENDING_ORDERS
    assert normalize_permission_level(" ReadWrite ") == READWRITE
    with pytest.raises(ValueError):
        normalize_module("invoices")
    with pytest.raises(ValueError):
        normalize_permission_level("write")
    with pytest.raises(ValueError):
        roles.normalize_role("Owner")
