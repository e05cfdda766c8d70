"""
Module/role permission resolution.

A request is evaluated by an ordered list of rules. Each rule looks at the
request context and either decides (ALLOW / DENY) or abstains; the first
decision wins and a request nobody decides on is denied.
"""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Literal

from app.core import roles

NOACCESS = "none"
READ = "read"
READWRITE = "readwrite"
PERMISSION_LEVELS = (NOACCESS, READ, READWRITE)

ALLOWED_METHODS: dict[str, frozenset[str]] = {
    READ: frozenset({"GET"}),
    READWRITE: frozenset({"GET", "POST", "PATCH", "PUT", "DELETE"}),
    NOACCESS: frozenset(),
}

ACCESS_PERMISSIONS = "accessPermissions"
API_KEYS = "apiKeys"
CAMPAIGN_ADDRESSES = "campaignAddresses"
CAMPAIGNS = "campaigns"
COMPANIES = "companies"
ORDERS = "orders"
PENDING_ORDERS = "pendingOrders"
PRIVACY_RULES = "privacyRules"
USERS = "users"

APP_MODULES = (
    ACCESS_PERMISSIONS,
    API_KEYS,
    CAMPAIGN_ADDRESSES,
    CAMPAIGNS,
    COMPANIES,
    ORDERS,
    PENDING_ORDERS,
    PRIVACY_RULES,
    USERS,
)

PERMISSION_DENIED_MESSAGE = "You do not have the necessary permissions to perform this action"


@dataclass(frozen=True)
class AccessGrant:
    module: str
    role: str
    permission: str

    def allows(self, method: str) -> bool:
        return method.upper() in ALLOWED_METHODS.get(self.permission, frozenset())


@dataclass(frozen=True)
class ApiKeyGrant:
    module: str
    permission: str
    is_enabled: bool = True

    def allows(self, module: str, method: str) -> bool:
        return (
            self.is_enabled
            and self.module == module
            and method.upper() in ALLOWED_METHODS.get(self.permission, frozenset())
        )


def _grants(role: str, permission: str, modules: Iterable[str]) -> list[AccessGrant]:
    return [AccessGrant(module=module, role=role, permission=permission) for module in modules]


DEFAULT_ACCESS_PERMISSIONS: tuple[AccessGrant, ...] = tuple(
    _grants(
        roles.COMPANY_ADMINISTRATOR,
        READWRITE,
        [
            ACCESS_PERMISSIONS,
            CAMPAIGN_ADDRESSES,
            CAMPAIGNS,
            COMPANIES,
            ORDERS,
            PENDING_ORDERS,
            PRIVACY_RULES,
            USERS,
        ],
    )
    + _grants(roles.CAMPAIGN_MANAGER, READWRITE, [CAMPAIGN_ADDRESSES, CAMPAIGNS, ORDERS, PENDING_ORDERS])
    + _grants(roles.CAMPAIGN_MANAGER, READ, [COMPANIES])
    + _grants(roles.EMPLOYEE, READ, [CAMPAIGNS, COMPANIES])
    + _grants(roles.USER, READ, [CAMPAIGNS])
)


def normalize_permission_level(value: str) -> str:
    normalized = (value or "").strip().lower()
    if normalized not in PERMISSION_LEVELS:
        allowed = ", ".join(PERMISSION_LEVELS)
        raise ValueError(f"Invalid permission. Allowed: {allowed}")
    return normalized


def normalize_module(value: str) -> str:
    cleaned = (value or "").strip()
    for module in APP_MODULES:
        if module.lower() == cleaned.lower():
            return module
    allowed = ", ".join(APP_MODULES)
    raise ValueError(f"Invalid module. Allowed: {allowed}")


Decision = Literal["allow", "deny", "abstain"]
ALLOW: Decision = "allow"
DENY: Decision = "deny"
ABSTAIN: Decision = "abstain"


@dataclass(frozen=True)
class PermissionContext:
    role: str
    company_id: str | None
    module: str
    method: str
    is_owner: bool = False
    is_owner_or_admin: bool = False
    # None means the request was not made with an API key.
    api_key_permissions: tuple[ApiKeyGrant, ...] | None = None
    default_permissions: Sequence[AccessGrant] = DEFAULT_ACCESS_PERMISSIONS
    company_permissions: Sequence[AccessGrant] = field(default_factory=tuple)


PermissionRule = Callable[[PermissionContext], Decision]


def _find_grant(grants: Sequence[AccessGrant], *, module: str, role: str) -> AccessGrant | None:
    return next((grant for grant in grants if grant.module == module and grant.role == role), None)


def api_key_rule(ctx: PermissionContext) -> Decision:
    if ctx.api_key_permissions is None:
        return ABSTAIN
    if any(grant.allows(ctx.module, ctx.method) for grant in ctx.api_key_permissions):
        return ALLOW
    return DENY


def admin_or_owner_rule(ctx: PermissionContext) -> Decision:
    if ctx.role == roles.ADMIN or ctx.is_owner_or_admin or ctx.is_owner:
        return ALLOW
    return ABSTAIN


def company_admin_default_rule(ctx: PermissionContext) -> Decision:
    if ctx.role != roles.COMPANY_ADMINISTRATOR:
        return ABSTAIN
    grant = _find_grant(ctx.default_permissions, module=ctx.module, role=roles.COMPANY_ADMINISTRATOR)
    if grant is not None and grant.allows(ctx.method):
        return ALLOW
    return ABSTAIN


def company_rule(ctx: PermissionContext) -> Decision:
    if ctx.company_id is None:
        return ABSTAIN
    override = _find_grant(ctx.company_permissions, module=ctx.module, role=ctx.role)
    default = _find_grant(ctx.default_permissions, module=ctx.module, role=ctx.role)
    if override is not None:
        return ALLOW if override.allows(ctx.method) else DENY
    if default is not None and default.allows(ctx.method):
        return ALLOW
    return DENY


def no_company_rule(ctx: PermissionContext) -> Decision:
    return DENY if ctx.company_id is None else ABSTAIN


PERMISSION_RULES: tuple[PermissionRule, ...] = (
    api_key_rule,
    admin_or_owner_rule,
    company_admin_default_rule,
    company_rule,
    no_company_rule,
)


def evaluate(ctx: PermissionContext, rules: Sequence[PermissionRule] = PERMISSION_RULES) -> Decision:
    for rule in rules:
        decision = rule(ctx)
        if decision != ABSTAIN:
            return decision
    return DENY


def is_allowed(ctx: PermissionContext) -> bool:
    return evaluate(ctx) == ALLOW


def default_permissions_for(role: str) -> list[AccessGrant]:
    return [grant for grant in DEFAULT_ACCESS_PERMISSIONS if grant.role == role]


def grantable_modules(role: str) -> set[str]:
    """Modules a role may delegate to others within its company."""
    if role == roles.ADMIN:
        return set(APP_MODULES)
    return {grant.module for grant in default_permissions_for(role) if grant.permission == READWRITE}
