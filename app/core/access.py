from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core import roles
from app.core.deps import get_db
from app.core.ownership import Ownership, OwnershipResolver
from app.core.permissions import (
    PERMISSION_DENIED_MESSAGE,
    AccessGrant,
    PermissionContext,
    is_allowed,
)
from app.core.security_current import Principal, get_current_principal
from app.models.access_permission import AccessPermission

RecordT = TypeVar("RecordT")

ADMIN_ONLY_MESSAGE = "Only an admin can perform this action"


@dataclass(frozen=True)
class RecordAccess(Generic[RecordT]):
    record: RecordT
    principal: Principal
    ownership: Ownership
    is_owner: bool
    is_owner_or_admin: bool
    is_employee: bool


def load_company_permissions(db: Session, company_id: str | None) -> list[AccessGrant]:
    if company_id is None:
        return []
    rows = db.execute(
        select(AccessPermission).where(
            AccessPermission.company_id == company_id,
            AccessPermission.deleted_at.is_(None),
        )
    ).scalars()
    return [AccessGrant(module=row.module, role=row.role, permission=row.permission) for row in rows]


def check_permissions(
    db: Session,
    principal: Principal,
    *,
    module: str,
    method: str,
    is_owner: bool = False,
    is_owner_or_admin: bool = False,
) -> None:
    ctx = PermissionContext(
        role=principal.role,
        company_id=principal.company_id,
        module=module,
        method=method,
        is_owner=is_owner,
        is_owner_or_admin=is_owner_or_admin,
        api_key_permissions=principal.api_key_permissions,
        company_permissions=load_company_permissions(db, principal.company_id),
    )
    if not is_allowed(ctx):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=PERMISSION_DENIED_MESSAGE)


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if principal.role != roles.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=ADMIN_ONLY_MESSAGE)
    return principal


def require_module_permission(module: str) -> Callable[..., Principal]:
    """Collection-level check: no record, so nobody is an owner."""

    def dependency(
        request: Request,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db),
    ) -> Principal:
        check_permissions(db, principal, module=module, method=request.method)
        return principal

    return dependency


def authorize_record(
    module: str,
    resolver: OwnershipResolver[Any],
    *,
    check_module_permission: bool = True,
) -> Callable[..., RecordAccess[Any]]:
    """
    Load ``{record_id}`` through ``resolver`` and apply the ownership guard.

    Owners, admins and (for company-scoped entities) members of the record's
    company pass the guard; everyone else gets the resolver's guard message.
    The module permission cascade runs afterwards unless disabled.
    """

    def dependency(
        record_id: str,
        request: Request,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db),
    ) -> RecordAccess[Any]:
        record = resolver.load(db, record_id)
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{resolver.entity_name} not found")

        ownership = resolver.ownership(db, record)
        is_owner = ownership.owner_id is not None and ownership.owner_id == principal.id
        is_owner_or_admin = is_owner or principal.role == roles.ADMIN
        is_employee = (
            resolver.allow_employees
            and principal.company_id is not None
            and principal.company_id == ownership.company_id
        )
        if not (is_owner_or_admin or is_employee):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=resolver.guard_message)

        if check_module_permission:
            check_permissions(
                db,
                principal,
                module=module,
                method=request.method,
                is_owner=is_owner,
                is_owner_or_admin=is_owner_or_admin,
            )

        return RecordAccess(
            record=record,
            principal=principal,
            ownership=ownership,
            is_owner=is_owner,
            is_owner_or_admin=is_owner_or_admin,
            is_employee=is_employee,
        )

    return dependency
