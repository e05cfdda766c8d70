from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core import roles
from app.core.access import RecordAccess, authorize_record, require_admin, require_module_permission
from app.core.api_docs import error_responses
from app.core.config import settings
from app.core.deps import get_db
from app.core.ownership import access_permission_ownership, company_ownership
from app.core.permissions import (
    ACCESS_PERMISSIONS,
    DEFAULT_ACCESS_PERMISSIONS,
    PERMISSION_DENIED_MESSAGE,
    grantable_modules,
)
from app.core.security_current import Principal
from app.models.access_permission import AccessPermission
from app.models.company import Company
from app.schemas.access_permission import (
    AccessPermissionEnvelope,
    AccessPermissionIn,
    AccessPermissionListEnvelope,
    AccessPermissionOut,
    AccessPermissionUpdateIn,
    AdminAccessPermissionIn,
    DefaultAccessPermissionListEnvelope,
    DefaultAccessPermissionOut,
)
from app.schemas.common import PaginationMeta
from app.services.audit_service import PERMISSION_CHANGED, PERMISSION_DELETED, log_audit_event
from app.services.soft_delete_service import restore_or_create, soft_delete

router = APIRouter(prefix="/api", tags=["access-permissions"])

authorize_company_permissions = authorize_record(ACCESS_PERMISSIONS, company_ownership)
authorize_access_permission = authorize_record(ACCESS_PERMISSIONS, access_permission_ownership)


def _ensure_grantable(access: RecordAccess, *, module: str, role: str) -> None:
    principal = access.principal
    if principal.role == roles.ADMIN:
        return
    # Company owners delegate like company administrators.
    granting_role = roles.COMPANY_ADMINISTRATOR if access.is_owner else principal.role
    if role == roles.ADMIN or module not in grantable_modules(granting_role):
        raise HTTPException(status_code=403, detail=PERMISSION_DENIED_MESSAGE)


def _save_permission(
    db: Session,
    *,
    actor: Principal,
    company_id: str | None,
    payload: AccessPermissionIn,
) -> JSONResponse:
    permission, created = restore_or_create(
        db,
        AccessPermission,
        lookup={"company_id": company_id, "module": payload.module, "role": payload.role},
        values={"name": payload.name, "permission": payload.permission},
    )
    db.flush()
    log_audit_event(
        db,
        company_id=company_id,
        actor_user_id=actor.id,
        action=PERMISSION_CHANGED,
        target_type="access_permission",
        target_id=permission.id,
        metadata_json={"module": payload.module, "role": payload.role, "permission": payload.permission},
    )
    db.commit()

    status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    body = AccessPermissionEnvelope(
        status_code=status_code,
        access_permission=AccessPermissionOut.model_validate(permission),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", by_alias=True))


@router.post(
    "/access-permissions",
    response_model=AccessPermissionEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create access permission (admin)",
    description="Re-creating a deleted permission for the same company, module and role restores it.",
    responses={**error_responses(401, 403, 404, 422, 500)},
)
def create_access_permission(
    payload: AdminAccessPermissionIn,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    if payload.company_id is not None:
        company = db.execute(
            select(Company.id).where(Company.id == payload.company_id, Company.deleted_at.is_(None))
        ).scalar_one_or_none()
        if company is None:
            raise HTTPException(status_code=404, detail="Company not found")
    return _save_permission(db, actor=admin, company_id=payload.company_id, payload=payload)


@router.get(
    "/access-permissions",
    response_model=AccessPermissionListEnvelope,
    summary="List access permissions (admin)",
    responses={**error_responses(401, 403, 422, 500)},
)
def list_access_permissions(
    limit: int = Query(default=settings.default_page_limit, ge=1, le=settings.max_page_limit),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    _admin: Principal = Depends(require_admin),
):
    filters = [AccessPermission.deleted_at.is_(None)]
    total = int(db.execute(select(func.count(AccessPermission.id)).where(*filters)).scalar_one())
    rows = db.execute(
        select(AccessPermission)
        .where(*filters)
        .order_by(AccessPermission.created_at.desc())
        .offset(offset)
        .limit(limit)
    ).scalars().all()
    return AccessPermissionListEnvelope(
        status_code=200,
        access_permissions=[AccessPermissionOut.model_validate(row) for row in rows],
        meta=PaginationMeta.build(total=total, limit=limit, offset=offset),
    )


@router.get(
    "/access-permissions/default",
    response_model=DefaultAccessPermissionListEnvelope,
    summary="Default permission matrix",
    responses={**error_responses(401, 403, 500)},
)
def list_default_access_permissions(
    _principal: Principal = Depends(require_module_permission(ACCESS_PERMISSIONS)),
):
    return DefaultAccessPermissionListEnvelope(
        status_code=200,
        access_permissions=[DefaultAccessPermissionOut.model_validate(grant) for grant in DEFAULT_ACCESS_PERMISSIONS],
    )


@router.post(
    "/companies/{record_id}/access-permissions",
    response_model=AccessPermissionEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create company access permission",
    description=(
        "Overrides the default matrix for one role and module within the company. "
        "Non-admins may only delegate modules their own role manages."
    ),
    responses={**error_responses(401, 403, 404, 422, 500)},
)
def create_company_access_permission(
    payload: AccessPermissionIn,
    db: Session = Depends(get_db),
    access: RecordAccess[Company] = Depends(authorize_company_permissions),
):
    _ensure_grantable(access, module=payload.module, role=payload.role)
    return _save_permission(db, actor=access.principal, company_id=access.record.id, payload=payload)


@router.get(
    "/companies/{record_id}/access-permissions",
    response_model=AccessPermissionListEnvelope,
    summary="List company access permissions",
    responses={**error_responses(401, 403, 404, 422, 500)},
)
def list_company_access_permissions(
    limit: int = Query(default=settings.default_page_limit, ge=1, le=settings.max_page_limit),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    access: RecordAccess[Company] = Depends(authorize_company_permissions),
):
    filters = [AccessPermission.company_id == access.record.id, AccessPermission.deleted_at.is_(None)]
    total = int(db.execute(select(func.count(AccessPermission.id)).where(*filters)).scalar_one())
    rows = db.execute(
        select(AccessPermission)
        .where(*filters)
        .order_by(AccessPermission.module.asc(), AccessPermission.role.asc())
        .offset(offset)
        .limit(limit)
    ).scalars().all()
    return AccessPermissionListEnvelope(
        status_code=200,
        access_permissions=[AccessPermissionOut.model_validate(row) for row in rows],
        meta=PaginationMeta.build(total=total, limit=limit, offset=offset),
    )


@router.get(
    "/access-permissions/{record_id}",
    response_model=AccessPermissionEnvelope,
    summary="Get access permission",
    responses={**error_responses(401, 403, 404, 500)},
)
def get_access_permission(access: RecordAccess[AccessPermission] = Depends(authorize_access_permission)):
    return AccessPermissionEnvelope(
        status_code=200,
        access_permission=AccessPermissionOut.model_validate(access.record),
    )


@router.put(
    "/access-permissions/{record_id}",
    response_model=AccessPermissionEnvelope,
    summary="Update access permission",
    responses={**error_responses(401, 403, 404, 422, 500)},
)
def update_access_permission(
    payload: AccessPermissionUpdateIn,
    db: Session = Depends(get_db),
    access: RecordAccess[AccessPermission] = Depends(authorize_access_permission),
):
    permission = access.record
    _ensure_grantable(access, module=permission.module, role=permission.role)

    permission.permission = payload.permission
    if payload.name is not None:
        permission.name = payload.name
    log_audit_event(
        db,
        company_id=permission.company_id,
        actor_user_id=access.principal.id,
        action=PERMISSION_CHANGED,
        target_type="access_permission",
        target_id=permission.id,
        metadata_json={"module": permission.module, "role": permission.role, "permission": payload.permission},
    )
    db.commit()
    return AccessPermissionEnvelope(
        status_code=200,
        access_permission=AccessPermissionOut.model_validate(permission),
    )


@router.delete(
    "/access-permissions/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete access permission",
    description="The company falls back to the default matrix for this role and module.",
    responses={**error_responses(401, 403, 404, 500)},
)
def delete_access_permission(
    db: Session = Depends(get_db),
    access: RecordAccess[AccessPermission] = Depends(authorize_access_permission),
):
    permission = access.record
    _ensure_grantable(access, module=permission.module, role=permission.role)

    soft_delete(permission)
    log_audit_event(
        db,
        company_id=permission.company_id,
        actor_user_id=access.principal.id,
        action=PERMISSION_DELETED,
        target_type="access_permission",
        target_id=permission.id,
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
