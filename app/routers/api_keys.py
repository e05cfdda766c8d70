import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.access import RecordAccess, authorize_record
from app.core.api_docs import error_responses
from app.core.deps import get_db
from app.core.ownership import api_key_ownership
from app.core.permissions import API_KEYS
from app.core.security import generate_api_key_material
from app.core.security_current import Principal, get_current_principal
from app.models.api_key import ApiKey
from app.schemas.api_key import (
    ApiKeyCreatedEnvelope,
    ApiKeyCreatedOut,
    ApiKeyCreateIn,
    ApiKeyListEnvelope,
    ApiKeyOut,
    ApiKeyPermissionIn,
)
from app.services.audit_service import API_KEY_CREATED, API_KEY_REVOKED, log_audit_event

router = APIRouter(prefix="/api/api-keys", tags=["api-keys"])

authorize_api_key = authorize_record(API_KEYS, api_key_ownership)


def _key_out(item: ApiKey) -> ApiKeyOut:
    return ApiKeyOut(
        id=item.id,
        name=item.name,
        key_prefix=item.key_prefix,
        permissions=[ApiKeyPermissionIn.model_validate(entry) for entry in (item.permissions_json or [])],
        status=item.status,
        last_used_at=item.last_used_at,
        expires_at=item.expires_at,
        revoked_at=item.revoked_at,
        created_at=item.created_at,
    )


def _require_interactive_login(principal: Principal = Depends(get_current_principal)) -> Principal:
    if principal.api_key_id is not None:
        raise HTTPException(status_code=403, detail="API keys cannot manage API keys")
    return principal


@router.post(
    "",
    response_model=ApiKeyCreatedEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create API key",
    description="The raw key is returned once and never stored.",
    responses={**error_responses(401, 403, 422, 500)},
)
def create_api_key(
    payload: ApiKeyCreateIn,
    db: Session = Depends(get_db),
    principal: Principal = Depends(_require_interactive_login),
):
    raw_key, key_prefix, key_hash = generate_api_key_material()
    row = ApiKey(
        id=str(uuid.uuid4()),
        user_id=principal.id,
        name=payload.name.strip(),
        key_prefix=key_prefix,
        key_hash=key_hash,
        permissions_json=[entry.model_dump(by_alias=True) for entry in payload.permissions],
        status="active",
        expires_at=payload.expires_at,
    )
    db.add(row)
    log_audit_event(
        db,
        company_id=principal.company_id,
        actor_user_id=principal.id,
        action=API_KEY_CREATED,
        target_type="api_key",
        target_id=row.id,
        metadata_json={"keyPrefix": key_prefix},
    )
    db.commit()
    db.refresh(row)
    return ApiKeyCreatedEnvelope(
        status_code=201,
        api_key=ApiKeyCreatedOut(**_key_out(row).model_dump(), api_key=raw_key),
    )


@router.get(
    "",
    response_model=ApiKeyListEnvelope,
    summary="List my API keys",
    responses={**error_responses(401, 403, 500)},
)
def list_api_keys(
    db: Session = Depends(get_db),
    principal: Principal = Depends(_require_interactive_login),
):
    rows = db.execute(
        select(ApiKey).where(ApiKey.user_id == principal.id).order_by(ApiKey.created_at.desc())
    ).scalars().all()
    return ApiKeyListEnvelope(status_code=200, api_keys=[_key_out(row) for row in rows])


@router.delete(
    "/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Revoke API key",
    responses={**error_responses(401, 403, 404, 500)},
)
def revoke_api_key(
    db: Session = Depends(get_db),
    access: RecordAccess[ApiKey] = Depends(authorize_api_key),
):
    row = access.record
    row.status = "revoked"
    row.revoked_at = datetime.now(timezone.utc)
    log_audit_event(
        db,
        company_id=access.ownership.company_id,
        actor_user_id=access.principal.id,
        action=API_KEY_REVOKED,
        target_type="api_key",
        target_id=row.id,
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
