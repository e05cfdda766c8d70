from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.access import RecordAccess, authorize_record, require_admin
from app.core.api_docs import error_responses
from app.core.deps import get_db
from app.core.ownership import user_ownership
from app.core.permissions import USERS
from app.core.security_current import Principal
from app.models.company import Company
from app.models.user import User
from app.schemas.auth import UserProfileOut
from app.schemas.user import UserCompanyUpdateIn, UserEnvelope, UserRoleUpdateIn
from app.services.audit_service import USER_COMPANY_CHANGED, USER_ROLE_CHANGED, log_audit_event

router = APIRouter(prefix="/api/users", tags=["users"])

authorize_user = authorize_record(USERS, user_ownership)


def _load_user(db: Session, user_id: str) -> User:
    user = db.execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get(
    "/{record_id}",
    response_model=UserEnvelope,
    summary="Get user",
    responses={**error_responses(401, 403, 404, 500)},
)
def get_user(access: RecordAccess[User] = Depends(authorize_user)):
    return UserEnvelope(status_code=200, user=UserProfileOut.model_validate(access.record))


@router.patch(
    "/{record_id}/role",
    response_model=UserEnvelope,
    summary="Change user role (admin)",
    responses={**error_responses(401, 403, 404, 422, 500)},
)
def update_user_role(
    record_id: str,
    payload: UserRoleUpdateIn,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    user = _load_user(db, record_id)
    previous_role = user.role
    user.role = payload.role
    log_audit_event(
        db,
        company_id=user.company_id,
        actor_user_id=admin.id,
        action=USER_ROLE_CHANGED,
        target_type="user",
        target_id=user.id,
        metadata_json={"from": previous_role, "to": payload.role},
    )
    db.commit()
    return UserEnvelope(status_code=200, user=UserProfileOut.model_validate(user))


@router.patch(
    "/{record_id}/company",
    response_model=UserEnvelope,
    summary="Assign user to company (admin)",
    description="Send `companyId: null` to detach the user from their company.",
    responses={**error_responses(401, 403, 404, 422, 500)},
)
def update_user_company(
    record_id: str,
    payload: UserCompanyUpdateIn,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    user = _load_user(db, record_id)
    if payload.company_id is not None:
        company_id = db.execute(
            select(Company.id).where(Company.id == payload.company_id, Company.deleted_at.is_(None))
        ).scalar_one_or_none()
        if company_id is None:
            raise HTTPException(status_code=404, detail="Company not found")

    previous_company_id = user.company_id
    user.company_id = payload.company_id
    log_audit_event(
        db,
        company_id=payload.company_id or previous_company_id,
        actor_user_id=admin.id,
        action=USER_COMPANY_CHANGED,
        target_type="user",
        target_id=user.id,
        metadata_json={"from": previous_company_id, "to": payload.company_id},
    )
    db.commit()
    return UserEnvelope(status_code=200, user=UserProfileOut.model_validate(user))
