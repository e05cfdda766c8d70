from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.access import RecordAccess, authorize_record
from app.core.api_docs import error_responses
from app.core.config import settings
from app.core.deps import get_db
from app.core.ownership import company_ownership, privacy_rule_ownership
from app.core.permissions import PRIVACY_RULES
from app.models.company import Company
from app.models.privacy_rule import PrivacyRule
from app.schemas.common import PaginationMeta
from app.schemas.privacy_rule import PrivacyRuleEnvelope, PrivacyRuleIn, PrivacyRuleListEnvelope, PrivacyRuleOut
from app.services.audit_service import PRIVACY_RULE_CHANGED, PRIVACY_RULE_DELETED, log_audit_event
from app.services.soft_delete_service import restore_or_create, soft_delete

router = APIRouter(prefix="/api", tags=["privacy-rules"])

authorize_company_privacy_rules = authorize_record(PRIVACY_RULES, company_ownership)
authorize_privacy_rule = authorize_record(PRIVACY_RULES, privacy_rule_ownership)


@router.post(
    "/companies/{record_id}/privacy-rules",
    response_model=PrivacyRuleEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create privacy rule",
    description=(
        "While enabled, viewers with this role see masked address data on records of "
        "the module they do not own."
    ),
    responses={**error_responses(401, 403, 404, 422, 500)},
)
def create_privacy_rule(
    payload: PrivacyRuleIn,
    db: Session = Depends(get_db),
    access: RecordAccess[Company] = Depends(authorize_company_privacy_rules),
):
    rule, created = restore_or_create(
        db,
        PrivacyRule,
        lookup={"company_id": access.record.id, "module": payload.module, "role": payload.role},
        values={"is_enabled": payload.is_enabled},
    )
    db.flush()
    log_audit_event(
        db,
        company_id=access.record.id,
        actor_user_id=access.principal.id,
        action=PRIVACY_RULE_CHANGED,
        target_type="privacy_rule",
        target_id=rule.id,
        metadata_json={"module": payload.module, "role": payload.role, "isEnabled": payload.is_enabled},
    )
    db.commit()

    status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    body = PrivacyRuleEnvelope(status_code=status_code, privacy_rule=PrivacyRuleOut.model_validate(rule))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", by_alias=True))


@router.get(
    "/companies/{record_id}/privacy-rules",
    response_model=PrivacyRuleListEnvelope,
    summary="List privacy rules",
    responses={**error_responses(401, 403, 404, 422, 500)},
)
def list_privacy_rules(
    limit: int = Query(default=settings.default_page_limit, ge=1, le=settings.max_page_limit),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    access: RecordAccess[Company] = Depends(authorize_company_privacy_rules),
):
    filters = [PrivacyRule.company_id == access.record.id, PrivacyRule.deleted_at.is_(None)]
    total = int(db.execute(select(func.count(PrivacyRule.id)).where(*filters)).scalar_one())
    rules = db.execute(
        select(PrivacyRule)
        .where(*filters)
        .order_by(PrivacyRule.module.asc(), PrivacyRule.role.asc())
        .offset(offset)
        .limit(limit)
    ).scalars().all()
    return PrivacyRuleListEnvelope(
        status_code=200,
        privacy_rules=[PrivacyRuleOut.model_validate(rule) for rule in rules],
        meta=PaginationMeta.build(total=total, limit=limit, offset=offset),
    )


@router.delete(
    "/privacy-rules/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete privacy rule",
    responses={**error_responses(401, 403, 404, 500)},
)
def delete_privacy_rule(
    db: Session = Depends(get_db),
    access: RecordAccess[PrivacyRule] = Depends(authorize_privacy_rule),
):
    rule = access.record
    soft_delete(rule)
    log_audit_event(
        db,
        company_id=rule.company_id,
        actor_user_id=access.principal.id,
        action=PRIVACY_RULE_DELETED,
        target_type="privacy_rule",
        target_id=rule.id,
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
