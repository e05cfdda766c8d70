import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.access import RecordAccess, authorize_record
from app.core.api_docs import error_responses
from app.core.deps import get_db
from app.core.ownership import company_ownership
from app.core.permissions import COMPANIES
from app.core.security_current import Principal, get_current_principal
from app.models.company import Company
from app.schemas.company import CompanyEnvelope, CompanyIn, CompanyOut, CompanyUpdateIn

router = APIRouter(prefix="/api/companies", tags=["companies"])

authorize_company = authorize_record(COMPANIES, company_ownership)


@router.post(
    "",
    response_model=CompanyEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create company",
    description="The caller becomes the company owner.",
    responses={**error_responses(401, 409, 422, 500)},
)
def create_company(
    payload: CompanyIn,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    normalized_email = payload.email.lower()
    exists = db.execute(
        select(Company.id).where(
            func.lower(Company.email) == normalized_email,
            Company.deleted_at.is_(None),
        )
    ).scalar_one_or_none()
    if exists:
        raise HTTPException(status_code=409, detail="A company with this email already exists")

    company = Company(
        id=str(uuid.uuid4()),
        owner_id=principal.id,
        **payload.model_dump(exclude={"email"}),
        email=normalized_email,
    )
    db.add(company)
    db.commit()
    return CompanyEnvelope(status_code=201, company=CompanyOut.model_validate(company))


@router.get(
    "/{record_id}",
    response_model=CompanyEnvelope,
    summary="Get company",
    responses={**error_responses(401, 403, 404, 500)},
)
def get_company(access: RecordAccess[Company] = Depends(authorize_company)):
    return CompanyEnvelope(status_code=200, company=CompanyOut.model_validate(access.record))


@router.put(
    "/{record_id}",
    response_model=CompanyEnvelope,
    summary="Update company",
    responses={**error_responses(401, 403, 404, 422, 500)},
)
def update_company(
    payload: CompanyUpdateIn,
    db: Session = Depends(get_db),
    access: RecordAccess[Company] = Depends(authorize_company),
):
    company = access.record
    for name, value in payload.model_dump(exclude_unset=True).items():
        if value is None and name in {"name", "email"}:
            continue
        setattr(company, name, value.lower() if name == "email" else value)
    db.commit()
    return CompanyEnvelope(status_code=200, company=CompanyOut.model_validate(company))
