"""Per-entity ownership lookups feeding the ownership guards."""

from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.permissions import PERMISSION_DENIED_MESSAGE
from app.models.access_permission import AccessPermission
from app.models.api_key import ApiKey
from app.models.campaign import Campaign, CampaignAddress
from app.models.company import Company
from app.models.pending_order import PendingOrder
from app.models.privacy_rule import PrivacyRule
from app.models.user import User

RecordT = TypeVar("RecordT")

OWNER_ADMIN_OR_EMPLOYEE_MESSAGE = "Only the owner, admin or employee can perform this action"
OWNER_EMPLOYEE_OR_ADMIN_MESSAGE = "Only the owner, employee or admin can perform this action"
OWNER_OR_ADMIN_MESSAGE = "Only the owner or admin can perform this action"


@dataclass(frozen=True)
class Ownership:
    owner_id: str | None
    company_id: str | None


class OwnershipResolver(Protocol[RecordT]):
    entity_name: str
    guard_message: str
    # Whether members of the record's company pass the guard.
    allow_employees: bool

    def load(self, db: Session, record_id: str) -> RecordT | None:
        ...

    def ownership(self, db: Session, record: RecordT) -> Ownership:
        ...


def _company(db: Session, company_id: str | None) -> Company | None:
    if company_id is None:
        return None
    return db.execute(
        select(Company).where(Company.id == company_id, Company.deleted_at.is_(None))
    ).scalar_one_or_none()


def _company_ownership(db: Session, company_id: str | None) -> Ownership:
    company = _company(db, company_id)
    return Ownership(owner_id=company.owner_id if company else None, company_id=company_id)


class _SoftDeleteLoader(Generic[RecordT]):
    model: type

    def load(self, db: Session, record_id: str) -> RecordT | None:
        return db.execute(
            select(self.model).where(self.model.id == record_id, self.model.deleted_at.is_(None))
        ).scalar_one_or_none()


class CompanyOwnership(_SoftDeleteLoader[Company]):
    model = Company
    entity_name = "Company"
    guard_message = OWNER_ADMIN_OR_EMPLOYEE_MESSAGE
    allow_employees = True

    def ownership(self, db: Session, record: Company) -> Ownership:
        return Ownership(owner_id=record.owner_id, company_id=record.id)


class CampaignOwnership(_SoftDeleteLoader[Campaign]):
    model = Campaign
    entity_name = "Campaign"
    guard_message = OWNER_ADMIN_OR_EMPLOYEE_MESSAGE
    allow_employees = True

    def ownership(self, db: Session, record: Campaign) -> Ownership:
        return _company_ownership(db, record.company_id)


class CampaignAddressOwnership(_SoftDeleteLoader[CampaignAddress]):
    model = CampaignAddress
    entity_name = "CampaignAddress"
    guard_message = OWNER_EMPLOYEE_OR_ADMIN_MESSAGE
    allow_employees = True

    def ownership(self, db: Session, record: CampaignAddress) -> Ownership:
        company_id = db.execute(
            select(Campaign.company_id).where(Campaign.id == record.campaign_id)
        ).scalar_one_or_none()
        return _company_ownership(db, company_id)


class AccessPermissionOwnership(_SoftDeleteLoader[AccessPermission]):
    model = AccessPermission
    entity_name = "AccessPermission"
    guard_message = OWNER_EMPLOYEE_OR_ADMIN_MESSAGE
    allow_employees = True

    def ownership(self, db: Session, record: AccessPermission) -> Ownership:
        return _company_ownership(db, record.company_id)


class PrivacyRuleOwnership(_SoftDeleteLoader[PrivacyRule]):
    model = PrivacyRule
    entity_name = "PrivacyRule"
    guard_message = OWNER_EMPLOYEE_OR_ADMIN_MESSAGE
    allow_employees = True

    def ownership(self, db: Session, record: PrivacyRule) -> Ownership:
        return _company_ownership(db, record.company_id)


class PendingOrderOwnership(_SoftDeleteLoader[PendingOrder]):
    model = PendingOrder
    entity_name = "PendingOrder"
    guard_message = PERMISSION_DENIED_MESSAGE
    allow_employees = True

    def ownership(self, db: Session, record: PendingOrder) -> Ownership:
        return Ownership(owner_id=record.user_id, company_id=record.company_id)


class UserOwnership:
    entity_name = "User"
    guard_message = OWNER_OR_ADMIN_MESSAGE
    allow_employees = False

    def load(self, db: Session, record_id: str) -> User | None:
        return db.execute(select(User).where(User.id == record_id)).scalar_one_or_none()

    def ownership(self, db: Session, record: User) -> Ownership:
        return Ownership(owner_id=record.id, company_id=record.company_id)


class ApiKeyOwnership:
    entity_name = "ApiKey"
    guard_message = OWNER_OR_ADMIN_MESSAGE
    allow_employees = False

    def load(self, db: Session, record_id: str) -> ApiKey | None:
        return db.execute(
            select(ApiKey).where(ApiKey.id == record_id, ApiKey.revoked_at.is_(None))
        ).scalar_one_or_none()

    def ownership(self, db: Session, record: ApiKey) -> Ownership:
        company_id = db.execute(
            select(User.company_id).where(User.id == record.user_id)
        ).scalar_one_or_none()
        return Ownership(owner_id=record.user_id, company_id=company_id)


company_ownership = CompanyOwnership()
campaign_ownership = CampaignOwnership()
campaign_address_ownership = CampaignAddressOwnership()
access_permission_ownership = AccessPermissionOwnership()
privacy_rule_ownership = PrivacyRuleOwnership()
pending_order_ownership = PendingOrderOwnership()
user_ownership = UserOwnership()
api_key_ownership = ApiKeyOwnership()
