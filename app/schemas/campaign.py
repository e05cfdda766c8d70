from datetime import datetime

from pydantic import ConfigDict, EmailStr, Field, field_validator

from app.schemas.common import CamelModel, Envelope, PaginationMeta, as_utc

CAMPAIGN_TYPES = {"onboarding", "birthday", "christmas", "marketing", "anniversary", "other"}
CAMPAIGN_STATUSES = {"draft", "submitted", "inProgress", "delivered"}
CAMPAIGN_ADDRESS_TYPES = {"billing", "return"}


class CampaignIn(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    type: str
    status: str = "draft"
    description: str | None = Field(default=None, max_length=1024)
    quota: int = Field(default=0, ge=0)
    correction_quota: int = Field(default=0, ge=0)
    is_active: bool = True
    is_hidden: bool = False
    is_note_enabled: bool = True

    @field_validator("type")
    @classmethod
    def validate_type(cls, value: str) -> str:
        if value not in CAMPAIGN_TYPES:
            raise ValueError(f"type must be one of: {', '.join(sorted(CAMPAIGN_TYPES))}")
        return value

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        if value not in CAMPAIGN_STATUSES:
            raise ValueError(f"status must be one of: {', '.join(sorted(CAMPAIGN_STATUSES))}")
        return value

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Welcome Pack 2030",
                "type": "onboarding",
                "status": "draft",
                "quota": 100,
            }
        }
    )


class CampaignUpdateIn(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    status: str | None = None
    description: str | None = Field(default=None, max_length=1024)
    quota: int | None = Field(default=None, ge=0)
    correction_quota: int | None = Field(default=None, ge=0)
    is_active: bool | None = None
    is_hidden: bool | None = None
    is_note_enabled: bool | None = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str | None) -> str | None:
        if value is not None and value not in CAMPAIGN_STATUSES:
            raise ValueError(f"status must be one of: {', '.join(sorted(CAMPAIGN_STATUSES))}")
        return value


class CampaignOut(CamelModel):
    id: str
    company_id: str
    name: str
    type: str
    status: str
    description: str | None = None
    quota: int
    correction_quota: int
    used_quota: int
    is_active: bool
    is_hidden: bool
    is_note_enabled: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class CampaignEnvelope(Envelope):
    campaign: CampaignOut


class CampaignListEnvelope(Envelope):
    campaigns: list[CampaignOut]
    meta: PaginationMeta


class CampaignAddressIn(CamelModel):
    type: str
    company_name: str | None = Field(default=None, max_length=255)
    street: str | None = Field(default=None, max_length=255)
    zip: str | None = Field(default=None, max_length=32)
    city: str | None = Field(default=None, max_length=128)
    country: str | None = Field(default=None, max_length=128)
    email: EmailStr | None = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, value: str) -> str:
        if value not in CAMPAIGN_ADDRESS_TYPES:
            raise ValueError("type must be one of: billing, return")
        return value


class CampaignAddressesIn(CamelModel):
    campaign_addresses: list[CampaignAddressIn] = Field(min_length=1)


class CampaignAddressOut(CamelModel):
    id: str
    campaign_id: str
    type: str
    company_name: str | None = None
    street: str | None = None
    zip: str | None = None
    city: str | None = None
    country: str | None = None
    email: str | None = None

    model_config = ConfigDict(from_attributes=True)


class CampaignAddressListEnvelope(Envelope):
    campaign_addresses: list[CampaignAddressOut]
