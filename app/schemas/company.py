from datetime import datetime

from pydantic import ConfigDict, EmailStr, Field, field_validator

from app.schemas.common import CamelModel, Envelope, as_utc


class CompanyIn(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    suffix: str | None = Field(default=None, max_length=64)
    phone: str | None = Field(default=None, max_length=64)
    vat: str | None = Field(default=None, max_length=64)
    domain: str | None = Field(default=None, max_length=255)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Acme GmbH",
                "email": "office@acme.example",
                "domain": "acme.example",
            }
        }
    )


class CompanyUpdateIn(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    suffix: str | None = Field(default=None, max_length=64)
    phone: str | None = Field(default=None, max_length=64)
    vat: str | None = Field(default=None, max_length=64)
    domain: str | None = Field(default=None, max_length=255)


class CompanyOut(CamelModel):
    id: str
    owner_id: str | None = None
    name: str
    suffix: str | None = None
    email: str
    phone: str | None = None
    vat: str | None = None
    domain: str | None = None
    customer_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class CompanyEnvelope(Envelope):
    company: CompanyOut
