from datetime import datetime

from pydantic import ConfigDict, Field, field_validator

from app.core.permissions import normalize_module, normalize_permission_level
from app.core.roles import normalize_role
from app.schemas.common import CamelModel, Envelope, PaginationMeta, as_utc


class AccessPermissionIn(CamelModel):
    name: str = Field(min_length=1, max_length=128)
    module: str
    role: str
    permission: str

    @field_validator("module")
    @classmethod
    def validate_module(cls, value: str) -> str:
        return normalize_module(value)

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str) -> str:
        return normalize_role(value)

    @field_validator("permission")
    @classmethod
    def validate_permission(cls, value: str) -> str:
        return normalize_permission_level(value)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Employees manage pending orders",
                "module": "pendingOrders",
                "role": "Employee",
                "permission": "readwrite",
            }
        }
    )


class AdminAccessPermissionIn(AccessPermissionIn):
    company_id: str | None = None


class AccessPermissionUpdateIn(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    permission: str

    @field_validator("permission")
    @classmethod
    def validate_permission(cls, value: str) -> str:
        return normalize_permission_level(value)


class AccessPermissionOut(CamelModel):
    id: str
    company_id: str | None = None
    name: str
    module: str
    role: str
    permission: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class DefaultAccessPermissionOut(CamelModel):
    module: str
    role: str
    permission: str

    model_config = ConfigDict(from_attributes=True)


class AccessPermissionEnvelope(Envelope):
    access_permission: AccessPermissionOut


class AccessPermissionListEnvelope(Envelope):
    access_permissions: list[AccessPermissionOut]
    meta: PaginationMeta


class DefaultAccessPermissionListEnvelope(Envelope):
    access_permissions: list[DefaultAccessPermissionOut]
