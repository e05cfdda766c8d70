from datetime import datetime

from pydantic import ConfigDict, Field, field_validator

from app.core.permissions import normalize_module, normalize_permission_level
from app.schemas.common import CamelModel, Envelope, as_utc


class ApiKeyPermissionIn(CamelModel):
    module: str
    permission: str
    is_enabled: bool = True

    @field_validator("module")
    @classmethod
    def validate_module(cls, value: str) -> str:
        return normalize_module(value)

    @field_validator("permission")
    @classmethod
    def validate_permission(cls, value: str) -> str:
        return normalize_permission_level(value)


class ApiKeyCreateIn(CamelModel):
    name: str = Field(min_length=1, max_length=120)
    permissions: list[ApiKeyPermissionIn] = Field(default_factory=list)
    expires_at: datetime | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "ERP sync",
                "permissions": [{"module": "pendingOrders", "permission": "read", "isEnabled": True}],
            }
        }
    )


class ApiKeyOut(CamelModel):
    id: str
    name: str
    key_prefix: str
    permissions: list[ApiKeyPermissionIn]
    status: str
    last_used_at: datetime | None = None
    expires_at: datetime | None = None
    revoked_at: datetime | None = None
    created_at: datetime | None = None

    @field_validator("last_used_at", "expires_at", "revoked_at", "created_at")
    @classmethod
    def ensure_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class ApiKeyCreatedOut(ApiKeyOut):
    api_key: str


class ApiKeyEnvelope(Envelope):
    api_key: ApiKeyOut


class ApiKeyCreatedEnvelope(Envelope):
    api_key: ApiKeyCreatedOut


class ApiKeyListEnvelope(Envelope):
    api_keys: list[ApiKeyOut]
