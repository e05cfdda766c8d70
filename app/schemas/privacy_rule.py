from pydantic import ConfigDict, field_validator

from app.core.permissions import normalize_module
from app.core.roles import normalize_role
from app.schemas.common import CamelModel, Envelope, PaginationMeta


class PrivacyRuleIn(CamelModel):
    module: str
    role: str
    is_enabled: bool = True

    @field_validator("module")
    @classmethod
    def validate_module(cls, value: str) -> str:
        return normalize_module(value)

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str) -> str:
        return normalize_role(value)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"module": "orders", "role": "CampaignManager", "isEnabled": True}
        }
    )


class PrivacyRuleOut(CamelModel):
    id: str
    company_id: str
    module: str
    role: str
    is_enabled: bool

    model_config = ConfigDict(from_attributes=True)


class PrivacyRuleEnvelope(Envelope):
    privacy_rule: PrivacyRuleOut


class PrivacyRuleListEnvelope(Envelope):
    privacy_rules: list[PrivacyRuleOut]
    meta: PaginationMeta
