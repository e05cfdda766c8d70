from pydantic import field_validator

from app.core.roles import normalize_role
from app.schemas.auth import UserProfileOut
from app.schemas.common import CamelModel, Envelope


class UserRoleUpdateIn(CamelModel):
    role: str

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str) -> str:
        return normalize_role(value)


class UserCompanyUpdateIn(CamelModel):
    company_id: str | None = None


class UserEnvelope(Envelope):
    user: UserProfileOut
