from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr

from app.schemas.common import CamelModel

MIN_PASSWORD_LENGTH = 8


def _required_text(value: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        raise ValueError("must not be blank")
    return cleaned


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def _strong_enough(value: str) -> str:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    return value


RequiredText = Annotated[str, AfterValidator(_required_text)]
OptionalText = Annotated[Optional[str], AfterValidator(_optional_text)]
Password = Annotated[str, AfterValidator(_strong_enough)]


class SignupIn(CamelModel):
    email: EmailStr
    first_name: RequiredText
    last_name: RequiredText
    password: Password
    username: OptionalText = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "jane@acme.example",
                "firstName": "Jane",
                "lastName": "Doe",
                "password": "password123",
            }
        }
    )


class LoginIn(BaseModel):
    """``identifier`` takes either the email address or the username."""

    identifier: RequiredText
    password: str

    model_config = ConfigDict(
        json_schema_extra={"example": {"identifier": "jane@acme.example", "password": "password123"}}
    )


# OAuth2 clients expect these exact snake_case keys.
class TokenOut(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshIn(CamelModel):
    refresh_token: RequiredText


class UserProfileOut(CamelModel):
    id: str
    email: EmailStr
    username: str
    first_name: str
    last_name: str
    role: str
    company_id: str | None = None
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
