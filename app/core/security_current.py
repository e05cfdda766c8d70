from dataclasses import dataclass
from datetime import datetime, timezone

from fastapi import Depends, Header, HTTPException
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.core.permissions import ApiKeyGrant
from app.core.security import ACCESS_TOKEN, TokenValidationError, decode_token, hash_api_key
from app.models.api_key import ApiKey
from app.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


@dataclass(frozen=True)
class Principal:
    user: User
    # Set only when the request authenticated with an API key.
    api_key_permissions: tuple[ApiKeyGrant, ...] | None = None
    api_key_id: str | None = None

    @property
    def id(self) -> str:
        return self.user.id

    @property
    def role(self) -> str:
        return self.user.role

    @property
    def company_id(self) -> str | None:
        return self.user.company_id


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def api_key_grants(permissions_json: list[dict] | None) -> tuple[ApiKeyGrant, ...]:
    return tuple(
        ApiKeyGrant(
            module=str(item.get("module", "")),
            permission=str(item.get("permission", "")),
            is_enabled=bool(item.get("isEnabled", True)),
        )
        for item in (permissions_json or [])
    )


def _resolve_api_key_principal(db: Session, raw_key: str) -> Principal:
    api_key = db.execute(
        select(ApiKey).where(ApiKey.key_hash == hash_api_key(raw_key))
    ).scalar_one_or_none()
    if not api_key or api_key.status != "active" or api_key.revoked_at is not None:
        raise HTTPException(status_code=401, detail="Invalid API key")

    now = datetime.now(timezone.utc)
    if api_key.expires_at is not None and _as_utc(api_key.expires_at) <= now:
        raise HTTPException(status_code=401, detail="API key has expired")

    user = db.execute(select(User).where(User.id == api_key.user_id)).scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid API key")

    api_key.last_used_at = now
    db.commit()
    return Principal(
        user=user,
        api_key_permissions=api_key_grants(api_key.permissions_json),
        api_key_id=api_key.id,
    )


def _resolve_token_principal(db: Session, token: str) -> Principal:
    try:
        claims = decode_token(token, expected_type=ACCESS_TOKEN)
    except TokenValidationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    user = db.execute(select(User).where(User.id == claims.user_id)).scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="User is inactive")
    return Principal(user=user)


def get_current_principal(
    token: str | None = Depends(oauth2_scheme),
    x_api_key: str | None = Header(default=None, alias="X-Api-Key"),
    db: Session = Depends(get_db),
) -> Principal:
    if x_api_key and x_api_key.strip():
        return _resolve_api_key_principal(db, x_api_key.strip())
    if token:
        return _resolve_token_principal(db, token)
    raise HTTPException(
        status_code=401,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(principal: Principal = Depends(get_current_principal)) -> User:
    return principal.user
