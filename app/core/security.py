import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import bcrypt
from jose import JWTError, jwt

from app.core.config import settings

JWT_ALGORITHM = "HS256"
ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

API_KEY_PREFIX = "gdk_live_"
# Prefix plus the first characters of the secret; shown in listings.
API_KEY_DISPLAY_LENGTH = 20


class TokenValidationError(ValueError):
    pass


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    token_type: str
    token_id: str
    expires_at: datetime


def _token_lifetime(token_type: str) -> timedelta:
    if token_type == REFRESH_TOKEN:
        return timedelta(days=settings.refresh_token_expire_days)
    return timedelta(minutes=settings.access_token_expire_minutes)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


def hash_api_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def generate_api_key_material() -> tuple[str, str, str]:
    """Returns ``(raw_key, display_prefix, sha256_hash)``; only the hash is stored."""
    raw_key = API_KEY_PREFIX + secrets.token_hex(24)
    return raw_key, raw_key[:API_KEY_DISPLAY_LENGTH], hash_api_key(raw_key)


def issue_token(user_id: str, token_type: str) -> str:
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "type": token_type,
        "jti": uuid4().hex,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + _token_lifetime(token_type)).timestamp()),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=JWT_ALGORITHM)


def create_access_token(user_id: str) -> str:
    return issue_token(user_id, ACCESS_TOKEN)


def create_refresh_token(user_id: str) -> str:
    return issue_token(user_id, REFRESH_TOKEN)


def decode_token(token: str, *, expected_type: str) -> TokenClaims:
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[JWT_ALGORITHM])
    except JWTError as exc:
        raise TokenValidationError("Invalid token") from exc

    if claims.get("type") != expected_type:
        raise TokenValidationError("Invalid token type")
    missing = [name for name in ("sub", "jti", "exp") if not claims.get(name)]
    if missing:
        raise TokenValidationError(f"Token is missing {', '.join(missing)}")

    return TokenClaims(
        user_id=str(claims["sub"]),
        token_type=expected_type,
        token_id=str(claims["jti"]),
        expires_at=datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc),
    )
