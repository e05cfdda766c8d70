import re

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from app.core.api_docs import error_responses
from app.core.config import settings
from app.core.deps import get_db
from app.core.id_utils import generate_short_token
from app.core.rate_limit import LoginLockedError, LoginRateLimiter
from app.core.security import (
    REFRESH_TOKEN,
    TokenValidationError,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from app.core.security_current import get_current_user
from app.models.user import User
from app.schemas.auth import LoginIn, RefreshIn, SignupIn, TokenOut, UserProfileOut
from app.schemas.user import UserEnvelope

router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
USERNAME_MAX_LENGTH = 30

login_rate_limiter = LoginRateLimiter(
    max_attempts=settings.auth_rate_limit_max_attempts,
    window_seconds=settings.auth_rate_limit_window_seconds,
    lock_seconds=settings.auth_rate_limit_lock_seconds,
)


def _user_by_login_name(db: Session, login_name: str) -> User | None:
    normalized = login_name.strip().lower()
    return db.execute(
        select(User).where(or_(func.lower(User.email) == normalized, func.lower(User.username) == normalized))
    ).scalar_one_or_none()


def _username_taken(db: Session, username: str) -> bool:
    return db.execute(
        select(User.id).where(func.lower(User.username) == username.lower())
    ).first() is not None


def _username_from_email(db: Session, email: str) -> str:
    local_part = email.split("@", 1)[0]
    stem = re.sub(r"[^a-z0-9]+", "_", local_part.lower()).strip("_")[:USERNAME_MAX_LENGTH] or "user"
    username = stem
    while _username_taken(db, username):
        username = f"{stem[:USERNAME_MAX_LENGTH - 7]}_{generate_short_token(6)}"
    return username


def _client_address(request: Request) -> str:
    # First hop of X-Forwarded-For when running behind the ingress proxy.
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",", 1)[0].strip()
    return request.client.host if request.client else "unknown"


def _token_pair(user: User) -> TokenOut:
    return TokenOut(
        access_token=create_access_token(user.id),
        refresh_token=create_refresh_token(user.id),
    )


def _password_login(db: Session, request: Request, login_name: str, password: str) -> TokenOut:
    attempt = login_rate_limiter.key_for(login_name, _client_address(request))
    try:
        login_rate_limiter.ensure_allowed(attempt)
    except LoginLockedError as exc:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many failed login attempts, try again later",
            headers={"Retry-After": str(exc.retry_after)},
        ) from exc

    user = _user_by_login_name(db, login_name)
    if user is None or not verify_password(password, user.hashed_password):
        login_rate_limiter.record_failure(attempt)
        raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS_MESSAGE)
    if not user.is_active:
        raise HTTPException(status_code=401, detail="User is inactive")

    login_rate_limiter.record_success(attempt)
    return _token_pair(user)


@router.post(
    "/signup",
    response_model=UserEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Sign up",
    description=(
        "Creates a user with the `User` role and no company. Without a username, "
        "one is derived from the email address."
    ),
    responses={**error_responses(409, 422, 500)},
)
def signup(payload: SignupIn, db: Session = Depends(get_db)):
    email = payload.email.lower()
    if db.execute(select(User.id).where(func.lower(User.email) == email)).first() is not None:
        raise HTTPException(status_code=409, detail="A user with this email already exists")
    if payload.username and _username_taken(db, payload.username):
        raise HTTPException(status_code=409, detail="A user with this username already exists")

    user = User(
        email=email,
        username=payload.username or _username_from_email(db, email),
        first_name=payload.first_name,
        last_name=payload.last_name,
        hashed_password=hash_password(payload.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return UserEnvelope(status_code=201, user=UserProfileOut.model_validate(user))


@router.post(
    "/login",
    response_model=TokenOut,
    summary="Login",
    description="Email or username plus password. Repeated failures lock the identifier for a while.",
    responses={**error_responses(401, 422, 429, 500)},
)
def login(payload: LoginIn, request: Request, db: Session = Depends(get_db)):
    return _password_login(db, request, payload.identifier, payload.password)


@router.post(
    "/token",
    response_model=TokenOut,
    summary="OAuth2 password form login",
    description="Used by the Swagger Authorize dialog; `username` takes an email or username.",
    responses={**error_responses(401, 422, 429, 500)},
)
def token_form_login(
    request: Request,
    form: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    return _password_login(db, request, form.username, form.password)


@router.post(
    "/refresh",
    response_model=TokenOut,
    summary="Refresh tokens",
    description="Refresh tokens are stateless; any unexpired one for an active user is accepted.",
    responses={**error_responses(401, 422, 500)},
)
def refresh(payload: RefreshIn, db: Session = Depends(get_db)):
    try:
        user_id = decode_token(payload.refresh_token, expected_type=REFRESH_TOKEN).user_id
    except TokenValidationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="Refresh token is invalid or expired")
    return _token_pair(user)


@router.get(
    "/me",
    response_model=UserEnvelope,
    summary="Current user",
    responses={**error_responses(401, 500)},
)
def me(user: User = Depends(get_current_user)):
    return UserEnvelope(status_code=200, user=UserProfileOut.model_validate(user))
