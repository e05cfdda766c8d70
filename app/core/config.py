import json
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PRODUCTION_ENVS = frozenset({"prod", "production"})
MIN_PRODUCTION_SECRET_LENGTH = 32
PLACEHOLDER_SECRETS = frozenset({"change_me", "changeme", "secret", "giftdesk-dev-secret"})


def _string_list(value: Any) -> list[str]:
    """Accepts a JSON array, a comma separated string or a list."""
    if value is None:
        return []
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("["):
            value = json.loads(text)
            if not isinstance(value, list):
                raise ValueError("expected a JSON list")
        else:
            value = text.split(",")
    if not isinstance(value, (list, tuple)):
        raise ValueError("expected a list of strings")
    return [str(item).strip() for item in value if str(item).strip()]


class Settings(BaseSettings):
    app_name: str = "GiftDesk Back Office"
    # Environment tag; also stamped on every outbound order event.
    env: str = "dev"

    database_url: str
    db_pool_size: int = Field(default=10, ge=1, le=100)
    db_max_overflow: int = Field(default=20, ge=0, le=200)
    db_pool_timeout_seconds: int = Field(default=30, ge=1, le=300)
    db_pool_recycle_seconds: int = Field(default=1800, ge=30, le=86_400)

    secret_key: str
    access_token_expire_minutes: int = Field(default=60, ge=1)
    refresh_token_expire_days: int = Field(default=14, ge=1)
    auth_rate_limit_max_attempts: int = Field(default=5, ge=1)
    auth_rate_limit_window_seconds: int = Field(default=300, ge=1)
    auth_rate_limit_lock_seconds: int = Field(default=900, ge=1)

    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    cors_origin_regex: str | None = None
    api_timeout_hint_ms: int = Field(default=300_000, ge=1000, le=1_800_000)

    pubsub_provider_default: Literal["stub", "http"] = "stub"
    pubsub_push_url: str | None = None
    pubsub_timeout_seconds: float = Field(default=5.0, gt=0, le=60)

    order_id_epoch: datetime = datetime(2022, 8, 1, tzinfo=timezone.utc)
    default_page_limit: int = Field(default=10, ge=1, le=1000)
    max_page_limit: int = Field(default=100, ge=1, le=1000)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        enable_decoding=False,
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: Any) -> list[str]:
        return _string_list(value)

    @field_validator("pubsub_provider_default", mode="before")
    @classmethod
    def normalize_provider_name(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("pubsub_push_url", "cors_origin_regex", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("order_id_epoch", mode="after")
    @classmethod
    def epoch_in_utc(cls, value: datetime) -> datetime:
        return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)

    @property
    def is_production(self) -> bool:
        return self.env.strip().lower() in PRODUCTION_ENVS

    @model_validator(mode="after")
    def check_production_settings(self) -> "Settings":
        problems: list[str] = []
        if self.pubsub_provider_default == "http" and not self.pubsub_push_url:
            problems.append("PUBSUB_PUSH_URL is required when PUBSUB_PROVIDER_DEFAULT=http")
        if self.is_production:
            secret = self.secret_key.strip()
            if secret.lower() in PLACEHOLDER_SECRETS or len(secret) < MIN_PRODUCTION_SECRET_LENGTH:
                problems.append(f"SECRET_KEY must be a random value of at least {MIN_PRODUCTION_SECRET_LENGTH} characters")
            if "*" in self.cors_origins or self.cors_origin_regex:
                problems.append("CORS must list explicit origins in production")
        if problems:
            raise ValueError("; ".join(problems))
        return self


settings = Settings()
