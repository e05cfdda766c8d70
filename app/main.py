import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.observability import (
    http_exception_handler,
    log_event,
    request_logging_middleware,
    setup_observability,
    unhandled_exception_handler,
    validation_exception_handler,
)
from app.db.session import engine
from app.routers import (
    access_permissions,
    api_keys,
    auth,
    campaigns,
    companies,
    pending_orders,
    privacy_rules,
    users,
)

app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description=(
        "Back office API for corporate gifting: companies run campaigns, employees place "
        "pending orders, and posted orders are handed to fulfilment through pub/sub events.\n\n"
        "Interactive users authenticate with a bearer token from `/auth/login` (or the "
        "**Authorize** dialog); integrations send an `X-Api-Key` header instead."
    ),
    swagger_ui_parameters={"persistAuthorization": True},
    openapi_tags=[
        {"name": "health", "description": "Service status and quick links."},
        {"name": "auth", "description": "User signup, login and token lifecycle."},
        {"name": "users", "description": "User profiles, role and company assignment."},
        {"name": "companies", "description": "Companies owning campaigns and orders."},
        {"name": "campaigns", "description": "Gifting campaigns, their addresses and order placement."},
        {"name": "pending-orders", "description": "Orders awaiting posting to fulfilment."},
        {"name": "access-permissions", "description": "Per-company overrides of the role permission matrix."},
        {"name": "privacy-rules", "description": "Address masking rules per role and module."},
        {"name": "api-keys", "description": "Scoped API keys for integrations."},
    ],
)

setup_observability()
app.middleware("http")(request_logging_middleware)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

LOCAL_ORIGIN_REGEX = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"


def _cors_options() -> dict:
    origins = settings.cors_origins
    wildcard = "*" in origins
    origin_regex = settings.cors_origin_regex
    if origin_regex is None and not settings.is_production:
        origin_regex = LOCAL_ORIGIN_REGEX
    return {
        "allow_origins": ["*"] if wildcard else origins,
        "allow_origin_regex": origin_regex,
        # Browsers reject credentials on wildcard origins.
        "allow_credentials": not wildcard,
        "allow_methods": ["*"],
        "allow_headers": ["*"],
    }


app.add_middleware(CORSMiddleware, **_cors_options())

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(companies.router)
app.include_router(campaigns.router)
app.include_router(pending_orders.router)
app.include_router(access_permissions.router)
app.include_router(privacy_rules.router)
app.include_router(api_keys.router)


@app.get("/", tags=["health"])
def index():
    return {"app": settings.app_name, "env": settings.env, "docs": "/docs", "health": "/health", "ready": "/ready"}


@app.get("/health", tags=["health"])
def health():
    return {"ok": True}


@app.get("/ready", tags=["health"])
def ready():
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        log_event("health.database_unavailable", level=logging.WARNING, error=str(exc))
        return JSONResponse(status_code=503, content={"ok": False, "database": "unavailable"})
    return {"ok": True, "database": "ok"}
