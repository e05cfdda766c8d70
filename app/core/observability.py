"""Request ids, JSON log lines and the error envelope shared by every route."""

import json
import logging
import time
from contextvars import ContextVar
from http import HTTPStatus
from uuid import uuid4

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings

REQUEST_ID_HEADER = "X-Request-ID"
TIMEOUT_HINT_HEADER = "X-API-Timeout-Hint-Ms"
VALIDATION_ERROR_MESSAGE = "A validation error has occurred"

# Codes that differ from the snake-cased HTTP reason phrase.
ERROR_CODE_OVERRIDES = {
    422: "validation_error",
    429: "rate_limited",
    500: "internal_error",
}

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")
logger = logging.getLogger("giftdesk.api")


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record: the message is the event name, ``fields`` the payload."""

    def format(self, record: logging.LogRecord) -> str:
        line = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname.lower(),
            "event": record.getMessage(),
            "request_id": request_id_ctx.get(),
            **getattr(record, "fields", {}),
        }
        if record.exc_info:
            line["traceback"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


def setup_observability(level: int = logging.INFO) -> None:
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLineFormatter())
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def get_request_id() -> str:
    return request_id_ctx.get()


def log_event(event: str, *, level: int = logging.INFO, exc_info: BaseException | None = None, **fields) -> None:
    logger.log(level, event, exc_info=exc_info, extra={"fields": fields})


def error_code_for(status_code: int) -> str:
    if status_code in ERROR_CODE_OVERRIDES:
        return ERROR_CODE_OVERRIDES[status_code]
    try:
        phrase = HTTPStatus(status_code).phrase
    except ValueError:
        return "http_error"
    return phrase.lower().replace("-", " ").replace(" ", "_")


def error_envelope(
    request: Request,
    *,
    status_code: int,
    message: str,
    details: list[dict] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None) or get_request_id()
    body = {
        "statusCode": status_code,
        "success": False,
        "errors": {
            "message": message,
            "code": error_code_for(status_code),
            "requestId": request_id,
            "path": request.url.path,
            "details": details,
        },
    }
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def request_logging_middleware(request: Request, call_next):
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
    request.state.request_id = request_id
    token = request_id_ctx.set(request_id)
    started = time.perf_counter()
    response = None
    try:
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[TIMEOUT_HINT_HEADER] = str(settings.api_timeout_hint_ms)
        return response
    finally:
        log_event(
            "http.request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code if response is not None else 500,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        request_id_ctx.reset(token)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc.detail, str):
        message, details = exc.detail, None
    else:
        message, details = HTTPStatus(exc.status_code).phrase, exc.detail
    return error_envelope(
        request,
        status_code=exc.status_code,
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


def _field_name(location: tuple) -> str:
    # Body fields are reported bare; query and path parameters keep their source.
    parts = [str(part) for part in location if part != "body"]
    return ".".join(parts) or "body"


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": _field_name(tuple(error.get("loc", ()))),
            "message": error.get("msg", "Invalid value"),
            "type": error.get("type"),
        }
        for error in exc.errors()
    ]
    return error_envelope(request, status_code=422, message=VALIDATION_ERROR_MESSAGE, details=details)


async def unhandled_exception_handler(request: Request, exc: Exception):
    log_event(
        "unhandled_exception",
        level=logging.ERROR,
        exc_info=exc,
        request_id=getattr(request.state, "request_id", None) or get_request_id(),
        path=request.url.path,
        error=str(exc),
    )
    return error_envelope(request, status_code=500, message="Internal server error")
