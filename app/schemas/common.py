from datetime import datetime, timezone
from math import ceil

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire models: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PaginationMeta(CamelModel):
    total: int
    page_count: int
    per_page: int
    page: int
    offset: int

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "total": 42,
                "pageCount": 5,
                "perPage": 10,
                "page": 1,
                "offset": 0,
            }
        }
    )

    @classmethod
    def build(cls, *, total: int, limit: int, offset: int) -> "PaginationMeta":
        return cls(
            total=total,
            page_count=ceil(total / limit) if limit else 0,
            per_page=limit,
            page=(offset // limit) + 1 if limit else 1,
            offset=offset,
        )


class ValidationIssueOut(BaseModel):
    field: str
    message: str
    type: str | None = None


class ErrorDetailOut(CamelModel):
    message: str
    code: str
    request_id: str
    path: str
    details: list[ValidationIssueOut] | None = None


class ErrorOut(CamelModel):
    status_code: int
    success: bool = False
    errors: ErrorDetailOut

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "statusCode": 403,
                "success": False,
                "errors": {
                    "message": "You do not have the necessary permissions to perform this action",
                    "code": "forbidden",
                    "requestId": "8d8f2b00-6c79-4a45-8ff4-b0a5f2bc4bc2",
                    "path": "/api/pending-orders",
                    "details": None,
                },
            }
        }
    )


class Envelope(CamelModel):
    status_code: int
    success: bool = True
