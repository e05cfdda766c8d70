import uuid
from datetime import datetime, timezone
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

ModelT = TypeVar("ModelT")


def restore_or_create(
    db: Session,
    model: type[ModelT],
    *,
    lookup: dict[str, Any],
    values: dict[str, Any],
) -> tuple[ModelT, bool]:
    """
    Upsert on a natural key, reviving a soft-deleted row when one matches.

    Returns ``(record, created)``. The row is staged on the session; the caller
    commits.
    """
    criteria = [getattr(model, name) == value for name, value in lookup.items()]
    existing = db.execute(
        select(model).where(*criteria).order_by(model.deleted_at.is_not(None)).limit(1)
    ).scalar_one_or_none()

    if existing is not None:
        existing.deleted_at = None
        for name, value in values.items():
            setattr(existing, name, value)
        return existing, False

    record = model(id=str(uuid.uuid4()), **lookup, **values)
    db.add(record)
    return record, True


def soft_delete(record: Any) -> None:
    record.deleted_at = datetime.now(timezone.utc)
