"""Privacy rules and masking of personal address data in responses."""

import re
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.privacy_rule import PrivacyRule

MASKED_ADDRESS_FIELDS = ("place", "street", "zipCode", "country")
_EMAIL_LOCAL_PART = re.compile(r".(?=.*@)")


def mask_value(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    return "*" * len(value)


def mask_email(value: Any) -> Any:
    """Masks every character before the last ``@``; the domain stays readable."""
    if not isinstance(value, str):
        return value
    return _EMAIL_LOCAL_PART.sub("*", value)


def redact_address(address: dict[str, Any]) -> dict[str, Any]:
    redacted = dict(address)
    for key in MASKED_ADDRESS_FIELDS:
        if key in redacted:
            redacted[key] = mask_value(redacted[key])
    if "email" in redacted:
        redacted["email"] = mask_email(redacted["email"])
    return redacted


def redact_addresses(addresses: list[dict[str, Any]] | None) -> list[dict[str, Any]] | None:
    if addresses is None:
        return None
    return [redact_address(address) for address in addresses]


def has_privacy_rule(db: Session, *, company_id: str | None, role: str, module: str) -> bool:
    if company_id is None:
        return False
    rule_id = db.execute(
        select(PrivacyRule.id)
        .where(
            PrivacyRule.company_id == company_id,
            PrivacyRule.role == role,
            PrivacyRule.module == module,
            PrivacyRule.is_enabled.is_(True),
            PrivacyRule.deleted_at.is_(None),
        )
        .limit(1)
    ).scalar_one_or_none()
    return rule_id is not None
