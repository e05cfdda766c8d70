import uuid
from typing import Any

from sqlalchemy.orm import Session

from app.core.observability import get_request_id
from app.models.audit_log import AuditLog

PERMISSION_CHANGED = "access_permission.changed"
PERMISSION_DELETED = "access_permission.deleted"
PRIVACY_RULE_CHANGED = "privacy_rule.changed"
PRIVACY_RULE_DELETED = "privacy_rule.deleted"
API_KEY_CREATED = "api_key.created"
API_KEY_REVOKED = "api_key.revoked"
USER_ROLE_CHANGED = "user.role_changed"
USER_COMPANY_CHANGED = "user.company_changed"
PENDING_ORDERS_DUPLICATED = "pending_orders.duplicated"
PENDING_ORDER_DELETED = "pending_order.deleted"


def log_audit_event(
    db: Session,
    *,
    company_id: str | None,
    actor_user_id: str,
    action: str,
    target_type: str,
    target_id: str | None = None,
    metadata_json: dict[str, Any] | None = None,
) -> AuditLog:
    """Stages an audit row on the session; the caller's commit persists it."""
    metadata = dict(metadata_json or {})
    request_id = get_request_id()
    if request_id != "-":
        metadata.setdefault("requestId", request_id)

    event = AuditLog(
        id=str(uuid.uuid4()),
        company_id=company_id,
        actor_user_id=actor_user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        metadata_json=metadata or None,
    )
    db.add(event)
    return event
