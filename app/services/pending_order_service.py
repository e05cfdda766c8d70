"""
Pending-order lifecycle: creation from campaigns and the catalogue, duplication
of already posted orders, updates, soft deletion and role-scoped reads.

Every write commits before the matching notifications go out; a notification
failure is logged by the notifier and never undoes the write.
"""

import copy
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from app.core import roles
from app.core.config import settings
from app.core.id_utils import OrderType, get_order_id_generator
from app.core.permissions import ORDERS
from app.models.campaign import Campaign
from app.models.company import Company
from app.models.pending_order import PendingOrder
from app.models.user import User
from app.schemas.common import as_utc
from app.schemas.pending_order import PendingOrderIn, PendingOrderUpdateFields, PostedOrderIn
from app.services.audit_service import PENDING_ORDER_DELETED, PENDING_ORDERS_DUPLICATED, log_audit_event
from app.services.order_events import OrderEventNotifier
from app.services.privacy_service import has_privacy_rule, redact_addresses
from app.services.soft_delete_service import soft_delete

DUPLICATION_FORBIDDEN_MESSAGE = "Only admin, company admin or campaign manager can perform this action"
PENDING_ORDERS_NOT_FOUND_MESSAGE = "Pending orders not found"
FOREIGN_COMPANY_ORDERS_MESSAGE = "All orders must belong to the same company as the user"

# Posted and queued orders stay listed only while the fulfilment system has
# not yet assigned them a status.
# TODO: confirm with product why posted and queued orders with orderStatus != 0 are hidden;
# the predicate is kept as found until then.
VISIBLE_ORDER = or_(
    or_(PendingOrder.is_posted.is_(False), PendingOrder.is_queued.is_(False)),
    and_(
        PendingOrder.is_posted.is_(True),
        PendingOrder.is_queued.is_(True),
        PendingOrder.order_status == 0,
    ),
)

_CLONED_FIELDS = (
    "campaign_id",
    "company_id",
    "customer_id",
    "cost_center",
    "currency",
    "order_no",
    "shipping_id",
    "note",
    "description",
    "payment_type",
    "payment_target",
    "discount",
    "inetorderno",
    "platform",
    "language",
    "order_line_requests",
    "shipping_address_requests",
    "billing_address_requests",
    "payment_information_requests",
)

_ADDRESS_FIELDS = ("shipping_address_requests", "billing_address_requests")
_REQUIRED_COLUMNS = frozenset({"currency"})


class PendingOrderError(ValueError):
    def __init__(self, message: str, *, status_code: int):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class PendingOrderView:
    """A pending order as a given viewer may see it."""

    order: PendingOrder
    shipping_address_requests: list[dict[str, Any]]
    billing_address_requests: list[dict[str, Any]] | None
    is_redacted: bool = False


def _dump_list(items: list | None) -> list[dict[str, Any]] | None:
    if items is None:
        return None
    return [item.model_dump(by_alias=True, mode="json", exclude_unset=True) for item in items]


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PendingOrderService:
    def __init__(
        self,
        db: Session,
        *,
        notifier: OrderEventNotifier,
        id_epoch: datetime | None = None,
    ):
        self.db = db
        self.notifier = notifier
        self.id_epoch = id_epoch or settings.order_id_epoch

    def _next_posted_order_id(self, order_type: OrderType) -> str:
        return get_order_id_generator(order_type, self.id_epoch).generate()

    def _new_order(
        self,
        payload: PendingOrderIn,
        *,
        order_type: OrderType,
        actor: User,
        campaign_id: str | None,
        company_id: str | None,
        customer_id: int,
        created: datetime,
    ) -> PendingOrder:
        return PendingOrder(
            id=str(uuid.uuid4()),
            posted_order_id=self._next_posted_order_id(order_type),
            user_id=actor.id,
            campaign_id=campaign_id,
            company_id=company_id,
            customer_id=customer_id,
            cost_center=payload.cost_center,
            currency=payload.currency,
            order_no=payload.order_no,
            shipping_id=payload.shipping_id,
            shipped=payload.shipped,
            deliverydate=payload.deliverydate,
            note=payload.note,
            description=payload.description,
            payment_type=0,
            payment_target=0,
            discount=Decimal("0.00"),
            order_status=0,
            inetorderno=0,
            platform=0,
            language=0,
            order_line_requests=_dump_list(payload.order_line_requests),
            shipping_address_requests=_dump_list(payload.shipping_address_requests),
            billing_address_requests=_dump_list(payload.billing_address_requests),
            payment_information_requests=_dump_list(payload.payment_information_requests),
            created=created,
            created_by=actor.email,
            updated_by=actor.email,
            created_by_full_name=actor.full_name,
        )

    async def insert_campaign_orders(
        self,
        campaign: Campaign,
        company: Company,
        orders: list[PendingOrderIn],
        actor: User,
    ) -> list[PendingOrder]:
        created = datetime.now(timezone.utc)
        records = [
            self._new_order(
                payload,
                order_type=OrderType.CAMPAIGN,
                actor=actor,
                campaign_id=campaign.id,
                company_id=company.id,
                customer_id=company.customer_id or 0,
                created=created,
            )
            for payload in orders
        ]
        self.db.add_all(records)
        self.db.commit()

        await self.notifier.pending_orders_changed()
        await self.notifier.quota_changed(campaign.id)
        return records

    async def insert_catalogue_orders(
        self,
        orders: list[PendingOrderIn],
        actor: User,
        company: Company | None,
    ) -> list[PendingOrder]:
        created = datetime.now(timezone.utc)
        records = [
            self._new_order(
                payload,
                order_type=OrderType.CATALOGUE,
                actor=actor,
                campaign_id=None,
                company_id=company.id if company else None,
                customer_id=(company.customer_id if company else None) or 0,
                created=created,
            )
            for payload in orders
        ]
        self.db.add_all(records)
        self.db.commit()

        await self.notifier.pending_orders_changed()
        return records

    async def duplicate(self, posted_orders: list[PostedOrderIn], actor: User) -> list[PendingOrder]:
        if actor.role not in roles.ORDER_DUPLICATION_ROLES:
            raise PendingOrderError(DUPLICATION_FORBIDDEN_MESSAGE, status_code=403)

        requested_shipped: dict[str, datetime] = {}
        for posted_order in posted_orders:
            requested_shipped.setdefault(posted_order.order_id, as_utc(posted_order.shipped))

        sources = self.db.execute(
            select(PendingOrder).where(
                PendingOrder.posted_order_id.in_(list(requested_shipped)),
                PendingOrder.deleted_at.is_(None),
                VISIBLE_ORDER,
            )
        ).scalars().all()
        if not sources:
            raise PendingOrderError(PENDING_ORDERS_NOT_FOUND_MESSAGE, status_code=404)

        if actor.role != roles.ADMIN and any(order.company_id != actor.company_id for order in sources):
            raise PendingOrderError(FOREIGN_COMPANY_ORDERS_MESSAGE, status_code=403)

        created = datetime.now(timezone.utc)
        clones: list[PendingOrder] = []
        for source in sources:
            shipped = requested_shipped[source.posted_order_id] + timedelta(hours=1)
            clone = PendingOrder(
                **{name: copy.deepcopy(getattr(source, name)) for name in _CLONED_FIELDS},
                id=str(uuid.uuid4()),
                posted_order_id=self._next_posted_order_id(OrderType.DUPLICATE),
                shipped=shipped,
                deliverydate=shipped,
                user_id=actor.id,
                order_status=0,
                is_posted=False,
                is_queued=False,
                is_greeting_card_sent=False,
                is_invoice_generated=False,
                is_order_confirmation_generated=False,
                is_packing_slip_generated=False,
                created=created,
                created_by=actor.email,
                updated_by=actor.email,
                created_by_full_name=actor.full_name,
            )
            clones.append(clone)

        self.db.add_all(clones)
        log_audit_event(
            self.db,
            company_id=actor.company_id,
            actor_user_id=actor.id,
            action=PENDING_ORDERS_DUPLICATED,
            target_type="pending_order",
            metadata_json={
                "sourcePostedOrderIds": [source.posted_order_id for source in sources],
                "postedOrderIds": [clone.posted_order_id for clone in clones],
            },
        )
        self.db.commit()

        await self.notifier.quotas_changed(clone.campaign_id for clone in clones)
        await self.notifier.pending_orders_changed()
        return clones

    async def update(self, order: PendingOrder, changes: PendingOrderUpdateFields, actor: User) -> PendingOrder:
        provided = changes.model_fields_set
        for name in provided:
            if name in _ADDRESS_FIELDS:
                continue
            value = getattr(changes, name)
            if value is None and name in _REQUIRED_COLUMNS:
                continue
            setattr(order, name, value)

        if "shipping_address_requests" in provided and changes.shipping_address_requests is not None:
            order.shipping_address_requests = _dump_list(changes.shipping_address_requests)
        if "billing_address_requests" in provided:
            order.billing_address_requests = _dump_list(changes.billing_address_requests)

        order.updated_by = actor.email
        self.db.commit()

        await self.notifier.pending_orders_changed()
        return order

    async def delete(self, order: PendingOrder, actor: User) -> None:
        soft_delete(order)
        order.updated_by = actor.email
        log_audit_event(
            self.db,
            company_id=order.company_id,
            actor_user_id=actor.id,
            action=PENDING_ORDER_DELETED,
            target_type="pending_order",
            target_id=order.id,
            metadata_json={"postedOrderId": order.posted_order_id},
        )
        self.db.commit()

        await self.notifier.pending_orders_changed()
        if order.campaign_id:
            await self.notifier.quota_changed(order.campaign_id)

    def _is_redacted_for(self, viewer: User) -> bool:
        return has_privacy_rule(self.db, company_id=viewer.company_id, role=viewer.role, module=ORDERS)

    @staticmethod
    def _view(order: PendingOrder, *, redact: bool) -> PendingOrderView:
        if not redact:
            return PendingOrderView(
                order=order,
                shipping_address_requests=order.shipping_address_requests,
                billing_address_requests=order.billing_address_requests,
            )
        return PendingOrderView(
            order=order,
            shipping_address_requests=redact_addresses(order.shipping_address_requests) or [],
            billing_address_requests=redact_addresses(order.billing_address_requests),
            is_redacted=True,
        )

    def get(self, order: PendingOrder, viewer: User) -> PendingOrderView:
        redact = order.user_id != viewer.id and self._is_redacted_for(viewer)
        return self._view(order, redact=redact)

    def _scope_filters(self, viewer: User) -> list:
        if viewer.role == roles.ADMIN:
            return []
        if viewer.role in roles.COMPANY_MANAGER_ROLES and viewer.company_id is not None:
            return [PendingOrder.company_id == viewer.company_id]
        return [PendingOrder.user_id == viewer.id]

    @staticmethod
    def _search_filter(search: str):
        # search_text is stored lower-cased.
        pattern = f"%{_escape_like(search.strip().lower())}%"
        return or_(
            PendingOrder.search_text.like(pattern, escape="\\"),
            PendingOrder.posted_order_id.ilike(pattern, escape="\\"),
        )

    def get_all(
        self,
        viewer: User,
        *,
        limit: int,
        offset: int,
        search: str | None = None,
    ) -> tuple[list[PendingOrderView], int]:
        filters = [PendingOrder.deleted_at.is_(None), VISIBLE_ORDER, *self._scope_filters(viewer)]
        if search and search.strip():
            filters.append(self._search_filter(search))

        total = int(self.db.execute(select(func.count(PendingOrder.id)).where(*filters)).scalar_one())
        orders = self.db.execute(
            select(PendingOrder)
            .where(*filters)
            .order_by(PendingOrder.created.desc(), PendingOrder.posted_order_id.desc())
            .offset(offset)
            .limit(limit)
        ).scalars().all()

        redact_foreign = self._is_redacted_for(viewer)
        views = [self._view(order, redact=redact_foreign and order.user_id != viewer.id) for order in orders]
        return views, total
