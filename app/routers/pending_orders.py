from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.access import RecordAccess, authorize_record
from app.core.api_docs import error_responses
from app.core.config import settings
from app.core.deps import get_db
from app.core.ownership import pending_order_ownership
from app.core.permissions import ORDERS, PENDING_ORDERS
from app.core.security_current import Principal, get_current_principal
from app.models.company import Company
from app.models.pending_order import PendingOrder
from app.schemas.common import PaginationMeta
from app.schemas.pending_order import (
    DuplicateOrdersIn,
    PendingOrderEnvelope,
    PendingOrderListEnvelope,
    PendingOrderOut,
    PendingOrdersCreateIn,
    PendingOrderUpdateIn,
)
from app.services.order_events import OrderEventNotifier, get_order_event_notifier
from app.services.pending_order_service import PendingOrderError, PendingOrderService, PendingOrderView
from app.services.privacy_service import has_privacy_rule

router = APIRouter(prefix="/api/pending-orders", tags=["pending-orders"])

PRIVACY_RULE_UPDATE_MESSAGE = "You are not allowed to update this pending order because of a privacy rule"
CATALOGUE_ORDER_MESSAGE = "You cannot perform this action for a catalogue pending order"
POSTED_OR_QUEUED_MESSAGE = "You cannot perform this action for a posted or queued order"

authorize_pending_order = authorize_record(PENDING_ORDERS, pending_order_ownership)


def get_pending_order_service(
    db: Session = Depends(get_db),
    notifier: OrderEventNotifier = Depends(get_order_event_notifier),
) -> PendingOrderService:
    return PendingOrderService(db, notifier=notifier)


def order_out(view: PendingOrderView) -> PendingOrderOut:
    return PendingOrderOut.model_validate(view.order).model_copy(
        update={
            "shipping_address_requests": view.shipping_address_requests,
            "billing_address_requests": view.billing_address_requests,
        }
    )


def orders_out(records: list[PendingOrder]) -> list[PendingOrderOut]:
    return [PendingOrderOut.model_validate(record) for record in records]


def _company_for(db: Session, company_id: str | None) -> Company | None:
    if company_id is None:
        return None
    return db.execute(
        select(Company).where(Company.id == company_id, Company.deleted_at.is_(None))
    ).scalar_one_or_none()


@router.get(
    "",
    response_model=PendingOrderListEnvelope,
    summary="List pending orders",
    description=(
        "Admins see every order, company administrators and campaign managers their "
        "company's orders, everyone else their own. Orders already processed downstream are hidden."
    ),
    responses={**error_responses(401, 422, 500)},
)
async def list_pending_orders(
    limit: int = Query(default=settings.default_page_limit, ge=1, le=settings.max_page_limit),
    offset: int = Query(default=0, ge=0),
    search: str | None = Query(default=None, max_length=128),
    principal: Principal = Depends(get_current_principal),
    service: PendingOrderService = Depends(get_pending_order_service),
):
    views, total = service.get_all(principal.user, limit=limit, offset=offset, search=search)
    return PendingOrderListEnvelope(
        status_code=200,
        pending_orders=[order_out(view) for view in views],
        meta=PaginationMeta.build(total=total, limit=limit, offset=offset),
    )


@router.post(
    "",
    response_model=PendingOrderListEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create catalogue pending orders",
    responses={**error_responses(401, 422, 500)},
)
async def create_catalogue_pending_orders(
    payload: PendingOrdersCreateIn,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    service: PendingOrderService = Depends(get_pending_order_service),
):
    company = _company_for(db, principal.company_id)
    records = await service.insert_catalogue_orders(payload.pending_orders, principal.user, company)
    return PendingOrderListEnvelope(status_code=201, pending_orders=orders_out(records))


@router.post(
    "/duplicate",
    response_model=PendingOrderListEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Duplicate posted orders",
    description="Clones existing orders by their posted order id with a new shipping date.",
    responses={**error_responses(401, 403, 404, 422, 500)},
)
async def duplicate_pending_orders(
    payload: DuplicateOrdersIn,
    principal: Principal = Depends(get_current_principal),
    service: PendingOrderService = Depends(get_pending_order_service),
):
    try:
        records = await service.duplicate(payload.posted_orders, principal.user)
    except PendingOrderError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return PendingOrderListEnvelope(status_code=201, pending_orders=orders_out(records))


@router.get(
    "/{record_id}",
    response_model=PendingOrderEnvelope,
    summary="Get pending order",
    responses={**error_responses(401, 403, 404, 500)},
)
async def get_pending_order(
    access: RecordAccess[PendingOrder] = Depends(authorize_pending_order),
    service: PendingOrderService = Depends(get_pending_order_service),
):
    view = service.get(access.record, access.principal.user)
    return PendingOrderEnvelope(status_code=200, pending_order=order_out(view))


@router.put(
    "/{record_id}",
    response_model=PendingOrderEnvelope,
    summary="Update pending order",
    responses={**error_responses(401, 403, 404, 422, 500)},
)
async def update_pending_order(
    payload: PendingOrderUpdateIn,
    db: Session = Depends(get_db),
    access: RecordAccess[PendingOrder] = Depends(authorize_pending_order),
    service: PendingOrderService = Depends(get_pending_order_service),
):
    order = access.record
    viewer = access.principal
    if not access.is_owner and has_privacy_rule(
        db, company_id=viewer.company_id, role=viewer.role, module=ORDERS
    ):
        raise HTTPException(status_code=403, detail=PRIVACY_RULE_UPDATE_MESSAGE)
    if order.is_posted_or_queued:
        raise HTTPException(status_code=403, detail=POSTED_OR_QUEUED_MESSAGE)

    updated = await service.update(order, payload.pending_order, viewer.user)
    return PendingOrderEnvelope(status_code=200, pending_order=PendingOrderOut.model_validate(updated))


@router.delete(
    "/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete pending order",
    responses={**error_responses(401, 403, 404, 500)},
)
async def delete_pending_order(
    access: RecordAccess[PendingOrder] = Depends(authorize_pending_order),
    service: PendingOrderService = Depends(get_pending_order_service),
):
    order = access.record
    if order.is_catalogue_order:
        raise HTTPException(status_code=403, detail=CATALOGUE_ORDER_MESSAGE)
    if order.is_posted_or_queued:
        raise HTTPException(status_code=403, detail=POSTED_OR_QUEUED_MESSAGE)

    await service.delete(order, access.principal.user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
