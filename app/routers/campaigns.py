from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core import roles
from app.core.access import RecordAccess, authorize_record
from app.core.api_docs import error_responses
from app.core.config import settings
from app.core.deps import get_db
from app.core.ownership import campaign_address_ownership, campaign_ownership, company_ownership
from app.core.permissions import CAMPAIGN_ADDRESSES, CAMPAIGNS, PENDING_ORDERS
from app.models.campaign import Campaign, CampaignAddress
from app.models.company import Company
from app.routers.pending_orders import get_pending_order_service, orders_out
from app.schemas.campaign import (
    CampaignAddressesIn,
    CampaignAddressListEnvelope,
    CampaignAddressOut,
    CampaignEnvelope,
    CampaignIn,
    CampaignListEnvelope,
    CampaignOut,
    CampaignUpdateIn,
)
from app.schemas.common import PaginationMeta
from app.schemas.pending_order import PendingOrderListEnvelope, PendingOrdersCreateIn
from app.services.order_events import OrderEventNotifier, get_order_event_notifier
from app.services.pending_order_service import PendingOrderService
from app.services.soft_delete_service import restore_or_create, soft_delete

router = APIRouter(prefix="/api", tags=["campaigns"])

CAMPAIGN_HIDDEN_MESSAGE = "This campaign is hidden"
CAMPAIGN_INACTIVE_MESSAGE = "This campaign is not active"

authorize_company_campaigns = authorize_record(CAMPAIGNS, company_ownership)
authorize_campaign = authorize_record(CAMPAIGNS, campaign_ownership)
authorize_campaign_order_placement = authorize_record(
    PENDING_ORDERS, campaign_ownership, check_module_permission=False
)
authorize_campaign_addresses = authorize_record(CAMPAIGN_ADDRESSES, campaign_ownership)
authorize_campaign_address = authorize_record(CAMPAIGN_ADDRESSES, campaign_address_ownership)


def _ensure_visible(access: RecordAccess[Campaign], *, require_active: bool = False) -> None:
    if access.principal.role == roles.ADMIN:
        return
    if access.record.is_hidden:
        raise HTTPException(status_code=403, detail=CAMPAIGN_HIDDEN_MESSAGE)
    if require_active and not access.record.is_active:
        raise HTTPException(status_code=403, detail=CAMPAIGN_INACTIVE_MESSAGE)


@router.post(
    "/companies/{record_id}/campaigns",
    response_model=CampaignEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create campaign",
    description="Re-creating a deleted campaign with the same name and type restores it and returns 200.",
    responses={**error_responses(401, 403, 404, 422, 500)},
)
def create_campaign(
    payload: CampaignIn,
    db: Session = Depends(get_db),
    access: RecordAccess[Company] = Depends(authorize_company_campaigns),
):
    campaign, created = restore_or_create(
        db,
        Campaign,
        lookup={"company_id": access.record.id, "name": payload.name, "type": payload.type},
        values=payload.model_dump(exclude={"name", "type"}),
    )
    db.commit()
    status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    body = CampaignEnvelope(status_code=status_code, campaign=CampaignOut.model_validate(campaign))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", by_alias=True))


@router.get(
    "/companies/{record_id}/campaigns",
    response_model=CampaignListEnvelope,
    summary="List company campaigns",
    responses={**error_responses(401, 403, 404, 422, 500)},
)
def list_company_campaigns(
    limit: int = Query(default=settings.default_page_limit, ge=1, le=settings.max_page_limit),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    access: RecordAccess[Company] = Depends(authorize_company_campaigns),
):
    filters = [
        Campaign.company_id == access.record.id,
        Campaign.is_hidden.is_(False),
        Campaign.deleted_at.is_(None),
    ]
    total = int(db.execute(select(func.count(Campaign.id)).where(*filters)).scalar_one())
    campaigns = db.execute(
        select(Campaign).where(*filters).order_by(Campaign.created_at.desc()).offset(offset).limit(limit)
    ).scalars().all()
    return CampaignListEnvelope(
        status_code=200,
        campaigns=[CampaignOut.model_validate(campaign) for campaign in campaigns],
        meta=PaginationMeta.build(total=total, limit=limit, offset=offset),
    )


@router.get(
    "/campaigns/{record_id}",
    response_model=CampaignEnvelope,
    summary="Get campaign",
    responses={**error_responses(401, 403, 404, 500)},
)
def get_campaign(access: RecordAccess[Campaign] = Depends(authorize_campaign)):
    _ensure_visible(access)
    return CampaignEnvelope(status_code=200, campaign=CampaignOut.model_validate(access.record))


@router.put(
    "/campaigns/{record_id}",
    response_model=CampaignEnvelope,
    summary="Update campaign",
    description="Any change triggers a recalculation of the campaign's used quota.",
    responses={**error_responses(401, 403, 404, 422, 500)},
)
async def update_campaign(
    payload: CampaignUpdateIn,
    db: Session = Depends(get_db),
    access: RecordAccess[Campaign] = Depends(authorize_campaign),
    notifier: OrderEventNotifier = Depends(get_order_event_notifier),
):
    campaign = access.record
    for name, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(campaign, name, value)
    db.commit()

    await notifier.quota_changed(campaign.id)
    return CampaignEnvelope(status_code=200, campaign=CampaignOut.model_validate(campaign))


@router.post(
    "/campaigns/{record_id}/pending-orders",
    response_model=PendingOrderListEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Place campaign pending orders",
    responses={**error_responses(401, 403, 404, 422, 500)},
)
async def create_campaign_pending_orders(
    payload: PendingOrdersCreateIn,
    db: Session = Depends(get_db),
    access: RecordAccess[Campaign] = Depends(authorize_campaign_order_placement),
    service: PendingOrderService = Depends(get_pending_order_service),
):
    _ensure_visible(access, require_active=True)
    campaign = access.record
    company = db.execute(select(Company).where(Company.id == campaign.company_id)).scalar_one()

    records = await service.insert_campaign_orders(campaign, company, payload.pending_orders, access.principal.user)
    return PendingOrderListEnvelope(status_code=201, pending_orders=orders_out(records))


@router.post(
    "/campaigns/{record_id}/campaign-addresses",
    response_model=CampaignAddressListEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Set campaign addresses",
    description="One address per type; posting an existing type replaces it.",
    responses={**error_responses(401, 403, 404, 422, 500)},
)
def upsert_campaign_addresses(
    payload: CampaignAddressesIn,
    db: Session = Depends(get_db),
    access: RecordAccess[Campaign] = Depends(authorize_campaign_addresses),
):
    addresses: list[CampaignAddress] = []
    for item in payload.campaign_addresses:
        address, _ = restore_or_create(
            db,
            CampaignAddress,
            lookup={"campaign_id": access.record.id, "type": item.type},
            values=item.model_dump(exclude={"type"}),
        )
        addresses.append(address)
    db.commit()
    return CampaignAddressListEnvelope(
        status_code=201,
        campaign_addresses=[CampaignAddressOut.model_validate(address) for address in addresses],
    )


@router.delete(
    "/campaign-addresses/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete campaign address",
    responses={**error_responses(401, 403, 404, 500)},
)
def delete_campaign_address(
    db: Session = Depends(get_db),
    access: RecordAccess[CampaignAddress] = Depends(authorize_campaign_address),
):
    soft_delete(access.record)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
