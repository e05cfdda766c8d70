"""Outbound notifications emitted after pending-order writes."""

import asyncio
import logging
from collections.abc import Iterable

from app.core.config import settings
from app.core.observability import log_event
from app.services.pubsub_provider import PubSubMessage, PubSubProvider, get_pubsub_provider

PENDING_ORDERS_TOPIC = "pending-orders"
QUOTA_TOPIC = "quota"
POST_PENDING_ORDERS_MESSAGE = "postPendingOrders"
UPDATE_USED_QUOTA_MESSAGE = "updateCampaignsUsedQuota"


class OrderEventNotifier:
    def __init__(self, provider: PubSubProvider, *, environment: str):
        self.provider = provider
        self.environment = environment

    async def _publish(self, message: PubSubMessage) -> None:
        # A failed publish never fails the write that triggered it.
        try:
            await self.provider.publish(message)
        except Exception as exc:
            log_event(
                "pubsub.publish_failed",
                level=logging.WARNING,
                provider=self.provider.name,
                topic=message.topic,
                message=message.message,
                attributes=message.attributes,
                error=str(exc),
            )

    async def pending_orders_changed(self) -> None:
        await self._publish(
            PubSubMessage(
                topic=PENDING_ORDERS_TOPIC,
                message=POST_PENDING_ORDERS_MESSAGE,
                attributes={"environment": self.environment},
            )
        )

    async def quota_changed(self, campaign_id: str) -> None:
        await self._publish(
            PubSubMessage(
                topic=QUOTA_TOPIC,
                message=UPDATE_USED_QUOTA_MESSAGE,
                attributes={"campaignId": campaign_id, "environment": self.environment},
            )
        )

    async def quotas_changed(self, campaign_ids: Iterable[str]) -> None:
        unique_ids = list(dict.fromkeys(campaign_id for campaign_id in campaign_ids if campaign_id))
        if unique_ids:
            await asyncio.gather(*(self.quota_changed(campaign_id) for campaign_id in unique_ids))


def get_order_event_notifier() -> OrderEventNotifier:
    return OrderEventNotifier(get_pubsub_provider(), environment=settings.env)
