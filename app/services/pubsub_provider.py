from dataclasses import dataclass, field
from typing import Protocol

import requests
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.observability import log_event


@dataclass(frozen=True)
class PubSubMessage:
    topic: str
    message: str
    attributes: dict[str, str] = field(default_factory=dict)


class PubSubProvider(Protocol):
    name: str

    async def publish(self, message: PubSubMessage) -> None:
        ...


class StubPubSubProvider:
    """Keeps published messages in memory; used in development and tests."""

    name = "stub"

    def __init__(self) -> None:
        self.published: list[PubSubMessage] = []

    async def publish(self, message: PubSubMessage) -> None:
        self.published.append(message)
        log_event(
            "pubsub.publish",
            provider=self.name,
            topic=message.topic,
            message=message.message,
            attributes=message.attributes,
        )

    def clear(self) -> None:
        self.published.clear()


class HttpPushPubSubProvider:
    name = "http"

    def __init__(self, *, push_url: str | None, timeout_seconds: float):
        self.push_url = push_url
        self.timeout_seconds = timeout_seconds

    async def publish(self, message: PubSubMessage) -> None:
        if not self.push_url:
            raise ValueError("PUBSUB_PUSH_URL is not configured")
        response = await run_in_threadpool(
            requests.post,
            self.push_url,
            json={
                "topic": message.topic,
                "message": message.message,
                "attributes": message.attributes,
            },
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        log_event(
            "pubsub.publish",
            provider=self.name,
            topic=message.topic,
            message=message.message,
            status_code=response.status_code,
        )


_PUBSUB_PROVIDERS: dict[str, PubSubProvider] = {
    "stub": StubPubSubProvider(),
    "http": HttpPushPubSubProvider(
        push_url=settings.pubsub_push_url,
        timeout_seconds=settings.pubsub_timeout_seconds,
    ),
}


def get_pubsub_provider(name: str | None = None) -> PubSubProvider:
    normalized = (name or settings.pubsub_provider_default or "").strip().lower()
    provider = _PUBSUB_PROVIDERS.get(normalized)
    if not provider:
        available = ", ".join(sorted(_PUBSUB_PROVIDERS))
        raise ValueError(f"Unknown pub/sub provider '{name}'. Available: {available}")
    return provider
