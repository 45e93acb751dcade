"""Credential grants and claimant notifications delivered as webhook POSTs.

The chat integration that owns roles and direct messages listens on the
webhook; when none is configured the logging fallbacks stand in so the engine
still runs end to end.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from rolegate.adapters.http_resilience import ResilientClient, default_client_factory

if TYPE_CHECKING:
    from collections.abc import Callable

    from rolegate.config.http_resilience import ResilienceConfig
    from rolegate.config.webhook import WebhookConfig

log = getLogger(__name__)


class WebhookDeliveryError(RuntimeError):
    """Raised when the webhook endpoint rejects or fails a delivery."""


@dataclass(slots=True)
class WebhookClient:
    config: WebhookConfig
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=default_client_factory
    )
    _client: ResilientClient | None = field(default=None, init=False, repr=False)

    async def deliver(self, event: str, payload: dict[str, object]) -> None:
        if self._client is None:
            self._client = self.client_factory(self.config.resolved_resilience())
        try:
            response = await self._client.post(self.config.url, json={"event": event, **payload})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise WebhookDeliveryError(f"Webhook {event} delivery failed: {exc}") from exc

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


@dataclass(slots=True)
class WebhookCredentialGranter:
    client: WebhookClient

    async def grant_credential(self, claimant_id: str, origin_context: str | None) -> None:
        await self.client.deliver(
            "grant_credential", {"claimantId": claimant_id, "origin": origin_context}
        )
        log.info(f"Requested credential grant for {claimant_id}")


@dataclass(slots=True)
class WebhookNotifier:
    client: WebhookClient

    async def notify(self, claimant_id: str, message: str) -> None:
        await self.client.deliver("notify", {"claimantId": claimant_id, "message": message})


class LoggingCredentialGranter:
    async def grant_credential(self, claimant_id: str, origin_context: str | None) -> None:
        log.warning(
            f"No webhook configured; grant the credential to {claimant_id} manually "
            f"(origin: {origin_context or 'n/a'})"
        )


class LoggingNotifier:
    async def notify(self, claimant_id: str, message: str) -> None:
        log.info(f"Message for {claimant_id}: {message}")
