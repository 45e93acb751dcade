"""Webhook configuration for credential grants and notifications."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import optional_env_var
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

WEBHOOK_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class WebhookConfig:
    url: str
    token: str | None = field(default=None, repr=False)
    resilience: ResilienceConfig | None = None

    def resolved_resilience(self) -> ResilienceConfig:
        if self.resilience is not None:
            return self.resilience
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else None
        return ResilienceConfig(
            name="webhook",
            timeout_seconds=WEBHOOK_TIMEOUT_SECONDS,
            retry=RetryPolicy(total=2),
            ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
            default_headers=headers,
        )


def get_webhook_config() -> WebhookConfig | None:
    url = optional_env_var("ROLEGATE_WEBHOOK_URL")
    if url is None:
        return None
    return WebhookConfig(url=url, token=optional_env_var("ROLEGATE_WEBHOOK_TOKEN"))
