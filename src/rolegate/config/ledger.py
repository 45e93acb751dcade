"""Ledger (JSON-RPC) configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from .env import env_decimal, env_int, optional_env_var, require_env_vars
from .errors import ConfigurationError
from .http_resilience import RateLimit, ResilienceConfig

DEFAULT_RPC_URL = "https://testnet-rpc.monad.xyz"
RPC_TIMEOUT_SECONDS = 15.0


def _default_resilience(rpc_url: str) -> ResilienceConfig:
    return ResilienceConfig(
        name="ledger-rpc",
        base_url=rpc_url,
        timeout_seconds=RPC_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        default_headers={"Content-Type": "application/json"},
    )


@dataclass(frozen=True)
class LedgerConfig:
    """Holds the ledger endpoint and the service wallet credentials."""

    rpc_url: str
    receiving_address: str
    signing_key: str = field(repr=False)
    chain_id: int | None = None
    low_balance_warning: Decimal = Decimal("0.1")
    resilience: ResilienceConfig | None = None

    def resolved_resilience(self) -> ResilienceConfig:
        return self.resilience or _default_resilience(self.rpc_url)


def get_ledger_config(*, resilience: ResilienceConfig | None = None) -> LedgerConfig:
    values = require_env_vars(("ROLEGATE_RECEIVING_ADDRESS", "ROLEGATE_SIGNING_KEY"))
    rpc_url = optional_env_var("ROLEGATE_RPC_URL", DEFAULT_RPC_URL) or DEFAULT_RPC_URL
    if not rpc_url.startswith(("http://", "https://")):
        raise ConfigurationError(f"ROLEGATE_RPC_URL must be an http(s) URL, got {rpc_url!r}")
    chain_id = env_int("ROLEGATE_CHAIN_ID", 0, minimum=0) or None
    return LedgerConfig(
        rpc_url=rpc_url,
        receiving_address=values["ROLEGATE_RECEIVING_ADDRESS"],
        signing_key=values["ROLEGATE_SIGNING_KEY"],
        chain_id=chain_id,
        low_balance_warning=env_decimal("ROLEGATE_LOW_BALANCE_WARNING", "0.1"),
        resilience=resilience,
    )
