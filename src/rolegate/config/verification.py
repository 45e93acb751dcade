"""Verification policy defaults and loaders."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Final, Literal, cast

from .env import env_decimal, env_float, env_int, optional_env_var
from .errors import ConfigurationError

StrategyName = Literal["sender", "code"]

DEFAULT_VERIFICATION_AMOUNT: Final[str] = "0.001"
DEFAULT_REFUND_AMOUNT: Final[str] = "0.001"
DEFAULT_REQUEST_TIMEOUT_SECONDS: Final[float] = 10 * 60
DEFAULT_SCAN_INTERVAL_SECONDS: Final[float] = 30.0
DEFAULT_SWEEP_INTERVAL_SECONDS: Final[float] = 60.0
DEFAULT_SCAN_WINDOW_BLOCKS: Final[int] = 20
DEFAULT_BLOCK_DELAY_SECONDS: Final[float] = 0.1


@dataclass(frozen=True, slots=True)
class VerificationConfig:
    verification_amount: Decimal = Decimal(DEFAULT_VERIFICATION_AMOUNT)
    refund_amount: Decimal = Decimal(DEFAULT_REFUND_AMOUNT)
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    scan_interval_seconds: float = DEFAULT_SCAN_INTERVAL_SECONDS
    sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS
    scan_window_blocks: int = DEFAULT_SCAN_WINDOW_BLOCKS
    block_delay_seconds: float = DEFAULT_BLOCK_DELAY_SECONDS
    match_strategy: StrategyName = "sender"


def get_verification_config() -> VerificationConfig:
    strategy = optional_env_var("ROLEGATE_MATCH_STRATEGY", "sender") or "sender"
    strategy = strategy.lower()
    if strategy not in ("sender", "code"):
        raise ConfigurationError(
            f"ROLEGATE_MATCH_STRATEGY must be 'sender' or 'code', got {strategy!r}"
        )
    return VerificationConfig(
        verification_amount=env_decimal(
            "ROLEGATE_VERIFICATION_AMOUNT", DEFAULT_VERIFICATION_AMOUNT
        ),
        refund_amount=env_decimal("ROLEGATE_REFUND_AMOUNT", DEFAULT_REFUND_AMOUNT),
        request_timeout_seconds=env_float(
            "ROLEGATE_REQUEST_TIMEOUT_SECONDS", DEFAULT_REQUEST_TIMEOUT_SECONDS, minimum=1.0
        ),
        scan_interval_seconds=env_float(
            "ROLEGATE_SCAN_INTERVAL_SECONDS", DEFAULT_SCAN_INTERVAL_SECONDS, minimum=1.0
        ),
        sweep_interval_seconds=env_float(
            "ROLEGATE_SWEEP_INTERVAL_SECONDS", DEFAULT_SWEEP_INTERVAL_SECONDS, minimum=1.0
        ),
        scan_window_blocks=env_int(
            "ROLEGATE_SCAN_WINDOW_BLOCKS", DEFAULT_SCAN_WINDOW_BLOCKS, minimum=0
        ),
        block_delay_seconds=env_float(
            "ROLEGATE_BLOCK_DELAY_SECONDS", DEFAULT_BLOCK_DELAY_SECONDS
        ),
        match_strategy=cast("StrategyName", strategy),
    )
