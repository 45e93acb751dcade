from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from rolegate.config import (
    DEFAULT_RPC_URL,
    ConfigurationError,
    MissingConfigurationError,
    get_ledger_config,
    get_storage_config,
    get_verification_config,
    get_webhook_config,
)


def test_ledger_config_requires_address_and_key() -> None:
    with pytest.raises(MissingConfigurationError) as exc:
        get_ledger_config()

    assert "ROLEGATE_RECEIVING_ADDRESS" in str(exc.value)
    assert "ROLEGATE_SIGNING_KEY" in str(exc.value)


def test_ledger_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ROLEGATE_RECEIVING_ADDRESS", "0xabc")
    monkeypatch.setenv("ROLEGATE_SIGNING_KEY", "0xkey")

    config = get_ledger_config()

    assert config.rpc_url == DEFAULT_RPC_URL
    assert config.chain_id is None
    assert config.low_balance_warning == Decimal("0.1")
    assert "0xkey" not in repr(config)
    resilience = config.resolved_resilience()
    assert resilience.base_url == DEFAULT_RPC_URL
    assert resilience.ratelimit is not None


def test_ledger_config_rejects_non_http_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ROLEGATE_RECEIVING_ADDRESS", "0xabc")
    monkeypatch.setenv("ROLEGATE_SIGNING_KEY", "0xkey")
    monkeypatch.setenv("ROLEGATE_RPC_URL", "wss://node.example")

    with pytest.raises(ConfigurationError, match="http"):
        get_ledger_config()


def test_verification_config_defaults() -> None:
    config = get_verification_config()

    assert config.verification_amount == Decimal("0.001")
    assert config.refund_amount == Decimal("0.001")
    assert config.request_timeout_seconds == 600
    assert config.scan_interval_seconds == 30
    assert config.sweep_interval_seconds == 60
    assert config.scan_window_blocks == 20
    assert config.block_delay_seconds == 0.1
    assert config.match_strategy == "sender"


def test_verification_config_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ROLEGATE_VERIFICATION_AMOUNT", "0.0025")
    monkeypatch.setenv("ROLEGATE_MATCH_STRATEGY", "CODE")
    monkeypatch.setenv("ROLEGATE_SCAN_WINDOW_BLOCKS", "50")

    config = get_verification_config()

    assert config.verification_amount == Decimal("0.0025")
    assert config.match_strategy == "code"
    assert config.scan_window_blocks == 50


def test_verification_config_rejects_unknown_strategy(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ROLEGATE_MATCH_STRATEGY", "memo")

    with pytest.raises(ConfigurationError, match="ROLEGATE_MATCH_STRATEGY"):
        get_verification_config()


def test_storage_config_paths(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ROLEGATE_DATA_DIR", str(tmp_path / "data"))

    config = get_storage_config()

    assert config.eligible_path() == (tmp_path / "data" / "eligible_addresses.txt").resolve()
    assert config.claims_path().name == "claims.json"
    assert config.audit_path().name == "audit.jsonl"
    assert (tmp_path / "data").is_dir()
    assert not config.uses_database


def test_storage_config_database(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")

    assert get_storage_config().uses_database


def test_webhook_config_is_optional(monkeypatch: pytest.MonkeyPatch) -> None:
    assert get_webhook_config() is None

    monkeypatch.setenv("ROLEGATE_WEBHOOK_URL", "https://hooks.test")
    monkeypatch.setenv("ROLEGATE_WEBHOOK_TOKEN", "t0k3n")
    config = get_webhook_config()

    assert config is not None
    assert config.resolved_resilience().default_headers == {"Authorization": "Bearer t0k3n"}
