"""Application configuration helpers."""

from __future__ import annotations

from .env import require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import NO_RETRY, RateLimit, ResilienceConfig, RetryPolicy
from .ledger import DEFAULT_RPC_URL, LedgerConfig, get_ledger_config
from .logging import configure_logging
from .storage import StorageConfig, get_storage_config
from .verification import VerificationConfig, get_verification_config
from .webhook import WebhookConfig, get_webhook_config

__all__ = [
    "DEFAULT_RPC_URL",
    "NO_RETRY",
    "ConfigurationError",
    "LedgerConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "VerificationConfig",
    "WebhookConfig",
    "configure_logging",
    "get_ledger_config",
    "get_storage_config",
    "get_verification_config",
    "get_webhook_config",
    "require_env_var",
    "require_env_vars",
]
