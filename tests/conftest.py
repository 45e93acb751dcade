from __future__ import annotations

import os

import pytest

_CONFIG_PREFIXES = ("ROLEGATE_",)
_CONFIG_NAMES = ("DATABASE_URI",)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's ``.env`` or shell settings out of every test."""

    for name in list(os.environ):
        if name.startswith(_CONFIG_PREFIXES) or name in _CONFIG_NAMES:
            monkeypatch.delenv(name, raising=False)
