"""Global test fixtures for pcancellable."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from pcancellable.config import CancellableConfig, set_config

ENV_VARS = (
    "PCANCELLABLE_THROW_ON_CANCEL",
    "PCANCELLABLE_DEBUG",
    "PCANCELLABLE_JSON_LOGS",
    "PCANCELLABLE_CONFIG",
)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Run every test with default config, no PCANCELLABLE_* env and an empty cwd."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    set_config(CancellableConfig())
    yield
    set_config(CancellableConfig())
