from __future__ import annotations

import os

import pytest

from rangetreex import config as rx_config


@pytest.fixture(autouse=True)
def _isolated_runtime(monkeypatch: pytest.MonkeyPatch):
    for key in list(os.environ):
        if key.startswith("RANGETREEX_"):
            monkeypatch.delenv(key, raising=False)
    rx_config.reset_runtime_config_cache()
    yield
    rx_config.reset_runtime_config_cache()
