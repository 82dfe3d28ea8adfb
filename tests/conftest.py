from __future__ import annotations

import os
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _isolated_settings_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep developer env vars and .env files out of settings resolution."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("TOOLLOOP_"):
            monkeypatch.delenv(name, raising=False)
