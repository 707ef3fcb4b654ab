# tests/conftest.py

"""Shared pytest fixtures for the price tracker tests."""

from collections.abc import Generator
from pathlib import Path

import pytest

from price_tracker.config.settings import Settings


@pytest.fixture(autouse=True)
def isolated_paths(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
) -> Generator[None, None, None]:
    """Point every on-disk location at a per-test temp directory."""
    data_dir = tmp_path / "data"
    monkeypatch.setattr(Settings, "DATA_DIR", data_dir)
    monkeypatch.setattr(Settings, "DB_PATH", data_dir / "price_tracker.db")
    monkeypatch.setattr(Settings, "CHARTS_DIR", data_dir / "charts")
    monkeypatch.setattr(Settings, "LOGS_DIR", tmp_path / "logs")
    monkeypatch.setattr(Settings, "DATA_BACKEND", "local")
    yield
