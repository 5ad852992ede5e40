"""Configuración de pytest y fixtures compartidas."""

from __future__ import annotations

from pathlib import Path

import pytest
import structlog

from core.config import AppSettings


@pytest.fixture(autouse=True)
def _reset_structlog():
    """La configuración de structlog apunta a streams capturados por test."""

    yield
    structlog.reset_defaults()


@pytest.fixture
def history_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "history.json"


@pytest.fixture
def settings(history_path: Path) -> AppSettings:
    """Settings aislados del entorno: sin `.env`, sin esperas."""

    return AppSettings(
        _env_file=None,
        gemini_api_key="test-key",
        gemini_model="gemini-2.5-flash",
        registry_base_url="https://internet.btk.gov.tr/sitesorgu",
        retry_delay_seconds=0,
        batch_delay_seconds=0,
        history_path=history_path,
    )
