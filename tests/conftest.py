from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from src.quantizer.env_flags import CONFIG_ENV_VAR, DEBUG_ENV_VAR


@pytest.fixture
def runner() -> CliRunner:
    """Provide a Click runner configured for CLI smoke tests."""

    return CliRunner()


@pytest.fixture
def isolated_cwd(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Run from an empty directory with no config environment overrides."""

    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.delenv(DEBUG_ENV_VAR, raising=False)
    return tmp_path
