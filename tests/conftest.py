"""Shared pytest fixtures for QUOTAPROBE tests."""

from pathlib import Path

import pytest

from quotaprobe.config.settings import Settings
from tests.fakes import FakeCodex, make_fake_codex

# Enable pytest-asyncio for async test support
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture
def temp_config_file(tmp_path: Path) -> Path:
    """Create a temporary config file with sample values."""
    config_file = tmp_path / ".quotaprobe-config"
    config_file.write_text(
        """# QUOTAPROBE Configuration
CODEX_BINARY="codex-beta"
PROBE_TIMEOUT_SECONDS=15
IDLE_TIMEOUT_SECONDS='2.5'
EXTRA_SEARCH_PATHS=/opt/codex/bin
"""
    )
    return config_file


@pytest.fixture
def clean_config_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate config loading from the developer's environment.

    Clears config environment variables, points the global config at a
    missing file and moves into an empty project directory (marked as a repository root
    so the upward search stops).
    """
    for key in Settings.get_config_keys():
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr("quotaprobe.config.manager.CONFIG_FILE", tmp_path / "global-config")

    project = tmp_path / "project"
    project.mkdir()
    (project / ".git").mkdir()
    monkeypatch.chdir(project)
    return project


@pytest.fixture
def fake_codex(tmp_path: Path) -> FakeCodex:
    """A fake codex whose app-server reports 30% of the session used."""
    return make_fake_codex(tmp_path)
