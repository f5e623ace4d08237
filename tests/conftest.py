"""Shared test fixtures for toolkit tests.

This module provides common fixtures used across all test modules:
- A clean environment with no provider credentials set
- Temporary credentials config directories and stores
- Mock Google API service objects

Usage:
    def test_something(write_credentials):
        store = write_credentials({"netlify": {"token": "abc"}})
        ...
"""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from tools.credentials import ENV_MAPPINGS, CredentialStore


# ─────────────────────────────────────────────────────────────────────────────
# Path Constants
# ─────────────────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).parent.parent
TOOLS_DIR = PROJECT_ROOT / "tools"


# ─────────────────────────────────────────────────────────────────────────────
# Environment Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def clean_env(monkeypatch) -> pytest.MonkeyPatch:
    """Remove every provider environment variable for the duration of a test."""
    for fields in ENV_MAPPINGS.values():
        for names in fields.values():
            for name in names:
                monkeypatch.delenv(name, raising=False)
    return monkeypatch


# ─────────────────────────────────────────────────────────────────────────────
# Credentials Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def config_dirs(tmp_path: Path) -> list[Path]:
    """Two config directories mirroring the local and project-level locations."""
    local = tmp_path / "cwd" / ".windsurf" / "config"
    project = tmp_path / "project" / "config"
    local.mkdir(parents=True)
    project.mkdir(parents=True)
    return [local, project]


@pytest.fixture
def write_credentials(
    config_dirs: list[Path], clean_env
) -> Callable[..., CredentialStore]:
    """Factory writing a credentials.json and returning a store over it.

    Args (of the returned callable):
        data: Config contents (dict) or raw text
        location: 0 for the local directory, 1 for the project directory
        environ: Environment mapping for the store (default: empty)
    """

    def _write(
        data: dict[str, Any] | str | None = None,
        location: int = 0,
        environ: dict[str, str] | None = None,
    ) -> CredentialStore:
        if data is not None:
            text = data if isinstance(data, str) else json.dumps(data)
            (config_dirs[location] / "credentials.json").write_text(text)
        return CredentialStore(config_dirs=config_dirs, environ=environ or {})

    return _write


@pytest.fixture
def empty_store(config_dirs: list[Path]) -> CredentialStore:
    """Store with no config file and an empty environment."""
    return CredentialStore(config_dirs=config_dirs, environ={})


# ─────────────────────────────────────────────────────────────────────────────
# Google API Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def google_service() -> MagicMock:
    """MagicMock standing in for a googleapiclient discovery Resource.

    Chained calls such as service.users().list(...).execute() resolve through
    return_value attributes, so tests set e.g.
    service.users.return_value.list.return_value.execute.return_value.
    """
    return MagicMock()
