"""Shared pytest fixtures for VAULTLINE tests."""

from collections.abc import Callable
from pathlib import Path

import pytest

from tests.helpers import BASE_URL
from vaultline.config.fetch_config import RemoteSourceConfig, RetryPolicy

# Enable pytest-asyncio for async test support
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture
def write_env(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write an env file into the temporary project root."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.write_text(content)
        return path

    return _write


@pytest.fixture
def fast_retry() -> RetryPolicy:
    """Three attempts without any backoff delay."""
    return RetryPolicy(max_attempts=3, base_delay_seconds=0.0, max_delay_seconds=0.0)


@pytest.fixture
def remote_config() -> RemoteSourceConfig:
    return RemoteSourceConfig(
        access_token="test-token",
        application_name="test-app",
        environment="staging",
    )


@pytest.fixture
def remote_environ() -> dict[str, str]:
    """Process variables that enable the remote source without backoff delays."""
    return {
        "VAULTLINE_ACCESS_TOKEN": "test-token",
        "VAULTLINE_APP_NAME": "test-app",
        "VAULTLINE_BASE_URL": BASE_URL,
        "VAULTLINE_MAX_ATTEMPTS": "2",
        "VAULTLINE_RETRY_BASE_DELAY_SECONDS": "0",
        "VAULTLINE_RETRY_MAX_DELAY_SECONDS": "0",
    }
