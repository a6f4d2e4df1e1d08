"""Tests for vaultline.config.display module."""

import io

import pytest
from rich.console import Console

from vaultline.config.display import build_snapshot_table, show_health, show_snapshot
from vaultline.manager import ConfigManager
from vaultline.sources.local import DotEnvSource


def render(renderable) -> str:
    buffer = io.StringIO()
    Console(file=buffer, width=120, color_system=None).print(renderable)
    return buffer.getvalue()


@pytest.fixture
def recording_console(monkeypatch):
    recorder = Console(file=io.StringIO(), width=120, color_system=None, record=True)
    monkeypatch.setattr("vaultline.config.display.console", recorder)
    return recorder


@pytest.fixture
def local_manager(write_env, tmp_path):
    write_env(".env", "APP_MODE=dev\nAPI_SECRET=supersecret\n")
    source = DotEnvSource(root=tmp_path, environ={})
    return ConfigManager(local_source=source)


class TestBuildSnapshotTable:
    """Tests for build_snapshot_table()."""

    def test_sensitive_values_redacted(self):
        output = render(build_snapshot_table({"API_SECRET": "hunter2", "LOG_LEVEL": "debug"}))

        assert "hunter2" not in output
        assert "<REDACTED>" in output
        assert "debug" in output

    def test_reveal_shows_values(self):
        output = render(build_snapshot_table({"API_SECRET": "hunter2"}, reveal=True))

        assert "hunter2" in output

    def test_rows_sorted_by_key(self):
        table = build_snapshot_table({"ZETA": "1", "ALPHA": "2"})

        assert list(table.columns[0].cells) == ["ALPHA", "ZETA"]

    def test_markup_in_values_is_literal(self):
        output = render(build_snapshot_table({"BANNER": "[bold]hi[/bold]"}))

        assert "[bold]hi[/bold]" in output


class TestShowSnapshot:
    """Tests for show_snapshot()."""

    def test_uninitialized_manager_warns(self, tmp_path, capsys):
        manager = ConfigManager(local_source=DotEnvSource(root=tmp_path, environ={}))

        show_snapshot(manager)

        assert "No configuration loaded" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_renders_published_values(self, local_manager, recording_console):
        await local_manager.initialize()

        show_snapshot(local_manager)

        output = recording_console.export_text()
        assert "APP_MODE" in output
        assert "supersecret" not in output
        await local_manager.destroy()


class TestShowHealth:
    """Tests for show_health()."""

    @pytest.mark.asyncio
    async def test_local_only_health(self, local_manager, recording_console):
        await local_manager.initialize()

        show_health(local_manager)

        output = recording_console.export_text()
        assert "healthy" in output
        assert "config_count" in output
        assert "VAULTLINE_ACCESS_TOKEN" in output
        await local_manager.destroy()
