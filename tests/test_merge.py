"""Tests for vaultline.merge module."""

from vaultline.merge import merge, merge_layers
from vaultline.models import ConfigSource
from vaultline.sources.local import LocalEnvironment


class TestMergeLayers:
    """Tests for merge_layers()."""

    def test_precedence_file_then_remote_then_process(self):
        merged = merge_layers({"A": "1"}, {"A": "2", "B": "2"}, {"A": "3"})

        assert merged == {"A": "3", "B": "2"}

    def test_remote_overrides_files(self):
        merged = merge_layers({"A": "file", "C": "file"}, {"A": "remote"}, {})

        assert merged == {"A": "remote", "C": "file"}

    def test_local_only_when_remote_is_none(self):
        merged = merge_layers({"A": "file"}, None, {"B": "process"})

        assert merged == {"A": "file", "B": "process"}

    def test_inputs_are_not_mutated(self):
        files = {"A": "1"}
        remote = {"A": "2"}
        process = {"A": "3"}

        merge_layers(files, remote, process)

        assert files == {"A": "1"}
        assert remote == {"A": "2"}
        assert process == {"A": "3"}

    def test_none_values_are_dropped(self):
        merged = merge_layers({"A": "1"}, {"B": None}, {})  # type: ignore[dict-item]

        assert merged == {"A": "1"}


class TestMerge:
    """Tests for merge()."""

    def test_builds_snapshot_with_source(self):
        local = LocalEnvironment(file_values={"A": "1"}, process_values={"A": "3"})

        snapshot = merge({"A": "2", "B": "2"}, local, ConfigSource.REMOTE)

        assert snapshot.to_dict() == {"A": "3", "B": "2"}
        assert snapshot.source is ConfigSource.REMOTE

    def test_local_fallback_snapshot(self):
        local = LocalEnvironment(file_values={"A": "1"})

        snapshot = merge(None, local, ConfigSource.LOCAL_FALLBACK)

        assert snapshot.to_dict() == {"A": "1"}
        assert snapshot.source is ConfigSource.LOCAL_FALLBACK
