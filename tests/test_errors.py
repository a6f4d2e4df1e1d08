"""Tests for vaultline.utils.errors module."""

from vaultline.utils.errors import ExitCode, ManagerNotInitializedError, VaultlineError


class TestExitCode:
    """Tests for ExitCode enum."""

    def test_exit_code_values(self):
        assert ExitCode.SUCCESS == 0
        assert ExitCode.GENERAL_ERROR == 1
        assert ExitCode.CONFIG_INVALID == 2
        assert ExitCode.REMOTE_UNAVAILABLE == 3
        assert ExitCode.NOT_INITIALIZED == 4

    def test_exit_code_is_int(self):
        """Exit codes should be usable as integers."""
        assert int(ExitCode.CONFIG_INVALID) == 2


class TestVaultlineError:
    """Tests for base VaultlineError exception."""

    def test_default_exit_code(self):
        error = VaultlineError("Test error")
        assert error.exit_code == ExitCode.GENERAL_ERROR

    def test_custom_exit_code(self):
        """Can override exit code in constructor."""
        error = VaultlineError("Test error", exit_code=ExitCode.REMOTE_UNAVAILABLE)
        assert error.exit_code == ExitCode.REMOTE_UNAVAILABLE

    def test_message(self):
        error = VaultlineError("Test error message")
        assert str(error) == "Test error message"


class TestManagerNotInitializedError:
    """Tests for ManagerNotInitializedError exception."""

    def test_default_message(self):
        error = ManagerNotInitializedError()
        assert "initialize()" in str(error)

    def test_exit_code(self):
        error = ManagerNotInitializedError()
        assert error.exit_code == ExitCode.NOT_INITIALIZED

    def test_inherits_from_vaultline_error(self):
        assert isinstance(ManagerNotInitializedError(), VaultlineError)
