"""Tests for quotaprobe.utils.errors and quotaprobe.integrations.errors."""

from quotaprobe.integrations.errors import (
    BinaryNotFoundError,
    LaunchFailedError,
    RunError,
    TimedOutError,
)
from quotaprobe.utils.errors import ExitCode, QuotaProbeError


class TestExitCode:
    """Tests for ExitCode enum."""

    def test_values(self):
        assert ExitCode.SUCCESS == 0
        assert ExitCode.GENERAL_ERROR == 1
        assert ExitCode.CLI_NOT_FOUND == 2
        assert ExitCode.PROBE_TIMEOUT == 3
        assert ExitCode.EXECUTION_FAILED == 4
        assert ExitCode.PARSE_FAILED == 5
        assert ExitCode.UPDATE_REQUIRED == 6


class TestQuotaProbeError:
    """Tests for QuotaProbeError base exception."""

    def test_default_exit_code(self):
        assert QuotaProbeError("x").exit_code == ExitCode.GENERAL_ERROR

    def test_custom_exit_code(self):
        error = QuotaProbeError("x", exit_code=ExitCode.PARSE_FAILED)
        assert error.exit_code == ExitCode.PARSE_FAILED


class TestRunErrors:
    """Tests for launcher error types."""

    def test_hierarchy(self):
        for error in (BinaryNotFoundError("codex"), TimedOutError(), LaunchFailedError("x")):
            assert isinstance(error, RunError)

    def test_binary_not_found(self):
        error = BinaryNotFoundError("codex")
        assert error.binary == "codex"
        assert "codex" in str(error)

    def test_timed_out_message(self):
        assert str(TimedOutError()) == "Process timed out"
        assert str(TimedOutError(2.5)) == "Process timed out after 2.5s"
        assert TimedOutError(2.5).timeout_seconds == 2.5

    def test_launch_failed(self):
        assert LaunchFailedError("denied").message == "denied"
