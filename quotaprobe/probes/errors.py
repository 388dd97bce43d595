"""Probe error taxonomy.

Every probe failure surfaces as exactly one of these errors. They carry
only the context a UI needs (a binary name or a free-text reason) and are
raised with ``from None`` so no transport-level cause chain crosses the
probe boundary.

- CLINotFoundError: the CLI is not installed (user must install it)
- ProbeTimeoutError: the CLI did not answer in time (retry next cycle)
- ExecutionFailedError: the CLI ran but failed (retry next cycle)
- ParseFailedError: output had no usable numbers (usually "not ready yet")
- UpdateRequiredError: the CLI asks to be updated (user must update it)
"""

from enum import Enum
from typing import Any, ClassVar

from quotaprobe.integrations.errors import (
    BinaryNotFoundError,
    LaunchFailedError,
    RunError,
    TimedOutError,
)
from quotaprobe.utils.errors import ExitCode, QuotaProbeError


class ProbeErrorKind(Enum):
    """Discriminator for the probe error taxonomy."""

    CLI_NOT_FOUND = "cli_not_found"
    TIMEOUT = "timeout"
    EXECUTION_FAILED = "execution_failed"
    PARSE_FAILED = "parse_failed"
    UPDATE_REQUIRED = "update_required"


class ProbeError(QuotaProbeError):
    """Base class for all probe failures.

    Two probe errors compare equal when they have the same kind and the
    same payload, which lets callers and tests match on values.
    """

    kind: ClassVar[ProbeErrorKind]
    _default_exit_code: ClassVar[ExitCode] = ExitCode.GENERAL_ERROR

    @property
    def retryable(self) -> bool:
        """Whether the next scheduled probe may succeed without user action."""
        return self.kind in (
            ProbeErrorKind.TIMEOUT,
            ProbeErrorKind.EXECUTION_FAILED,
            ProbeErrorKind.PARSE_FAILED,
        )

    @property
    def requires_user_action(self) -> bool:
        """Whether the user must install or update the CLI."""
        return self.kind in (ProbeErrorKind.CLI_NOT_FOUND, ProbeErrorKind.UPDATE_REQUIRED)

    def _payload(self) -> tuple[Any, ...]:
        return ()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProbeError):
            return NotImplemented
        return self.kind is other.kind and self._payload() == other._payload()

    def __hash__(self) -> int:
        return hash((self.kind, self._payload()))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({', '.join(repr(p) for p in self._payload())})"


class CLINotFoundError(ProbeError):
    """The provider's CLI binary is not installed or not on the search path.

    Attributes:
        binary: The binary name that could not be resolved
    """

    kind = ProbeErrorKind.CLI_NOT_FOUND
    _default_exit_code = ExitCode.CLI_NOT_FOUND

    def __init__(self, binary: str) -> None:
        super().__init__(f"{binary} CLI not found. Install it or add it to PATH.")
        self.binary = binary

    def _payload(self) -> tuple[Any, ...]:
        return (self.binary,)


class ProbeTimeoutError(ProbeError):
    """The CLI did not produce a result within the configured timeout."""

    kind = ProbeErrorKind.TIMEOUT
    _default_exit_code = ExitCode.PROBE_TIMEOUT

    def __init__(self) -> None:
        super().__init__("Probe timed out")


class ExecutionFailedError(ProbeError):
    """The CLI could not be run or reported a failure.

    Attributes:
        message: Free-text description of the failure
    """

    kind = ProbeErrorKind.EXECUTION_FAILED
    _default_exit_code = ExitCode.EXECUTION_FAILED

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def _payload(self) -> tuple[Any, ...]:
        return (self.message,)


class ParseFailedError(ProbeError):
    """The CLI's output did not contain usable quota figures.

    Attributes:
        reason: Why parsing failed
    """

    kind = ProbeErrorKind.PARSE_FAILED
    _default_exit_code = ExitCode.PARSE_FAILED

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason

    def _payload(self) -> tuple[Any, ...]:
        return (self.reason,)


class UpdateRequiredError(ProbeError):
    """The CLI refuses to report usage until it is updated."""

    kind = ProbeErrorKind.UPDATE_REQUIRED
    _default_exit_code = ExitCode.UPDATE_REQUIRED

    def __init__(self) -> None:
        super().__init__("CLI update required")


def map_run_error(error: RunError) -> ProbeError:
    """Translate a launcher error into the probe taxonomy (1:1).

    Args:
        error: Error raised by ProcessSession or PTYCommandRunner

    Returns:
        The corresponding ProbeError
    """
    if isinstance(error, BinaryNotFoundError):
        return CLINotFoundError(error.binary)
    if isinstance(error, TimedOutError):
        return ProbeTimeoutError()
    if isinstance(error, LaunchFailedError):
        return ExecutionFailedError(error.message)
    return ExecutionFailedError(str(error))


__all__ = [
    "ProbeErrorKind",
    "ProbeError",
    "CLINotFoundError",
    "ProbeTimeoutError",
    "ExecutionFailedError",
    "ParseFailedError",
    "UpdateRequiredError",
    "map_run_error",
]
