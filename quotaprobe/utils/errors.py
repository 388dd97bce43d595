"""Base exception and exit codes for QUOTAPROBE.

This module defines the exit codes and the root of the exception hierarchy
used throughout the application. Probe-specific error types live in
quotaprobe.probes.errors and inherit from QuotaProbeError.
"""

from enum import IntEnum
from typing import ClassVar


class ExitCode(IntEnum):
    """Exit codes reported by the command-line entry point.

    One code per probe failure kind so calling scripts can tell an
    install/update problem from a transient one.
    """

    SUCCESS = 0
    GENERAL_ERROR = 1
    CLI_NOT_FOUND = 2
    PROBE_TIMEOUT = 3
    EXECUTION_FAILED = 4
    PARSE_FAILED = 5
    UPDATE_REQUIRED = 6


class QuotaProbeError(Exception):
    """Base exception for QUOTAPROBE errors.

    All custom exceptions in this application should inherit from this class.
    Each exception type has an associated exit code for proper error reporting.
    """

    _default_exit_code: ClassVar[ExitCode] = ExitCode.GENERAL_ERROR

    def __init__(self, message: str, exit_code: ExitCode | None = None) -> None:
        """Initialize the exception."""
        super().__init__(message)
        self._exit_code = exit_code

    @property
    def exit_code(self) -> ExitCode:
        """Get the exit code for this exception."""
        if self._exit_code is not None:
            return self._exit_code
        return self.__class__._default_exit_code


__all__ = [
    "ExitCode",
    "QuotaProbeError",
]
