"""Process launcher errors.

Transport-level error types raised by the process launcher and the PTY
runner. They never leave the probe layer: probes translate them into the
ProbeError taxonomy with quotaprobe.probes.errors.map_run_error().
"""


class RunError(Exception):
    """Base exception for launcher failures."""

    pass


class BinaryNotFoundError(RunError):
    """Raised when the executable cannot be resolved on the search path.

    Attributes:
        binary: The binary name that was looked up
    """

    def __init__(self, binary: str) -> None:
        super().__init__(f"Binary not found on search path: {binary}")
        self.binary = binary


class TimedOutError(RunError):
    """Raised when no completion signal arrives within the timeout.

    Attributes:
        timeout_seconds: The timeout duration that was exceeded (if known)
    """

    def __init__(self, timeout_seconds: float | None = None) -> None:
        if timeout_seconds is None:
            message = "Process timed out"
        else:
            message = f"Process timed out after {timeout_seconds}s"
        super().__init__(message)
        self.timeout_seconds = timeout_seconds


class LaunchFailedError(RunError):
    """Raised when the OS refuses to start the process.

    Attributes:
        message: Description of the OS-level failure
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


__all__ = [
    "RunError",
    "BinaryNotFoundError",
    "TimedOutError",
    "LaunchFailedError",
]
