"""PTY session runner for CLIs that only render rich output on a terminal.

Many assistant CLIs print their status screens only when attached to a TTY.
PTYCommandRunner starts the binary under a pseudo-terminal (pexpect), types
one line of input, and collects everything the program draws until it
exits, goes quiet, or the timeout fires.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass

import pexpect

from quotaprobe.integrations.errors import (
    BinaryNotFoundError,
    LaunchFailedError,
    TimedOutError,
)
from quotaprobe.integrations.process import ProcessTracker
from quotaprobe.integrations.search_path import build_environment, which
from quotaprobe.utils.logging import log_command, log_message

logger = logging.getLogger(__name__)

_READ_CHUNK_SIZE = 4096


@dataclass(frozen=True)
class PTYRunOptions:
    """Options for a single PTY run.

    Attributes:
        timeout_seconds: Hard upper bound for the whole run
        idle_timeout_seconds: Quiet period, after some output has arrived,
            that counts as "finished drawing"
        extra_args: Arguments passed to the binary
        extra_paths: Additional directories searched before PATH
        dimensions: Terminal size as (rows, cols); wide enough that status
            lines are not wrapped
    """

    timeout_seconds: float = 20.0
    idle_timeout_seconds: float = 3.0
    extra_args: Sequence[str] = ()
    extra_paths: Sequence[str] = ()
    dimensions: tuple[int, int] = (50, 200)


@dataclass(frozen=True)
class PTYResult:
    """Raw terminal output and exit code of a PTY run.

    exit_code is the negative signal number when the child had to be
    killed (for example after going idle), mirroring subprocess.
    """

    text: str
    exit_code: int


class PTYCommandRunner:
    """Runs a binary under a pseudo-terminal and captures its output."""

    @staticmethod
    def which(binary: str, extra_paths: Sequence[str] = ()) -> str | None:
        """Resolve a binary on the effective search path (no spawn)."""
        return which(binary, extra_paths)

    def run(
        self,
        binary: str,
        send: str = "",
        options: PTYRunOptions | None = None,
        tracker: ProcessTracker | None = None,
    ) -> PTYResult:
        """Start binary in a PTY, send one line, and collect the output.

        Args:
            binary: Executable name or path
            send: Line to type into the terminal; a newline is appended when
                missing. Nothing is written for an empty string.
            options: Run options (defaults to PTYRunOptions())
            tracker: Registry the child's pid is published to while it runs

        Returns:
            PTYResult with the accumulated raw text and exit code

        Raises:
            BinaryNotFoundError: If binary is not on the search path
            LaunchFailedError: If the OS refuses to start the process
            TimedOutError: If the run does not finish within timeout_seconds
        """
        options = options or PTYRunOptions()
        resolved = self.which(binary, options.extra_paths)
        if resolved is None:
            raise BinaryNotFoundError(binary)

        try:
            child = pexpect.spawn(
                resolved,
                list(options.extra_args),
                env=build_environment(options.extra_paths),
                encoding="utf-8",
                codec_errors="replace",
                dimensions=options.dimensions,
                timeout=options.timeout_seconds,
            )
        except (pexpect.ExceptionPexpect, OSError) as e:
            raise LaunchFailedError(f"Failed to start {binary}: {e}") from None

        log_message(f"Started {resolved} in PTY (pid {child.pid})")
        if tracker is not None:
            tracker.add(child.pid)

        try:
            if send:
                child.send(send if send.endswith("\n") else send + "\n")
            text = self._collect_output(child, options)
        finally:
            if tracker is not None:
                tracker.discard(child.pid)
            child.close(force=True)

        exit_code = self._exit_code(child)
        log_command(f"{binary} (pty)", exit_code)
        return PTYResult(text=text, exit_code=exit_code)

    def _collect_output(self, child: pexpect.spawn, options: PTYRunOptions) -> str:
        """Read until EOF, an idle period after output, or the deadline.

        Raises:
            TimedOutError: If the deadline passes first
        """
        chunks: list[str] = []
        deadline = time.monotonic() + options.timeout_seconds

        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning(
                    "PTY run timed out",
                    extra={"timeout_seconds": options.timeout_seconds},
                )
                raise TimedOutError(options.timeout_seconds)

            wait = min(options.idle_timeout_seconds, remaining) if chunks else remaining
            try:
                chunks.append(child.read_nonblocking(size=_READ_CHUNK_SIZE, timeout=wait))
            except pexpect.TIMEOUT:
                if chunks and wait == options.idle_timeout_seconds:
                    logger.debug("PTY output idle, finishing")
                    break
            except pexpect.EOF:
                break

        return "".join(chunks)

    @staticmethod
    def _exit_code(child: pexpect.spawn) -> int:
        if child.exitstatus is not None:
            return int(child.exitstatus)
        if child.signalstatus is not None:
            return -int(child.signalstatus)
        return -1


__all__ = [
    "PTYCommandRunner",
    "PTYResult",
    "PTYRunOptions",
]
