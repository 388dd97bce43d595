"""Process launcher: a scoped subprocess session over stdio pipes.

ProcessSession owns exactly one OS process and its pipe handles.
Constructing it starts the process; close() is the single teardown that
terminates the process, reaps it and closes the pipes. Use it as a context
manager so teardown runs on success, error and timeout alike.

Reads are done with a selector on the stdout descriptor, so every read is
bounded by the caller's timeout and no reader thread can outlive the
session.
"""

from __future__ import annotations

import logging
import os
import selectors
import signal
import subprocess
import threading
import time
from collections.abc import Iterable, Sequence
from types import TracebackType

from quotaprobe.integrations.errors import (
    BinaryNotFoundError,
    LaunchFailedError,
    TimedOutError,
)
from quotaprobe.integrations.search_path import build_environment, which
from quotaprobe.utils.logging import log_command, log_message

logger = logging.getLogger(__name__)

_READ_CHUNK_SIZE = 65536


class ProcessTracker:
    """Thread-safe registry of child pids that can be killed from any thread.

    Owners add a pid right after spawning and discard it before reaping, so
    a pid held here always belongs to an unreaped child. After kill_all(),
    pids added later are killed as soon as they arrive.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pids: set[int] = set()
        self._killed = False

    @property
    def killed(self) -> bool:
        """Whether kill_all() has been called since the last reset()."""
        return self._killed

    def add(self, pid: int) -> None:
        with self._lock:
            self._pids.add(pid)
            if self._killed:
                _kill(pid)

    def discard(self, pid: int) -> None:
        with self._lock:
            self._pids.discard(pid)

    def kill_all(self) -> None:
        """SIGKILL every tracked process and every one added from now on."""
        with self._lock:
            self._killed = True
            for pid in self._pids:
                _kill(pid)

    def reset(self) -> None:
        """Forget an earlier kill_all() before a new run."""
        with self._lock:
            self._killed = False


def _kill(pid: int) -> None:
    try:
        os.kill(pid, signal.SIGKILL)
    except ProcessLookupError:
        logger.debug("Process %d already gone", pid)
    else:
        log_message(f"Killed process {pid}")


class ProcessSession:
    """A running subprocess with line-oriented stdin/stdout.

    stderr is discarded: CLIs in server mode log there and it is never part
    of the protocol.

    Attributes:
        argv: The resolved command line the process was started with
    """

    TERMINATE_GRACE_SECONDS = 5.0

    def __init__(
        self,
        command: Sequence[str],
        *,
        extra_paths: Iterable[str] = (),
        tracker: ProcessTracker | None = None,
    ) -> None:
        """Resolve the binary and start the process.

        Args:
            command: Binary name followed by its arguments
            extra_paths: Additional directories searched before PATH
            tracker: Registry the running pid is published to, so another
                thread can kill the process

        Raises:
            BinaryNotFoundError: If the binary is not on the search path
            LaunchFailedError: If the OS refuses to start the process
        """
        if not command:
            raise ValueError("command must not be empty")

        extra_paths = tuple(extra_paths)
        binary = command[0]
        resolved = which(binary, extra_paths)
        if resolved is None:
            raise BinaryNotFoundError(binary)

        self.argv = [resolved, *command[1:]]
        self._binary = binary
        self._buffer = b""
        self._eof = False
        self._closed = False
        self._tracker = tracker

        try:
            self._process = subprocess.Popen(
                self.argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                env=build_environment(extra_paths),
            )
        except OSError as e:
            raise LaunchFailedError(f"Failed to start {binary}: {e}") from None

        self._selector = selectors.DefaultSelector()
        if self._process.stdout is not None:
            self._selector.register(self._process.stdout, selectors.EVENT_READ)
        if tracker is not None:
            tracker.add(self._process.pid)

        log_message(f"Started {' '.join(self.argv)} (pid {self._process.pid})")

    def __enter__(self) -> ProcessSession:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def pid(self) -> int:
        """OS process id."""
        return self._process.pid

    @property
    def is_running(self) -> bool:
        """Whether the process has not exited yet."""
        return self._process.poll() is None

    @property
    def returncode(self) -> int | None:
        """Exit code once the process has exited, else None."""
        return self._process.poll()

    def write_line(self, text: str) -> None:
        """Write one newline-terminated UTF-8 line to the process stdin.

        Raises:
            BrokenPipeError: If the process has closed its stdin
            ValueError: If the session is already closed
        """
        stdin = self._process.stdin
        if self._closed or stdin is None or stdin.closed:
            raise ValueError("write to closed process session")
        stdin.write(text.encode("utf-8") + b"\n")
        stdin.flush()

    def read_line(self, timeout_seconds: float) -> str | None:
        """Read the next line from stdout, without the line terminator.

        Args:
            timeout_seconds: Maximum time to wait for a complete line

        Returns:
            The decoded line, or None once stdout has closed

        Raises:
            TimedOutError: If no complete line arrives within the timeout
        """
        deadline = time.monotonic() + timeout_seconds

        while True:
            newline = self._buffer.find(b"\n")
            if newline >= 0:
                raw, self._buffer = self._buffer[:newline], self._buffer[newline + 1 :]
                return raw.rstrip(b"\r").decode("utf-8", errors="replace")

            if self._eof or self._closed:
                if self._buffer:
                    raw, self._buffer = self._buffer, b""
                    return raw.rstrip(b"\r").decode("utf-8", errors="replace")
                return None

            remaining = deadline - time.monotonic()
            if remaining <= 0 or not self._selector.select(timeout=remaining):
                raise TimedOutError(timeout_seconds)

            chunk = os.read(self._process.stdout.fileno(), _READ_CHUNK_SIZE)  # type: ignore[union-attr]
            if chunk:
                self._buffer += chunk
            else:
                self._eof = True

    def close(self) -> None:
        """Terminate the process and release its pipes.

        Idempotent, and safe to call after the process has already exited.
        stdin is closed first so well-behaved servers can exit on EOF; a
        process still running after that gets SIGTERM, then SIGKILL.
        """
        if self._closed:
            return
        self._closed = True

        process = self._process
        if self._tracker is not None:
            self._tracker.discard(process.pid)
        if process.stdin is not None and not process.stdin.closed:
            try:
                process.stdin.close()
            except BrokenPipeError:
                logger.debug("stdin of %s already closed by the child", self._binary)

        if process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=self.TERMINATE_GRACE_SECONDS)
            except subprocess.TimeoutExpired:
                logger.warning("Process did not terminate, sending SIGKILL")
                process.kill()
                process.wait()

        self._selector.close()
        if process.stdout is not None:
            process.stdout.close()

        log_command(self._binary, process.returncode if process.returncode is not None else -1)


__all__ = [
    "ProcessSession",
    "ProcessTracker",
]
