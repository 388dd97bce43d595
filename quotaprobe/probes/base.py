"""Usage probe protocol and the RPC-then-TTY fallback orchestration.

This module defines:
- UsageProbe: Protocol every provider probe satisfies
- ProbeAttempt: Tagged success/failure result of one probe path
- BaseUsageProbe: Abstract base running the two-path state machine
- probe_all: Concurrent probing of several providers

State machine::

    idle -> probing_rpc -> succeeded
                        -> probing_tty -> succeeded
                                       -> failed

The RPC path is tried first. Any RPC failure falls through to the TTY
path, and only the TTY path's error is ever reported.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable

from quotaprobe.integrations.errors import RunError
from quotaprobe.integrations.process import ProcessSession, ProcessTracker
from quotaprobe.integrations.search_path import which
from quotaprobe.probes.errors import (
    ExecutionFailedError,
    ProbeError,
    ProbeTimeoutError,
    map_run_error,
)
from quotaprobe.probes.models import UsageSnapshot
from quotaprobe.utils.logging import log_message, log_probe_metadata

logger = logging.getLogger(__name__)

# Headroom for the asyncio safety net on top of the two sequential paths
_SAFETY_MARGIN_SECONDS = 10.0

# How long a timed-out probe waits for its worker to reap killed processes
_TEARDOWN_SECONDS = 5.0


@runtime_checkable
class UsageProbe(Protocol):
    """Protocol for provider usage probes.

    Example:
        >>> async def refresh(probe: UsageProbe) -> UsageSnapshot | None:
        ...     if not probe.is_available():
        ...         return None
        ...     return await probe.probe()
    """

    @property
    def provider_id(self) -> str:
        """Provider identifier, e.g. "codex"."""
        ...

    def is_available(self) -> bool:
        """Whether the provider's CLI is installed (no process is spawned)."""
        ...

    async def probe(self) -> UsageSnapshot:
        """Capture a fresh snapshot.

        Raises:
            ProbeError: On any failure
        """
        ...


class ProbeState(Enum):
    """Where a probe is in its fallback state machine."""

    IDLE = "idle"
    PROBING_RPC = "probing_rpc"
    PROBING_TTY = "probing_tty"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class ProbeAttempt:
    """Outcome of one probe path: exactly one of snapshot or error is set."""

    path: str
    snapshot: UsageSnapshot | None = None
    error: ProbeError | None = None

    @property
    def succeeded(self) -> bool:
        return self.snapshot is not None

    @classmethod
    def run(cls, path: str, operation: Callable[[], UsageSnapshot]) -> ProbeAttempt:
        """Run one probe path and capture its outcome as a value.

        Launcher errors are mapped into the probe taxonomy; anything else
        unexpected becomes ExecutionFailedError so no raw error escapes.
        """
        try:
            return cls(path=path, snapshot=operation())
        except ProbeError as e:
            return cls(path=path, error=e)
        except RunError as e:
            return cls(path=path, error=map_run_error(e))
        except Exception as e:
            logger.exception("Unexpected error in %s probe path", path)
            return cls(path=path, error=ExecutionFailedError(f"Unexpected error: {e}"))


class BaseUsageProbe(ABC):
    """Abstract base class with the shared fallback orchestration.

    Subclasses provide the provider identity and the two paths,
    _probe_via_rpc() and _probe_via_tty(). Providers without an RPC mode
    set supports_rpc to False and go straight to the TTY path.

    Attributes:
        binary: CLI executable name or path
        timeout_seconds: Upper bound for each path
        extra_paths: Additional directories searched before PATH
    """

    supports_rpc: bool = True

    def __init__(
        self,
        binary: str,
        *,
        timeout_seconds: float = 20.0,
        extra_paths: Sequence[str] = (),
    ) -> None:
        self.binary = binary
        self.timeout_seconds = timeout_seconds
        self.extra_paths = tuple(extra_paths)
        self._state = ProbeState.IDLE
        self._tracker = ProcessTracker()

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Provider identifier, e.g. "codex"."""
        ...

    @property
    def state(self) -> ProbeState:
        """Current state of the most recent probe run."""
        return self._state

    map_run_error = staticmethod(map_run_error)

    def is_available(self) -> bool:
        """Resolve the binary on the effective search path (no spawn)."""
        return which(self.binary, self.extra_paths) is not None

    @property
    def safety_timeout_seconds(self) -> float:
        """Bound for a whole async probe.

        Each path has one timeout_seconds budget, and the RPC session may
        then spend a termination grace period shutting its server down.
        """
        return (
            2 * self.timeout_seconds
            + ProcessSession.TERMINATE_GRACE_SECONDS
            + _SAFETY_MARGIN_SECONDS
        )

    def cancel(self) -> None:
        """Kill any process this probe is running and skip the remaining path.

        Safe to call from any thread. The interrupted path fails and the
        probe raises ProbeTimeoutError.
        """
        self._tracker.kill_all()

    async def probe(self) -> UsageSnapshot:
        """Capture a snapshot without blocking the event loop.

        The blocking state machine runs on the default executor. Each path
        enforces its own timeout at the process level; asyncio.wait_for is
        a safety net. When it fires, or the calling task is cancelled, the
        probe's processes are killed rather than left to the worker thread.

        Raises:
            ProbeError: On any failure
        """
        safety_timeout = self.safety_timeout_seconds
        self._tracker.reset()
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self._run_paths)
        future.add_done_callback(_consume_exception)
        try:
            return await asyncio.wait_for(asyncio.shield(future), timeout=safety_timeout)
        except TimeoutError:
            logger.error("%s probe exceeded safety timeout of %.1fs", self.provider_id, safety_timeout)
            self.cancel()
            await asyncio.wait({future}, timeout=_TEARDOWN_SECONDS)
            self._state = ProbeState.FAILED
            raise ProbeTimeoutError() from None
        except asyncio.CancelledError:
            self.cancel()
            raise

    def probe_sync(self) -> UsageSnapshot:
        """Run the RPC path, then the TTY path if RPC failed.

        Raises:
            ProbeError: The TTY path's error when both paths fail
        """
        self._tracker.reset()
        return self._run_paths()

    def _run_paths(self) -> UsageSnapshot:
        log_message(f"Starting {self.provider_id} probe")

        if self.supports_rpc:
            self._state = ProbeState.PROBING_RPC
            log_probe_metadata(self.provider_id, path="rpc", timeout=self.timeout_seconds)
            rpc = ProbeAttempt.run("rpc", self._probe_via_rpc)
            if rpc.succeeded:
                return self._finish(rpc)
            logger.warning(
                "%s RPC failed: %s, trying TTY fallback...",
                self.provider_id,
                rpc.error,
            )

        if self._tracker.killed:
            self._state = ProbeState.FAILED
            raise ProbeTimeoutError()

        self._state = ProbeState.PROBING_TTY
        log_probe_metadata(self.provider_id, path="tty", timeout=self.timeout_seconds)
        tty = ProbeAttempt.run("tty", self._probe_via_tty)
        if tty.succeeded:
            return self._finish(tty)

        self._state = ProbeState.FAILED
        error = tty.error
        if error is None:
            raise ExecutionFailedError("TTY probe returned neither snapshot nor error")
        if self._tracker.killed:
            error = ProbeTimeoutError()
        log_message(f"{self.provider_id} probe failed: {error!r}")
        raise error

    def _finish(self, attempt: ProbeAttempt) -> UsageSnapshot:
        snapshot = attempt.snapshot
        if snapshot is None:
            raise ExecutionFailedError(f"{attempt.path} probe finished without a snapshot")
        self._state = ProbeState.SUCCEEDED
        log_message(
            f"{self.provider_id} {attempt.path.upper()} probe success: "
            f"{len(snapshot.quotas)} quotas found"
        )
        for quota in snapshot.quotas:
            log_message(
                f"  - {quota.quota_type.display_name}: {int(quota.percent_remaining)}% remaining"
            )
        return snapshot

    @abstractmethod
    def _probe_via_rpc(self) -> UsageSnapshot:
        """Structured path. Raise ProbeError on failure."""
        ...

    @abstractmethod
    def _probe_via_tty(self) -> UsageSnapshot:
        """Interactive-terminal path. Raise ProbeError on failure."""
        ...


def _consume_exception(future: asyncio.Future[UsageSnapshot]) -> None:
    # Abandoned workers still finish with an error; mark it retrieved
    if not future.cancelled():
        future.exception()


async def probe_all(probes: Iterable[UsageProbe]) -> list[UsageSnapshot | ProbeError]:
    """Probe several providers concurrently.

    Returns:
        One entry per probe, in input order: its snapshot, or its ProbeError
    """
    results = await asyncio.gather(*(p.probe() for p in probes), return_exceptions=True)

    outcomes: list[UsageSnapshot | ProbeError] = []
    for result in results:
        if isinstance(result, UsageSnapshot | ProbeError):
            outcomes.append(result)
        else:
            raise result
    return outcomes


__all__ = [
    "BaseUsageProbe",
    "ProbeAttempt",
    "ProbeState",
    "UsageProbe",
    "probe_all",
]
