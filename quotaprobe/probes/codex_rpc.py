"""Codex app-server rate-limit client.

Runs ``codex app-server`` (JSON-RPC over stdio), performs the handshake and
reads ``account/rateLimits/read``. The loosely-typed reply is decoded once,
here, into RateLimitsResponse; nothing downstream touches raw dicts.

Errors leave this module already translated into the probe taxonomy.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from types import TracebackType
from typing import Any, TypeVar

from quotaprobe import __version__
from quotaprobe.integrations.errors import RunError, TimedOutError
from quotaprobe.integrations.jsonrpc import (
    JSONRPCClient,
    RPCConnectionClosedError,
    RPCResponseError,
)
from quotaprobe.integrations.process import ProcessSession, ProcessTracker
from quotaprobe.probes.errors import (
    ExecutionFailedError,
    ParseFailedError,
    map_run_error,
)
from quotaprobe.probes.models import RateLimitWindow

logger = logging.getLogger(__name__)

# Read-only sandbox and untrusted approval policy: the probe must never let
# the CLI act on the workspace.
CODEX_SANDBOX_ARGS: tuple[str, ...] = ("-s", "read-only", "-a", "untrusted")
RATE_LIMITS_METHOD = "account/rateLimits/read"
FREE_PLAN_TYPE = "free"

T = TypeVar("T")


@dataclass(frozen=True)
class RateLimitsResponse:
    """Decoded ``rateLimits`` object."""

    primary: RateLimitWindow | None
    secondary: RateLimitWindow | None
    plan_type: str | None = None


def format_reset_time(resets_at: float, now: float | None = None) -> str:
    """Describe an epoch-seconds reset time relative to now.

    Returns:
        "Resets soon" if already past, "Resets in Xh Ym" when at least an
        hour away, otherwise "Resets in Ym"
    """
    interval = resets_at - (time.time() if now is None else now)
    if interval <= 0:
        return "Resets soon"

    hours = int(interval // 3600)
    minutes = int((interval % 3600) // 60)
    if hours > 0:
        return f"Resets in {hours}h {minutes}m"
    return f"Resets in {minutes}m"


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def parse_window(value: Any, now: float | None = None) -> RateLimitWindow | None:
    """Decode one rate-limit window; None if absent or malformed."""
    if not isinstance(value, dict):
        return None

    used_percent = value.get("usedPercent")
    if not _is_number(used_percent):
        logger.debug("Rate-limit window without numeric usedPercent: %s", sorted(value))
        return None

    reset_description = None
    resets_at = value.get("resetsAt")
    if _is_number(resets_at):
        reset_description = format_reset_time(float(resets_at), now=now)

    return RateLimitWindow(used_percent=float(used_percent), reset_description=reset_description)


def parse_rate_limits(result: Any, now: float | None = None) -> RateLimitsResponse:
    """Decode the ``result`` of ``account/rateLimits/read``.

    A free plan legitimately reports no windows; it is represented as a
    single zero-used primary window rather than an error.

    Raises:
        ParseFailedError: If rateLimits is missing, or no window is present
            on a non-free plan
    """
    if not isinstance(result, dict):
        raise ParseFailedError("Invalid rate limits response")

    rate_limits = result.get("rateLimits")
    if not isinstance(rate_limits, dict):
        raise ParseFailedError("No rateLimits in response")

    plan_type = rate_limits.get("planType")
    if not isinstance(plan_type, str):
        plan_type = None
    logger.info("Codex plan type: %s", plan_type or "unknown")

    primary = parse_window(rate_limits.get("primary"), now=now)
    secondary = parse_window(rate_limits.get("secondary"), now=now)

    if primary is None and secondary is None:
        if plan_type == FREE_PLAN_TYPE:
            logger.info("Codex free plan - returning unlimited quota")
            return RateLimitsResponse(
                primary=RateLimitWindow(used_percent=0.0, reset_description="Free plan"),
                secondary=None,
                plan_type=plan_type,
            )
        raise ParseFailedError("No rate limits available yet - make some API calls first")

    return RateLimitsResponse(primary=primary, secondary=secondary, plan_type=plan_type)


class CodexRPCClient:
    """Codex app-server session.

    Starting the client starts the server process; shutdown() (or leaving
    the ``with`` block) terminates it. timeout_seconds is one budget for
    the whole session, shared by the handshake and every request.

    Raises (from the constructor):
        CLINotFoundError, ExecutionFailedError: If the server cannot start
    """

    def __init__(
        self,
        binary: str = "codex",
        *,
        timeout_seconds: float = 20.0,
        extra_paths: Sequence[str] = (),
        tracker: ProcessTracker | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self._deadline = time.monotonic() + timeout_seconds
        try:
            session = ProcessSession(
                [binary, *CODEX_SANDBOX_ARGS, "app-server"],
                extra_paths=extra_paths,
                tracker=tracker,
            )
        except RunError as e:
            raise map_run_error(e) from None

        self._rpc = JSONRPCClient(session, timeout_seconds=timeout_seconds, name="Codex app-server")

    def __enter__(self) -> CodexRPCClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.shutdown()

    def initialize(self) -> None:
        """Perform the initialize/initialized handshake."""
        client_info = {"clientInfo": {"name": "quotaprobe", "version": __version__}}
        self._call(
            lambda: self._rpc.initialize(client_info, timeout_seconds=self._remaining())
        )

    def fetch_rate_limits(self) -> RateLimitsResponse:
        """Read and decode the account's rate limits."""
        result = self._call(
            lambda: self._rpc.request(RATE_LIMITS_METHOD, timeout_seconds=self._remaining())
        )
        logger.debug("Codex RPC raw result:\n%s", json.dumps(result, indent=2, default=str))
        return parse_rate_limits(result)

    def shutdown(self) -> None:
        """Terminate the server process (idempotent)."""
        self._rpc.close()

    def _remaining(self) -> float:
        """Seconds left in the session budget.

        Raises:
            TimedOutError: If the budget is already spent
        """
        remaining = self._deadline - time.monotonic()
        if remaining <= 0:
            raise TimedOutError(self.timeout_seconds)
        return remaining

    @staticmethod
    def _call(operation: Callable[[], T]) -> T:
        try:
            return operation()
        except RPCResponseError as e:
            raise ExecutionFailedError(f"RPC error: {e.message}") from None
        except RPCConnectionClosedError:
            raise ExecutionFailedError("Codex app-server closed unexpectedly") from None
        except RunError as e:
            raise map_run_error(e) from None


__all__ = [
    "CODEX_SANDBOX_ARGS",
    "CodexRPCClient",
    "RateLimitsResponse",
    "format_reset_time",
    "parse_rate_limits",
    "parse_window",
]
