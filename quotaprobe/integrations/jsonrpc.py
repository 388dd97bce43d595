"""Line-delimited JSON-RPC 2.0 client over a subprocess's stdio.

Framing is one JSON object per line in both directions. Requests carry
``id``, ``method`` and ``params``; notifications carry only ``method`` and
``params`` and never get a reply.

The client keeps exactly one request outstanding. While waiting for a
reply it skips everything that is not that reply: notifications, replies
to other ids, and lines that are not JSON objects (some servers interleave
their own log output with protocol frames).
"""

from __future__ import annotations

import json
import logging
import threading
import time
from types import TracebackType
from typing import Any

from quotaprobe.integrations.errors import TimedOutError
from quotaprobe.integrations.process import ProcessSession

logger = logging.getLogger(__name__)


class RPCError(Exception):
    """Base exception for JSON-RPC failures."""

    pass


class RPCConnectionClosedError(RPCError):
    """Raised when the server's stream closes before the reply arrives."""

    pass


class RPCResponseError(RPCError):
    """Raised when the reply carries an ``error.message``.

    Attributes:
        message: The server-provided error message
        code: The JSON-RPC error code, if present
    """

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class JSONRPCClient:
    """Serial JSON-RPC client bound to one ProcessSession.

    Attributes:
        name: Human-readable server name used in error messages
        timeout_seconds: Upper bound for each request's round trip
    """

    def __init__(
        self,
        session: ProcessSession,
        *,
        timeout_seconds: float,
        name: str = "JSON-RPC server",
    ) -> None:
        self._session = session
        self.timeout_seconds = timeout_seconds
        self.name = name
        self._next_id = 1
        self._lock = threading.Lock()

    def __enter__(self) -> JSONRPCClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def initialize(
        self,
        params: dict[str, Any] | None = None,
        *,
        timeout_seconds: float | None = None,
    ) -> Any:
        """Perform the handshake: ``initialize`` then ``initialized``.

        Returns:
            The ``result`` of the initialize request
        """
        result = self.request("initialize", params, timeout_seconds=timeout_seconds)
        self.notify("initialized")
        return result

    def request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        *,
        timeout_seconds: float | None = None,
    ) -> Any:
        """Send a request and block until its reply arrives.

        Args:
            method: JSON-RPC method name
            params: Request parameters (an empty object when omitted)
            timeout_seconds: Bound for this round trip (defaults to the
                client's timeout_seconds)

        Returns:
            The ``result`` member of the reply (None if absent)

        Raises:
            RPCResponseError: If the reply carries an error message
            RPCConnectionClosedError: If the stream closes first
            TimedOutError: If the reply does not arrive within the timeout
        """
        if timeout_seconds is None:
            timeout_seconds = self.timeout_seconds

        with self._lock:
            request_id = self._next_id
            self._next_id += 1

            self._send({"id": request_id, "method": method, "params": params or {}})
            message = self._read_reply(request_id, timeout_seconds)

        error = message.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            code = error.get("code")
            raise RPCResponseError(error["message"], code=code if isinstance(code, int) else None)

        return message.get("result")

    def notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Send a notification (no id, no reply)."""
        self._send({"method": method, "params": params or {}})

    def close(self) -> None:
        """Shut down the underlying process session (idempotent)."""
        self._session.close()

    def _send(self, payload: dict[str, Any]) -> None:
        try:
            self._session.write_line(json.dumps(payload, separators=(",", ":")))
        except (OSError, ValueError) as e:
            raise RPCConnectionClosedError(f"{self.name} closed its input: {e}") from None

    def _read_reply(self, request_id: int, timeout_seconds: float) -> dict[str, Any]:
        deadline = time.monotonic() + timeout_seconds

        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TimedOutError(timeout_seconds)

            line = self._session.read_line(remaining)
            if line is None:
                raise RPCConnectionClosedError(f"{self.name} closed unexpectedly")

            message = _decode_message(line)
            if message is None:
                continue

            message_id = message.get("id")
            if message_id is None:
                logger.debug("Skipping notification %s", message.get("method"))
                continue
            if message_id != request_id or isinstance(message_id, bool):
                logger.debug("Discarding reply for id %r (waiting for %d)", message_id, request_id)
                continue

            return message


def _decode_message(line: str) -> dict[str, Any] | None:
    """Parse one inbound line; None for blank lines and non-object JSON."""
    line = line.strip()
    if not line:
        return None
    try:
        message = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(message, dict):
        return None
    return message


__all__ = [
    "JSONRPCClient",
    "RPCConnectionClosedError",
    "RPCError",
    "RPCResponseError",
]
