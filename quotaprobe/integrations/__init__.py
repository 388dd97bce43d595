"""Process-level integrations for QUOTAPROBE.

This package contains the transport layer the probes are built on:
- search_path: effective PATH and binary lookup
- process: scoped subprocess session over stdio pipes
- pty_runner: pseudo-terminal session runner
- jsonrpc: line-delimited JSON-RPC client
- errors: launcher error vocabulary
"""

from quotaprobe.integrations.errors import (
    BinaryNotFoundError,
    LaunchFailedError,
    RunError,
    TimedOutError,
)
from quotaprobe.integrations.jsonrpc import (
    JSONRPCClient,
    RPCConnectionClosedError,
    RPCError,
    RPCResponseError,
)
from quotaprobe.integrations.process import ProcessSession, ProcessTracker
from quotaprobe.integrations.pty_runner import PTYCommandRunner, PTYResult, PTYRunOptions
from quotaprobe.integrations.search_path import build_environment, build_search_path, which

__all__ = [
    # Errors
    "RunError",
    "BinaryNotFoundError",
    "LaunchFailedError",
    "TimedOutError",
    # JSON-RPC
    "JSONRPCClient",
    "RPCError",
    "RPCConnectionClosedError",
    "RPCResponseError",
    # Process
    "ProcessSession",
    "ProcessTracker",
    "PTYCommandRunner",
    "PTYResult",
    "PTYRunOptions",
    # Search path
    "build_environment",
    "build_search_path",
    "which",
]
