"""Usage probes for AI assistant CLIs.

This package contains:
- models: UsageQuota / UsageSnapshot data model
- errors: ProbeError taxonomy
- text: ANSI stripping and status-screen extraction
- base: UsageProbe protocol and RPC-then-TTY orchestration
- codex_rpc: Codex app-server rate-limit client
- codex: CodexUsageProbe
"""

from quotaprobe.probes.base import (
    BaseUsageProbe,
    ProbeAttempt,
    ProbeState,
    UsageProbe,
    probe_all,
)
from quotaprobe.probes.codex import CODEX_PROVIDER_ID, CodexUsageProbe
from quotaprobe.probes.errors import (
    CLINotFoundError,
    ExecutionFailedError,
    ParseFailedError,
    ProbeError,
    ProbeErrorKind,
    ProbeTimeoutError,
    UpdateRequiredError,
    map_run_error,
)
from quotaprobe.probes.models import QuotaType, RateLimitWindow, UsageQuota, UsageSnapshot

__all__ = [
    # Base
    "BaseUsageProbe",
    "ProbeAttempt",
    "ProbeState",
    "UsageProbe",
    "probe_all",
    # Codex
    "CODEX_PROVIDER_ID",
    "CodexUsageProbe",
    # Errors
    "ProbeError",
    "ProbeErrorKind",
    "CLINotFoundError",
    "ProbeTimeoutError",
    "ExecutionFailedError",
    "ParseFailedError",
    "UpdateRequiredError",
    "map_run_error",
    # Models
    "QuotaType",
    "RateLimitWindow",
    "UsageQuota",
    "UsageSnapshot",
]
