"""Codex CLI usage probe.

Reads the 5-hour session limit and the weekly limit of the Codex CLI,
first through ``codex app-server`` and, if that fails, by typing
``/status`` into an interactive Codex session and scraping the screen.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from quotaprobe.config.settings import Settings
from quotaprobe.integrations.pty_runner import PTYCommandRunner, PTYRunOptions
from quotaprobe.probes.base import BaseUsageProbe
from quotaprobe.probes.codex_rpc import CODEX_SANDBOX_ARGS, CodexRPCClient
from quotaprobe.probes.errors import ParseFailedError
from quotaprobe.probes.models import QuotaType, UsageQuota, UsageSnapshot
from quotaprobe.probes.text import (
    extract_known_error,
    extract_percent,
    strip_control_sequences,
)

logger = logging.getLogger(__name__)

CODEX_PROVIDER_ID = "codex"
STATUS_COMMAND = "/status\n"

# Status screen labels, in display order
_STATUS_LABELS: tuple[tuple[str, QuotaType], ...] = (
    ("5h limit", QuotaType.SESSION),
    ("Weekly limit", QuotaType.WEEKLY),
)


class CodexUsageProbe(BaseUsageProbe):
    """Usage probe for the Codex CLI.

    Attributes:
        idle_timeout_seconds: Quiet period that ends the TTY capture
    """

    def __init__(
        self,
        codex_binary: str = "codex",
        timeout_seconds: float = 20.0,
        idle_timeout_seconds: float = 3.0,
        extra_paths: Sequence[str] = (),
    ) -> None:
        super().__init__(codex_binary, timeout_seconds=timeout_seconds, extra_paths=extra_paths)
        self.idle_timeout_seconds = idle_timeout_seconds
        self._runner = PTYCommandRunner()

    @classmethod
    def from_settings(cls, settings: Settings) -> CodexUsageProbe:
        """Create a probe from loaded configuration."""
        return cls(
            codex_binary=settings.codex_binary,
            timeout_seconds=settings.probe_timeout_seconds,
            idle_timeout_seconds=settings.idle_timeout_seconds,
            extra_paths=settings.get_extra_search_paths(),
        )

    @property
    def provider_id(self) -> str:
        return CODEX_PROVIDER_ID

    def _probe_via_rpc(self) -> UsageSnapshot:
        with CodexRPCClient(
            self.binary,
            timeout_seconds=self.timeout_seconds,
            extra_paths=self.extra_paths,
            tracker=self._tracker,
        ) as client:
            client.initialize()
            limits = client.fetch_rate_limits()

        quotas: list[UsageQuota] = []
        if limits.primary is not None:
            quotas.append(limits.primary.to_quota(QuotaType.SESSION, self.provider_id))
        if limits.secondary is not None:
            quotas.append(limits.secondary.to_quota(QuotaType.WEEKLY, self.provider_id))

        if not quotas:
            raise ParseFailedError("No rate limits found")

        return UsageSnapshot(provider_id=self.provider_id, quotas=tuple(quotas))

    def _probe_via_tty(self) -> UsageSnapshot:
        result = self._runner.run(
            self.binary,
            STATUS_COMMAND,
            PTYRunOptions(
                timeout_seconds=self.timeout_seconds,
                idle_timeout_seconds=self.idle_timeout_seconds,
                extra_args=CODEX_SANDBOX_ARGS,
                extra_paths=self.extra_paths,
            ),
            tracker=self._tracker,
        )
        logger.debug("Codex TTY raw output (exit %d):\n%s", result.exit_code, result.text)
        return self.parse(result.text)

    @staticmethod
    def parse(text: str) -> UsageSnapshot:
        """Parse a Codex ``/status`` screen into a snapshot.

        Known error screens are recognized before any figure is read, so a
        screen that says "update available" never yields stale numbers.

        Raises:
            ParseFailedError: If no limit figure is present
            UpdateRequiredError: If Codex asks to be updated
        """
        clean = strip_control_sequences(text)

        error = extract_known_error(clean, cli_name=CODEX_PROVIDER_ID)
        if error is not None:
            raise error

        quotas = [
            UsageQuota(
                percent_remaining=float(pct),
                quota_type=quota_type,
                provider_id=CODEX_PROVIDER_ID,
            )
            for label, quota_type in _STATUS_LABELS
            if (pct := extract_percent(label, clean)) is not None
        ]

        if not quotas:
            raise ParseFailedError("Could not find usage limits in Codex output")

        return UsageSnapshot(provider_id=CODEX_PROVIDER_ID, quotas=tuple(quotas))


__all__ = [
    "CODEX_PROVIDER_ID",
    "CodexUsageProbe",
]
