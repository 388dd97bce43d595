"""Settings dataclass for QUOTAPROBE configuration.

This module defines the Settings dataclass that holds all configuration
values consumed by the probes: which binary to run, how long to wait for
it, and where to look for it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class Settings:
    """Configuration settings for QUOTAPROBE.

    All settings have sensible defaults and can be loaded from the
    configuration file (~/.quotaprobe-config), a local .quotaprobe file,
    or environment variables.

    Attributes:
        codex_binary: Name or path of the Codex CLI executable
        probe_timeout_seconds: Upper bound for each probe path (RPC or TTY)
        idle_timeout_seconds: Quiet period after which TTY output is considered complete
        extra_search_paths: Additional directories searched before PATH
            (os.pathsep-separated)
    """

    codex_binary: str = "codex"
    probe_timeout_seconds: float = 20.0
    idle_timeout_seconds: float = 3.0
    extra_search_paths: str = ""

    # Config key to attribute mapping
    _key_mapping: dict[str, str] = field(
        default_factory=lambda: {
            "CODEX_BINARY": "codex_binary",
            "PROBE_TIMEOUT_SECONDS": "probe_timeout_seconds",
            "IDLE_TIMEOUT_SECONDS": "idle_timeout_seconds",
            "EXTRA_SEARCH_PATHS": "extra_search_paths",
        },
        repr=False,
    )

    def get_attribute_for_key(self, key: str) -> str | None:
        """Get the attribute name for a config key."""
        return self._key_mapping.get(key)

    def get_key_for_attribute(self, attr: str) -> str | None:
        """Get the config key for an attribute name."""
        for key, value in self._key_mapping.items():
            if value == attr:
                return key
        return None

    @classmethod
    def get_config_keys(cls) -> list[str]:
        """Get list of all valid configuration keys."""
        temp = cls()
        return list(temp._key_mapping.keys())

    def get_extra_search_paths(self) -> tuple[str, ...]:
        """Split extra_search_paths into individual directories.

        Empty entries are dropped and ``~`` is expanded.
        """
        return tuple(
            os.path.expanduser(part.strip())
            for part in self.extra_search_paths.split(os.pathsep)
            if part.strip()
        )


# Default configuration file path
CONFIG_FILE = Path.home() / ".quotaprobe-config"


__all__ = [
    "Settings",
    "CONFIG_FILE",
]
