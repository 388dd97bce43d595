"""Configuration manager for QUOTAPROBE.

This module provides the ConfigManager class for loading configuration
values with a cascading hierarchy:

    1. Environment Variables (highest priority)
    2. Local Config (.quotaprobe in project/parent directories)
    3. Global Config (~/.quotaprobe-config)
    4. Built-in Defaults (lowest priority)
"""

from __future__ import annotations

import logging
import math
import os
import re
from pathlib import Path

from quotaprobe.config.settings import CONFIG_FILE, Settings
from quotaprobe.utils.console import console, print_header, print_info
from quotaprobe.utils.logging import log_message

logger = logging.getLogger(__name__)


class ConfigManager:
    """Loads configuration with a cascading hierarchy.

    Configuration Precedence (highest to lowest):
    1. Environment Variables - CI/CD, temporary overrides
    2. Local Config (.quotaprobe) - Project-specific settings
    3. Global Config (~/.quotaprobe-config) - User defaults
    4. Built-in Defaults - Fallback values

    Files are parsed line by line (no eval/exec); only KEY=VALUE,
    KEY="VALUE" and KEY='VALUE' lines are read.

    Attributes:
        settings: Current settings instance
        global_config_path: Path to global ~/.quotaprobe-config file
        local_config_path: Path to discovered local .quotaprobe file (after load)
    """

    LOCAL_CONFIG_NAME = ".quotaprobe"

    def __init__(self, global_config_path: Path | None = None) -> None:
        """Initialize the configuration manager.

        Args:
            global_config_path: Optional custom path to global config file.
                                Defaults to ~/.quotaprobe-config.
        """
        self.global_config_path = global_config_path or CONFIG_FILE
        self.local_config_path: Path | None = None
        self.settings = Settings()
        self._raw_values: dict[str, str] = {}
        self._config_sources: dict[str, str] = {}

    def load(self) -> Settings:
        """Load configuration from all sources with cascading precedence.

        Each call starts from clean defaults, so repeated loads never keep
        stale values.

        Returns:
            Settings instance with loaded values
        """
        self.settings = Settings()
        self.local_config_path = None
        self._raw_values = {}
        self._config_sources = {}

        if self.global_config_path.exists():
            log_message(f"Loading global configuration from {self.global_config_path}")
            self._load_file(self.global_config_path, source="global")

        local_path = self._find_local_config()
        if local_path:
            self.local_config_path = local_path
            log_message(f"Loading local configuration from {local_path}")
            self._load_file(local_path, source=f"local ({local_path})")

        self._load_environment()

        for key, value in self._raw_values.items():
            self._apply_value_to_settings(key, value)

        log_message(f"Configuration loaded successfully ({len(self._raw_values)} keys)")
        return self.settings

    def get_config_source(self, key: str) -> str:
        """Describe where the effective value of a key came from.

        Returns:
            "environment", "global", "local (<path>)" or "default"
        """
        return self._config_sources.get(key, "default")

    def show(self) -> None:
        """Display current configuration using Rich formatting."""
        print_header("Current Configuration")

        print_info(f"Global config: {self.global_config_path}")
        if self.local_config_path:
            print_info(f"Local config:  {self.local_config_path}")
        else:
            print_info("Local config:  (not found)")
        console.print()

        s = self.settings
        console.print("  [bold]Codex:[/bold]")
        console.print(f"    Binary: {s.codex_binary} ({self.get_config_source('CODEX_BINARY')})")
        console.print()

        console.print("  [bold]Probe Settings:[/bold]")
        console.print(f"    Probe Timeout: {s.probe_timeout_seconds}s")
        console.print(f"    Idle Timeout: {s.idle_timeout_seconds}s")
        console.print(f"    Extra Search Paths: {s.extra_search_paths or '(not set)'}")
        console.print()

    def _find_local_config(self) -> Path | None:
        """Find local .quotaprobe config by traversing up from CWD.

        Stops at the first .quotaprobe file, at a repository root (a
        directory containing .git), or at the filesystem root.
        """
        current = Path.cwd()
        while True:
            config_path = current / self.LOCAL_CONFIG_NAME
            if config_path.exists() and config_path.is_file():
                return config_path

            if (current / ".git").exists():
                break

            parent = current.parent
            if parent == current:
                break
            current = parent

        return None

    def _load_file(self, path: Path, source: str = "file") -> None:
        """Load key=value pairs from a config file.

        Args:
            path: Path to the config file
            source: Source identifier for get_config_source()
        """
        pattern = re.compile(r"^([a-zA-Z_][a-zA-Z0-9_]*)=(.*)$")

        with path.open() as f:
            for line in f:
                line = line.strip()

                if not line or line.startswith("#"):
                    continue

                match = pattern.match(line)
                if match:
                    key, value = match.groups()

                    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
                        value = value[1:-1]

                    self._raw_values[key] = value
                    self._config_sources[key] = source

    def _load_environment(self) -> None:
        """Override config with environment variables for known keys only."""
        for key in Settings.get_config_keys():
            env_value = os.environ.get(key)
            if env_value is not None:
                self._raw_values[key] = env_value
                self._config_sources[key] = "environment"

    def _apply_value_to_settings(self, key: str, value: str) -> None:
        """Apply a raw config value to the settings object.

        The target type is taken from the attribute's default value.
        Unparseable, non-positive and non-finite numbers keep the default.
        """
        attr = self.settings.get_attribute_for_key(key)
        if attr is None:
            return

        current_value = getattr(self.settings, attr)

        if isinstance(current_value, bool):
            setattr(self.settings, attr, value.lower() in ("true", "1", "yes"))
        elif isinstance(current_value, int | float):
            try:
                parsed = type(current_value)(value)
            except ValueError:
                logger.warning(f"Invalid value for {key}: {value!r}, keeping {current_value}")
                return
            if not math.isfinite(parsed) or parsed <= 0:
                logger.warning(f"{key} must be a positive finite number, keeping {current_value}")
                return
            setattr(self.settings, attr, parsed)
        else:
            setattr(self.settings, attr, value)


__all__ = [
    "ConfigManager",
]
