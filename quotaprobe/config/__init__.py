"""Configuration loading for QUOTAPROBE."""

from quotaprobe.config.manager import ConfigManager
from quotaprobe.config.settings import CONFIG_FILE, Settings

__all__ = [
    "CONFIG_FILE",
    "ConfigManager",
    "Settings",
]
