"""Utility modules for QUOTAPROBE.

This package contains:
- console: Rich-based terminal output utilities
- errors: Base exception and exit codes
- logging: Logging configuration
"""

from quotaprobe.utils.console import (
    console,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from quotaprobe.utils.errors import ExitCode, QuotaProbeError
from quotaprobe.utils.logging import log_command, log_message, setup_logging

__all__ = [
    # Console
    "console",
    "print_error",
    "print_success",
    "print_warning",
    "print_info",
    # Errors
    "ExitCode",
    "QuotaProbeError",
    # Logging
    "setup_logging",
    "log_message",
    "log_command",
]
