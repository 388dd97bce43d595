"""Logging configuration for QUOTAPROBE.

Logging is off unless explicitly enabled, so a probe running inside a host
application never writes anywhere unexpected.

Environment Variables:
    QUOTAPROBE_LOG: Set to "true" to enable logging (default: "false")
    QUOTAPROBE_LOG_FILE: Path to log file (default: ~/.quotaprobe.log)
"""

import logging
import os
from pathlib import Path

# Environment variable configuration
LOG_ENABLED = os.environ.get("QUOTAPROBE_LOG", "false").lower() == "true"
LOG_FILE = Path(os.environ.get("QUOTAPROBE_LOG_FILE", str(Path.home() / ".quotaprobe.log")))

# Module-level logger instance
_logger: logging.Logger | None = None


def setup_logging() -> logging.Logger:
    """Configure logging based on environment variables.

    Creates the "quotaprobe" package logger. When QUOTAPROBE_LOG is "true"
    it writes to the configured log file at DEBUG level, so module loggers
    (``logging.getLogger(__name__)``) below the package propagate into it.
    Otherwise a NullHandler suppresses all output.

    Returns:
        Configured logger instance
    """
    global _logger

    if _logger is not None:
        return _logger

    logger = logging.getLogger("quotaprobe")

    # Clear any existing handlers
    logger.handlers.clear()

    if LOG_ENABLED:
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

        handler = logging.FileHandler(LOG_FILE)
        handler.setFormatter(
            logging.Formatter(
                "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
    else:
        logger.addHandler(logging.NullHandler())

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """Get the configured logger instance, creating it if necessary."""
    global _logger
    if _logger is None:
        return setup_logging()
    return _logger


def log_message(message: str) -> None:
    """Log a message if logging is enabled.

    Args:
        message: Message to log
    """
    logger = get_logger()
    logger.info(message)


def log_command(command: str, exit_code: int = 0) -> None:
    """Log external command execution with its exit code.

    Args:
        command: The command that was executed
        exit_code: The exit code returned by the command
    """
    logger = get_logger()
    logger.info(f"COMMAND: {command} | EXIT_CODE: {exit_code}")


def log_probe_metadata(
    provider_id: str,
    *,
    path: str | None = None,
    timeout: float | None = None,
) -> None:
    """Log which probe path is running and with which timeout.

    Args:
        provider_id: Provider being probed (e.g. "codex")
        path: Probe path name ("rpc" or "tty")
        timeout: Timeout in seconds if specified
    """
    parts: list[str] = []
    if path:
        parts.append(f"path={path}")
    if timeout is not None:
        parts.append(f"timeout={timeout}s")
    if parts:
        log_message(f"  {provider_id} probe: {', '.join(parts)}")


__all__ = [
    "LOG_ENABLED",
    "LOG_FILE",
    "setup_logging",
    "get_logger",
    "log_message",
    "log_command",
    "log_probe_metadata",
]
