"""QUOTAPROBE - Usage quota probes for command-line AI assistants.

This package interrogates AI assistant CLIs (starting with Codex) for their
remaining rate-limit quota, using the CLI's JSON-RPC server mode when it is
available and falling back to scraping its interactive status screen.
"""

__version__ = "0.1.0"
SCRIPT_NAME = "QUOTAPROBE"

__all__ = [
    "__version__",
    "SCRIPT_NAME",
]
