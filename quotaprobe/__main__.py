"""Entry point for running quotaprobe as a module.

This allows running the application with:
    python -m quotaprobe [OPTIONS]
"""

from quotaprobe.cli import app

if __name__ == "__main__":
    app()
