"""Entry point for running syftpack as a module.

Usage:
    python -m syftpack [command] [options]

Example:
    python -m syftpack build --app . --layers /layers
    python -m syftpack check
"""

from syftpack.cli import app

if __name__ == "__main__":
    app()
