"""syftpack utility modules.

- logging: Build log output with human/verbose/JSON modes
- platform: Host os/arch detection
- preflight: Environment checks before a build
"""

from syftpack.utils.logging import configure_from_cli, get_logger, setup_logging

__all__ = [
    "configure_from_cli",
    "get_logger",
    "setup_logging",
]
