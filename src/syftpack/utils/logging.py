"""Build log output.

Everything syftpack prints while building goes through the "syftpack"
logger. Three renderings are available:

- Human: build steps (INFO) as "---> message", other levels as "[LEVEL] message"
- Verbose: the same lines behind a "[HH:MM:SS]" timestamp, DEBUG included
- JSON: one object per line, {"level": ..., "ts": ..., "logger": ..., "msg": ...}

Structured fields passed to ``SyftpackLogger.structured`` only show up in
JSON lines; the human renderings print the message alone.
"""

import json
import logging
import sys
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TextIO

LOGGER_NAME = "syftpack"
STEP_PREFIX = "--->"

# Attribute carrying structured fields on a LogRecord
EXTRA_ATTR = "extra_data"

_RESET = "\033[0m"
_LEVEL_COLORS = {
    logging.DEBUG: "\033[90m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[31m",
}


class LogMode(Enum):
    """Logging output mode."""

    HUMAN = "human"
    VERBOSE = "verbose"
    JSON = "json"


def _is_tty(stream: TextIO | None) -> bool:
    stream = stream or sys.stdout
    return hasattr(stream, "isatty") and stream.isatty()


class HumanFormatter(logging.Formatter):
    """Renders records as build log lines.

    INFO records are build steps and get the "--->" arrow. Any other level
    is tagged with its name so warnings stand out between the steps.
    """

    timestamps = False

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors

    def prefix(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            return STEP_PREFIX
        return f"[{record.levelname}]"

    def format(self, record: logging.LogRecord) -> str:
        prefix = self.prefix(record)
        if self.use_colors:
            prefix = f"{_LEVEL_COLORS.get(record.levelno, _RESET)}{prefix}{_RESET}"
        line = f"{prefix} {record.getMessage()}"
        if self.timestamps:
            line = f"[{self.formatTime(record, '%H:%M:%S')}] {line}"
        return line


class VerboseFormatter(HumanFormatter):
    """HumanFormatter with a wall-clock timestamp on every line."""

    timestamps = True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, merged with any structured fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "level": record.levelname,
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(getattr(record, EXTRA_ATTR, {}))
        return json.dumps(entry, default=str)


class SyftpackLogger(logging.Logger):
    """Logger that can attach structured fields to a message."""

    def structured(self, level: int, msg: str, **fields: Any) -> None:
        """Log msg at level with fields attached for JSON output.

        Args:
            level: Log level
            msg: Log message (not %-formatted)
            **fields: Extra keys for the JSON line
        """
        if self.isEnabledFor(level):
            self.log(level, "%s", msg, extra={EXTRA_ATTR: fields}, stacklevel=2)


logging.setLoggerClass(SyftpackLogger)


def get_logger(name: str = LOGGER_NAME) -> SyftpackLogger:
    """Return a logger under the syftpack hierarchy."""
    return logging.getLogger(name)  # type: ignore[return-value]


def setup_logging(
    mode: LogMode = LogMode.HUMAN,
    level: int = logging.INFO,
    stream: TextIO | None = None,
) -> None:
    """Send syftpack logs to stream in the given mode.

    Replaces any handler installed by an earlier call, so configuring twice
    never duplicates output. Records stop at the syftpack logger and are
    not handed on to the root logger.

    Args:
        mode: Output mode
        level: Minimum log level
        stream: Output stream (default: stdout)
    """
    formatter: logging.Formatter
    if mode == LogMode.JSON:
        formatter = JSONFormatter()
    elif mode == LogMode.VERBOSE:
        formatter = VerboseFormatter(use_colors=_is_tty(stream))
    else:
        formatter = HumanFormatter(use_colors=_is_tty(stream))

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def configure_from_cli(
    verbose: bool = False,
    quiet: bool = False,
    ci: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Map the global CLI flags onto setup_logging.

    --ci picks JSON over --verbose; --quiet wins over --verbose for the level.
    """
    if ci:
        mode = LogMode.JSON
    elif verbose:
        mode = LogMode.VERBOSE
    else:
        mode = LogMode.HUMAN

    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    setup_logging(mode=mode, level=level, stream=stream)
