"""
Logging configuration for srcsetkit.

Nothing is configured at import: library users who never call set_verbosity
or configure_logging get no srcsetkit handler.

Verbosity levels (batch generation):
- 0 (default): INFO, the batch plan and the final counts
- 1: INFO, plus one line per variant (converter command line, time taken)
- 2: DEBUG, plus discovery, skip decisions and converter exit details

The CLI reads SRCSETKIT_VERBOSITY (0/1/2); -v/-vv and -q override it.
"""

import logging
import os

LOG_FORMAT = "%(levelname)s [%(name)s] %(message)s"
ROOT_LOGGER_NAME = "srcsetkit"
MAX_VERBOSITY = 2

_LEVELS = {0: logging.INFO, 1: logging.INFO, 2: logging.DEBUG}

_verbosity: int = 0


def _root_logger() -> logging.Logger:
    """The srcsetkit logger, with a stderr handler added on first use."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    return root


def set_verbosity(level: int) -> None:
    """Set verbosity 0-2; out-of-range values are clamped."""
    global _verbosity
    _verbosity = max(0, min(level, MAX_VERBOSITY))
    _root_logger().setLevel(_LEVELS[_verbosity])


def get_verbosity() -> int:
    return _verbosity


def log_commands() -> bool:
    """True when each variant's command line and timing should be logged at INFO."""
    return _verbosity >= 1


def configure_logging(verbose_level: int = 0, quiet: bool = False) -> None:
    """
    Configure logging from the CLI or a library caller.

    quiet wins over verbose_level: only warnings (failed variants) are logged.
    """
    global _verbosity
    if quiet:
        _verbosity = 0
        _root_logger().setLevel(logging.WARNING)
        return
    set_verbosity(verbose_level)


def get_verbosity_from_env() -> int:
    """
    Read SRCSETKIT_VERBOSITY from the environment (0, 1 or 2).

    Invalid or missing values return 0.
    """
    raw = os.environ.get("SRCSETKIT_VERBOSITY", "0").strip()
    if raw in ("1", "2"):
        return int(raw)
    return 0


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under srcsetkit (e.g. srcsetkit.core.generator)."""
    if name.startswith(ROOT_LOGGER_NAME + ".") or name == ROOT_LOGGER_NAME:
        return logging.getLogger(name)
    return logging.getLogger(ROOT_LOGGER_NAME + "." + name)


__all__ = [
    "configure_logging",
    "get_logger",
    "get_verbosity",
    "get_verbosity_from_env",
    "log_commands",
    "set_verbosity",
]
