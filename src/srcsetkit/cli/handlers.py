"""
Error handling and signal management for the CLI.

Library exceptions are turned into exit codes in one place
(map_exception_to_exit). Ctrl+C does not interrupt a batch: it sets an event
that generate() polls through cancel_check, so running conversions finish and
no new ones start.
"""

import signal
import sys
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

import click

from srcsetkit import (
    CancellationError,
    ConfigurationError,
    InvalidInputError,
    SrcsetkitError,
    ToolNotFoundError,
)
from srcsetkit.cli import progress
from srcsetkit.cli.utils import (
    EXIT_CANCELLED,
    EXIT_FAILURES,
    EXIT_TOOL_NOT_FOUND,
    EXIT_VALIDATION_OR_CONFIG,
)

# Checked in order; the first matching class wins
_EXIT_CODES: tuple[tuple[type[SrcsetkitError], int, str], ...] = (
    (InvalidInputError, EXIT_VALIDATION_OR_CONFIG, "Invalid input."),
    (ConfigurationError, EXIT_VALIDATION_OR_CONFIG, "Invalid configuration."),
    (ToolNotFoundError, EXIT_TOOL_NOT_FOUND, "Converter not found."),
    (CancellationError, EXIT_CANCELLED, "Cancelled."),
)

# Set on SIGINT; read by cancel_check between conversions
_cancel_event = threading.Event()


def cancel_check() -> bool:
    """Return True once Ctrl+C has been pressed during the current batch."""
    return _cancel_event.is_set()


def handle_sigint(_signum: int, _frame: object) -> None:
    _cancel_event.set()


@contextmanager
def sigint_cancellation() -> Iterator[None]:
    """Route SIGINT to cancel_check for the duration of a batch, then restore."""
    _cancel_event.clear()
    old_handler = signal.signal(signal.SIGINT, handle_sigint)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, old_handler)


def map_exception_to_exit(exc: BaseException) -> tuple[int, str]:
    """Map an exception to (exit_code, user_message)."""
    for cls, code, fallback in _EXIT_CODES:
        if isinstance(exc, cls):
            msg = exc.args[0] if exc.args else fallback
            field = getattr(exc, "field", "")
            if field:
                msg = f"{msg} (field: {field})"
            return (code, msg)
    fallback = "An error occurred." if isinstance(exc, SrcsetkitError) else "Unexpected error."
    return (EXIT_FAILURES, str(exc) if exc.args else fallback)


def run_with_error_handling(fn: Callable[[], None], *, quiet: bool = False) -> None:
    """
    Run fn(); on exception print the mapped message and sys.exit with its code.

    Cancellation is a warning, not an error, and is silent with --quiet.
    """
    try:
        fn()
    except Exception as e:
        code, msg = map_exception_to_exit(e)
        if code == EXIT_CANCELLED:
            if not quiet:
                progress.print_warning(msg)
        elif quiet:
            click.echo(msg, err=True)
        else:
            progress.print_error(msg)
        sys.exit(code)


__all__ = [
    "cancel_check",
    "handle_sigint",
    "map_exception_to_exit",
    "run_with_error_handling",
    "sigint_cancellation",
]
