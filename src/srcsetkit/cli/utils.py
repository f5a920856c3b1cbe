"""
Utility functions for the CLI.

This module contains exit code constants and option parsing helpers
shared by the CLI commands.
"""

import click

from srcsetkit.utils.exceptions import InvalidInputError
from srcsetkit.utils.validation import parse_widths_csv

# Exit codes (127 = command not found, 130 = SIGINT)
EXIT_SUCCESS = 0
EXIT_FAILURES = 1
EXIT_VALIDATION_OR_CONFIG = 2
EXIT_TOOL_NOT_FOUND = 127
EXIT_CANCELLED = 130


def widths_option_callback(
    _ctx: click.Context, param: click.Parameter, value: str | None
) -> list[int] | None:
    """Click callback turning '--widths 400,800' into [400, 800]."""
    if value is None:
        return None
    try:
        return parse_widths_csv(value)
    except InvalidInputError as e:
        raise click.BadParameter(str(e), param=param) from e


__all__ = [
    "EXIT_SUCCESS",
    "EXIT_FAILURES",
    "EXIT_VALIDATION_OR_CONFIG",
    "EXIT_TOOL_NOT_FOUND",
    "EXIT_CANCELLED",
    "widths_option_callback",
]
