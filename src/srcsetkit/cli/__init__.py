"""
Command-line interface for srcsetkit.

This package contains CLI implementations using Click.
Uses only the public API: from srcsetkit import ...
"""

from srcsetkit.cli.commands import cli, main

__all__ = ["cli", "main"]
