"""Shared helpers: exceptions and argument validation."""
