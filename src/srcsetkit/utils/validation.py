"""
Argument validation shared by path derivation, config and batch generation.

All helpers raise InvalidInputError with the offending argument name in
``field`` so callers (and the CLI) can report it.
"""

import re
from collections.abc import Iterable

from srcsetkit.utils.exceptions import InvalidInputError

_FORMAT_RE = re.compile(r"^[A-Za-z0-9]+$")


def validate_width(width: object, field: str = "width") -> int:
    """Return width if it is a positive int; bools are rejected."""
    if isinstance(width, bool) or not isinstance(width, int):
        raise InvalidInputError(f"Width must be an integer, got {width!r}", field=field)
    if width <= 0:
        raise InvalidInputError(f"Width must be positive, got {width}", field=field)
    return width


def validate_widths(widths: Iterable[object] | None, field: str = "widths") -> list[int]:
    """
    Validate an ordered width sequence.

    Order and duplicates are preserved. An empty sequence is rejected.

    Raises:
        InvalidInputError: If the sequence is empty or any width is invalid
    """
    if widths is None or isinstance(widths, (str, bytes)):
        raise InvalidInputError(f"Widths must be a sequence of integers, got {widths!r}", field=field)
    result = [validate_width(w, field=field) for w in widths]
    if not result:
        raise InvalidInputError("At least one width is required", field=field)
    return result


def validate_format(fmt: object, field: str = "format") -> str:
    """Return fmt if it is a non-empty alphanumeric token such as 'webp' or 'avif'."""
    if not isinstance(fmt, str) or not _FORMAT_RE.match(fmt):
        raise InvalidInputError(
            f"Format must be a non-empty alphanumeric token (e.g. 'webp'), got {fmt!r}",
            field=field,
        )
    return fmt


def validate_quality(quality: object, field: str = "quality") -> int:
    """Return quality if it is an int in 1..100."""
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidInputError(f"Quality must be an integer, got {quality!r}", field=field)
    if not 1 <= quality <= 100:
        raise InvalidInputError(f"Quality must be between 1 and 100, got {quality}", field=field)
    return quality


def parse_widths_csv(raw: str, field: str = "widths") -> list[int]:
    """Parse '400,800,1200' into [400, 800, 1200] (order kept, blanks ignored)."""
    parts = [p.strip() for p in raw.split(",") if p.strip()]
    widths: list[int] = []
    for part in parts:
        try:
            widths.append(int(part))
        except ValueError:
            raise InvalidInputError(
                f"Invalid width {part!r} in {raw!r}. Example: 400,800,1200", field=field
            ) from None
    return validate_widths(widths, field=field)


__all__ = [
    "parse_widths_csv",
    "validate_format",
    "validate_quality",
    "validate_width",
    "validate_widths",
]
