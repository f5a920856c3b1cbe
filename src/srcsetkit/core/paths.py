"""
Variant path derivation and srcset strings.

The naming convention is shared with whatever serves the files, so it must
stay bit-exact::

    <dir>/<basename>_<width>w.<format>

    variant_path("/images/photo.png", 800)          -> "/images/photo_800w.webp"
    srcset("/images/photo.png", [400, 800], "avif") ->
        "/images/photo_400w.avif 400w, /images/photo_800w.avif 800w"

Both functions are pure: no filesystem access, nothing cached.
"""

import os
import posixpath
import re
from collections.abc import Iterable

from srcsetkit.core.config import Config
from srcsetkit.utils.exceptions import InvalidInputError
from srcsetkit.utils.validation import validate_format, validate_width, validate_widths

# Matches names produced by variant_path, e.g. "photo_800w.webp"
VARIANT_NAME_RE = re.compile(r"_(\d+)w\.[A-Za-z0-9]+$")


def _coerce_path(original_path: str | os.PathLike[str]) -> str:
    try:
        path = os.fspath(original_path)
    except TypeError:
        raise InvalidInputError(
            f"Path must be a string or path-like, got {original_path!r}", field="original_path"
        ) from None
    if not isinstance(path, str) or not path:
        raise InvalidInputError("Path cannot be empty", field="original_path")
    return path


def variant_path(
    original_path: str | os.PathLike[str],
    width: int,
    format: str | None = None,
    config: Config | None = None,
) -> str:
    """
    Return the path of the ``width``-pixel variant of ``original_path``.

    The directory part is kept verbatim; only the extension is replaced.

    Args:
        original_path: Source image path or URL path (e.g. "/images/photo.png")
        width: Target width in pixels
        format: Output format token; defaults to config.format ("webp")
        config: Optional config supplying the default format

    Returns:
        The variant path string

    Raises:
        InvalidInputError: If the path is empty, width is not a positive int,
            or format is not an alphanumeric token
    """
    path = _coerce_path(original_path)
    validate_width(width)
    fmt = validate_format(format if format is not None else (config or Config()).format)
    root, _ext = posixpath.splitext(path)
    return f"{root}_{width}w.{fmt}"


def srcset(
    original_path: str | os.PathLike[str],
    widths: Iterable[int] | None = None,
    format: str | None = None,
    config: Config | None = None,
) -> str:
    """
    Build a srcset attribute value, one "<variant> <width>w" candidate per width.

    Widths keep the caller's order; duplicates are not removed.

    Raises:
        InvalidInputError: If widths is empty or any argument is malformed
    """
    config = config or Config()
    widths = validate_widths(config.widths if widths is None else widths)
    fmt = format if format is not None else config.format
    return ", ".join(f"{variant_path(original_path, w, fmt)} {w}w" for w in widths)


def is_variant_name(name: str) -> bool:
    """True if a file name looks like a generated variant ("hero_400w.webp")."""
    return VARIANT_NAME_RE.search(name) is not None


__all__ = ["VARIANT_NAME_RE", "is_variant_name", "srcset", "variant_path"]
