"""
HTML markup for responsive images.

Pure functions that return markup strings, so they drop into any templating
layer (Jinja2 ``|safe``, Django ``mark_safe``, f-strings...). Every attribute
value is HTML-escaped.

    img_tag("/images/hero.jpg", [400, 800], sizes="100vw", alt="Hero")
    -> <img src="/images/hero.jpg" srcset="/images/hero_400w.webp 400w, ..." sizes="100vw" alt="Hero">
"""

import html
import os
from collections.abc import Iterable, Mapping, Sequence

from srcsetkit.core.config import Config
from srcsetkit.core.paths import srcset
from srcsetkit.utils.exceptions import InvalidInputError

AttrValue = str | int | float | bool | None

# Formats whose MIME type is not simply image/<format>
_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "svg": "image/svg+xml",
    "tif": "image/tiff",
}

# Attributes computed by the components; passthrough values cannot override them
_RESERVED = frozenset({"src", "srcset", "sizes"})


def mime_type(fmt: str) -> str:
    """MIME type for a format token ('webp' -> 'image/webp', 'jpg' -> 'image/jpeg')."""
    key = fmt.lower()
    return _MIME_TYPES.get(key, f"image/{key}")


def _attr_name(name: str) -> str:
    """Turn a Python keyword into an attribute name: class_ -> class, data_id -> data-id."""
    return name.rstrip("_").replace("_", "-")


def _merge_attrs(
    attrs: Mapping[str, AttrValue] | None, kwargs: Mapping[str, AttrValue]
) -> dict[str, AttrValue]:
    merged: dict[str, AttrValue] = dict(attrs or {})
    for key, value in kwargs.items():
        merged[_attr_name(key)] = value
    clash = _RESERVED.intersection(merged)
    if clash:
        raise InvalidInputError(
            f"Attribute(s) {', '.join(sorted(clash))} are set by the component", field="attrs"
        )
    return merged


def render_attrs(attrs: Iterable[tuple[str, AttrValue]]) -> str:
    """
    Render attributes in order; True -> bare name, False/None -> omitted.

    Returns a string starting with a space, or "" when nothing is rendered.
    """
    parts: list[str] = []
    for name, value in attrs:
        if value is None or value is False:
            continue
        if value is True:
            parts.append(f" {html.escape(name, quote=True)}")
        else:
            parts.append(f' {html.escape(name, quote=True)}="{html.escape(str(value), quote=True)}"')
    return "".join(parts)


def img_tag(
    src: str | os.PathLike[str],
    widths: Sequence[int] | None = None,
    *,
    sizes: str | None = None,
    format: str | None = None,
    config: Config | None = None,
    attrs: Mapping[str, AttrValue] | None = None,
    **kwargs: AttrValue,
) -> str:
    """
    Render an ``<img>`` whose srcset lists the variants of ``src``.

    ``src`` stays the original image so browsers without srcset support still
    load something. Extra attributes come from ``attrs`` and keyword arguments.
    """
    config = config or Config()
    src = os.fspath(src)
    extra = _merge_attrs(attrs, kwargs)
    return "<img{}>".format(
        render_attrs(
            [
                ("src", src),
                ("srcset", srcset(src, widths, format, config=config)),
                ("sizes", sizes),
                *extra.items(),
            ]
        )
    )


def picture_tag(
    src: str | os.PathLike[str],
    widths: Sequence[int] | None = None,
    *,
    sizes: str | None = None,
    formats: Sequence[str] | None = None,
    config: Config | None = None,
    attrs: Mapping[str, AttrValue] | None = None,
    **kwargs: AttrValue,
) -> str:
    """
    Render a ``<picture>`` with one ``<source>`` per format and a fallback ``<img>``.

    Formats are listed in the given order (put the preferred one first, e.g.
    ``("avif", "webp")``); the default is ``(config.format,)``. Passthrough
    attributes go on the fallback ``<img>``.
    """
    config = config or Config()
    src = os.fspath(src)
    if isinstance(formats, (str, bytes)):
        raise InvalidInputError(
            f"formats must be a sequence of format tokens, got {formats!r}; "
            f"use ({formats!r},) for a single format",
            field="formats",
        )
    formats = tuple(formats) if formats is not None else (config.format,)
    if not formats:
        raise InvalidInputError("At least one format is required", field="formats")
    extra = _merge_attrs(attrs, kwargs)

    sources = "".join(
        "<source{}>".format(
            render_attrs(
                [
                    ("type", mime_type(fmt)),
                    ("srcset", srcset(src, widths, fmt, config=config)),
                    ("sizes", sizes),
                ]
            )
        )
        for fmt in formats
    )
    fallback = "<img{}>".format(render_attrs([("src", src), *extra.items()]))
    return f"<picture>{sources}{fallback}</picture>"


__all__ = ["img_tag", "mime_type", "picture_tag", "render_attrs"]
