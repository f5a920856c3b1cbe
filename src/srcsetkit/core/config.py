"""
Configuration management for srcsetkit.

Holds the default variant widths, output format and quality, plus the
converter command and batch settings. A Config is passed explicitly to every
operation; functions that receive none fall back to a fresh ``Config()``.
"""

import os
from dataclasses import dataclass, field, replace

from dotenv import load_dotenv

from srcsetkit.logging_config import get_logger
from srcsetkit.utils.exceptions import ConfigurationError, InvalidInputError
from srcsetkit.utils.validation import (
    parse_widths_csv,
    validate_format,
    validate_quality,
    validate_widths,
)

logger = get_logger(__name__)

# Load environment variables from .env file
load_dotenv()

# Default configuration constants
DEFAULT_WIDTHS = (400, 800, 1200, 1600)
DEFAULT_FORMAT = "webp"
DEFAULT_QUALITY = 85
DEFAULT_CONVERTER = "magick"
DEFAULT_TIMEOUT = 120
DEFAULT_WORKERS = 1
DEFAULT_EXTENSIONS = (".png", ".jpg", ".jpeg")


@dataclass(frozen=True)
class Config:
    """Configuration for srcsetkit operations."""

    # Variant defaults
    widths: tuple[int, ...] = DEFAULT_WIDTHS
    format: str = DEFAULT_FORMAT
    quality: int = DEFAULT_QUALITY  # 1-100, passed to the converter

    # Converter (command name on PATH or absolute path)
    converter: str = DEFAULT_CONVERTER
    timeout: int = DEFAULT_TIMEOUT  # seconds per invocation

    # Batch generation
    workers: int = DEFAULT_WORKERS  # >1 runs invocations on a thread pool
    extensions: tuple[str, ...] = field(default=DEFAULT_EXTENSIONS)
    verify_sources: bool = True  # open each source with Pillow before converting

    @classmethod
    def from_env(cls, base: "Config | None" = None) -> "Config":
        """
        Create a Config from environment variables, layered over ``base``.

        Environment variables:
            SRCSETKIT_WIDTHS: Comma-separated default widths (e.g. 400,800,1200)
            SRCSETKIT_FORMAT: Default output format token
            SRCSETKIT_QUALITY: Default quality (1-100)
            SRCSETKIT_CONVERTER: Converter command (default: magick)
            SRCSETKIT_TIMEOUT: Per-invocation timeout in seconds
            SRCSETKIT_WORKERS: Number of parallel converter invocations
            SRCSETKIT_EXTENSIONS: Comma-separated source extensions (e.g. .png,.jpg)
            SRCSETKIT_VERIFY_SOURCES: 0/false to skip Pillow source checks

        Returns:
            Config instance populated from environment

        Raises:
            ConfigurationError: If a variable cannot be parsed
        """
        base = base or cls()

        def _int_env(name: str, default: int) -> int:
            val = os.getenv(name)
            if val is None or val.strip() == "":
                return default
            try:
                return int(val)
            except ValueError:
                raise ConfigurationError(f"{name} must be an integer, got {val!r}.") from None

        widths = base.widths
        raw_widths = os.getenv("SRCSETKIT_WIDTHS", "").strip()
        if raw_widths:
            try:
                widths = tuple(parse_widths_csv(raw_widths))
            except InvalidInputError as e:
                raise ConfigurationError(f"SRCSETKIT_WIDTHS: {e}") from e

        extensions = base.extensions
        raw_ext = os.getenv("SRCSETKIT_EXTENSIONS", "").strip()
        if raw_ext:
            extensions = normalize_extensions(raw_ext.split(","))

        verify_sources = base.verify_sources
        raw_verify = os.getenv("SRCSETKIT_VERIFY_SOURCES", "").strip().lower()
        if raw_verify:
            verify_sources = raw_verify not in ("0", "false", "no", "off")

        return replace(
            base,
            widths=widths,
            format=os.getenv("SRCSETKIT_FORMAT") or base.format,
            quality=_int_env("SRCSETKIT_QUALITY", base.quality),
            converter=os.getenv("SRCSETKIT_CONVERTER") or base.converter,
            timeout=_int_env("SRCSETKIT_TIMEOUT", base.timeout),
            workers=_int_env("SRCSETKIT_WORKERS", base.workers),
            extensions=extensions,
            verify_sources=verify_sources,
        )

    def validate(self) -> None:
        """
        Validate the configuration.

        Raises:
            ConfigurationError: If any field is invalid
        """
        logger.debug("Validating config")

        try:
            validate_widths(self.widths)
            validate_format(self.format)
            validate_quality(self.quality)
        except InvalidInputError as e:
            raise ConfigurationError(f"Invalid {e.field}: {e}") from e

        if not self.converter or not self.converter.strip():
            raise ConfigurationError("Converter command cannot be empty.")
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}.")
        if self.workers <= 0:
            raise ConfigurationError(f"workers must be positive, got {self.workers}.")
        if not self.extensions:
            raise ConfigurationError("At least one source extension is required.")

    def with_overrides(self, **overrides: object) -> "Config":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "widths" in changes:
            changes["widths"] = tuple(changes["widths"])  # type: ignore[arg-type]
        if "extensions" in changes:
            changes["extensions"] = normalize_extensions(changes["extensions"])  # type: ignore[arg-type]
        return replace(self, **changes)  # type: ignore[arg-type]


def normalize_extensions(extensions: object) -> tuple[str, ...]:
    """Lower-case extensions and ensure a leading dot ('PNG' -> '.png')."""
    if isinstance(extensions, str):
        extensions = extensions.split(",")
    result: list[str] = []
    for ext in extensions:  # type: ignore[attr-defined]
        ext = str(ext).strip().lower()
        if not ext:
            continue
        result.append(ext if ext.startswith(".") else "." + ext)
    return tuple(result)
