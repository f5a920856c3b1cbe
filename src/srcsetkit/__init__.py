"""
srcsetkit - responsive image variants and srcset markup

Generates resized/re-encoded copies of images with an external converter
(ImageMagick by default) and builds ``srcset`` / ``<picture>`` markup that
references them by name: ``<dir>/<basename>_<width>w.<format>``.

Library usage:
- Every operation takes an optional ``config``; without one a default Config()
  is used (widths 400/800/1200/1600, webp, quality 85). Use load_config() to
  layer a YAML file and SRCSETKIT_* environment variables over the defaults.
- variant_path(), srcset(), img_tag() and picture_tag() are pure string functions.
- generate() runs the converter; pass ``runner=`` to substitute the subprocess layer.
- Logging: control verbosity with set_verbosity(0|1|2) or configure_logging(verbose_level, quiet).
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("srcsetkit")
except PackageNotFoundError:
    # Package is not installed (e.g., running from source in development)
    __version__ = "0.0.0.dev"

from srcsetkit.core.config import (
    DEFAULT_CONVERTER,
    DEFAULT_FORMAT,
    DEFAULT_QUALITY,
    DEFAULT_WIDTHS,
    Config,
)
from srcsetkit.core.config_file import load_config
from srcsetkit.core.converter import CommandResult, CommandRunner, SubprocessRunner
from srcsetkit.core.generator import (
    GenerationFailure,
    GenerationOutcome,
    GenerationReport,
    GenerationRequest,
    VariantDescriptor,
    build_request,
    discover_images,
    generate,
)
from srcsetkit.core.markup import img_tag, picture_tag
from srcsetkit.core.paths import srcset, variant_path
from srcsetkit.logging_config import configure_logging, set_verbosity
from srcsetkit.utils.exceptions import (
    CancellationError,
    ConfigurationError,
    ConversionFailedError,
    InvalidInputError,
    SourceNotAnImageError,
    SourceNotFoundError,
    SrcsetkitError,
    ToolNotFoundError,
)

__all__ = [
    "CancellationError",
    "CommandResult",
    "CommandRunner",
    "Config",
    "ConfigurationError",
    "ConversionFailedError",
    "DEFAULT_CONVERTER",
    "DEFAULT_FORMAT",
    "DEFAULT_QUALITY",
    "DEFAULT_WIDTHS",
    "GenerationFailure",
    "GenerationOutcome",
    "GenerationReport",
    "GenerationRequest",
    "InvalidInputError",
    "SourceNotAnImageError",
    "SourceNotFoundError",
    "SrcsetkitError",
    "SubprocessRunner",
    "ToolNotFoundError",
    "VariantDescriptor",
    "build_request",
    "configure_logging",
    "discover_images",
    "generate",
    "img_tag",
    "load_config",
    "picture_tag",
    "set_verbosity",
    "srcset",
    "variant_path",
]
