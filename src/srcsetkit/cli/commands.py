"""
Click command definitions for the srcsetkit CLI.

This module contains the Click command group and all CLI commands
(generate, srcset, variant, html).
"""

import sys
from pathlib import Path

import click

from srcsetkit import (
    CancellationError,
    Config,
    GenerationOutcome,
    VariantDescriptor,
    __version__,
    generate,
    img_tag,
    load_config,
    picture_tag,
    srcset,
    variant_path,
)
from srcsetkit.cli import progress
from srcsetkit.cli.handlers import cancel_check, run_with_error_handling, sigint_cancellation
from srcsetkit.cli.utils import EXIT_FAILURES, widths_option_callback
from srcsetkit.logging_config import configure_logging, get_verbosity_from_env

_widths_option = click.option(
    "--widths",
    "-w",
    callback=widths_option_callback,
    help="Comma-separated variant widths, e.g. 400,800,1200 (default from config).",
)
_format_option = click.option(
    "--format",
    "-f",
    "fmt",
    help="Output format token, e.g. webp or avif (default from config).",
)
_config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    envvar="SRCSETKIT_CONFIG",
    help="YAML settings file (also read from SRCSETKIT_CONFIG).",
)


def _load_config(config_path: Path | None, **overrides: object) -> Config:
    """Defaults < YAML file < environment < CLI flags, validated."""
    config = load_config(config_path).with_overrides(**overrides)
    config.validate()
    return config


@click.group(
    help=f"""Responsive image variants and srcset markup.

\b
Version: {__version__}
Variants are named <dir>/<basename>_<width>w.<format>.
"""
)
@click.version_option(version=__version__, package_name="srcsetkit")
@click.pass_context
def cli(ctx: click.Context) -> None:
    ctx.color = True


@cli.command(name="generate")
@click.argument("path", type=click.Path(path_type=Path))
@_widths_option
@_format_option
@click.option("--quality", type=click.IntRange(1, 100), help="Quality 1-100 (default from config).")
@click.option("--force", is_flag=True, help="Regenerate variants that already exist.")
@click.option(
    "--workers",
    "-j",
    type=click.IntRange(min=1),
    help="Run this many converter processes in parallel (default from config).",
)
@click.option(
    "--converter",
    help="Converter command or path (default: magick, or SRCSETKIT_CONVERTER).",
)
@click.option(
    "--timeout",
    type=click.IntRange(min=1),
    help="Seconds to wait for each conversion (default from config).",
)
@_config_option
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Only print failures and the summary line.",
)
@click.option(
    "--verbose",
    "-v",
    "verbose_count",
    count=True,
    help="Increase verbosity: -v also show converter commands, -vv show debug detail.",
)
def generate_command(
    path: Path,
    widths: list[int] | None,
    fmt: str | None,
    quality: int | None,
    force: bool,
    workers: int | None,
    converter: str | None,
    timeout: int | None,
    config_path: Path | None,
    quiet: bool,
    verbose_count: int,
) -> None:
    """Generate resized variants for an image file or a directory of images."""
    # Apply logging verbosity: CLI flags override SRCSETKIT_VERBOSITY
    verbose_level = min(verbose_count, 2) if verbose_count > 0 else get_verbosity_from_env()
    configure_logging(verbose_level=verbose_level, quiet=quiet)

    def do_generate() -> None:
        config = _load_config(
            config_path,
            workers=workers,
            converter=converter,
            timeout=timeout,
        )

        if quiet:
            report = generate(
                path,
                widths,
                fmt,
                quality,
                force,
                config=config,
                cancel_check=cancel_check,
            )
            for failure in report.failures:
                click.echo(f"failed: {failure.target or failure.source}: {failure.reason}", err=True)
        else:
            with progress.generation_progress(fmt or config.format) as bar:

                def on_outcome(descriptor: VariantDescriptor, outcome: GenerationOutcome) -> None:
                    progress.print_outcome(descriptor, outcome)
                    bar.advance()

                report = generate(
                    path,
                    widths,
                    fmt,
                    quality,
                    force,
                    config=config,
                    cancel_check=cancel_check,
                    on_outcome=on_outcome,
                    on_request=lambda request: bar.start(len(request)),
                )
            for failure in report.failures:
                if failure.target is None:
                    progress.print_source_failure(failure)
            progress.print_summary(report)

        # Summary to stdout for scriptability
        click.echo(report.summary())
        if report.cancelled:
            raise CancellationError("Cancelled; some variants were not generated.")
        if report.failed:
            sys.exit(EXIT_FAILURES)

    with sigint_cancellation():
        run_with_error_handling(do_generate, quiet=quiet)


@cli.command(name="srcset")
@click.argument("path")
@_widths_option
@_format_option
@_config_option
def srcset_command(
    path: str,
    widths: list[int] | None,
    fmt: str | None,
    config_path: Path | None,
) -> None:
    """Print the srcset attribute value for PATH."""

    def do_srcset() -> None:
        config = _load_config(config_path)
        click.echo(srcset(path, widths, fmt, config=config))

    run_with_error_handling(do_srcset)


@cli.command(name="variant")
@click.argument("path")
@click.argument("width", type=int)
@_format_option
@_config_option
def variant_command(
    path: str,
    width: int,
    fmt: str | None,
    config_path: Path | None,
) -> None:
    """Print the variant path of PATH at WIDTH pixels."""

    def do_variant() -> None:
        config = _load_config(config_path)
        click.echo(variant_path(path, width, fmt, config=config))

    run_with_error_handling(do_variant)


@cli.command(name="html")
@click.argument("path")
@_widths_option
@click.option(
    "--format",
    "-f",
    "formats",
    multiple=True,
    help="Output format; repeat with --picture for several <source> elements.",
)
@click.option("--sizes", help='sizes attribute, e.g. "(max-width: 600px) 100vw, 50vw".')
@click.option("--alt", default=None, help="alt text for the <img>.")
@click.option("--class", "css_class", default=None, help="class attribute for the <img>.")
@click.option("--lazy", is_flag=True, help='Add loading="lazy" and decoding="async".')
@click.option("--picture", is_flag=True, help="Render <picture> with <source> elements.")
@_config_option
def html_command(
    path: str,
    widths: list[int] | None,
    formats: tuple[str, ...],
    sizes: str | None,
    alt: str | None,
    css_class: str | None,
    lazy: bool,
    picture: bool,
    config_path: Path | None,
) -> None:
    """Print <img> (or <picture>) markup for PATH."""
    if len(formats) > 1 and not picture:
        raise click.UsageError("Several --format values need --picture.")

    def do_html() -> None:
        config = _load_config(config_path)
        attrs = {
            "alt": alt,
            "class": css_class,
            "loading": "lazy" if lazy else None,
            "decoding": "async" if lazy else None,
        }
        if picture:
            markup = picture_tag(
                path, widths, sizes=sizes, formats=formats or None, config=config, attrs=attrs
            )
        else:
            fmt = formats[0] if formats else None
            markup = img_tag(path, widths, sizes=sizes, format=fmt, config=config, attrs=attrs)
        click.echo(markup)

    run_with_error_handling(do_html)


def main() -> None:
    """Entry point for the srcsetkit console script."""
    cli()


__all__ = ["cli", "main", "generate_command", "html_command", "srcset_command", "variant_command"]
