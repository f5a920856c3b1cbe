"""
Batch generation of image variants.

generate() walks a file or directory, plans one VariantDescriptor per
(source, width) and realises each one by running the external converter,
skipping targets that already exist unless ``force`` is set.

A failing source or conversion is recorded in the GenerationReport and the
batch moves on. The only fatal error is a missing converter
(ToolNotFoundError), which is raised before any file is touched.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path

from PIL import Image

from srcsetkit.core.config import Config
from srcsetkit.core.converter import (
    CommandRunner,
    SubprocessRunner,
    build_convert_command,
    resolve_converter,
    run_convert,
)
from srcsetkit.core.paths import is_variant_name, variant_path
from srcsetkit.logging_config import get_logger, log_commands
from srcsetkit.utils.exceptions import (
    ConversionFailedError,
    SourceNotAnImageError,
    SourceNotFoundError,
    SrcsetkitError,
)
from srcsetkit.utils.validation import validate_format, validate_quality, validate_widths

logger = get_logger(__name__)

STATUS_GENERATED = "generated"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class VariantDescriptor:
    """One variant to produce: (source, width, format) -> target path."""

    source: Path
    width: int
    format: str

    @property
    def target(self) -> Path:
        """Variant file next to the source, named by the variant_path convention."""
        return self.source.with_name(variant_path(self.source.name, self.width, self.format))


@dataclass(frozen=True)
class GenerationRequest:
    """Ordered descriptors to realise on disk."""

    descriptors: tuple[VariantDescriptor, ...]
    quality: int
    force: bool = False

    def __len__(self) -> int:
        return len(self.descriptors)


@dataclass(frozen=True)
class GenerationOutcome:
    """Result of realising one descriptor."""

    status: str  # STATUS_GENERATED, STATUS_SKIPPED or STATUS_FAILED
    error: SrcsetkitError | None = None
    elapsed: float = 0.0


@dataclass(frozen=True)
class GenerationFailure:
    """A failed source or variant, with the error that explains it."""

    source: Path
    error: SrcsetkitError
    target: Path | None = None
    width: int | None = None

    @property
    def reason(self) -> str:
        return str(self.error)


@dataclass
class GenerationReport:
    """Aggregate result of a batch run."""

    outcomes: list[tuple[VariantDescriptor, GenerationOutcome]] = field(default_factory=list)
    failures: list[GenerationFailure] = field(default_factory=list)
    cancelled: bool = False

    def _count(self, status: str) -> int:
        return sum(1 for _, outcome in self.outcomes if outcome.status == status)

    @property
    def generated(self) -> int:
        return self._count(STATUS_GENERATED)

    @property
    def skipped(self) -> int:
        return self._count(STATUS_SKIPPED)

    @property
    def failed(self) -> int:
        """Failed variants plus sources rejected during discovery."""
        return len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures and not self.cancelled

    def summary(self) -> str:
        return f"generated={self.generated} skipped={self.skipped} failed={self.failed}"


OutcomeCallback = Callable[[VariantDescriptor, GenerationOutcome], None]


def _verify_image(path: Path) -> None:
    """Raise SourceNotAnImageError unless Pillow can identify the file as an image."""
    try:
        with Image.open(path) as image:
            image.verify()
    except Image.DecompressionBombError:
        # Identified from the header; the pixel count is the converter's concern
        logger.debug("%s exceeds Pillow's pixel limit; leaving it to the converter", path)
    except Exception as e:
        # Pillow plugins raise more than OSError on truncated or garbled files
        raise SourceNotAnImageError(
            f"Not a readable image: {path} ({e})", image_path=str(path)
        ) from e


def discover_images(
    path: str | Path,
    config: Config | None = None,
) -> tuple[list[Path], list[GenerationFailure]]:
    """
    Find source images under ``path``.

    A file is returned on its own; a directory is walked recursively for files
    whose extension is in ``config.extensions``, in sorted order. Files that
    are themselves variants ("hero_400w.webp") are ignored in directories.

    Returns:
        (sources, failures) where failures hold SourceNotFoundError /
        SourceNotAnImageError entries
    """
    config = config or Config()
    path = Path(path)
    failures: list[GenerationFailure] = []

    if not path.exists():
        error = SourceNotFoundError(f"Source not found: {path}", image_path=str(path))
        return [], [GenerationFailure(source=path, error=error)]

    if path.is_dir():
        candidates = sorted(
            p
            for p in path.rglob("*")
            if p.is_file()
            and p.suffix.lower() in config.extensions
            and not is_variant_name(p.name)
        )
        logger.debug("Found %d candidate image(s) under %s", len(candidates), path)
    elif path.suffix.lower() not in config.extensions:
        error = SourceNotAnImageError(
            f"Unsupported image extension {path.suffix or '(none)'!r} for {path}. "
            f"Supported: {', '.join(config.extensions)}",
            image_path=str(path),
        )
        return [], [GenerationFailure(source=path, error=error)]
    else:
        candidates = [path]

    sources: list[Path] = []
    for candidate in candidates:
        if config.verify_sources:
            try:
                _verify_image(candidate)
            except SourceNotAnImageError as e:
                logger.warning("%s", e)
                failures.append(GenerationFailure(source=candidate, error=e))
                continue
        sources.append(candidate)
    return sources, failures


def build_request(
    sources: Iterable[Path],
    widths: Sequence[int],
    format: str,
    quality: int,
    force: bool = False,
) -> GenerationRequest:
    """
    Plan one descriptor per (source, width), sources first, widths in given order.

    A width listed twice is planned once.
    """
    unique_widths = list(dict.fromkeys(widths))
    if len(unique_widths) != len(widths):
        logger.debug("Ignoring repeated widths in %s", list(widths))
    descriptors = tuple(
        VariantDescriptor(source=Path(source), width=width, format=format)
        for source in sources
        for width in unique_widths
    )
    return GenerationRequest(descriptors=descriptors, quality=quality, force=force)


def find_collisions(request: GenerationRequest) -> dict[int, GenerationOutcome]:
    """
    Failed outcomes, by descriptor index, for targets already claimed earlier.

    "photo.png" and "photo.jpg" in one directory both map to "photo_400w.webp";
    the first source keeps the target and the later one is failed unconverted.
    """
    claimed: dict[Path, Path] = {}
    collisions: dict[int, GenerationOutcome] = {}
    for index, descriptor in enumerate(request.descriptors):
        target = descriptor.target
        owner = claimed.get(target)
        if owner is None:
            claimed[target] = descriptor.source
            continue
        error = ConversionFailedError(
            f"Target {target} is already produced from {owner}; rename one of the sources",
            source=str(descriptor.source),
            target=str(target),
        )
        logger.warning("%s", error)
        collisions[index] = GenerationOutcome(status=STATUS_FAILED, error=error)
    return collisions


def _realize(
    descriptor: VariantDescriptor,
    request: GenerationRequest,
    tool: str,
    runner: CommandRunner,
    timeout: float,
) -> GenerationOutcome:
    target = descriptor.target
    if not request.force and target.exists():
        logger.debug("Skipping %s (already exists)", target)
        return GenerationOutcome(status=STATUS_SKIPPED)

    start = time.monotonic()
    args = build_convert_command(tool, descriptor.source, target, descriptor.width, request.quality)
    result = run_convert(runner, args, timeout)
    elapsed = time.monotonic() - start

    if result.timed_out:
        error = ConversionFailedError(
            f"Timed out after {timeout:g}s converting {descriptor.source} -> {target}",
            source=str(descriptor.source),
            target=str(target),
            output=result.output,
        )
    elif result.returncode != 0:
        detail = f": {result.output}" if result.output else ""
        error = ConversionFailedError(
            f"Converter exited with status {result.returncode} for {target}{detail}",
            source=str(descriptor.source),
            target=str(target),
            returncode=result.returncode,
            output=result.output,
        )
    else:
        logger.log(
            logging.INFO if log_commands() else logging.DEBUG,
            "Generated %s in %.2fs",
            target,
            elapsed,
        )
        return GenerationOutcome(status=STATUS_GENERATED, elapsed=elapsed)

    logger.warning("%s", error)
    return GenerationOutcome(status=STATUS_FAILED, error=error, elapsed=elapsed)


def _cancel_requested(cancel_check: Callable[[], bool] | None) -> bool:
    if cancel_check is None:
        return False
    try:
        return bool(cancel_check())
    except Exception:
        logger.debug("cancel_check raised; ignoring", exc_info=True)
        return False


def realize_request(
    request: GenerationRequest,
    *,
    tool: str,
    runner: CommandRunner,
    config: Config | None = None,
    cancel_check: Callable[[], bool] | None = None,
    on_outcome: OutcomeCallback | None = None,
) -> GenerationReport:
    """
    Produce every descriptor in ``request``.

    With ``config.workers`` > 1 at most that many converter processes run at
    once. When ``cancel_check`` returns True no new invocation is started;
    running ones finish and the report is marked cancelled. Each target is
    written by at most one invocation (see find_collisions).

    Raises:
        ToolNotFoundError: If the converter disappears during the run
    """
    config = config or Config()
    descriptors = request.descriptors
    outcomes: list[GenerationOutcome | None] = [None] * len(descriptors)
    collisions = find_collisions(request)
    cancelled = False

    def record(index: int, outcome: GenerationOutcome) -> None:
        outcomes[index] = outcome
        if on_outcome is not None:
            on_outcome(descriptors[index], outcome)

    if config.workers <= 1:
        for index, descriptor in enumerate(descriptors):
            if index in collisions:
                record(index, collisions[index])
                continue
            if _cancel_requested(cancel_check):
                cancelled = True
                break
            record(index, _realize(descriptor, request, tool, runner, config.timeout))
    else:
        with ThreadPoolExecutor(max_workers=config.workers) as executor:
            pending: dict[Future[GenerationOutcome], int] = {}
            queue = iter(enumerate(descriptors))
            exhausted = False
            while True:
                while not (cancelled or exhausted) and len(pending) < config.workers:
                    if _cancel_requested(cancel_check):
                        cancelled = True
                        break
                    item = next(queue, None)
                    if item is None:
                        exhausted = True
                        break
                    index, descriptor = item
                    if index in collisions:
                        record(index, collisions[index])
                        continue
                    future = executor.submit(
                        _realize, descriptor, request, tool, runner, config.timeout
                    )
                    pending[future] = index
                if not pending:
                    break
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    record(pending.pop(future), future.result())

    report = GenerationReport(cancelled=cancelled)
    for descriptor, outcome in zip(descriptors, outcomes):
        if outcome is None:
            continue
        report.outcomes.append((descriptor, outcome))
        if outcome.error is not None:
            report.failures.append(
                GenerationFailure(
                    source=descriptor.source,
                    error=outcome.error,
                    target=descriptor.target,
                    width=descriptor.width,
                )
            )
    if cancelled:
        logger.warning(
            "Cancelled after %d of %d variant(s)", len(report.outcomes), len(descriptors)
        )
    return report


def generate(
    path: str | Path,
    widths: Sequence[int] | None = None,
    format: str | None = None,
    quality: int | None = None,
    force: bool = False,
    *,
    config: Config | None = None,
    runner: CommandRunner | None = None,
    cancel_check: Callable[[], bool] | None = None,
    on_outcome: OutcomeCallback | None = None,
    on_request: Callable[[GenerationRequest], None] | None = None,
) -> GenerationReport:
    """
    Generate all configured variants for one image or a directory of images.

    Args:
        path: Image file or directory (walked recursively)
        widths: Variant widths in order (defaults to config.widths)
        format: Output format token (defaults to config.format)
        quality: 1-100 (defaults to config.quality)
        force: Regenerate variants that already exist
        config: Optional config; a default Config() is used when omitted
        runner: CommandRunner used to find and run the converter
        cancel_check: Optional callable returning True to stop launching work.
            Should return quickly; exceptions are ignored.
        on_outcome: Called with (descriptor, outcome) as each variant completes
        on_request: Called once with the planned GenerationRequest before any conversion

    Returns:
        GenerationReport with generated/skipped/failed counts and failures

    Raises:
        InvalidInputError: If widths, format or quality are malformed
        ConfigurationError: If config is invalid
        ToolNotFoundError: If the converter is not installed (before any work)
    """
    config = config or Config()
    config.validate()
    widths = validate_widths(config.widths if widths is None else widths)
    fmt = validate_format(format if format is not None else config.format)
    quality = validate_quality(config.quality if quality is None else quality)
    runner = runner or SubprocessRunner()

    tool = resolve_converter(runner, config.converter)

    sources, discovery_failures = discover_images(path, config)
    request = build_request(sources, widths, fmt, quality, force=force)
    if on_request is not None:
        on_request(request)
    logger.info(
        "Generating %d variant(s) for %d image(s): widths=%s format=%s quality=%d%s",
        len(request),
        len(sources),
        ",".join(str(w) for w in widths),
        fmt,
        quality,
        " (force)" if force else "",
    )

    report = realize_request(
        request,
        tool=tool,
        runner=runner,
        config=config,
        cancel_check=cancel_check,
        on_outcome=on_outcome,
    )
    report.failures[:0] = discovery_failures
    logger.info("Done: %s", report.summary())
    return report


__all__ = [
    "STATUS_FAILED",
    "STATUS_GENERATED",
    "STATUS_SKIPPED",
    "GenerationFailure",
    "GenerationOutcome",
    "GenerationReport",
    "GenerationRequest",
    "VariantDescriptor",
    "build_request",
    "discover_images",
    "find_collisions",
    "generate",
    "realize_request",
]
