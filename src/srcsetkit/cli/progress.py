"""
Rich progress displays for CLI operations.

All output goes to stderr to preserve stdout for machine-readable output
(the summary line, srcset strings and markup).
"""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from srcsetkit import GenerationFailure, GenerationOutcome, GenerationReport, VariantDescriptor
from srcsetkit.core.generator import STATUS_GENERATED, STATUS_SKIPPED

# Console for stderr output (preserves stdout for machine output)
console = Console(stderr=True)


class GenerationProgress:
    """Handle yielded by generation_progress(); sized once the batch is planned."""

    def __init__(self, progress: Progress, task: TaskID) -> None:
        self._progress = progress
        self._task = task

    def start(self, total: int) -> None:
        self._progress.update(self._task, total=total)

    def advance(self) -> None:
        self._progress.advance(self._task)


@contextmanager
def generation_progress(fmt: str | None = None) -> Iterator[GenerationProgress]:
    """
    Display a progress bar while variants are generated.

    Args:
        fmt: Output format, shown in the description

    Yields:
        GenerationProgress; call start(total) once planned, advance() per variant
    """
    progress = Progress(
        SpinnerColumn(spinner_name="dots"),
        TextColumn("[green]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,  # Disappears when done
    )

    desc = "Generating variants"
    if fmt:
        desc += f" [dim]({fmt})[/dim]"

    with progress:
        task = progress.add_task(desc, total=None)
        yield GenerationProgress(progress, task)


def _display(path: Path) -> str:
    return escape(str(path))


def print_outcome(descriptor: VariantDescriptor, outcome: GenerationOutcome) -> None:
    """Print one line per variant: generated, skipped or failed."""
    target = _display(descriptor.target)
    if outcome.status == STATUS_GENERATED:
        console.print(f"[green]✓[/green] {target} [dim]{outcome.elapsed:.1f}s[/dim]")
    elif outcome.status == STATUS_SKIPPED:
        console.print(f"[dim]•[/dim] {target} [dim](exists)[/dim]")
    else:
        console.print(f"[red]✗[/red] {target}: {escape(str(outcome.error))}")


def print_source_failure(failure: GenerationFailure) -> None:
    """Print a source rejected before conversion (missing or not an image)."""
    console.print(f"[red]✗[/red] {_display(failure.source)}: {escape(failure.reason)}")


def print_summary(report: GenerationReport) -> None:
    """
    Print a panel with the generated/skipped/failed counts.

    Args:
        report: The finished batch report
    """
    table = Table.grid(padding=(0, 2))
    table.add_column(style="cyan", justify="right", vertical="top")
    table.add_column(style="white")

    table.add_row("Generated", f"[bold green]{report.generated}[/bold green]")
    table.add_row("Skipped", str(report.skipped))
    failed_style = "bold red" if report.failed else "white"
    table.add_row("Failed", f"[{failed_style}]{report.failed}[/{failed_style}]")
    if report.cancelled:
        table.add_row("Status", "[yellow]cancelled[/yellow]")

    if report.failed:
        title, border = "[bold red]✗ Finished with failures[/bold red]", "red"
    elif report.cancelled:
        title, border = "[bold yellow]⚠ Cancelled[/bold yellow]", "yellow"
    else:
        title, border = "[bold green]✓ Variants ready[/bold green]", "green"

    console.print()
    console.print(Panel(table, title=title, border_style=border, padding=(1, 2)))


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[yellow]⚠[/yellow] {escape(message)}")


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(f"[red]✗[/red] {escape(message)}")
