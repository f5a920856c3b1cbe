"""
Pytest configuration: default runs unit tests; use --run-slow to include
tests that call a real ImageMagick install.
"""

import threading
from collections.abc import Callable
from pathlib import Path

import pytest
from PIL import Image

from srcsetkit.core.converter import CommandResult


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run slow tests (real ImageMagick conversions). Default: skip them.",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-slow", False):
        return
    skip_slow = pytest.mark.skip(reason="Slow test; run with --run-slow to include")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


class FakeRunner:
    """
    CommandRunner that never spawns a process.

    run() writes a small file at the target path (the last argument) unless the
    target name matches one of ``fail_on`` / ``timeout_on``.
    """

    def __init__(
        self,
        available: bool = True,
        fail_on: tuple[str, ...] = (),
        timeout_on: tuple[str, ...] = (),
        on_run: Callable[[list[str]], None] | None = None,
    ) -> None:
        self.available = available
        self.fail_on = fail_on
        self.timeout_on = timeout_on
        self.on_run = on_run
        self.calls: list[list[str]] = []
        self.lookups: list[str] = []
        self._lock = threading.Lock()

    def find_executable(self, name: str) -> str | None:
        self.lookups.append(name)
        return f"/usr/bin/{name}" if self.available else None

    def run(self, args: list[str], timeout: float) -> CommandResult:
        with self._lock:
            self.calls.append(list(args))
        if self.on_run is not None:
            self.on_run(args)
        target = Path(args[-1])
        if any(part in target.name for part in self.timeout_on):
            return CommandResult(returncode=None, timed_out=True)
        if any(part in target.name for part in self.fail_on):
            return CommandResult(returncode=1, stderr="convert: improper image header")
        target.write_bytes(b"variant")
        return CommandResult(returncode=0, elapsed=0.01)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_image() -> Callable[..., Path]:
    """Factory writing a small real image with Pillow: make_image(path, size=(32, 16))."""

    def _make(path: Path, size: tuple[int, int] = (32, 16), fmt: str | None = None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGB", size, color=(200, 80, 40)).save(path, format=fmt)
        return path

    return _make


@pytest.fixture
def runner_factory() -> type[FakeRunner]:
    """The FakeRunner class, for tests that need a missing or failing converter."""
    return FakeRunner
