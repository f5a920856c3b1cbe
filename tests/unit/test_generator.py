"""Unit tests for batch variant generation (fake converter, real files)."""

import threading
from pathlib import Path

import pytest
from PIL import Image

from srcsetkit.core.config import Config
from srcsetkit.core.generator import (
    STATUS_FAILED,
    STATUS_GENERATED,
    STATUS_SKIPPED,
    GenerationReport,
    GenerationRequest,
    VariantDescriptor,
    build_request,
    discover_images,
    find_collisions,
    generate,
    realize_request,
)
from srcsetkit.utils.exceptions import (
    ConfigurationError,
    ConversionFailedError,
    InvalidInputError,
    SourceNotAnImageError,
    SourceNotFoundError,
    ToolNotFoundError,
)


@pytest.mark.unit
class TestVariantDescriptor:
    def test_target_next_to_source(self):
        d = VariantDescriptor(source=Path("/site/images/hero.jpg"), width=400, format="webp")
        assert d.target == Path("/site/images/hero_400w.webp")


@pytest.mark.unit
class TestDiscoverImages:
    def test_single_file(self, tmp_path, make_image):
        src = make_image(tmp_path / "photo.png")
        sources, failures = discover_images(src)
        assert sources == [src]
        assert failures == []

    def test_directory_is_recursive_and_sorted(self, tmp_path, make_image):
        b = make_image(tmp_path / "b.jpg")
        a = make_image(tmp_path / "a.png")
        nested = make_image(tmp_path / "sub" / "deep" / "c.jpeg")
        (tmp_path / "notes.txt").write_text("hi")
        sources, failures = discover_images(tmp_path)
        assert sources == sorted([a, b, nested])
        assert failures == []

    def test_extension_match_is_case_insensitive(self, tmp_path, make_image):
        src = make_image(tmp_path / "UPPER.PNG", fmt="PNG")
        sources, _ = discover_images(tmp_path)
        assert sources == [src]

    def test_existing_variants_are_not_sources(self, tmp_path, make_image):
        src = make_image(tmp_path / "hero.jpg")
        make_image(tmp_path / "hero_400w.jpg")
        sources, _ = discover_images(tmp_path)
        assert sources == [src]

    def test_missing_path_is_failure(self, tmp_path):
        sources, failures = discover_images(tmp_path / "nope.png")
        assert sources == []
        assert len(failures) == 1
        assert isinstance(failures[0].error, SourceNotFoundError)
        assert "nope.png" in failures[0].reason

    def test_single_file_with_unsupported_extension(self, tmp_path):
        doc = tmp_path / "readme.txt"
        doc.write_text("not an image")
        sources, failures = discover_images(doc)
        assert sources == []
        assert isinstance(failures[0].error, SourceNotAnImageError)
        assert failures[0].error.image_path == str(doc)

    def test_corrupt_image_is_failure(self, tmp_path, make_image):
        good = make_image(tmp_path / "good.png")
        bad = tmp_path / "bad.png"
        bad.write_bytes(b"definitely not a png")
        sources, failures = discover_images(tmp_path)
        assert sources == [good]
        assert [f.source for f in failures] == [bad]
        assert isinstance(failures[0].error, SourceNotAnImageError)

    def test_verification_can_be_disabled(self, tmp_path):
        bad = tmp_path / "bad.png"
        bad.write_bytes(b"not checked")
        sources, failures = discover_images(bad, Config(verify_sources=False))
        assert sources == [bad]
        assert failures == []

    def test_custom_extensions(self, tmp_path, make_image):
        make_image(tmp_path / "a.png")
        gif = make_image(tmp_path / "b.gif")
        sources, _ = discover_images(tmp_path, Config(extensions=(".gif",)))
        assert sources == [gif]


@pytest.mark.unit
class TestBuildRequest:
    def test_source_then_width_order(self):
        request = build_request([Path("a.png"), Path("b.png")], [800, 400], "webp", 85, force=True)
        assert [(d.source.name, d.width) for d in request.descriptors] == [
            ("a.png", 800),
            ("a.png", 400),
            ("b.png", 800),
            ("b.png", 400),
        ]
        assert request.force is True
        assert request.quality == 85
        assert len(request) == 4

    def test_repeated_widths_planned_once(self):
        request = build_request([Path("a.png")], [400, 800, 400], "webp", 85)
        assert [d.width for d in request.descriptors] == [400, 800]


@pytest.mark.unit
class TestGenerate:
    def test_generates_every_width(self, tmp_path, make_image, fake_runner):
        src = make_image(tmp_path / "photo.png")
        report = generate(src, widths=[400, 800], runner=fake_runner)

        assert (report.generated, report.skipped, report.failed) == (2, 0, 0)
        assert report.ok
        assert (tmp_path / "photo_400w.webp").exists()
        assert (tmp_path / "photo_800w.webp").exists()
        assert src.exists()

    def test_converter_arguments(self, tmp_path, make_image, fake_runner):
        src = make_image(tmp_path / "photo.png")
        generate(src, widths=[640], format="avif", quality=70, runner=fake_runner)

        assert fake_runner.calls == [
            [
                "/usr/bin/magick",
                str(src),
                "-auto-orient",
                "-resize",
                "640x",
                "-strip",
                "-quality",
                "70",
                str(tmp_path / "photo_640w.avif"),
            ]
        ]

    def test_defaults_come_from_config(self, tmp_path, make_image, fake_runner):
        src = make_image(tmp_path / "photo.png")
        config = Config(widths=(100, 200), format="jpg", quality=60, converter="convert")
        report = generate(src, config=config, runner=fake_runner)

        assert report.generated == 2
        assert fake_runner.lookups == ["convert"]
        assert fake_runner.calls[0][7] == "60"
        assert (tmp_path / "photo_100w.jpg").exists()

    def test_second_run_skips_everything(self, tmp_path, make_image, fake_runner):
        make_image(tmp_path / "a.png")
        make_image(tmp_path / "b.jpg")

        first = generate(tmp_path, widths=[400, 800], runner=fake_runner)
        assert (first.generated, first.skipped) == (4, 0)

        second = generate(tmp_path, widths=[400, 800], runner=fake_runner)
        assert (second.generated, second.skipped, second.failed) == (0, 4, 0)
        assert len(fake_runner.calls) == 4

    def test_force_regenerates(self, tmp_path, make_image, fake_runner):
        src = make_image(tmp_path / "a.png")
        generate(src, widths=[400], runner=fake_runner)
        report = generate(src, widths=[400], force=True, runner=fake_runner)
        assert (report.generated, report.skipped) == (1, 0)
        assert len(fake_runner.calls) == 2

    def test_missing_tool_aborts_before_any_work(self, tmp_path, make_image, runner_factory):
        make_image(tmp_path / "a.png")
        runner = runner_factory(available=False)
        before = sorted(tmp_path.iterdir())

        with pytest.raises(ToolNotFoundError) as exc_info:
            generate(tmp_path, widths=[400, 800], runner=runner)

        assert exc_info.value.tool == "magick"
        assert "ImageMagick" in str(exc_info.value)
        assert runner.calls == []
        assert sorted(tmp_path.iterdir()) == before

    def test_missing_tool_checked_before_missing_source(self, tmp_path, runner_factory):
        with pytest.raises(ToolNotFoundError):
            generate(tmp_path / "nope.png", runner=runner_factory(available=False))

    def test_failure_is_isolated(self, tmp_path, make_image, runner_factory):
        make_image(tmp_path / "a.png")
        make_image(tmp_path / "b.png")
        runner = runner_factory(fail_on=("a_800w",))

        report = generate(tmp_path, widths=[400, 800], runner=runner)

        assert (report.generated, report.skipped, report.failed) == (3, 0, 1)
        assert not report.ok
        failure = report.failures[0]
        assert failure.target == tmp_path / "a_800w.webp"
        assert failure.width == 800
        assert isinstance(failure.error, ConversionFailedError)
        assert failure.error.returncode == 1
        assert "improper image header" in failure.reason
        assert len(runner.calls) == 4

    def test_timeout_is_a_failure(self, tmp_path, make_image, runner_factory):
        src = make_image(tmp_path / "a.png")
        report = generate(src, widths=[400], runner=runner_factory(timeout_on=("a_400w",)))

        assert report.failed == 1
        error = report.failures[0].error
        assert isinstance(error, ConversionFailedError)
        assert error.returncode is None
        assert "Timed out" in str(error)

    def test_missing_source_is_reported_not_raised(self, tmp_path, fake_runner):
        report = generate(tmp_path / "missing.png", runner=fake_runner)
        assert (report.generated, report.skipped, report.failed) == (0, 0, 1)
        assert isinstance(report.failures[0].error, SourceNotFoundError)
        assert report.failures[0].target is None

    def test_discovery_failures_come_first(self, tmp_path, make_image, runner_factory):
        make_image(tmp_path / "a.png")
        (tmp_path / "broken.png").write_bytes(b"nope")
        runner = runner_factory(fail_on=("a_400w",))

        report = generate(tmp_path, widths=[400], runner=runner)

        assert [type(f.error) for f in report.failures] == [
            SourceNotAnImageError,
            ConversionFailedError,
        ]

    def test_outcomes_in_request_order(self, tmp_path, make_image, fake_runner):
        src = make_image(tmp_path / "a.png")
        (tmp_path / "a_800w.webp").write_bytes(b"old")

        report = generate(src, widths=[400, 800, 1200], runner=fake_runner)

        assert [(d.width, o.status) for d, o in report.outcomes] == [
            (400, STATUS_GENERATED),
            (800, STATUS_SKIPPED),
            (1200, STATUS_GENERATED),
        ]
        assert (tmp_path / "a_800w.webp").read_bytes() == b"old"

    def test_callbacks(self, tmp_path, make_image, runner_factory):
        src = make_image(tmp_path / "a.png")
        seen = []
        planned = []

        generate(
            src,
            widths=[400, 800],
            runner=runner_factory(fail_on=("800w",)),
            on_request=lambda request: planned.append(len(request)),
            on_outcome=lambda d, o: seen.append((d.width, o.status)),
        )

        assert planned == [2]
        assert seen == [(400, STATUS_GENERATED), (800, STATUS_FAILED)]

    def test_cancel_stops_new_invocations(self, tmp_path, make_image, fake_runner):
        src = make_image(tmp_path / "a.png")
        calls = {"n": 0}

        def cancel_after_first() -> bool:
            calls["n"] += 1
            return calls["n"] > 1

        report = generate(
            src, widths=[400, 800, 1200], runner=fake_runner, cancel_check=cancel_after_first
        )

        assert report.cancelled is True
        assert not report.ok
        assert report.generated == 1
        assert len(fake_runner.calls) == 1

    def test_buggy_cancel_check_is_ignored(self, tmp_path, make_image, fake_runner):
        src = make_image(tmp_path / "a.png")

        def broken() -> bool:
            raise RuntimeError("boom")

        report = generate(src, widths=[400], runner=fake_runner, cancel_check=broken)
        assert report.generated == 1
        assert report.cancelled is False

    def test_tool_vanishing_mid_run_is_fatal(self, tmp_path, make_image, runner_factory):
        src = make_image(tmp_path / "a.png")

        def vanish(_args):
            raise ToolNotFoundError("gone", tool="magick")

        with pytest.raises(ToolNotFoundError):
            generate(src, widths=[400], runner=runner_factory(on_run=vanish))

    def test_empty_widths_rejected(self, tmp_path, make_image, fake_runner):
        src = make_image(tmp_path / "a.png")
        with pytest.raises(InvalidInputError):
            generate(src, widths=[], runner=fake_runner)
        assert fake_runner.calls == []

    def test_invalid_quality_rejected(self, tmp_path, make_image, fake_runner):
        src = make_image(tmp_path / "a.png")
        with pytest.raises(InvalidInputError) as exc_info:
            generate(src, widths=[400], quality=101, runner=fake_runner)
        assert exc_info.value.field == "quality"

    def test_invalid_config_rejected(self, tmp_path, fake_runner):
        with pytest.raises(ConfigurationError):
            generate(tmp_path, config=Config(workers=0), runner=fake_runner)


@pytest.mark.unit
class TestGenerateParallel:
    def test_pool_produces_same_report(self, tmp_path, make_image, fake_runner):
        for name in ("a.png", "b.png", "c.png"):
            make_image(tmp_path / name)

        report = generate(
            tmp_path, widths=[100, 200, 300], config=Config(workers=4), runner=fake_runner
        )

        assert report.generated == 9
        assert [(d.source.name, d.width) for d, _ in report.outcomes] == [
            (name, w) for name in ("a.png", "b.png", "c.png") for w in (100, 200, 300)
        ]

    def test_pool_bounds_concurrency(self, tmp_path, make_image, runner_factory):
        make_image(tmp_path / "a.png")
        lock = threading.Lock()
        state = {"running": 0, "peak": 0}
        release = threading.Event()

        def track(_args):
            with lock:
                state["running"] += 1
                state["peak"] = max(state["peak"], state["running"])
                if state["running"] == 2:
                    release.set()
            release.wait(timeout=2)
            with lock:
                state["running"] -= 1

        report = generate(
            tmp_path,
            widths=[1, 2, 3, 4, 5, 6],
            config=Config(workers=2),
            runner=runner_factory(on_run=track),
        )

        assert report.generated == 6
        assert state["peak"] == 2

    def test_pool_isolates_failures(self, tmp_path, make_image, runner_factory):
        make_image(tmp_path / "a.png")
        report = generate(
            tmp_path,
            widths=[100, 200, 300],
            config=Config(workers=3),
            runner=runner_factory(fail_on=("200w",)),
        )
        assert (report.generated, report.failed) == (2, 1)
        assert report.failures[0].width == 200


@pytest.mark.unit
class TestGenerationReport:
    def test_summary_line(self):
        assert GenerationReport().summary() == "generated=0 skipped=0 failed=0"

    def test_empty_report_is_ok(self):
        assert GenerationReport().ok is True


@pytest.mark.unit
class TestTargetCollisions:
    def test_same_stem_sources_share_one_invocation(self, tmp_path, make_image, fake_runner):
        make_image(tmp_path / "photo.png")
        make_image(tmp_path / "photo.jpg")

        report = generate(tmp_path, widths=[400], force=True, runner=fake_runner)

        targets = [args[-1] for args in fake_runner.calls]
        assert targets == [str(tmp_path / "photo_400w.webp")]
        assert (report.generated, report.skipped, report.failed) == (1, 0, 1)
        failure = report.failures[0]
        assert failure.source == tmp_path / "photo.png"
        assert failure.target == tmp_path / "photo_400w.webp"
        assert isinstance(failure.error, ConversionFailedError)
        assert "photo.jpg" in failure.reason

    def test_collision_is_not_reported_as_skipped(self, tmp_path, make_image, fake_runner):
        make_image(tmp_path / "photo.png")
        make_image(tmp_path / "photo.jpg")

        report = generate(tmp_path, widths=[400, 800], runner=fake_runner)

        assert (report.generated, report.skipped, report.failed) == (2, 0, 2)
        assert [(d.source.name, o.status) for d, o in report.outcomes] == [
            ("photo.jpg", STATUS_GENERATED),
            ("photo.jpg", STATUS_GENERATED),
            ("photo.png", STATUS_FAILED),
            ("photo.png", STATUS_FAILED),
        ]

    def test_pool_runs_each_target_once(self, tmp_path, make_image, fake_runner):
        for name in ("photo.png", "photo.jpg", "photo.jpeg", "other.png"):
            make_image(tmp_path / name)

        report = generate(
            tmp_path, widths=[100, 200], force=True, config=Config(workers=4), runner=fake_runner
        )

        targets = [args[-1] for args in fake_runner.calls]
        assert len(targets) == len(set(targets)) == 4
        assert report.generated == 4
        assert report.failed == 4

    def test_repeated_widths_run_once(self, tmp_path, make_image, fake_runner):
        src = make_image(tmp_path / "a.png")

        report = generate(src, widths=[400, 400], force=True, runner=fake_runner)

        assert len(fake_runner.calls) == 1
        assert (report.generated, report.failed) == (1, 0)

    def test_hand_built_duplicate_descriptor(self, tmp_path, make_image, fake_runner):
        src = make_image(tmp_path / "a.png")
        descriptor = VariantDescriptor(source=src, width=400, format="webp")
        request = GenerationRequest(descriptors=(descriptor, descriptor), quality=85)

        assert list(find_collisions(request)) == [1]

        report = realize_request(request, tool="/usr/bin/magick", runner=fake_runner)
        assert len(fake_runner.calls) == 1
        assert [o.status for _, o in report.outcomes] == [STATUS_GENERATED, STATUS_FAILED]


@pytest.mark.unit
class TestSourceVerificationIsolation:
    def test_image_over_pillow_pixel_limit_is_converted(
        self, tmp_path, make_image, fake_runner, monkeypatch
    ):
        make_image(tmp_path / "a.png", size=(32, 16))
        make_image(tmp_path / "big.png", size=(400, 400))
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10000)

        report = generate(tmp_path, widths=[100], runner=fake_runner)

        assert (report.generated, report.failed) == (2, 0)
        assert (tmp_path / "a_100w.webp").exists()
        assert (tmp_path / "big_100w.webp").exists()

    def test_unexpected_pillow_error_fails_only_that_source(
        self, tmp_path, make_image, fake_runner, monkeypatch
    ):
        make_image(tmp_path / "a.png")
        make_image(tmp_path / "b.png")
        real_open = Image.open

        def flaky_open(fp, *args, **kwargs):
            if Path(fp).name == "b.png":
                raise IndexError("tile index out of range")
            return real_open(fp, *args, **kwargs)

        monkeypatch.setattr(Image, "open", flaky_open)

        report = generate(tmp_path, widths=[100], runner=fake_runner)

        assert report.generated == 1
        assert [f.source.name for f in report.failures] == ["b.png"]
        assert isinstance(report.failures[0].error, SourceNotAnImageError)
        assert "tile index out of range" in report.failures[0].reason
