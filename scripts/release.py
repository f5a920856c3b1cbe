#!/usr/bin/env python
"""
Release a new version (bump, tag, publish).

Usage:
    python scripts/release.py BUMP [--dry-run] [--skip-tests] [--yes]

Where BUMP is one of:
    major   Bump major version (X.0.0)
    minor   Bump minor version (0.X.0)
    patch   Bump patch version (0.0.X)
    X.Y.Z   Set explicit version

Steps:
    1. Check the git working tree is clean
    2. Check the new version is greater than the current one
    3. Run the test suite
    4. Update pyproject.toml, README.md (install pin) and CHANGELOG.md
    5. Commit, tag vX.Y.Z and push
    6. Create a GitHub release (gh CLI) with the CHANGELOG section as notes
    7. Build and upload to PyPI (build + twine)
"""

import argparse
import re
import subprocess
import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
PYPROJECT = ROOT / "pyproject.toml"
README = ROOT / "README.md"
CHANGELOG = ROOT / "CHANGELOG.md"

PACKAGE = "srcsetkit"
ENTRIES_MARKER = "<!-- %% CHANGELOG_ENTRIES %% -->"

_SEMVER_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")
_VERSION_LINE_RE = re.compile(r'^version\s*=\s*"([^"]+)"', re.MULTILINE)
_README_PIN_RE = re.compile(rf'"{PACKAGE}>=[\d.]+"')


class ReleaseError(Exception):
    """A release step failed; the message is shown to the user."""


def parse_version(version: str) -> tuple[int, int, int]:
    match = _SEMVER_RE.match(version.strip())
    if not match:
        raise ReleaseError(f"Invalid version format: {version}")
    major, minor, patch = (int(part) for part in match.groups())
    return major, minor, patch


def calculate_new_version(current: str, bump: str) -> str:
    """Return the version after applying ``bump`` (major/minor/patch/X.Y.Z) to ``current``."""
    try:
        major, minor, patch = parse_version(current)
    except ReleaseError:
        raise ReleaseError(f"Current version '{current}' is not valid semver") from None
    if bump == "major":
        return f"{major + 1}.0.0"
    if bump == "minor":
        return f"{major}.{minor + 1}.0"
    if bump == "patch":
        return f"{major}.{minor}.{patch + 1}"
    parse_version(bump)
    return bump


def validate_version_bump(current: str, new: str) -> None:
    if parse_version(new) <= parse_version(current):
        raise ReleaseError(f"New version {new} must be greater than current version {current}")


def get_current_version(pyproject_text: str) -> str:
    match = _VERSION_LINE_RE.search(pyproject_text)
    if not match:
        raise ReleaseError("Could not find version in pyproject.toml")
    return match.group(1)


def update_pyproject(text: str, new_version: str) -> str:
    updated = _VERSION_LINE_RE.sub(f'version = "{new_version}"', text, count=1)
    if updated == text and get_current_version(text) != new_version:
        raise ReleaseError("Could not find version in pyproject.toml")
    return updated


def major_minor(version: str) -> str:
    major, minor, _ = parse_version(version)
    return f"{major}.{minor}"


def update_readme(text: str, new_version: str) -> str:
    """Point the README install pin ("srcsetkit>=X.Y") at the new minor version."""
    return _README_PIN_RE.sub(f'"{PACKAGE}>={major_minor(new_version)}"', text)


def update_changelog(text: str, new_version: str, today: date | None = None) -> str:
    """
    Add the release header to CHANGELOG text.

    An "## Unreleased" header is renamed; otherwise a new entry goes after the
    entries marker, or after the Semantic Versioning line as a last resort.
    """
    today = today or date.today()
    header = f"## {new_version} - {today.isoformat()}"

    for unreleased in ("## UNRELEASED", "## Unreleased"):
        if unreleased in text:
            return text.replace(unreleased, header)

    entry = f"{header}\n\n- Release {new_version}"
    if ENTRIES_MARKER in text:
        return text.replace(ENTRIES_MARKER, f"{ENTRIES_MARKER}\n\n{entry}", 1)

    return re.sub(
        r"(adheres to \[Semantic Versioning\].*?\n)",
        lambda m: f"{m.group(1)}\n{entry}\n",
        text,
        count=1,
    )


def extract_changelog_section(text: str, version: str) -> str:
    """Return the body of the CHANGELOG section for ``version`` (used as release notes)."""
    match = re.search(
        rf"## {re.escape(version)}[^\n]*\n(.*?)(?=\n## |\Z)",
        text,
        re.DOTALL,
    )
    if not match:
        return f"Release {version}"
    return match.group(1).strip()


def run(args: list[str], dry_run: bool = False) -> None:
    """Run a command from the repository root, streaming its output."""
    if dry_run:
        print(f"  [dry run] {' '.join(args)}")
        return
    try:
        result = subprocess.run(args, cwd=ROOT)
    except FileNotFoundError:
        raise ReleaseError(f"Command not found: {args[0]}") from None
    if result.returncode != 0:
        raise ReleaseError(f"Command failed ({result.returncode}): {' '.join(args)}")


def check_repo_clean() -> None:
    try:
        result = subprocess.run(
            ["git", "status", "--porcelain"], cwd=ROOT, capture_output=True, text=True
        )
    except FileNotFoundError:
        raise ReleaseError("git not found") from None
    if result.returncode != 0:
        raise ReleaseError(f"Failed to check git status: {result.stderr.strip()}")
    if result.stdout.strip():
        raise ReleaseError(
            f"Repository has uncommitted changes:\n{result.stdout}Commit or stash them first."
        )


def step(name: str) -> None:
    print(f"→ {name}")


def release(bump: str, dry_run: bool, skip_tests: bool, auto_yes: bool) -> str:
    pyproject_text = PYPROJECT.read_text(encoding="utf-8")
    current = get_current_version(pyproject_text)
    new_version = calculate_new_version(current, bump)
    tag = f"v{new_version}"

    print(f"Releasing {current} → {new_version}")
    if dry_run:
        print("\n[DRY RUN] No changes will be made\n")

    step("Checking repository is clean")
    check_repo_clean()

    step("Validating version")
    validate_version_bump(current, new_version)

    if not skip_tests:
        step("Running tests")
        run([sys.executable, "-m", "pytest"])

    if not (auto_yes or dry_run):
        answer = input("\nProceed with release? [y/N] ").strip().lower()
        if answer not in ("y", "yes"):
            raise ReleaseError("Aborted")

    step("Updating pyproject.toml, README.md and CHANGELOG.md")
    new_pyproject = update_pyproject(pyproject_text, new_version)
    new_readme = update_readme(README.read_text(encoding="utf-8"), new_version)
    new_changelog = update_changelog(CHANGELOG.read_text(encoding="utf-8"), new_version)
    if not dry_run:
        PYPROJECT.write_text(new_pyproject, encoding="utf-8")
        README.write_text(new_readme, encoding="utf-8")
        CHANGELOG.write_text(new_changelog, encoding="utf-8")

    step("Creating git commit")
    run(["git", "add", str(PYPROJECT), str(README), str(CHANGELOG)], dry_run)
    run(["git", "commit", "-m", f"Release {tag}"], dry_run)

    step(f"Creating git tag {tag}")
    run(["git", "tag", "-a", tag, "-m", f"Release {tag}"], dry_run)

    step("Pushing to origin")
    run(["git", "push", "origin", "HEAD"], dry_run)
    run(["git", "push", "origin", tag], dry_run)

    step("Creating GitHub release")
    notes = extract_changelog_section(new_changelog, new_version)
    run(["gh", "release", "create", tag, "--title", tag, "--notes", notes], dry_run)

    step("Publishing to PyPI")
    run([sys.executable, "-m", "build"], dry_run)
    run([sys.executable, "-m", "twine", "upload", f"dist/{PACKAGE}-{new_version}*"], dry_run)

    print(f"\n✓ Successfully released {tag}!")
    return new_version


def main() -> None:
    """Parse arguments and run the release."""
    parser = argparse.ArgumentParser(description="Release a new version (bump, tag, publish)")
    parser.add_argument("bump", help="major, minor, patch or an explicit X.Y.Z")
    parser.add_argument(
        "--dry-run", "-n", action="store_true", help="Show what would happen without making changes"
    )
    parser.add_argument(
        "--skip-tests", action="store_true", help="Skip running tests (not recommended)"
    )
    parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")

    args = parser.parse_args()

    try:
        release(args.bump, args.dry_run, args.skip_tests, args.yes)
    except ReleaseError as e:
        print(f"❌ Failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
