"""Pruning the release archive cache."""

from __future__ import annotations

import shutil
import time
from dataclasses import dataclass
from pathlib import Path

from .errors import IoError
from .utils import log

SECONDS_PER_DAY = 60 * 60 * 24
_UNITS = ("B", "KB", "MB", "GB", "TB", "PB", "EB")


def format_file_size(size: int) -> str:
    """Format a byte count, e.g. ``1536`` as ``1.50 KB``."""
    if size <= 0:
        return "0 B"
    exponent = 0
    value = float(size)
    while value >= 1024 and exponent < len(_UNITS) - 1:  # noqa: PLR2004
        value /= 1024
        exponent += 1
    if value < 10:  # noqa: PLR2004
        return f"{value:.2f} {_UNITS[exponent]}"
    if value < 100:  # noqa: PLR2004
        return f"{value:.1f} {_UNITS[exponent]}"
    return f"{value:.0f} {_UNITS[exponent]}"


def _percent(part: int, total: int) -> str:
    if total == 0 or part == 0:
        return "0.0"
    pct = part / total * 100
    if pct < 10:  # noqa: PLR2004
        return f"{pct:.2f}"
    if pct < 100:  # noqa: PLR2004
        return f"{pct:.1f}"
    return "100"


def _files(directory: Path) -> list[Path]:
    return [p for p in directory.rglob("*") if p.is_file()]


def dir_size(directory: Path) -> int:
    """Total size in bytes of the files below ``directory``."""
    if not directory.exists():
        return 0
    return sum(p.stat().st_size for p in _files(directory))


@dataclass
class CleanupResult:
    """What a cleanup removed, or would remove on a dry run."""

    removed: list[Path]
    freed: int
    size_before: int


def cleanup_releases(
    releases_dir: Path,
    remove_all: bool = False,  # noqa: FBT001, FBT002
    days: int = 30,
    dry_run: bool = False,  # noqa: FBT001, FBT002
    now: float | None = None,
) -> CleanupResult:
    """Delete cached release archives.

    With ``remove_all`` the whole directory is emptied, otherwise only files
    whose modification time is more than ``days`` days old are deleted.
    """
    log(f"Release archives directory: {releases_dir}", "info")
    if not releases_dir.exists():
        log("Release archives directory does not exist, nothing to clean up.", "info")
        return CleanupResult([], 0, 0)

    size_before = dir_size(releases_dir)
    log(f"Current cache size: {format_file_size(size_before)}", "info")

    if remove_all:
        files = _files(releases_dir)
        if dry_run:
            log(
                f"Would remove all {len(files)} files totaling "
                f"{format_file_size(size_before)} (dry run)",
            )
            return CleanupResult(files, size_before, size_before)
        try:
            shutil.rmtree(releases_dir)
            releases_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            msg = f"Cannot clear {releases_dir}: {e}"
            raise IoError(msg, releases_dir) from e
        log(
            f"Cache cleared successfully. {len(files)} files removed, "
            f"{format_file_size(size_before)} freed",
            "success",
        )
        return CleanupResult(files, size_before, size_before)

    now = time.time() if now is None else now
    cutoff = days * SECONDS_PER_DAY
    log(f"Removing release archives older than {days} days...", "info")
    removed: list[Path] = []
    freed = 0
    for path in sorted(_files(releases_dir)):
        stat = path.stat()
        age = now - stat.st_mtime
        if age <= cutoff:
            continue
        days_old = int(age // SECONDS_PER_DAY)
        verb = "Would remove" if dry_run else "Removing"
        log(f"{verb}: {path} ({days_old} days old, {format_file_size(stat.st_size)})")
        if not dry_run:
            try:
                path.unlink()
            except OSError as e:
                msg = f"Cannot remove file {path}: {e}"
                raise IoError(msg, path) from e
        removed.append(path)
        freed += stat.st_size

    if dry_run:
        log(f"Would remove {len(removed)} files totaling {format_file_size(freed)} (dry run)")
        log(
            f"Hypothetical new cache size: {format_file_size(size_before - freed)} "
            f"(would free {_percent(freed, size_before)}%)",
        )
    else:
        log(
            f"Cleanup complete. {len(removed)} files removed, {format_file_size(freed)} freed "
            f"(from {format_file_size(size_before)}, {_percent(freed, size_before)}%)",
            "success",
        )
        log(f"New cache size: {format_file_size(dir_size(releases_dir))}", "info")
    return CleanupResult(removed, freed, size_before)
