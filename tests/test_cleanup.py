"""Tests for suiup.cleanup."""

from __future__ import annotations

import os
import time
from pathlib import Path

import pytest

from suiup.cleanup import SECONDS_PER_DAY, cleanup_releases, dir_size, format_file_size


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        (0, "0 B"),
        (512, "512 B"),
        (1536, "1.50 KB"),
        (20 * 1024, "20.0 KB"),
        (5 * 1024**3, "5.00 GB"),
    ],
)
def test_format_file_size(size: int, expected: str) -> None:
    assert format_file_size(size) == expected


def _cache(tmp_path: Path) -> tuple[Path, Path, Path]:
    releases = tmp_path / "releases"
    (releases / "standalone").mkdir(parents=True)
    old = releases / "sui-testnet-v1.39.3-ubuntu-x86_64.tgz"
    old.write_bytes(b"x" * 100)
    new = releases / "standalone" / "v0.0.5-mvr-ubuntu-x86_64"
    new.write_bytes(b"y" * 50)
    now = time.time()
    os.utime(old, (now - 40 * SECONDS_PER_DAY, now - 40 * SECONDS_PER_DAY))
    return releases, old, new


def test_cleanup_by_age(tmp_path: Path) -> None:
    releases, old, new = _cache(tmp_path)
    result = cleanup_releases(releases, days=30)
    assert result.removed == [old]
    assert result.freed == 100
    assert result.size_before == 150
    assert not old.exists()
    assert new.exists()


def test_cleanup_dry_run(tmp_path: Path) -> None:
    releases, old, _ = _cache(tmp_path)
    result = cleanup_releases(releases, days=30, dry_run=True)
    assert result.removed == [old]
    assert old.exists()


def test_cleanup_all(tmp_path: Path) -> None:
    releases, _, _ = _cache(tmp_path)
    result = cleanup_releases(releases, remove_all=True)
    assert len(result.removed) == 2
    assert releases.is_dir()
    assert dir_size(releases) == 0
    assert list(releases.iterdir()) == []


def test_cleanup_missing_dir(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    result = cleanup_releases(tmp_path / "nope")
    assert result.removed == []
    assert "nothing to clean up" in " ".join(capsys.readouterr().out.split())
