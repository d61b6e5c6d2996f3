"""Configuration for pytest fixtures used in suiup tests."""

from __future__ import annotations

import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import Callable

import pytest

from suiup.config import BinaryRegistry
from suiup.paths import SuiupDirs, install_path
from suiup.platform import Platform
from suiup.store import InstalledBinaries, InstalledBinaryRecord


@pytest.fixture
def posix() -> Platform:
    return Platform("linux", "x86_64")


@pytest.fixture
def dirs(tmp_path: Path) -> SuiupDirs:
    """A fully initialized directory layout below ``tmp_path``."""
    d = SuiupDirs(
        config_dir=tmp_path / "config" / "suiup" / "config",
        data_dir=tmp_path / "data" / "suiup",
        cache_dir=tmp_path / "cache" / "suiup",
        default_bin_dir=tmp_path / "bin",
    )
    d.initialize()
    return d


@pytest.fixture
def registry() -> BinaryRegistry:
    return BinaryRegistry.load()


@pytest.fixture
def add_artifact(dirs: SuiupDirs, posix: Platform) -> Callable:
    """Write an installed executable and record it, like a finished install."""

    def _add(
        name: str,
        network: str,
        version: str,
        debug: bool = False,  # noqa: FBT001, FBT002
        content: bytes | None = None,
        record_path: bool = True,  # noqa: FBT001, FBT002
    ) -> Path:
        path = install_path(dirs.binaries_dir, name, network, version, debug, posix)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content if content is not None else f"{name} {network} {version}".encode())
        path.chmod(0o644)
        installed = InstalledBinaries.load(dirs.installed_binaries_file)
        installed.add_or_replace(
            InstalledBinaryRecord(name, network, version, debug, str(path) if record_path else None),
        )
        installed.save()
        return path

    return _add


@pytest.fixture
def create_dummy_archive() -> Callable:
    r"""Create an archive file with binary files for testing.

    Usage:
        archive_path = create_dummy_archive(
            dest_path=tmp_path / "sui-testnet-v1.39.3-ubuntu-x86_64.tgz",
            binary_names=["sui", "sui-debug"],
            archive_type="tar.gz",
            binary_content="#!/bin/sh\necho test"
        )
    """

    def _create_archive(
        dest_path: Path,
        binary_names: str | list[str],
        archive_type: str = "tar.gz",
        binary_content: str = "#!/usr/bin/env echo\n",
        nested_dir: str | None = None,
    ) -> Path:
        if isinstance(binary_names, str):
            binary_names = [binary_names]

        with tempfile.TemporaryDirectory() as tmp_dir:
            tmp_path = Path(tmp_dir)

            if nested_dir:
                bin_dir = tmp_path / nested_dir
                bin_dir.mkdir(exist_ok=True, parents=True)
            else:
                bin_dir = tmp_path

            created_files = []
            for binary in binary_names:
                bin_file = bin_dir / binary
                bin_file.write_text(f"{binary_content}{binary}\n")
                bin_file.chmod(0o755)
                created_files.append(bin_file)

            dest_path.parent.mkdir(parents=True, exist_ok=True)
            if archive_type == "tar.gz":
                with tarfile.open(dest_path, "w:gz") as tar:
                    for file_path in created_files:
                        tar.add(file_path, arcname=str(file_path.relative_to(tmp_path)))
            elif archive_type == "zip":
                with zipfile.ZipFile(dest_path, "w") as zipf:
                    for file_path in created_files:
                        zipf.write(file_path, arcname=str(file_path.relative_to(tmp_path)))
            else:  # pragma: no cover
                msg = f"Unsupported archive type: {archive_type}"
                raise ValueError(msg)

            return dest_path

    return _create_archive
