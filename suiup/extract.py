"""Extract executables from release archives."""

from __future__ import annotations

import logging
import shutil
import tarfile
import zipfile
from pathlib import Path, PurePosixPath

from .errors import ExtractionError
from .platform import Platform
from .utils import log

logger = logging.getLogger(__name__)

DEFAULT_MODE = 0o644


def _member_basename(name: str) -> str:
    return PurePosixPath(name.replace("\\", "/")).name


def _extract_from_tar(archive_path: Path, wanted: str, destination: Path) -> int | None:
    """Copy the member named ``wanted`` to ``destination`` and return its mode.

    Returns ``None`` when no member matches.
    """
    with tarfile.open(archive_path, mode="r:*") as tar:
        for member in tar:
            if not member.isfile() or _member_basename(member.name) != wanted:
                continue
            source = tar.extractfile(member)
            if source is None:
                continue
            with source, open(destination, "wb") as out:
                shutil.copyfileobj(source, out)
            return member.mode
    return None


def _extract_from_zip(archive_path: Path, wanted: str, destination: Path) -> int | None:
    """Copy the member named ``wanted`` to ``destination`` and return its mode."""
    with zipfile.ZipFile(archive_path) as zip_file:
        for info in zip_file.infolist():
            if info.is_dir() or _member_basename(info.filename) != wanted:
                continue
            with zip_file.open(info) as source, open(destination, "wb") as out:
                shutil.copyfileobj(source, out)
            return (info.external_attr >> 16) & 0o777 or DEFAULT_MODE
    return None


def extract_binary(
    archive_path: Path,
    binary_name: str,
    destination: Path,
    platform: Platform,
) -> Path:
    """Extract ``binary_name`` from an archive to ``destination``.

    Members are matched on their base name, with the platform extension. On
    POSIX the mode stored in the archive is kept, with the executable bits
    forced on.

    Raises:
        ExtractionError: If the archive cannot be read or lacks the binary.

    """
    wanted = platform.with_extension(binary_name)
    logger.debug("Extracting %s from %s", wanted, archive_path)
    name = archive_path.name
    destination.parent.mkdir(parents=True, exist_ok=True)
    try:
        if name.endswith((".tgz", ".tar.gz", ".tar")):
            mode = _extract_from_tar(archive_path, wanted, destination)
        elif name.endswith(".zip"):
            mode = _extract_from_zip(archive_path, wanted, destination)
        else:
            msg = f"Unsupported archive format: {archive_path}"
            raise ExtractionError(msg)
    except (tarfile.TarError, zipfile.BadZipFile, OSError) as e:
        destination.unlink(missing_ok=True)
        msg = f"Failed to extract {wanted} from {archive_path}: {e}"
        raise ExtractionError(msg) from e

    if mode is None:
        msg = f"{wanted} not found in archive {archive_path}"
        raise ExtractionError(msg)

    if platform.is_posix:
        destination.chmod((mode | 0o755) & 0o7777)
    log(f"'{wanted}' extracted successfully!", "success")
    return destination
