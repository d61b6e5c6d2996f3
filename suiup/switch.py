"""Choosing, promoting and removing installed binaries.

``promote`` is the only code that writes to the default-bin directory and the
only place where the two state files must agree. It verifies the source
before deleting anything, so a failed promotion never leaves the default-bin
directory without the previous binary unless the filesystem itself failed,
in which case the error is raised as-is.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from .config import BinaryConfig
from .errors import ConflictError, IoError, MissingArtifactError, NotFoundError, SourceNotFoundError
from .paths import (
    NIGHTLY_VERSION,
    STANDALONE_NETWORK,
    SuiupDirs,
    default_bin_path,
    display_name,
    install_path,
)
from .platform import Platform
from .store import DefaultVersions, InstalledBinaries, InstalledBinaryRecord
from .utils import log, same_version, version_sort_key

logger = logging.getLogger(__name__)

EXECUTABLE_MODE = 0o755


def validate_request(
    config: BinaryConfig,
    version: str | None,
    debug: bool,  # noqa: FBT001
    nightly: str | None,
) -> None:
    """Reject option combinations that cannot be satisfied."""
    if nightly is not None and version is not None:
        msg = (
            "Cannot install from nightly and a release at the same time. "
            "Remove the version or the nightly flag"
        )
        raise ConflictError(msg)
    if debug and nightly is None and not config.supports_debug:
        msg = f"Debug flag is not available for the `{config.name}` binary"
        raise ConflictError(msg)


def resolve_network(config: BinaryConfig, network: str | None, nightly: str | None) -> str:
    """Return the network or release folder a request refers to."""
    if nightly is not None:
        return nightly
    if not config.network_based or config.is_standalone:
        return STANDALONE_NETWORK
    network = network or config.default_network
    if not config.supports_network(network):
        supported = ", ".join(sorted(config.supported_networks))
        msg = f"{config.name} is not released for {network}. Supported networks: {supported}"
        raise ConflictError(msg)
    return network


def promote(
    dirs: SuiupDirs,
    platform: Platform,
    binary_name: str,
    network_release: str,
    version: str,
    debug: bool = False,  # noqa: FBT001, FBT002
) -> Path:
    """Copy an installed artifact into the default-bin directory and record it.

    Returns the path of the default copy.
    """
    src = install_path(dirs.binaries_dir, binary_name, network_release, version, debug, platform)
    logger.debug("File source: %s", src)
    if not src.is_file():
        msg = (
            f"Binary {display_name(binary_name, debug)}-{version} from {network_release} "
            f"not found at {src}. Use `suiup show` to see installed binaries."
        )
        raise SourceNotFoundError(msg, src)

    dst = default_bin_path(dirs.default_bin_dir, binary_name, debug, platform)
    try:
        dst.parent.mkdir(parents=True, exist_ok=True)
        if dst.exists() or dst.is_symlink():
            dst.unlink()
    except OSError as e:
        msg = f"Cannot remove existing default binary {dst}: {e}"
        raise IoError(msg, dst) from e

    logger.debug("Copying from %s to %s", src, dst)
    try:
        shutil.copyfile(src, dst)
    except OSError as e:
        msg = f"Cannot copy binary from {src} to {dst}: {e}"
        raise IoError(msg, dst) from e

    if platform.is_posix:
        try:
            os.chmod(dst, EXECUTABLE_MODE)
        except OSError as e:
            msg = f"Cannot set executable permissions on {dst}: {e}"
            raise IoError(msg, dst) from e

    defaults = DefaultVersions.load(dirs.default_version_file)
    defaults.set(binary_name, network_release, version, debug)
    defaults.save()

    suffix = " (debug build)" if debug else ""
    log(
        f"Default binary updated to {binary_name}@{network_release}-{version}{suffix}",
        "success",
        "✅",
    )
    return dst


def select_installed(
    installed: InstalledBinaries,
    name: str,
    network_release: str,
    version: str | None,
    debug: bool,  # noqa: FBT001
) -> InstalledBinaryRecord:
    """Find the record a ``default set`` request refers to.

    Without a version the greatest installed one on that network wins.
    """
    if not installed.find_all(name):
        msg = f"Binary {name} not found in installed binaries. Use `suiup show` to see installed binaries."
        raise NotFoundError(msg)

    candidates = [
        r
        for r in installed.grouped_by_network().get(network_release, [])
        if r.binary_name == name and r.debug == debug
    ]
    if version is not None:
        candidates = [r for r in candidates if same_version(r.version, version)]
    if not candidates:
        wanted = f"{display_name(name, debug)}-{version}" if version else display_name(name, debug)
        msg = (
            f"Binary {wanted} from {network_release} release not found. "
            "Use `suiup show` to see installed binaries."
        )
        raise NotFoundError(msg)
    return max(candidates, key=lambda r: version_sort_key(r.version))


def set_default(
    dirs: SuiupDirs,
    platform: Platform,
    config: BinaryConfig,
    network: str | None = None,
    version: str | None = None,
    debug: bool = False,  # noqa: FBT001, FBT002
    nightly: str | None = None,
) -> InstalledBinaryRecord:
    """Make an installed binary the default one (``default set`` and ``switch``)."""
    validate_request(config, version, debug, nightly)
    network_release = resolve_network(config, network, nightly)
    if nightly is not None:
        version = NIGHTLY_VERSION

    installed = InstalledBinaries.load(dirs.installed_binaries_file)
    record = select_installed(installed, config.name, network_release, version, debug)
    promote(dirs, platform, record.binary_name, record.network_release, record.version, record.debug)
    return record


def _artifact_path(dirs: SuiupDirs, platform: Platform, record: InstalledBinaryRecord) -> Path:
    if record.path is not None:
        return Path(record.path)
    return install_path(
        dirs.binaries_dir,
        record.binary_name,
        record.network_release,
        record.version,
        record.debug,
        platform,
    )


def remove(dirs: SuiupDirs, platform: Platform, name: str) -> list[InstalledBinaryRecord]:
    """Uninstall every version of ``name``.

    All recorded paths are checked first; if one is missing nothing is
    deleted. Records written without a path are removed from the store and
    their computed install path is deleted when present.
    """
    installed = InstalledBinaries.load(dirs.installed_binaries_file)
    to_remove = installed.find_all(name)
    if not to_remove:
        log("No binaries found to remove", "info")
        return []

    for record in to_remove:
        if record.path is not None and not Path(record.path).exists():
            msg = f"Binary {record.path} does not exist. Aborting the command."
            raise MissingArtifactError(msg, Path(record.path))

    for record in to_remove:
        path = _artifact_path(dirs, platform, record)
        if record.path is None and not path.exists():
            continue
        try:
            path.unlink()
        except OSError as e:
            msg = f"Cannot remove file {path}: {e}"
            raise IoError(msg, path) from e
        log(f"Removed binary: {record.binary_name} from {path}", "success")

    for debug in (False, True):
        default_copy = default_bin_path(dirs.default_bin_dir, name, debug, platform)
        try:
            default_copy.unlink(missing_ok=True)
        except OSError as e:
            msg = f"Cannot remove file {default_copy}: {e}"
            raise IoError(msg, default_copy) from e
        logger.debug("Removed %s from default binaries folder", default_copy)

    defaults = DefaultVersions.load(dirs.default_version_file)
    defaults.remove(name)
    defaults.save()

    installed.remove_by_binary_name(name)
    installed.save()
    logger.debug("Removed %s from %s", name, installed.path)
    return to_remove


def path_warning(default_bin_dir: Path, platform: Platform, path_env: str | None = None) -> bool:
    """Warn when the default-bin directory is not on ``PATH``; return whether it is."""
    path_env = os.environ.get("PATH", "") if path_env is None else path_env
    entries = [Path(p) for p in path_env.split(platform.path_separator()) if p]
    if default_bin_dir in entries:
        return True

    log(f"{default_bin_dir} is not in your PATH", "warning", "⚠️")
    if platform.is_windows:
        log("Add it under 'User variables' > 'Path' in the Environment Variables dialog,", "warning")
        log("then restart your terminal.", "warning")
    else:
        log("Add one of the following lines depending on your shell:", "warning")
        log(f'    bash/zsh:  export PATH="{default_bin_dir}:$PATH"', "warning")
        log(f"    fish:      fish_add_path {default_bin_dir}", "warning")
    return False
