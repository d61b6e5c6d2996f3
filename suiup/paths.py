"""Where suiup keeps its files.

The module has two halves. ``install_path``, ``default_bin_path`` and
``display_name`` are pure: they never look at the filesystem, and every input
yields a syntactically valid path that callers check for existence.
``SuiupDirs`` resolves the per-user directories from the environment and
owns the one-time ``initialize`` step.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .platform import Platform
from .store import DefaultVersions, InstalledBinaries
from .utils import log

logger = logging.getLogger(__name__)

NIGHTLY_VERSION = "nightly"
STANDALONE_NETWORK = "standalone"
DEFAULT_VERSION_FILE = "default_version.json"
INSTALLED_BINARIES_FILE = "installed_binaries.json"
STATE_FILES = (DEFAULT_VERSION_FILE, INSTALLED_BINARIES_FILE)


def display_name(binary_name: str, debug: bool) -> str:  # noqa: FBT001
    """Return the name a binary has in the default-bin directory."""
    return f"{binary_name}-debug" if debug else binary_name


def install_path(
    root: Path,
    binary_name: str,
    network_release: str,
    version: str,
    debug: bool,  # noqa: FBT001
    platform: Platform,
) -> Path:
    """Return where an installed artifact lives.

    ``root/network_release/{name}[-debug]-{version}[.exe]``. Nightly builds
    sit one level deeper, in the ``bin`` directory ``cargo install`` creates.
    """
    folder = root / network_release
    if version == NIGHTLY_VERSION:
        folder = folder / "bin"
    filename = f"{display_name(binary_name, debug)}-{version}"
    return folder / platform.with_extension(filename)


def default_bin_path(
    default_bin_root: Path,
    binary_name: str,
    debug: bool,  # noqa: FBT001
    platform: Platform,
) -> Path:
    """Return the path of the default copy of a binary."""
    return default_bin_root / platform.with_extension(display_name(binary_name, debug))


def _env_path(environ: Mapping[str, str], name: str) -> Path | None:
    value = environ.get(name)
    return Path(value) if value else None


def _home(environ: Mapping[str, str]) -> Path:
    return _env_path(environ, "HOME") or Path.home()


@dataclass(frozen=True)
class SuiupDirs:
    """The directories suiup reads and writes."""

    config_dir: Path
    data_dir: Path
    cache_dir: Path
    default_bin_dir: Path

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        platform: Platform | None = None,
    ) -> SuiupDirs:
        """Resolve the directories from XDG variables, or LOCALAPPDATA on Windows."""
        environ = os.environ if environ is None else environ
        platform = platform or Platform.current()

        if platform.is_windows:
            local = _env_path(environ, "LOCALAPPDATA")
            if local is None:
                profile = _env_path(environ, "USERPROFILE") or Path.home()
                local = profile / "AppData" / "Local"
            temp = _env_path(environ, "TEMP") or local / "Temp"
            return cls(
                config_dir=local / "suiup" / "config",
                data_dir=local / "suiup",
                cache_dir=temp / "suiup",
                default_bin_dir=local / "bin",
            )

        home = _home(environ)
        data_home = _env_path(environ, "XDG_DATA_HOME") or home / ".local" / "share"
        config_home = _env_path(environ, "XDG_CONFIG_HOME") or home / ".config"
        cache_home = _env_path(environ, "XDG_CACHE_HOME") or home / ".cache"
        default_bin = _env_path(environ, "SUIUP_DEFAULT_BIN_DIR") or home / ".local" / "bin"
        return cls(
            config_dir=config_home / "suiup" / "config",
            data_dir=data_home / "suiup",
            cache_dir=cache_home / "suiup",
            default_bin_dir=default_bin,
        )

    @property
    def legacy_config_dir(self) -> Path:
        """Directory that held the state files before they moved into ``config/``."""
        return self.config_dir.parent

    @property
    def binaries_dir(self) -> Path:
        return self.data_dir / "binaries"

    @property
    def releases_dir(self) -> Path:
        return self.cache_dir / "releases"

    @property
    def default_version_file(self) -> Path:
        return self.config_dir / DEFAULT_VERSION_FILE

    @property
    def installed_binaries_file(self) -> Path:
        return self.config_dir / INSTALLED_BINARIES_FILE

    @property
    def lock_file(self) -> Path:
        return self.config_dir / ".suiup.lock"

    def initialize(self) -> None:
        """Create the directory tree and migrate state from the old layout."""
        migrate_legacy_config(self)
        for directory in (
            self.config_dir,
            self.data_dir,
            self.cache_dir,
            self.binaries_dir,
            self.releases_dir,
            self.default_bin_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)
        DefaultVersions.load(self.default_version_file)
        InstalledBinaries.load(self.installed_binaries_file)


def migrate_legacy_config(dirs: SuiupDirs) -> list[str]:
    """Copy state files from ``<config>/suiup`` into ``<config>/suiup/config``.

    Nothing happens once either file exists in the new location. The old
    files stay where they are. Returns the names of the migrated files.
    """
    old_dir = dirs.legacy_config_dir
    new_dir = dirs.config_dir
    if not old_dir.is_dir():
        return []
    if any((new_dir / name).exists() for name in STATE_FILES):
        return []

    migrated: list[str] = []
    failures: list[str] = []
    for name in STATE_FILES:
        old_file = old_dir / name
        if not old_file.is_file():
            continue
        new_file = new_dir / name
        try:
            new_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(old_file, new_file)
        except OSError as e:
            failures.append(f"{name}: {e}")
            continue
        if new_file.stat().st_size == 0:
            failures.append(f"{name}: copied file is empty")
            continue
        logger.debug("Migrated %s -> %s", old_file, new_file)
        migrated.append(name)

    if migrated:
        log(
            f"Configuration migration completed. Migrated {len(migrated)} file(s): "
            f"{', '.join(migrated)}",
            "info",
        )
        log(f"Original files remain in {old_dir} for backup", "info")
    for failure in failures:
        log(f"Could not migrate {failure}", "warning", "⚠️")
    return migrated
