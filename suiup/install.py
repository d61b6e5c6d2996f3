"""Installing binaries from release archives, standalone assets or source."""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable
from contextlib import AbstractContextManager, nullcontext
from pathlib import Path

from rich.prompt import Confirm

from .build import build_nightly
from .config import BinaryConfig
from .download import ReleaseFetcher, extract_version_from_release
from .errors import IoError
from .extract import extract_binary
from .paths import NIGHTLY_VERSION, STANDALONE_NETWORK, SuiupDirs, display_name, install_path
from .platform import Platform
from .store import InstalledBinaries, InstalledBinaryRecord
from .switch import EXECUTABLE_MODE, path_warning, promote, resolve_network, validate_request
from .utils import console, log

logger = logging.getLogger(__name__)

Extractor = Callable[[Path, str, Path, Platform], Path]
Builder = Callable[[BinaryConfig, str, str, Path, Platform], Path]
Lock = Callable[[], AbstractContextManager]


class Installer:
    """Puts binaries into the binaries directory and records them.

    The fetcher, extractor and builder are the only parts that talk to the
    network, archives or cargo; tests swap them out. ``lock`` guards every
    load-modify-save of the state files and is released while the user is
    asked whether to change the default.
    """

    def __init__(
        self,
        dirs: SuiupDirs,
        platform: Platform,
        fetcher: ReleaseFetcher | None = None,
        extractor: Extractor = extract_binary,
        builder: Builder = build_nightly,
        github_token: str | None = None,
        lock: Lock = nullcontext,
    ) -> None:
        self.dirs = dirs
        self.platform = platform
        self.fetcher = fetcher or ReleaseFetcher(
            dirs.cache_dir,
            dirs.releases_dir,
            platform,
            github_token,
        )
        self.extractor = extractor
        self.builder = builder
        self.lock = lock

    def install(
        self,
        config: BinaryConfig,
        network: str | None = None,
        version: str | None = None,
        debug: bool = False,  # noqa: FBT001, FBT002
        nightly: str | None = None,
        yes: bool = False,  # noqa: FBT001, FBT002
    ) -> InstalledBinaryRecord | None:
        """Install one binary and offer to make it the default.

        Returns the new record, or ``None`` when it was already installed.
        """
        validate_request(config, version, debug, nightly)
        network_release = resolve_network(config, network, nightly)
        self.dirs.default_bin_dir.mkdir(parents=True, exist_ok=True)
        self.dirs.binaries_dir.mkdir(parents=True, exist_ok=True)

        with self.lock():
            if nightly is not None:
                record = self._install_nightly(config, nightly, debug)
            elif config.is_standalone:
                record = self._install_standalone(config, version)
            else:
                record = self._install_release(config, network_release, version, debug)
            if record is None:
                return None

            installed = InstalledBinaries.load(self.dirs.installed_binaries_file)
            installed.add_or_replace(record)
            installed.save()

        if yes or self._confirm_default():
            with self.lock():
                promote(
                    self.dirs,
                    self.platform,
                    record.binary_name,
                    record.network_release,
                    record.version,
                    record.debug,
                )
            path_warning(self.dirs.default_bin_dir, self.platform)
        return record

    def _already_installed(
        self,
        name: str,
        network_release: str,
        version: str,
        debug: bool,  # noqa: FBT001
    ) -> bool:
        target = install_path(self.dirs.binaries_dir, name, network_release, version, debug, self.platform)
        if not target.exists():
            return False
        installed = InstalledBinaries.load(self.dirs.installed_binaries_file)
        if installed.find(name, network_release, version, debug) is None:
            return False
        log(
            f"Binary {display_name(name, debug)}-{version} already installed. "
            "Use `suiup default set` to change the default binary.",
            "info",
        )
        return True

    def _install_release(
        self,
        config: BinaryConfig,
        network_release: str,
        version: str | None,
        debug: bool,  # noqa: FBT001
    ) -> InstalledBinaryRecord | None:
        archive = self.fetcher.download_release(config, network_release, version)
        version = extract_version_from_release(archive.name)
        if self._already_installed(config.name, network_release, version, debug):
            return None

        log(f"Adding binary: {config.name}-{version}", "info")
        target = install_path(
            self.dirs.binaries_dir,
            config.name,
            network_release,
            version,
            debug,
            self.platform,
        )
        self.extractor(archive, display_name(config.name, debug), target, self.platform)
        return InstalledBinaryRecord(config.name, network_release, version, debug, str(target))

    def _install_standalone(
        self,
        config: BinaryConfig,
        version: str | None,
    ) -> InstalledBinaryRecord | None:
        tag, downloaded = self.fetcher.download_standalone(config, config.name, version)
        if self._already_installed(config.name, STANDALONE_NETWORK, tag, False):  # noqa: FBT003
            return None

        log(f"Adding binary: {config.name}-{tag}", "info")
        target = install_path(
            self.dirs.binaries_dir,
            config.name,
            STANDALONE_NETWORK,
            tag,
            False,  # noqa: FBT003
            self.platform,
        )
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(downloaded, target)
            if self.platform.is_posix:
                os.chmod(target, EXECUTABLE_MODE)
        except OSError as e:
            msg = f"Cannot install {downloaded} to {target}: {e}"
            raise IoError(msg, target) from e
        return InstalledBinaryRecord(config.name, STANDALONE_NETWORK, tag, False, str(target))  # noqa: FBT003

    def _install_nightly(
        self,
        config: BinaryConfig,
        branch: str,
        debug: bool,  # noqa: FBT001
    ) -> InstalledBinaryRecord:
        built = self.builder(config, config.name, branch, self.dirs.binaries_dir, self.platform)
        # cargo writes bin/<name>; keep the <name>[-debug]-nightly layout of other installs
        target = install_path(
            self.dirs.binaries_dir,
            config.name,
            branch,
            NIGHTLY_VERSION,
            debug,
            self.platform,
        )
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            built.replace(target)
        except OSError as e:
            msg = f"Cannot rename nightly binary from {built} to {target}: {e}"
            raise IoError(msg, target) from e
        return InstalledBinaryRecord(config.name, branch, NIGHTLY_VERSION, debug, str(target))

    def _confirm_default(self) -> bool:
        return Confirm.ask(
            "Do you want to set this new installed version as the default one?",
            console=console,
            default=False,
        )

    def update(
        self,
        config: BinaryConfig,
        network: str | None = None,
        yes: bool = False,  # noqa: FBT001, FBT002
    ) -> InstalledBinaryRecord | None:
        """Install the latest release of ``config`` on ``network``."""
        log(f"Updating {config.name} to the latest version", "info", "🔄")
        return self.install(config, network=network, yes=yes)
