"""Building binaries from a git branch with ``cargo install``."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from .config import BinaryConfig
from .errors import BuildError
from .platform import Platform
from .utils import console, log

logger = logging.getLogger(__name__)


def check_command_installed(command: str) -> str:
    """Return the ``--version`` output of ``command`` or raise ``BuildError``."""
    if shutil.which(command) is None:
        msg = f"{command} is not installed"
        raise BuildError(msg)
    try:
        result = subprocess.run(  # noqa: S603
            [command, "--version"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        msg = f"Failed to execute {command} command: {e}"
        raise BuildError(msg) from e
    if result.returncode != 0:
        msg = f"{command} is not installed"
        raise BuildError(msg)
    version = result.stdout.strip()
    logger.debug("%s is installed: %s", command, version)
    return version


def cargo_install_args(
    config: BinaryConfig,
    binary_name: str,
    branch: str,
    install_root: Path,
) -> list[str]:
    """Return the ``cargo`` argument list for building ``binary_name``."""
    args = []
    if config.nightly_toolchain:
        args.append(f"+{config.nightly_toolchain}")
    args += ["install", "--locked", "--force", "--git", config.repo_url, "--branch", branch]
    if config.cargo_package:
        args += [config.cargo_package, "--bin", binary_name]
    else:
        args.append(binary_name)
    args += ["--root", str(install_root)]
    return args


def build_nightly(
    config: BinaryConfig,
    binary_name: str,
    branch: str,
    root: Path,
    platform: Platform,
) -> Path:
    """Build ``binary_name`` from ``branch`` into ``root/branch``.

    Returns the path of the executable cargo produced, i.e.
    ``root/branch/bin/binary_name``.
    """
    log(f"Installing {binary_name} from {branch} branch", "info", "🔨")
    check_command_installed("rustc")
    check_command_installed("cargo")

    install_root = root / branch
    args = cargo_install_args(config, binary_name, branch, install_root)
    logger.debug("Running cargo %s", " ".join(args))
    with console.status("Compiling...please wait"):
        try:
            result = subprocess.run(  # noqa: S603
                ["cargo", *args],  # noqa: S607
                stderr=subprocess.PIPE,
                text=True,
                check=False,
            )
        except OSError as e:
            msg = f"Failed to run cargo: {e}"
            raise BuildError(msg) from e

    if result.returncode != 0:
        msg = f"Error during installation:\n{result.stderr}"
        raise BuildError(msg)

    built = install_root / "bin" / platform.with_extension(binary_name)
    if not built.is_file():
        msg = f"cargo finished but {built} was not produced"
        raise BuildError(msg)
    log("Installation completed successfully!", "success")
    return built
