"""suiup - Sui toolchain installer.

Downloads, builds and installs several versions and networks of the Sui
binaries side by side, keeps track of what is installed and copies the
selected default of each binary into a directory on your ``PATH``.
"""

from __future__ import annotations

__version__ = "0.1.0"

from . import cli, config, download, errors, paths, store, switch, utils
from .cli import main
from .config import BinaryConfig, BinaryRegistry, parse_component_spec
from .errors import SuiupError
from .install import Installer
from .paths import SuiupDirs, default_bin_path, display_name, install_path
from .platform import Platform
from .store import DefaultVersions, InstalledBinaries, InstalledBinaryRecord
from .switch import promote, remove, set_default

__all__ = [
    "BinaryConfig",
    "BinaryRegistry",
    "DefaultVersions",
    "InstalledBinaries",
    "InstalledBinaryRecord",
    "Installer",
    "Platform",
    "SuiupDirs",
    "SuiupError",
    "cli",
    "config",
    "default_bin_path",
    "display_name",
    "download",
    "errors",
    "install_path",
    "main",
    "parse_component_spec",
    "paths",
    "promote",
    "remove",
    "set_default",
    "store",
    "switch",
    "utils",
]
