"""Operating-system specifics, kept in one place."""

from __future__ import annotations

import os
import platform as _platform
import sys
from dataclasses import dataclass


@dataclass(frozen=True)
class Platform:
    """What differs between the operating systems suiup runs on.

    Attributes:
        os: One of ``linux``, ``macos`` or ``windows``.
        arch: Normalised machine name, ``x86_64`` or ``arm64``.

    """

    os: str
    arch: str = "x86_64"

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    @property
    def is_posix(self) -> bool:
        return not self.is_windows

    def executable_extension(self) -> str:
        """Return the suffix executables carry on this platform."""
        return ".exe" if self.is_windows else ""

    def path_separator(self) -> str:
        """Return the separator used in the ``PATH`` environment variable."""
        return ";" if self.is_windows else ":"

    def with_extension(self, filename: str) -> str:
        """Append the executable extension unless already present."""
        ext = self.executable_extension()
        if ext and not filename.endswith(ext):
            return filename + ext
        return filename

    @property
    def release_os(self) -> str:
        """Return the OS tag used in Sui release asset names."""
        return {"linux": "ubuntu", "macos": "macos", "windows": "windows"}[self.os]

    @classmethod
    def current(cls) -> Platform:
        """Detect the current platform and architecture."""
        if sys.platform == "win32" or os.name == "nt":
            os_name = "windows"
        elif sys.platform == "darwin":
            os_name = "macos"
        else:
            os_name = "linux"

        arch = "x86_64"
        machine = _platform.machine().lower()
        if machine in ["arm64", "aarch64"]:
            arch = "arm64"

        return cls(os=os_name, arch=arch)
