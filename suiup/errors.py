"""Exceptions raised by suiup."""

from __future__ import annotations

from pathlib import Path


class SuiupError(Exception):
    """Base class for every error reported to the user."""

    def __init__(self, message: str) -> None:
        """Initialize the SuiupError."""
        self.message = message
        super().__init__(message)


class NotFoundError(SuiupError):
    """An unknown binary name, or no installed record matching a request."""


class SourceNotFoundError(NotFoundError):
    """The installed artifact to promote is missing on disk."""

    def __init__(self, message: str, path: Path) -> None:
        """Initialize the SourceNotFoundError."""
        self.path = path
        super().__init__(message)


class MissingArtifactError(NotFoundError):
    """A recorded binary path is missing, so removal was aborted."""

    def __init__(self, message: str, path: Path) -> None:
        """Initialize the MissingArtifactError."""
        self.path = path
        super().__init__(message)


class ConflictError(SuiupError):
    """Mutually exclusive options, rejected before touching the filesystem."""


class IoError(SuiupError):
    """A file operation failed; the ``OSError`` is chained as ``__cause__``."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        """Initialize the IoError."""
        self.path = path
        super().__init__(message)


class CorruptStateError(SuiupError):
    """A state file exists but does not contain the expected JSON."""

    def __init__(self, message: str, path: Path) -> None:
        """Initialize the CorruptStateError."""
        self.path = path
        super().__init__(message)


class DownloadError(SuiupError):
    """Fetching a release list or asset failed."""


class ExtractionError(SuiupError):
    """The wanted executable could not be taken out of an archive."""


class BuildError(SuiupError):
    """A nightly build from source failed."""
