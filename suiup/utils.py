"""Utility functions for suiup."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

import requests
from packaging.version import InvalidVersion, Version
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

# Initialize rich console
console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)

SUIUP_REPOSITORY = "MystenLabs/suiup"

_LEVEL_STYLES = {
    "info": "cyan",
    "success": "green",
    "warning": "yellow",
    "error": "bold red",
    "default": "",
}


def log(message: str, level: str = "default", emoji: str = "") -> None:
    """Print a styled message to the console."""
    style = _LEVEL_STYLES.get(level, "")
    text = escape(f"{emoji} {message}" if emoji else message)
    target = err_console if level in ("error", "warning") else console
    if style:
        target.print(f"[{style}]{text}[/{style}]", highlight=False)
    else:
        target.print(text, highlight=False)


def setup_logging(verbose: bool = False) -> None:  # noqa: FBT001, FBT002
    """Configure logging level based on verbosity."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def version_sort_key(version: str) -> tuple:
    """Key ordering release versions semantically.

    A leading ``v`` is ignored. Versions that do not parse (``nightly``, branch
    names) sort below every parseable one and compare as plain strings.
    """
    try:
        return (1, Version(version.removeprefix("v")))
    except InvalidVersion:
        return (0, version)


def same_version(a: str, b: str) -> bool:
    """Compare two version strings ignoring a leading ``v``."""
    return a.removeprefix("v") == b.removeprefix("v")


def write_json_atomic(path: Path, data: Any) -> None:
    """Serialize ``data`` to ``path`` through a temporary file and a rename.

    Raises ``OSError`` unchanged; callers add context.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def get_latest_release(repo: str, github_token: str | None = None) -> dict:
    """Get the latest release information from GitHub."""
    url = f"https://api.github.com/repos/{repo}/releases/latest"
    headers = {"User-Agent": "suiup"}
    if github_token:
        headers["Authorization"] = f"token {github_token}"
    response = requests.get(url, headers=headers, timeout=30)
    response.raise_for_status()
    return response.json()


def _warn_if_outdated(current_version: str) -> None:
    try:
        latest = get_latest_release(SUIUP_REPOSITORY)["tag_name"]
    except (requests.RequestException, KeyError, ValueError) as e:
        logger.debug("Update check failed: %s", e)
        return
    if version_sort_key(latest) > version_sort_key(current_version):
        err_console.print(
            f"\n⚠️  [yellow]A new version of suiup is available: "
            f"v{current_version.removeprefix('v')} → {latest}[/yellow]",
        )
        err_console.print(
            f"   Get it from https://github.com/{SUIUP_REPOSITORY}/releases\n",
            highlight=False,
        )


def check_for_updates(current_version: str) -> threading.Thread:
    """Compare against the latest suiup release in a background thread.

    The thread is a daemon and is never joined: the command does not wait for
    it, and its only effect is a warning on stderr.
    """
    thread = threading.Thread(
        target=_warn_if_outdated,
        args=(current_version,),
        name="suiup-update-check",
        daemon=True,
    )
    thread.start()
    return thread
