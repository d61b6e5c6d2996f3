"""Fetching release lists and assets from GitHub for suiup."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

import requests

from .config import BinaryConfig
from .errors import DownloadError, IoError
from .platform import Platform
from .utils import console, log, write_json_atomic

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIXES = (".tgz", ".tar.gz", ".zip")
_VERSION_RE = re.compile(r"v\d+\.\d+\.\d+")


def extract_version_from_release(filename: str) -> str:
    """Return the ``v``-prefixed version in a release archive name.

    ``sui-testnet-v1.39.3-ubuntu-x86_64.tgz`` gives ``v1.39.3``.
    """
    match = _VERSION_RE.search(Path(filename).name)
    if not match:
        msg = f"Cannot find a version in release file name {filename}"
        raise DownloadError(msg)
    return match.group(0)


def find_asset(assets: list[dict], *needles: str, archive: bool = True) -> dict | None:
    """Find the first asset whose name contains every needle."""
    for asset in assets:
        name = asset["name"]
        if archive and not name.endswith(ARCHIVE_SUFFIXES):
            continue
        if all(needle in name for needle in needles):
            logger.debug("Found matching asset: %s", name)
            return asset
    return None


def download_file(url: str, destination: Path, github_token: str | None = None) -> Path:
    """Download a file from a URL to a destination path."""
    console.print(f"📥 [blue]Downloading from {url}[/blue]", highlight=False)
    headers = {"User-Agent": "suiup"}
    if github_token:
        headers["Authorization"] = f"token {github_token}"
    destination.parent.mkdir(parents=True, exist_ok=True)
    partial = destination.with_name(destination.name + ".part")
    try:
        response = requests.get(url, headers=headers, stream=True, timeout=30)
        response.raise_for_status()

        with open(partial, "wb") as f:
            for chunk in response.iter_content(chunk_size=8192):
                f.write(chunk)
        partial.replace(destination)
    except requests.RequestException as e:
        partial.unlink(missing_ok=True)
        msg = f"Failed to download {url}: {e}"
        raise DownloadError(msg) from e
    except OSError as e:
        partial.unlink(missing_ok=True)
        msg = f"Cannot write {destination}: {e}"
        raise IoError(msg, destination) from e
    return destination


class ReleaseFetcher:
    """Lists GitHub releases, caching them by ETag, and downloads assets."""

    def __init__(
        self,
        cache_dir: Path,
        releases_dir: Path,
        platform: Platform,
        github_token: str | None = None,
    ) -> None:
        self.cache_dir = cache_dir
        self.releases_dir = releases_dir
        self.platform = platform
        self.github_token = github_token

    def _cache_files(self, repo: str) -> tuple[Path, Path]:
        repo_name = repo.replace("/", "_")
        return (
            self.cache_dir / f"releases_{repo_name}.json",
            self.cache_dir / f"etag_{repo_name}.txt",
        )

    def _load_cached(self, repo: str) -> list[dict] | None:
        releases_file, _ = self._cache_files(repo)
        if not releases_file.exists():
            return None
        try:
            return json.loads(releases_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.debug("Ignoring release cache %s: %s", releases_file, e)
            return None

    def _save_cached(self, repo: str, releases: list[dict], etag: str | None) -> None:
        releases_file, etag_file = self._cache_files(repo)
        try:
            write_json_atomic(releases_file, releases)
            if etag:
                etag_file.write_text(etag, encoding="utf-8")
        except OSError as e:
            logger.debug("Cannot cache release list for %s: %s", repo, e)

    def release_list(self, repo: str) -> list[dict]:
        """Return the releases of ``repo``, newest first.

        A 304 answer, a network failure or an error status falls back to the
        cached list when there is one.
        """
        url = f"https://api.github.com/repos/{repo}/releases"
        headers = {"User-Agent": "suiup"}
        if self.github_token:
            headers["Authorization"] = f"token {self.github_token}"
        cached = self._load_cached(repo)
        _, etag_file = self._cache_files(repo)
        if cached is not None and etag_file.exists():
            headers["If-None-Match"] = etag_file.read_text(encoding="utf-8").strip()

        try:
            response = requests.get(url, headers=headers, timeout=30)
        except requests.RequestException as e:
            if cached is not None:
                logger.debug("Using cached release list for %s: %s", repo, e)
                return cached
            msg = f"Failed to send request to {url}: {e}"
            raise DownloadError(msg) from e

        if response.status_code == 304 and cached is not None:  # noqa: PLR2004
            return cached
        if not response.ok:
            if cached is not None:
                return cached
            msg = f"GitHub API request failed with status {response.status_code}: {response.text}"
            raise DownloadError(msg)

        try:
            releases = response.json()
        except ValueError as e:
            msg = f"Cannot parse the GitHub releases list from {url}: {e}"
            raise DownloadError(msg) from e
        self._save_cached(repo, releases, response.headers.get("ETag"))
        return releases

    def _platform_needles(self) -> tuple[str, str]:
        return self.platform.release_os, self.platform.arch

    def find_release_asset(
        self,
        config: BinaryConfig,
        network: str,
        version: str | None = None,
    ) -> dict:
        """Pick the archive asset for ``network`` and ``version`` (latest if None)."""
        releases = self.release_list(config.repository)
        needles = [f"-{network}-", *self._platform_needles()]
        if version is not None:
            needles.append(f"-v{version.removeprefix('v')}-")
        for release in releases:
            asset = find_asset(release.get("assets", []), *needles)
            if asset:
                return asset
        wanted = f"{network}-{version}" if version else network
        msg = f"No {config.name} release found for {wanted} on {self.platform.release_os}-{self.platform.arch}"
        raise DownloadError(msg)

    def download_release(
        self,
        config: BinaryConfig,
        network: str,
        version: str | None = None,
    ) -> Path:
        """Return a local copy of the release archive, downloading it if needed."""
        asset = self.find_release_asset(config, network, version)
        archive = self.releases_dir / asset["name"]
        if archive.exists():
            log(f"Found release archive {archive.name} in cache", "info")
            return archive
        return download_file(asset["browser_download_url"], archive, self.github_token)

    def download_standalone(
        self,
        config: BinaryConfig,
        binary_name: str,
        version: str | None = None,
    ) -> tuple[str, Path]:
        """Download a standalone executable; return its version tag and local path."""
        releases = self.release_list(config.repository)
        if version is not None:
            wanted = version.removeprefix("v")
            releases = [r for r in releases if r.get("tag_name", "").removeprefix("v") == wanted]
            if not releases:
                msg = f"Release {version} not found for {config.repository}"
                raise DownloadError(msg)

        for release in releases:
            asset = find_asset(
                release.get("assets", []),
                binary_name,
                *self._platform_needles(),
                archive=False,
            )
            if asset:
                tag = release["tag_name"]
                target = self.releases_dir / "standalone" / f"{tag}-{asset['name']}"
                if not target.exists():
                    download_file(asset["browser_download_url"], target, self.github_token)
                return tag, target

        msg = f"No {binary_name} asset found for {self.platform.release_os}-{self.platform.arch}"
        raise DownloadError(msg)
