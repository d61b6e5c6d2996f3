"""Persistent state: installed binaries and the default version of each.

Both stores follow the same protocol. ``load`` reads the JSON file, creating
an empty valid one when it is missing; a file that exists but cannot be
understood raises ``CorruptStateError`` and is never repaired automatically.
Mutations stay in memory until ``save``, which replaces the file atomically.

Concurrent suiup processes are serialised by ``state_lock``; without it the
last process to save wins.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from filelock import FileLock, Timeout

from .errors import CorruptStateError, IoError
from .utils import write_json_atomic

logger = logging.getLogger(__name__)

LOCK_TIMEOUT = 30


@contextmanager
def state_lock(lock_file: Path, timeout: float = LOCK_TIMEOUT) -> Iterator[None]:
    """Hold an advisory lock around a load-modify-save sequence."""
    lock_file.parent.mkdir(parents=True, exist_ok=True)
    lock = FileLock(str(lock_file), timeout=timeout)
    try:
        with lock:
            yield
    except Timeout as e:
        msg = f"Another suiup process holds {lock_file}; try again once it finishes"
        raise IoError(msg, lock_file) from e


def _read_json(path: Path, empty: Any) -> Any:
    """Load JSON from ``path``, writing ``empty`` there first if it is missing."""
    if not path.exists():
        logger.debug("Creating %s", path)
        _write_json(path, empty)
        return empty
    try:
        raw = path.read_bytes()
    except OSError as e:
        msg = f"Cannot read from file {path}: {e}"
        raise IoError(msg, path) from e
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        msg = f"Cannot deserialize from file {path}: {e}"
        raise CorruptStateError(msg, path) from e


def _write_json(path: Path, data: Any) -> None:
    try:
        write_json_atomic(path, data)
    except OSError as e:
        msg = f"Cannot write to {path}: {e}"
        raise IoError(msg, path) from e


@dataclass(frozen=True)
class InstalledBinaryRecord:
    """One installed binary."""

    binary_name: str
    network_release: str
    version: str
    debug: bool = False
    path: str | None = None

    @property
    def key(self) -> tuple[str, str, str, bool]:
        return (self.binary_name, self.network_release, self.version, self.debug)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> InstalledBinaryRecord:
        """Build a record from its JSON object, raising ``ValueError`` on bad input."""
        if not isinstance(data, dict):
            msg = f"expected an object, got {type(data).__name__}"
            raise ValueError(msg)  # noqa: TRY004
        try:
            binary_name = data["binary_name"]
            network_release = data["network_release"]
            version = data["version"]
        except KeyError as e:
            msg = f"missing field {e}"
            raise ValueError(msg) from e
        debug = data.get("debug", False)
        path = data.get("path")
        if not all(isinstance(v, str) for v in (binary_name, network_release, version)):
            msg = "binary_name, network_release and version must be strings"
            raise ValueError(msg)
        if not isinstance(debug, bool) or not (path is None or isinstance(path, str)):
            msg = "debug must be a boolean and path a string or null"
            raise ValueError(msg)
        return cls(binary_name, network_release, version, debug, path)


class InstalledBinaries:
    """Every binary suiup has installed, one record per identity key."""

    def __init__(self, path: Path, records: list[InstalledBinaryRecord] | None = None) -> None:
        self.path = path
        self._records: dict[tuple[str, str, str, bool], InstalledBinaryRecord] = {}
        for record in records or []:
            self.add_or_replace(record)

    @classmethod
    def load(cls, path: Path) -> InstalledBinaries:
        """Read the store from ``path``.

        Accepts ``{"binaries": [...]}`` as well as a bare list of records.
        """
        data = _read_json(path, {"binaries": []})
        items = data.get("binaries") if isinstance(data, dict) else data
        if not isinstance(items, list):
            msg = f"Cannot deserialize from file {path}: expected a list of binaries"
            raise CorruptStateError(msg, path)
        try:
            records = [InstalledBinaryRecord.from_dict(item) for item in items]
        except ValueError as e:
            msg = f"Cannot deserialize from file {path}: {e}"
            raise CorruptStateError(msg, path) from e
        return cls(path, records)

    def save(self) -> None:
        _write_json(self.path, {"binaries": [r.to_dict() for r in self._records.values()]})
        logger.debug("Saved %d installed binaries to %s", len(self._records), self.path)

    @property
    def records(self) -> list[InstalledBinaryRecord]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def add_or_replace(self, record: InstalledBinaryRecord) -> None:
        self._records[record.key] = record

    def remove_by_binary_name(self, name: str) -> list[InstalledBinaryRecord]:
        """Drop every record of ``name`` and return them."""
        removed = [r for r in self._records.values() if r.binary_name == name]
        for record in removed:
            del self._records[record.key]
        return removed

    def find(
        self,
        name: str,
        network_release: str,
        version: str,
        debug: bool = False,  # noqa: FBT001, FBT002
    ) -> InstalledBinaryRecord | None:
        return self._records.get((name, network_release, version, debug))

    def find_all(self, name: str) -> list[InstalledBinaryRecord]:
        return [r for r in self._records.values() if r.binary_name == name]

    def grouped_by_network(self) -> dict[str, list[InstalledBinaryRecord]]:
        groups: dict[str, list[InstalledBinaryRecord]] = {}
        for record in self._records.values():
            groups.setdefault(record.network_release, []).append(record)
        return groups


@dataclass(frozen=True)
class DefaultVersionEntry:
    """The default (network, version, debug) selection of one binary."""

    network_release: str
    version: str
    debug: bool = False

    def to_json(self) -> list[Any]:
        return [self.network_release, self.version, self.debug]

    @classmethod
    def from_json(cls, value: Any) -> DefaultVersionEntry:
        """Parse any of the on-disk shapes.

        ``[network, version, debug]`` is what suiup writes. Older files hold
        ``[network, version]``; the typed object
        ``{"network_release": ..., "version": ..., "debug": ...}`` is also read.
        """
        if isinstance(value, dict):
            network = value.get("network_release", value.get("network"))
            version = value.get("version")
            debug = value.get("debug", False)
        elif isinstance(value, list) and len(value) in (2, 3):
            network, version = value[0], value[1]
            debug = value[2] if len(value) == 3 else False  # noqa: PLR2004
        else:
            msg = f"unexpected default entry {value!r}"
            raise ValueError(msg)
        if not isinstance(network, str) or not isinstance(version, str):
            msg = f"unexpected default entry {value!r}"
            raise ValueError(msg)
        if not isinstance(debug, bool):
            msg = f"debug flag must be a boolean in {value!r}"
            raise ValueError(msg)
        return cls(network, version, debug)


class DefaultVersions:
    """Binary name to its default selection."""

    def __init__(self, path: Path, entries: dict[str, DefaultVersionEntry] | None = None) -> None:
        self.path = path
        self._entries: dict[str, DefaultVersionEntry] = dict(entries or {})

    @classmethod
    def load(cls, path: Path) -> DefaultVersions:
        data = _read_json(path, {})
        if not isinstance(data, dict):
            msg = f"Cannot deserialize from file {path}: expected an object"
            raise CorruptStateError(msg, path)
        try:
            entries = {name: DefaultVersionEntry.from_json(v) for name, v in data.items()}
        except ValueError as e:
            msg = f"Cannot deserialize from file {path}: {e}"
            raise CorruptStateError(msg, path) from e
        return cls(path, entries)

    def save(self) -> None:
        _write_json(self.path, {n: e.to_json() for n, e in sorted(self._entries.items())})

    def get(self, name: str) -> DefaultVersionEntry | None:
        return self._entries.get(name)

    def set(
        self,
        name: str,
        network_release: str,
        version: str,
        debug: bool = False,  # noqa: FBT001, FBT002
    ) -> None:
        self._entries[name] = DefaultVersionEntry(network_release, version, debug)

    def remove(self, name: str) -> None:
        self._entries.pop(name, None)

    def all(self) -> dict[str, DefaultVersionEntry]:
        return dict(self._entries)
