"""Tests for suiup.store."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

import pytest
from filelock import FileLock

from suiup.errors import CorruptStateError, IoError
from suiup.store import (
    DefaultVersionEntry,
    DefaultVersions,
    InstalledBinaries,
    InstalledBinaryRecord,
    state_lock,
)


def test_installed_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "installed_binaries.json"
    store = InstalledBinaries.load(path)
    store.add_or_replace(InstalledBinaryRecord("sui", "testnet", "v1.39.3", False, "/x/sui-v1.39.3"))
    store.add_or_replace(InstalledBinaryRecord("sui", "testnet", "v1.39.3", True, None))
    store.add_or_replace(InstalledBinaryRecord("mvr", "standalone", "v0.0.5"))
    store.save()

    reloaded = InstalledBinaries.load(path)
    assert sorted(r.key for r in reloaded.records) == sorted(r.key for r in store.records)
    assert reloaded.find("sui", "testnet", "v1.39.3").path == "/x/sui-v1.39.3"
    assert reloaded.find("sui", "testnet", "v1.39.3", True).path is None  # noqa: FBT003

    data = json.loads(path.read_text())
    assert set(data) == {"binaries"}
    assert data["binaries"][0] == {
        "binary_name": "sui",
        "network_release": "testnet",
        "version": "v1.39.3",
        "debug": False,
        "path": "/x/sui-v1.39.3",
    }


def test_reinstall_replaces_by_key(tmp_path: Path) -> None:
    store = InstalledBinaries.load(tmp_path / "installed.json")
    store.add_or_replace(InstalledBinaryRecord("sui", "testnet", "v1.39.3", path="/old"))
    store.add_or_replace(InstalledBinaryRecord("sui", "testnet", "v1.39.3", path="/new"))
    assert len(store) == 1
    assert store.records[0].path == "/new"


def test_remove_by_binary_name_is_idempotent(tmp_path: Path) -> None:
    path = tmp_path / "installed.json"
    store = InstalledBinaries.load(path)
    store.add_or_replace(InstalledBinaryRecord("sui", "testnet", "v1.39.3"))
    store.add_or_replace(InstalledBinaryRecord("sui", "devnet", "v1.40.0"))
    store.add_or_replace(InstalledBinaryRecord("mvr", "standalone", "v0.0.5"))
    store.save()
    before = path.read_bytes()

    assert store.remove_by_binary_name("walrus") == []
    store.save()
    assert json.loads(path.read_bytes()) == json.loads(before)

    removed = store.remove_by_binary_name("sui")
    assert len(removed) == 2
    assert [r.binary_name for r in store.records] == ["mvr"]


def test_grouped_by_network(tmp_path: Path) -> None:
    store = InstalledBinaries(
        tmp_path / "installed.json",
        [
            InstalledBinaryRecord("sui", "testnet", "v1.39.3"),
            InstalledBinaryRecord("sui", "devnet", "v1.40.0"),
            InstalledBinaryRecord("walrus", "testnet", "v1.20.0"),
        ],
    )
    groups = store.grouped_by_network()
    assert sorted(groups) == ["devnet", "testnet"]
    assert len(groups["testnet"]) == 2


def test_load_bootstraps_missing_files(tmp_path: Path) -> None:
    installed_path = tmp_path / "nested" / "installed.json"
    defaults_path = tmp_path / "nested" / "default.json"
    assert len(InstalledBinaries.load(installed_path)) == 0
    assert DefaultVersions.load(defaults_path).all() == {}
    assert json.loads(installed_path.read_text()) == {"binaries": []}
    assert json.loads(defaults_path.read_text()) == {}


def test_load_accepts_bare_list(tmp_path: Path) -> None:
    path = tmp_path / "installed.json"
    path.write_text(json.dumps([{"binary_name": "sui", "network_release": "testnet", "version": "v1.0.0"}]))
    record = InstalledBinaries.load(path).records[0]
    assert record == InstalledBinaryRecord("sui", "testnet", "v1.0.0", False, None)


@pytest.mark.parametrize(
    "content",
    ["not json", '{"binaries": 3}', '{"binaries": [{"binary_name": "sui"}]}', '"text"'],
)
def test_corrupt_installed_file(tmp_path: Path, content: str) -> None:
    path = tmp_path / "installed.json"
    path.write_text(content)
    with pytest.raises(CorruptStateError) as exc_info:
        InstalledBinaries.load(path)
    assert exc_info.value.path == path
    assert path.read_text() == content


@pytest.mark.parametrize("content", ["[1, 2]", "{", '{"sui": "testnet"}', '{"sui": ["testnet", 1]}'])
def test_corrupt_default_file(tmp_path: Path, content: str) -> None:
    path = tmp_path / "default.json"
    path.write_text(content)
    with pytest.raises(CorruptStateError):
        DefaultVersions.load(path)


def test_default_versions_legacy_shapes(tmp_path: Path) -> None:
    path = tmp_path / "default.json"
    path.write_text(
        json.dumps(
            {
                "sui": ["testnet", "v1.39.3"],
                "walrus": ["mainnet", "v1.20.0", False],
                "mvr": {"network_release": "standalone", "version": "v0.0.5", "debug": False},
                "sui-node": ["devnet", "v1.40.0", True],
            },
        ),
    )
    defaults = DefaultVersions.load(path)
    assert defaults.get("sui") == DefaultVersionEntry("testnet", "v1.39.3", False)  # noqa: FBT003
    assert defaults.get("mvr") == DefaultVersionEntry("standalone", "v0.0.5")
    assert defaults.get("sui-node").debug is True

    defaults.save()
    data = json.loads(path.read_text())
    assert data["sui"] == ["testnet", "v1.39.3", False]
    assert data["mvr"] == ["standalone", "v0.0.5", False]


def test_default_versions_set_and_remove(tmp_path: Path) -> None:
    path = tmp_path / "default.json"
    defaults = DefaultVersions.load(path)
    defaults.set("sui", "testnet", "v1.39.3")
    defaults.set("sui", "testnet", "v1.40.1")
    defaults.remove("walrus")
    defaults.save()
    assert json.loads(path.read_text()) == {"sui": ["testnet", "v1.40.1", False]}

    defaults.remove("sui")
    defaults.save()
    assert json.loads(path.read_text()) == {}


def test_save_leaves_no_temp_files(tmp_path: Path) -> None:
    store = InstalledBinaries.load(tmp_path / "installed.json")
    store.add_or_replace(InstalledBinaryRecord("sui", "testnet", "v1.0.0"))
    store.save()
    assert [p.name for p in tmp_path.iterdir()] == ["installed.json"]


def test_state_lock_times_out(tmp_path: Path) -> None:
    lock_file = tmp_path / ".suiup.lock"
    with FileLock(str(lock_file)), pytest.raises(IoError), state_lock(lock_file, timeout=0.1):
        pass  # pragma: no cover


def test_state_lock_is_reusable(tmp_path: Path) -> None:
    lock_file = tmp_path / ".suiup.lock"
    with state_lock(lock_file):
        pass
    with state_lock(lock_file):
        pass


def test_legacy_and_typed_shapes_load_identically(tmp_path: Path) -> None:
    legacy = tmp_path / "legacy.json"
    typed = tmp_path / "typed.json"
    legacy.write_text(json.dumps({"sui": ["testnet", "1.39.3", False]}))
    typed.write_text(
        json.dumps({"sui": {"network_release": "testnet", "version": "1.39.3", "debug": False}}),
    )
    assert DefaultVersions.load(legacy).all() == DefaultVersions.load(typed).all()


@pytest.mark.parametrize(
    ("load", "content"),
    [
        (InstalledBinaries.load, b"\xff\xfe{}"),
        (DefaultVersions.load, b'{"sui": ["\xff", "v1", false]}'),
    ],
)
def test_invalid_utf8_is_corrupt(tmp_path: Path, load: Callable, content: bytes) -> None:
    path = tmp_path / "state.json"
    path.write_bytes(content)
    with pytest.raises(CorruptStateError) as exc_info:
        load(path)
    assert exc_info.value.path == path
    assert path.read_bytes() == content


@pytest.mark.parametrize("load", [InstalledBinaries.load, DefaultVersions.load])
def test_unreadable_file_raises_io_error(tmp_path: Path, load: Callable) -> None:
    path = tmp_path / "state.json"
    path.mkdir()
    with pytest.raises(IoError) as exc_info:
        load(path)
    assert exc_info.value.path == path
    assert isinstance(exc_info.value.__cause__, OSError)
