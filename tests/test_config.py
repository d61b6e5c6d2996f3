"""Tests for suiup.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from suiup.config import BinaryConfig, BinaryRegistry, InstallationType, parse_component_spec
from suiup.errors import ConflictError, NotFoundError


def test_builtin_catalog(registry: BinaryRegistry) -> None:
    assert registry.all_names() == sorted(registry.all_names())
    assert {"sui", "mvr", "walrus", "site-builder", "move-analyzer"} <= set(registry.all_names())

    sui = registry.get_config("sui")
    assert sui.supports_debug
    assert sui.network_based
    assert sui.repo_url == "https://github.com/MystenLabs/sui"
    assert sui.cargo_package is None

    mvr = registry.get_config("mvr")
    assert mvr.is_standalone
    assert mvr.installation_type is InstallationType.STANDALONE

    assert registry.get_config("walrus").cargo_package == "walrus-service"
    assert registry.get_config("ledger-signer").nightly_toolchain == "nightly"


def test_unknown_binary(registry: BinaryRegistry) -> None:
    assert "nope" not in registry
    assert registry.get("nope") is None
    with pytest.raises(NotFoundError, match="suiup list"):
        registry.get_config("nope")


def test_supports_network() -> None:
    unrestricted = BinaryConfig("x", "o/x", InstallationType.ARCHIVE)
    assert unrestricted.supports_network("anything")
    restricted = BinaryConfig(
        "y",
        "o/y",
        InstallationType.ARCHIVE,
        supported_networks=frozenset({"mainnet"}),
    )
    assert restricted.supports_network("mainnet")
    assert not restricted.supports_network("testnet")


def test_from_dict_requires_fields() -> None:
    with pytest.raises(ValueError, match="repository"):
        BinaryConfig.from_dict({"name": "x", "installation_type": "archive"})


def test_user_catalog_override(tmp_path: Path) -> None:
    (tmp_path / "binaries.yaml").write_text(
        "binaries:\n"
        "  - name: custom\n"
        "    repository: me/custom\n"
        "    installation_type: standalone\n",
    )
    registry = BinaryRegistry.load(tmp_path)
    assert registry.all_names() == ["custom"]
    assert registry.get_config("custom").main_branch == "main"


def test_broken_user_catalog_falls_back(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    (tmp_path / "binaries.yaml").write_text("binaries:\n  - name: [unterminated\n")
    registry = BinaryRegistry.load(tmp_path)
    assert "sui" in registry
    assert "built-in catalog" in capsys.readouterr().err


@pytest.mark.parametrize(
    ("spec", "network", "version"),
    [
        ("sui", None, None),
        ("sui@testnet", "testnet", None),
        ("sui@testnet-1.39.3", "testnet", "1.39.3"),
        ("sui@devnet-v1.40.0", "devnet", "v1.40.0"),
        ("sui@1.39.3", None, "1.39.3"),
        ("sui==1.39.3", None, "1.39.3"),
        ("sui=testnet", "testnet", None),
        ("mvr@v0.0.5", None, "v0.0.5"),
        ("sui 1.39.3", None, "1.39.3"),
    ],
)
def test_parse_component_spec(
    registry: BinaryRegistry,
    spec: str,
    network: str | None,
    version: str | None,
) -> None:
    parsed = parse_component_spec(spec, registry)
    assert parsed.name == spec.split("@")[0].split("=")[0].split(" ")[0]
    assert parsed.network == network
    assert parsed.version == version


@pytest.mark.parametrize("spec", ["sui@", "sui@latest", "sui@testnet-"])
def test_parse_component_spec_rejects(registry: BinaryRegistry, spec: str) -> None:
    with pytest.raises(ConflictError):
        parse_component_spec(spec, registry)


def test_parse_component_spec_unknown_name(registry: BinaryRegistry) -> None:
    with pytest.raises(NotFoundError):
        parse_component_spec("suix@testnet", registry)
