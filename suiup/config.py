"""Catalog of installable binaries and parsing of ``name@network-version`` specs."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

from .errors import ConflictError, NotFoundError
from .utils import log

logger = logging.getLogger(__name__)

CATALOG_FILE = "binaries.yaml"
KNOWN_NETWORKS = ("testnet", "devnet", "mainnet")


class InstallationType(enum.Enum):
    ARCHIVE = "archive"
    STANDALONE = "standalone"


def _optional(value: Any) -> str | None:
    if value is None or not str(value).strip():
        return None
    return str(value)


@dataclass(frozen=True)
class BinaryConfig:
    """How one binary is released and installed."""

    name: str
    repository: str
    installation_type: InstallationType
    description: str = ""
    main_branch: str = "main"
    network_based: bool = False
    supported_networks: frozenset[str] = field(default_factory=frozenset)
    default_network: str = "testnet"
    supports_debug: bool = False
    cargo_package: str | None = None
    nightly_toolchain: str | None = None
    shared_repo_binary: bool = False

    @property
    def repo_url(self) -> str:
        return f"https://github.com/{self.repository}"

    @property
    def is_standalone(self) -> bool:
        return self.installation_type is InstallationType.STANDALONE

    def supports_network(self, network: str) -> bool:
        """Return whether ``network`` is allowed; an empty set allows all."""
        return not self.supported_networks or network in self.supported_networks

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BinaryConfig:
        """Build a config from one catalog entry."""
        for _field in ("name", "repository", "installation_type"):
            if _field not in data:
                msg = f"Binary entry {data.get('name', '?')} is missing required field '{_field}'"
                raise ValueError(msg)
        return cls(
            name=data["name"],
            repository=data["repository"],
            installation_type=InstallationType(data["installation_type"]),
            description=data.get("description", ""),
            main_branch=data.get("main_branch") or "main",
            network_based=bool(data.get("network_based", False)),
            supported_networks=frozenset(data.get("supported_networks") or ()),
            default_network=data.get("default_network") or "testnet",
            supports_debug=bool(data.get("supports_debug", False)),
            cargo_package=_optional(data.get("cargo_package")),
            nightly_toolchain=_optional(data.get("nightly_toolchain")),
            shared_repo_binary=bool(data.get("shared_repo_binary", False)),
        )


class BinaryRegistry:
    """Immutable, name-sorted collection of ``BinaryConfig``.

    Built once per process by ``load`` and handed to whoever needs it.
    """

    def __init__(self, configs: list[BinaryConfig]) -> None:
        self._configs = tuple(sorted(configs, key=lambda c: c.name))
        self._by_name = {c.name: c for c in self._configs}

    @classmethod
    def from_yaml(cls, text: str) -> BinaryRegistry:
        data = yaml.safe_load(text) or {}
        return cls([BinaryConfig.from_dict(entry) for entry in data.get("binaries", [])])

    @classmethod
    def load(cls, config_dir: Path | None = None) -> BinaryRegistry:
        """Load the catalog, preferring ``<config_dir>/binaries.yaml`` when it exists."""
        if config_dir is not None:
            user_file = config_dir / CATALOG_FILE
            if user_file.exists():
                try:
                    return cls.from_yaml(user_file.read_text(encoding="utf-8"))
                except (OSError, yaml.YAMLError, ValueError) as e:
                    log(f"Cannot use binary catalog {user_file}: {e}", "warning", "⚠️")
                    log("Falling back to the built-in catalog", "warning")
        text = resources.files(__package__).joinpath(CATALOG_FILE).read_text(encoding="utf-8")
        return cls.from_yaml(text)

    def __iter__(self):
        return iter(self._configs)

    def __len__(self) -> int:
        return len(self._configs)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def get(self, name: str) -> BinaryConfig | None:
        return self._by_name.get(name)

    def get_config(self, name: str) -> BinaryConfig:
        """Return the config for ``name`` or raise ``NotFoundError``."""
        config = self._by_name.get(name)
        if config is None:
            msg = (
                f"Invalid binary name: {name}. Use `suiup list` to find available binaries "
                "to install or `suiup show` to see which binaries are already installed.\n"
                "When specifying versions, use `@`, e.g.: sui@v1.60.0"
            )
            raise NotFoundError(msg)
        return config

    def all_names(self) -> list[str]:
        return [c.name for c in self._configs]


@dataclass(frozen=True)
class ComponentSpec:
    """A parsed ``name[@network][-version]`` argument."""

    config: BinaryConfig
    network: str | None = None
    version: str | None = None

    @property
    def name(self) -> str:
        return self.config.name


def _split_component_spec(spec: str) -> tuple[str, str | None]:
    for delimiter in ("@", "==", "="):
        if delimiter in spec:
            name, rest = spec.split(delimiter, 1)
            return name, rest
    if " " in spec:
        name, rest = spec.split(" ", 1)
        return name, rest
    return spec, None


def _looks_like_version(value: str) -> bool:
    starts_valid = value[:1].isdigit() or (value[:1] == "v" and value[1:2].isdigit())
    return starts_valid and "." in value


def parse_component_spec(spec: str, registry: BinaryRegistry) -> ComponentSpec:
    """Parse ``sui``, ``sui@testnet``, ``sui@testnet-1.39.3`` or ``mvr@0.0.5``.

    Unknown binary names are rejected here, before anything else runs.
    """
    name, rest = _split_component_spec(spec.strip())
    config = registry.get_config(name)
    if rest is None:
        return ComponentSpec(config)
    if not rest:
        msg = "Version cannot be empty. Use 'binary' or 'binary@version' (e.g., sui@v1.60.0)"
        raise ConflictError(msg)

    networks = set(KNOWN_NETWORKS) | config.supported_networks
    if rest in networks:
        return ComponentSpec(config, network=rest)
    network, sep, version = rest.partition("-")
    if sep and network in networks and version:
        return ComponentSpec(config, network=network, version=version)
    if not _looks_like_version(rest):
        msg = (
            f"Invalid version format: '{rest}'. Expected a version like 'v1.60.0' or "
            "'1.60.0', or when applicable, 'testnet', 'devnet', 'mainnet'."
        )
        raise ConflictError(msg)
    return ComponentSpec(config, version=rest)
