"""Command-line interface for suiup."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from functools import partial
from typing import Any

from rich.markup import escape
from rich.table import Table

from . import __version__
from .cleanup import cleanup_releases
from .config import BinaryRegistry, parse_component_spec
from .errors import ConflictError, SuiupError
from .install import Installer
from .paths import SuiupDirs, default_bin_path
from .platform import Platform
from .store import DefaultVersions, InstalledBinaries, state_lock
from .switch import path_warning, remove, set_default
from .utils import check_for_updates, console, err_console, log, setup_logging

logger = logging.getLogger(__name__)


@dataclass
class Context:
    """Everything a command needs, built once in ``main``."""

    dirs: SuiupDirs
    platform: Platform
    registry: BinaryRegistry
    github_token: str | None = None

    def installer(self) -> Installer:
        return Installer(
            self.dirs,
            self.platform,
            github_token=self.github_token,
            lock=partial(state_lock, self.dirs.lock_file),
        )


def _nightly_branch(args: argparse.Namespace, main_branch: str) -> str | None:
    """``--nightly`` without a value builds the binary's main branch."""
    if args.nightly is None:
        return None
    return args.nightly or main_branch


def install_command(args: argparse.Namespace, ctx: Context) -> None:
    """Install a binary."""
    spec = parse_component_spec(args.component, ctx.registry)
    ctx.installer().install(
        spec.config,
        network=spec.network,
        version=spec.version,
        debug=args.debug,
        nightly=_nightly_branch(args, spec.config.main_branch),
        yes=args.yes,
    )


def update_command(args: argparse.Namespace, ctx: Context) -> None:
    """Install the latest release of a binary."""
    spec = parse_component_spec(args.component, ctx.registry)
    if spec.version is not None:
        msg = f"Update installs the latest release; drop the version from '{args.component}'"
        raise ConflictError(msg)
    ctx.installer().update(spec.config, network=spec.network, yes=args.yes)


def remove_command(args: argparse.Namespace, ctx: Context) -> None:
    """Remove every installed version of a binary."""
    config = ctx.registry.get_config(args.binary)
    with state_lock(ctx.dirs.lock_file):
        remove(ctx.dirs, ctx.platform, config.name)


def default_set_command(args: argparse.Namespace, ctx: Context) -> None:
    """Make an installed binary the default one."""
    spec = parse_component_spec(args.component, ctx.registry)
    with state_lock(ctx.dirs.lock_file):
        set_default(
            ctx.dirs,
            ctx.platform,
            spec.config,
            network=spec.network,
            version=spec.version,
            debug=args.debug,
            nightly=_nightly_branch(args, spec.config.main_branch),
        )
    path_warning(ctx.dirs.default_bin_dir, ctx.platform)


def _binaries_table(title: str, rows: list[tuple[str, str, str, bool]]) -> Table:
    table = Table(title=title, title_justify="left", title_style="bold")
    for column in ("Network", "Binary", "Version", "Debug"):
        table.add_column(column)
    for network, name, version, debug in rows:
        table.add_row(network, name, version, "Yes" if debug else "No")
    return table


def _default_rows(ctx: Context) -> list[tuple[str, str, str, bool]]:
    defaults = DefaultVersions.load(ctx.dirs.default_version_file)
    return [
        (entry.network_release, name, entry.version, entry.debug)
        for name, entry in sorted(defaults.all().items())
    ]


def default_get_command(_args: argparse.Namespace, ctx: Context) -> None:
    """Show the default binaries."""
    rows = _default_rows(ctx)
    console.print(_binaries_table("Default binaries:", rows))
    for _, name, _, debug in rows:
        path = default_bin_path(ctx.dirs.default_bin_dir, name, debug, ctx.platform)
        if not path.exists():
            log(f"Default binary {path} is missing; run `suiup default set {name}`", "warning", "⚠️")


def show_command(_args: argparse.Namespace, ctx: Context) -> None:
    """Show the default and the installed binaries."""
    console.print(_binaries_table("Default binaries:", _default_rows(ctx)))
    installed = InstalledBinaries.load(ctx.dirs.installed_binaries_file)
    rows = [
        (network, r.binary_name, r.version, r.debug)
        for network, records in sorted(installed.grouped_by_network().items())
        for r in records
    ]
    console.print(_binaries_table("Installed binaries:", rows))


def list_command(_args: argparse.Namespace, ctx: Context) -> None:
    """List the binaries suiup can install."""
    table = Table(title="Available binaries", title_justify="left", title_style="bold")
    table.add_column("Binary", style="green")
    table.add_column("Repository")
    table.add_column("Description")
    for config in ctx.registry:
        table.add_row(config.name, config.repository, config.description)
    console.print(table)


def which_command(args: argparse.Namespace, ctx: Context) -> None:
    """Print the path of the default binary (or of all of them)."""
    defaults = DefaultVersions.load(ctx.dirs.default_version_file)
    if args.binary:
        ctx.registry.get_config(args.binary)
        entry = defaults.get(args.binary)
        if entry is None:
            log(f"No default version set for {args.binary}", "warning", "⚠️")
            return
        selected = {args.binary: entry}
    else:
        selected = dict(sorted(defaults.all().items()))
    for name, entry in selected.items():
        path = default_bin_path(ctx.dirs.default_bin_dir, name, entry.debug, ctx.platform)
        if path.exists():
            console.print(str(path), highlight=False, soft_wrap=True)
        else:
            log(f"Default binary {path} is missing", "warning", "⚠️")


def cleanup_command(args: argparse.Namespace, ctx: Context) -> None:
    """Remove old release archives from the cache."""
    cleanup_releases(
        ctx.dirs.releases_dir,
        remove_all=args.all,
        days=args.days,
        dry_run=args.dry_run,
    )


def version_command(_args: Any, _ctx: Any) -> None:
    console.print(f"[yellow]suiup[/] [bold]v{__version__}[/]")


def _add_install_options(parser: argparse.ArgumentParser, action: str) -> None:
    parser.add_argument(
        "component",
        help="Binary with optional network and version, e.g. 'sui', 'sui@testnet', 'sui@testnet-1.39.3'",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help=f"{action} the debug build (only for binaries that ship one)",
    )
    parser.add_argument(
        "--nightly",
        nargs="?",
        const="",
        default=None,
        metavar="BRANCH",
        help="Use a build from source of BRANCH (the main branch if omitted)",
    )


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes")


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="suiup",
        description="suiup - Install and switch between versions of the Sui toolchain",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--github-token",
        default=os.environ.get("GITHUB_TOKEN"),
        help="GitHub API token (defaults to $GITHUB_TOKEN)",
    )
    parser.add_argument(
        "--disable-update-warnings",
        action="store_true",
        default=_env_flag("SUIUP_DISABLE_UPDATE_WARNINGS"),
        help="Do not check whether a newer suiup is available",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    install_parser = subparsers.add_parser("install", help="Install a binary")
    _add_install_options(install_parser, "Install")
    install_parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Make the installed version the default without asking",
    )
    install_parser.set_defaults(func=install_command)

    remove_parser = subparsers.add_parser("remove", help="Remove every installed version of a binary")
    remove_parser.add_argument("binary", help="Binary name")
    remove_parser.set_defaults(func=remove_command)

    default_parser = subparsers.add_parser("default", help="Get or set the default binaries")
    default_sub = default_parser.add_subparsers(dest="default_command")
    default_set_parser = default_sub.add_parser("set", help="Set the default version of a binary")
    _add_install_options(default_set_parser, "Select")
    default_set_parser.set_defaults(func=default_set_command)
    default_get_parser = default_sub.add_parser("get", help="Show the default binaries")
    default_get_parser.set_defaults(func=default_get_command)

    switch_parser = subparsers.add_parser(
        "switch",
        help="Switch the default binary, e.g. 'suiup switch sui@testnet'",
    )
    switch_parser.add_argument("component", help="Binary spec, e.g. 'sui@mainnet'")
    switch_parser.set_defaults(func=default_set_command, debug=False, nightly=None)

    show_parser = subparsers.add_parser("show", help="Show default and installed binaries")
    show_parser.set_defaults(func=show_command)

    list_parser = subparsers.add_parser("list", help="List binaries available to install")
    list_parser.set_defaults(func=list_command)

    which_parser = subparsers.add_parser("which", help="Print the path of the default binaries")
    which_parser.add_argument("binary", nargs="?", help="Binary name (all if omitted)")
    which_parser.set_defaults(func=which_command)

    update_parser = subparsers.add_parser("update", help="Install the latest release of a binary")
    update_parser.add_argument("component", help="Binary with optional network, e.g. 'sui@devnet'")
    update_parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Make the installed version the default without asking",
    )
    update_parser.set_defaults(func=update_command)

    cleanup_parser = subparsers.add_parser("cleanup", help="Remove cached release archives")
    cleanup_group = cleanup_parser.add_mutually_exclusive_group()
    cleanup_group.add_argument("--all", action="store_true", help="Remove every cached archive")
    cleanup_group.add_argument(
        "-d",
        "--days",
        type=int,
        default=30,
        help="Remove archives older than this many days (default: 30)",
    )
    cleanup_parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Show what would be removed without removing anything",
    )
    cleanup_parser.set_defaults(func=cleanup_command)

    version_parser = subparsers.add_parser("version", help="Print version information")
    version_parser.set_defaults(func=version_command)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main function to parse arguments and execute commands."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return
    if args.func is version_command:
        version_command(args, None)
        return

    if not args.disable_update_warnings:
        check_for_updates(__version__)

    try:
        platform = Platform.current()
        dirs = SuiupDirs.from_env(platform=platform)
        dirs.initialize()
        token = (args.github_token or "").strip() or None
        ctx = Context(dirs, platform, BinaryRegistry.load(dirs.config_dir), token)
        args.func(args, ctx)
    except SuiupError as e:
        err_console.print(f"❌ [bold red]Error: {escape(e.message)}[/bold red]")
        sys.exit(1)
    except Exception as e:
        err_console.print(f"❌ [bold red]Error: {escape(str(e))}[/bold red]")
        if args.verbose:
            err_console.print_exception()
        sys.exit(1)


if __name__ == "__main__":
    main()
