"""Command line interface for packing and publishing Rust crates as Wasmer packages."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Iterable, List, Sequence
import sys

from core.command_runner import CommandRunner, SubprocessCommandRunner
from core.console import Console

from .errors import PackError, iter_causes
from .metadata import Features
from .pack import PackOptions, Packager, publish_all
from .publish import Publisher
from .selection import SelectionPolicy
from .settings import Settings, load_settings

# Cargo runs `cargo-wasmer wasmer ...` for `cargo wasmer ...`.
_CARGO_SUBCOMMAND_NAMES = {"wasmer", "wapm"}
_ARCHIVE_FORMATS = ["tar.gz", "tar.zst", "zip"]


def _make_runner(console: Console) -> CommandRunner:
    return SubprocessCommandRunner(console)


def _strip_cargo_prefix(argv: Sequence[str]) -> List[str]:
    args = list(argv)
    if args and args[0] in _CARGO_SUBCOMMAND_NAMES:
        args.pop(0)
    return args


def _common_parser() -> ArgumentParser:
    common = ArgumentParser(add_help=False)
    common.add_argument("--manifest-path", type=Path, metavar="PATH", help="Path to Cargo.toml")
    common.add_argument("-w", "--workspace", action="store_true", help="Process every package in the workspace")
    common.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="SPEC",
        help="Exclude a package from a --workspace run (repeatable)",
    )
    common.add_argument(
        "-F",
        "--features",
        action="append",
        default=[],
        metavar="FEATURES",
        help="Comma-separated list of features to activate (repeatable)",
    )
    common.add_argument("--all-features", action="store_true", help="Activate all available features")
    common.add_argument("--no-default-features", action="store_true", help="Do not activate the default feature")
    common.add_argument("--debug", action="store_true", help="Compile in debug mode")
    common.add_argument("--out-dir", type=Path, metavar="DIR", help="Where to save the generated package(s)")
    common.add_argument(
        "-c",
        "--config",
        type=Path,
        metavar="PATH",
        help="Configuration file with a [global] table (TOML, JSON or YAML)",
    )
    common.add_argument(
        "-l",
        "--log",
        choices=list(Console.LEVELS),
        default=None,
        help="Set log level (default: info)",
    )
    common.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output (maps to debug)")
    return common


def _build_parser() -> ArgumentParser:
    common = _common_parser()
    parser = ArgumentParser(
        prog="cargo-wasmer",
        description="Compile Rust crates to WebAssembly and publish them as Wasmer packages",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    pack_parser = subparsers.add_parser("pack", parents=[common], help="Compile and assemble package bundles")
    pack_parser.add_argument(
        "--archive",
        choices=_ARCHIVE_FORMATS,
        help="Also write each bundle as an archive next to its directory",
    )

    publish_parser = subparsers.add_parser("publish", parents=[common], help="Build bundles and publish them")
    publish_parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        default=None,
        help="Build the package, but don't publish it",
    )
    return parser


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = _build_parser()
    args = parser.parse_args(_strip_cargo_prefix(list(argv)))
    if args.exclude and not args.workspace:
        parser.error("--exclude can only be used together with --workspace")
    return args


def _selection_policy(args: Namespace) -> SelectionPolicy:
    if args.workspace:
        return SelectionPolicy.workspace(args.exclude)
    return SelectionPolicy.current()


def _pack_options(args: Namespace) -> PackOptions:
    return PackOptions(
        policy=_selection_policy(args),
        features=Features.from_values(
            features=args.features,
            all_features=args.all_features,
            no_default_features=args.no_default_features,
        ),
        debug=args.debug,
        manifest_path=args.manifest_path,
        out_dir=args.out_dir,
        archive=getattr(args, "archive", None),
    )


def _resolve_settings(args: Namespace) -> Settings:
    settings = load_settings(args.config)
    log_level = args.log or ("debug" if args.verbose else None)
    return settings.with_overrides(
        log_level=log_level,
        dry_run=getattr(args, "dry_run", None),
    )


def _report(exc: PackError, console: Console) -> None:
    chain = list(iter_causes(exc))
    print(f"error: {chain[0]}", file=console.err)
    for cause in chain[1:]:
        print(f"  caused by: {cause}", file=console.err)


def _handle_pack(args: Namespace, workspace: Path, runner: CommandRunner, settings: Settings, console: Console) -> int:
    packager = Packager(runner=runner, options=_pack_options(args), settings=settings, console=console)
    metadata = packager.metadata(cwd=workspace)
    packages = packager.resolve_packages(metadata, workspace)
    if not packages:
        console.info("No packages to pack")
        return 0

    for package, dest in zip(packages, packager.pack_all(packages, metadata.target_directory)):
        print(f"Wrote the Wasmer package for {package.name} to {dest}", file=console.out)
    return 0


def _handle_publish(args: Namespace, workspace: Path, runner: CommandRunner, settings: Settings, console: Console) -> int:
    packager = Packager(runner=runner, options=_pack_options(args), settings=settings, console=console)
    metadata = packager.metadata(cwd=workspace)
    packages = packager.resolve_packages(metadata, workspace)
    publisher = Publisher(runner, program=settings.wasmer, dry_run=settings.dry_run, console=console)
    publish_all(packager, publisher, packages, metadata.target_directory, console=console)
    return 0


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    workspace = Path.cwd()

    fallback = Console("error")
    try:
        settings = _resolve_settings(args)
    except PackError as exc:
        _report(exc, fallback)
        return 1

    console = Console(settings.log_level, dry_run=settings.dry_run)
    console.debug(f"Started: {args}")
    runner = _make_runner(console)

    try:
        if args.command == "pack":
            return _handle_pack(args, workspace, runner, settings, console)
        if args.command == "publish":
            return _handle_publish(args, workspace, runner, settings, console)
    except PackError as exc:
        _report(exc, console)
        return 1
    raise ValueError(f"Unknown command: {args.command}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
