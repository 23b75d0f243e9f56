"""Command line interface for rpmpack."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Iterable
import sys

from core.command_runner import SubprocessCommandRunner

from . import __version__
from .builder import BuildContext, Builder
from .config import MANIFEST_NAME, RPM_CONFIG_DIR, default_target_dir, load_package_config
from .console import Console
from .errors import ConfigurationError, ExternalCommandError, RpmpackError
from .init import init_project


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(prog="rpmpack", description="Build RPMs from Cargo projects")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser("build", help="Build an RPM for the project")
    build_parser.add_argument("-v", "--verbose", action="store_true", help="Show commands and rpmbuild output")
    build_parser.add_argument("--no-cargo-build", action="store_true", help="Assume the project is already built")
    build_parser.add_argument("-o", "--output", help="Output path for the RPM (file or directory)")
    build_parser.add_argument("--manifest-path", type=Path, help=f"Path to {MANIFEST_NAME}")
    build_parser.add_argument("--target-dir", type=Path, help="Cargo target directory (default: $CARGO_TARGET_DIR or ./target)")

    init_parser = subparsers.add_parser("init", help="Create .rpm/<name>.spec and RPM metadata")
    init_parser.add_argument("-f", "--force", action="store_true", help="Overwrite an existing spec template")
    init_parser.add_argument("--manifest-path", type=Path, help=f"Path to {MANIFEST_NAME}")

    subparsers.add_parser("version", help="Show the rpmpack version")

    return parser.parse_args(list(argv))


def _manifest_path(args: Namespace, workspace: Path) -> Path:
    manifest = getattr(args, "manifest_path", None) or workspace / MANIFEST_NAME
    return manifest if manifest.is_absolute() else (workspace / manifest)


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    workspace = Path.cwd()
    console = Console.for_verbosity(getattr(args, "verbose", False))

    try:
        if args.command == "build":
            return _handle_build(args, workspace, console)
        if args.command == "init":
            return _handle_init(args, workspace, console)
        if args.command == "version":
            console.info(f"rpmpack {__version__}")
            return 0
    except ConfigurationError as exc:
        console.error(str(exc))
        if exc.hint:
            console.info(f"\n{exc.hint}")
        return 1
    except ExternalCommandError as exc:
        return exc.exit_code
    except (RpmpackError, OSError) as exc:
        console.error(str(exc))
        return 1
    raise ValueError(f"Unknown command: {args.command}")


def _handle_build(args: Namespace, workspace: Path, console: Console) -> int:
    manifest = _manifest_path(args, workspace)
    config = load_package_config(manifest)
    project_root = manifest.parent

    context = BuildContext.create(
        config,
        verbose=args.verbose,
        no_cargo_build=args.no_cargo_build,
        output_path=args.output,
        rpm_config_dir=project_root / RPM_CONFIG_DIR,
        base_target_dir=args.target_dir or default_target_dir(project_root),
    )
    Builder(context, runner=SubprocessCommandRunner(), console=console).build()
    return 0


def _handle_init(args: Namespace, workspace: Path, console: Console) -> int:
    manifest = _manifest_path(args, workspace)
    config = load_package_config(manifest)
    init_project(
        config,
        manifest_path=manifest,
        rpm_config_dir=manifest.parent / RPM_CONFIG_DIR,
        console=console,
        force=args.force,
    )
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
