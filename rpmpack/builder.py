"""Build RPMs from Cargo projects.

The pipeline runs ``cargo build`` (unless skipped), packs the build outputs
into ``SOURCES/<name>-<version>.tar.gz``, renders ``SPECS/<name>.spec`` from
the project's template and finally runs ``rpmbuild -ba`` against the
generated work tree under ``<target-dir>/<triple>/<profile>/rpmbuild``.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List
import os
import shutil
import time

from core.command_runner import CommandRunner, format_command

from .archive import SourceArchive
from .config import DEFAULT_PROFILE, PackageConfig
from .console import Console
from .errors import ExternalCommandError, MissingMetadataError, TemplateNotFoundError
from .rpmbuild import Rpmbuild

VERSION_PLACEHOLDER = "@@VERSION@@"
RELEASE_PLACEHOLDER = "@@RELEASE@@"

DEFAULT_BUILD_NAME_FMT = "%{NAME}-%{VERSION}-%{RELEASE}.%{ARCH}.rpm"
"""rpmbuild's own ``_build_name_fmt``, used when only a directory is given."""

RPMBUILD_SUBDIRS = ("RPMS", "SRPMS", "BUILD", "SOURCES", "SPECS", "tmp")


def render_spec_template(template: str, version: str, release: str) -> str:
    """Replace every version placeholder, then every release placeholder."""
    rendered = template.replace(VERSION_PLACEHOLDER, version)
    return rendered.replace(RELEASE_PLACEHOLDER, release)


def split_output_path(path: str, *, is_dir: Callable[[str], bool] = os.path.isdir) -> tuple[str, str]:
    """Interpret an output path as an ``(rpm dir, filename pattern)`` pair.

    A trailing ``/`` or an existing directory keeps rpmbuild's default
    filename pattern. Anything else is split on the last ``/``; when there is
    no directory part the directory is ``/``.
    """
    if path.endswith("/") or is_dir(path):
        return path, DEFAULT_BUILD_NAME_FMT

    directory, _, filename = path.rpartition("/")
    return directory or "/", filename


def resolve_output_path(path: str, base: str, *, is_dir: Callable[[str], bool] = os.path.isdir) -> str:
    """Anchor a relative output path at *base*, the caller's working directory.

    rpmbuild runs inside the work tree, so relative directories must be made
    absolute first. A bare filename that is not a directory under *base* is
    returned unchanged and still maps to ``/``.
    """
    if os.path.isabs(path):
        return path
    if "/" in path or is_dir(os.path.join(base, path)):
        return os.path.join(base, path)
    return path


def create_rpmbuild_tree(rpmbuild_dir: Path) -> None:
    for name in RPMBUILD_SUBDIRS:
        (rpmbuild_dir / name).mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class BuildContext:
    """Settings for one packaging run, fixed once created."""

    config: PackageConfig
    verbose: bool
    no_cargo_build: bool
    output_path: str | None
    rpm_config_dir: Path
    target_dir: Path
    rpmbuild_dir: Path

    @classmethod
    def create(
        cls,
        config: PackageConfig,
        *,
        verbose: bool = False,
        no_cargo_build: bool = False,
        output_path: str | None = None,
        rpm_config_dir: Path,
        base_target_dir: Path,
    ) -> "BuildContext":
        if config.rpm is None:
            raise MissingMetadataError()

        cargo = config.cargo
        profile = cargo.profile or DEFAULT_PROFILE
        target = cargo.target or ""

        target_dir = base_target_dir / target / profile
        return cls(
            config=config,
            verbose=verbose,
            no_cargo_build=no_cargo_build,
            output_path=output_path,
            rpm_config_dir=rpm_config_dir,
            target_dir=target_dir,
            rpmbuild_dir=target_dir / "rpmbuild",
        )

    @property
    def project_root(self) -> Path:
        return self.rpm_config_dir.parent


class Builder:
    """Runs the packaging pipeline for a :class:`BuildContext`."""

    def __init__(
        self,
        context: BuildContext,
        *,
        runner: CommandRunner,
        console: Console,
        which: Callable[[str], str | None] | None = None,
    ) -> None:
        self.context = context
        self._runner = runner
        self._console = console
        self._which = which or shutil.which

    @property
    def config(self) -> PackageConfig:
        return self.context.config

    @property
    def rpm_file(self) -> str:
        version, release = self.config.rpm_version()
        return f"{self.config.rpm_name()}-{version}-{release}.rpm"

    @property
    def spec_filename(self) -> str:
        return f"{self.config.rpm_name()}.spec"

    @property
    def archive_filename(self) -> str:
        version, _ = self.config.rpm_version()
        return f"{self.config.rpm_name()}-{version}.tar.gz"

    def build(self) -> None:
        began_at = time.monotonic()

        if not self.context.no_cargo_build:
            self.cargo_build()
        self.create_archive()
        self.render_spec()
        self.rpmbuild()

        elapsed = int(time.monotonic() - began_at)
        self._console.status("Finished", f"{self.rpm_file}: built in {elapsed} secs")

    def cargo_buildflags(self) -> List[str]:
        cargo = self.config.cargo
        flags: List[str] = []
        if cargo.target:
            flags.append(f"--target={cargo.target}")
        flags.extend(cargo.buildflags)
        return flags

    def cargo_build(self) -> None:
        """Compile the project with ``cargo build``."""
        flags = self.cargo_buildflags()
        if self.context.verbose:
            self._console.status("Running", format_command(["cargo", "build", *flags]))

        result = self._runner.run(
            ["cargo", "build", *flags],
            cwd=self.context.project_root,
            stream=True,
        )
        if not result.succeeded:
            raise ExternalCommandError("cargo", result.returncode)

    def create_archive(self) -> Path:
        """Create the release tarball in ``SOURCES``."""
        sources_dir = self.context.rpmbuild_dir / "SOURCES"
        sources_dir.mkdir(parents=True, exist_ok=True)

        if self.context.verbose:
            self._console.status("Creating", f"release archive: {self.archive_filename}")

        archive = SourceArchive(
            self.config,
            self.context.rpm_config_dir,
            self.context.target_dir,
            console=self._console,
        )
        return archive.build(sources_dir / self.archive_filename)

    def render_spec(self) -> Path:
        """Render the package's spec template into ``SPECS``."""
        template_path = self.context.rpm_config_dir / self.spec_filename
        try:
            template = template_path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise TemplateNotFoundError(str(template_path)) from exc

        version, release = self.config.rpm_version()
        rendered = render_spec_template(template, version, release)

        spec_dir = self.context.rpmbuild_dir / "SPECS"
        spec_dir.mkdir(parents=True, exist_ok=True)
        spec_path = spec_dir / self.spec_filename
        spec_path.write_text(rendered, encoding="utf-8")
        return spec_path

    def output_location(self) -> tuple[str, str] | None:
        if self.context.output_path is None:
            return None
        return split_output_path(resolve_output_path(self.context.output_path, os.getcwd()))

    def rpmbuild_args(self) -> List[str]:
        topdir = self.context.rpmbuild_dir.absolute()
        args = [
            "-ba",
            f"SPECS/{self.spec_filename}",
            "-D",
            f"_topdir {topdir}",
            "-D",
            f"_tmppath {topdir / 'tmp'}",
        ]

        # Without an override rpmbuild writes to
        # %{_topdir}/RPMS/%{ARCH}/%{NAME}-%{VERSION}-%{RELEASE}.%{ARCH}.rpm
        location = self.output_location()
        if location is not None:
            rpm_dir, filename = location
            args.extend(["-D", f"_rpmdir {rpm_dir}", "-D", f"_build_name_fmt {filename}"])

        arch = self.config.rpm.target_architecture if self.config.rpm is not None else None
        if arch:
            args.extend(["--target", arch])
        return args

    def rpmbuild(self) -> None:
        """Run rpmbuild inside the generated work tree."""
        tool = Rpmbuild.locate(self._runner, verbose=self.context.verbose, which=self._which)
        self._console.status("Building", f"{self.rpm_file} (using rpmbuild {tool.version})")

        create_rpmbuild_tree(self.context.rpmbuild_dir)
        args = self.rpmbuild_args()

        if self.context.verbose:
            self._console.status("Running", format_command([str(tool.path), *args]))

        tool.exec(args, cwd=self.context.rpmbuild_dir, console=self._console)


__all__ = [
    "BuildContext",
    "Builder",
    "DEFAULT_BUILD_NAME_FMT",
    "RELEASE_PLACEHOLDER",
    "RPMBUILD_SUBDIRS",
    "VERSION_PLACEHOLDER",
    "create_rpmbuild_tree",
    "render_spec_template",
    "resolve_output_path",
    "split_output_path",
]
