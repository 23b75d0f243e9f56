"""Project manifest model and loading."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping
import os

from core.config_loader import load_config_file, lookup_table, normalize_string_list

from .errors import ConfigurationError

DEFAULT_PROFILE = "release"
"""Cargo profile used when ``[package.metadata.rpm.cargo]`` names none."""

DEFAULT_RELEASE = "1"

RPM_CONFIG_DIR = ".rpm"
"""Subdirectory of a project holding the RPM spec template and extra files."""

MANIFEST_NAME = "Cargo.toml"

TARGET_DIR_ENV = "CARGO_TARGET_DIR"


@dataclass(frozen=True, slots=True)
class CargoOptions:
    profile: str | None = None
    target: str | None = None
    buildflags: List[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class FileEntry:
    """Install location and attributes for one archived file."""

    path: str
    mode: str | None = None
    username: str | None = None
    groupname: str | None = None

    def mode_bits(self, default: int) -> int:
        if self.mode is None:
            return default
        try:
            return int(self.mode, 8)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid file mode '{self.mode}' for {self.path}") from exc


@dataclass(frozen=True, slots=True)
class RpmMetadata:
    package: str | None = None
    release: str | None = None
    target_architecture: str | None = None
    cargo: CargoOptions | None = None
    targets: Dict[str, FileEntry] = field(default_factory=dict)
    files: Dict[str, FileEntry] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class PackageConfig:
    name: str
    version: str
    description: str | None = None
    license: str | None = None
    homepage: str | None = None
    rpm: RpmMetadata | None = None

    def rpm_name(self) -> str:
        if self.rpm is not None and self.rpm.package:
            return self.rpm.package
        return self.name

    def rpm_version(self) -> tuple[str, str]:
        """Return the RPM ``(version, release)`` pair for this package.

        RPM versions cannot contain ``-``, so a pre-release such as
        ``1.2.3-rc.1`` becomes version ``1.2.3`` with release ``0.1.rc.1``.
        """
        release = DEFAULT_RELEASE
        if self.rpm is not None and self.rpm.release:
            release = self.rpm.release

        base, sep, prerelease = self.version.partition("-")
        if not sep:
            return self.version, release
        return base, f"0.{release}.{prerelease.replace('-', '.')}"

    @property
    def cargo(self) -> CargoOptions:
        if self.rpm is not None and self.rpm.cargo is not None:
            return self.rpm.cargo
        return CargoOptions()


def _optional_str(table: Mapping[str, Any], key: str, *, context: str) -> str | None:
    value = table.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ConfigurationError(f"{context}.{key} must be a string")
    return str(value)


def _parse_file_entries(table: Mapping[str, Any] | None, *, context: str) -> Dict[str, FileEntry]:
    entries: Dict[str, FileEntry] = {}
    if table is None:
        return entries
    for name, raw in table.items():
        if not isinstance(raw, Mapping):
            raise ConfigurationError(f"{context}.{name} must be a table with a 'path' key")
        path = _optional_str(raw, "path", context=f"{context}.{name}")
        if not path:
            raise ConfigurationError(f"{context}.{name} is missing 'path'")
        entries[str(name)] = FileEntry(
            path=path,
            mode=_optional_str(raw, "mode", context=f"{context}.{name}"),
            username=_optional_str(raw, "username", context=f"{context}.{name}"),
            groupname=_optional_str(raw, "groupname", context=f"{context}.{name}"),
        )
    return entries


def _parse_rpm_metadata(table: Mapping[str, Any]) -> RpmMetadata:
    context = "package.metadata.rpm"
    try:
        cargo_table = lookup_table(table, "cargo")
        targets = lookup_table(table, "targets")
        files = lookup_table(table, "files")
    except TypeError as exc:
        raise ConfigurationError(f"{context}: {exc}") from exc

    cargo = None
    if cargo_table is not None:
        try:
            buildflags = normalize_string_list(cargo_table.get("buildflags"), field_name=f"{context}.cargo.buildflags")
        except TypeError as exc:
            raise ConfigurationError(str(exc)) from exc
        cargo = CargoOptions(
            profile=_optional_str(cargo_table, "profile", context=f"{context}.cargo"),
            target=_optional_str(cargo_table, "target", context=f"{context}.cargo"),
            buildflags=buildflags,
        )

    return RpmMetadata(
        package=_optional_str(table, "package", context=context),
        release=_optional_str(table, "release", context=context),
        target_architecture=_optional_str(table, "target_architecture", context=context),
        cargo=cargo,
        targets=_parse_file_entries(targets, context=f"{context}.targets"),
        files=_parse_file_entries(files, context=f"{context}.files"),
    )


def parse_package_config(data: Mapping[str, Any]) -> PackageConfig:
    package = data.get("package")
    if not isinstance(package, Mapping):
        raise ConfigurationError("Manifest has no [package] table")

    name = _optional_str(package, "name", context="package")
    version = _optional_str(package, "version", context="package")
    if not name:
        raise ConfigurationError("package.name is required")
    if not version:
        raise ConfigurationError("package.version is required")

    try:
        rpm_table = lookup_table(package, "metadata", "rpm")
    except TypeError as exc:
        raise ConfigurationError(f"package: {exc}") from exc

    return PackageConfig(
        name=name,
        version=version,
        description=_optional_str(package, "description", context="package"),
        license=_optional_str(package, "license", context="package"),
        homepage=_optional_str(package, "homepage", context="package")
        or _optional_str(package, "repository", context="package"),
        rpm=_parse_rpm_metadata(rpm_table) if rpm_table is not None else None,
    )


def load_package_config(path: Path) -> PackageConfig:
    """Load the package configuration from the manifest at ``path``."""

    if not path.is_file():
        raise ConfigurationError(f"Manifest not found: {path}")
    try:
        data = load_config_file(path)
    except (ValueError, TypeError) as exc:
        raise ConfigurationError(f"Could not read {path}: {exc}") from exc
    return parse_package_config(data)


def default_target_dir(project_root: Path) -> Path:
    override = os.environ.get(TARGET_DIR_ENV)
    if override:
        return Path(override)
    return project_root / "target"


__all__ = [
    "CargoOptions",
    "DEFAULT_PROFILE",
    "DEFAULT_RELEASE",
    "FileEntry",
    "MANIFEST_NAME",
    "PackageConfig",
    "RPM_CONFIG_DIR",
    "RpmMetadata",
    "default_target_dir",
    "load_package_config",
    "parse_package_config",
]
