"""Source tarball assembly for the rpmbuild ``SOURCES`` directory."""
from __future__ import annotations

from pathlib import Path
from typing import List

from core.archive import ArchiveConsole, ArchiveEntry, ArchiveManager

from .config import FileEntry, PackageConfig

TARGET_MODE = 0o755
FILE_MODE = 0o644


class SourceArchive:
    """Collects build outputs and extra files into ``<name>-<version>/``.

    Members are laid out at their install path under the versioned top-level
    directory, so the spec file can ``%setup -q`` and copy the tree into the
    build root.
    """

    def __init__(
        self,
        config: PackageConfig,
        rpm_config_dir: Path,
        target_dir: Path,
        *,
        console: ArchiveConsole | None = None,
    ) -> None:
        self._config = config
        self._rpm_config_dir = rpm_config_dir
        self._target_dir = target_dir
        self._manager = ArchiveManager(console)

    @property
    def base_dir(self) -> str:
        version, _ = self._config.rpm_version()
        return f"{self._config.rpm_name()}-{version}"

    def entries(self) -> List[ArchiveEntry]:
        rpm = self._config.rpm
        targets = dict(rpm.targets) if rpm is not None else {}
        files = dict(rpm.files) if rpm is not None else {}
        if not targets:
            name = self._config.rpm_name()
            targets[name] = FileEntry(path=f"/usr/bin/{name}")

        entries: List[ArchiveEntry] = []
        for binary, entry in targets.items():
            entries.append(self._entry(self._target_dir / binary, entry, TARGET_MODE))
        for relative, entry in files.items():
            entries.append(self._entry(self._rpm_config_dir / relative, entry, FILE_MODE))
        return entries

    def _entry(self, source: Path, entry: FileEntry, default_mode: int) -> ArchiveEntry:
        return ArchiveEntry(
            source=source,
            arcname=f"{self.base_dir}/{entry.path.lstrip('/')}",
            mode=entry.mode_bits(default_mode),
            uname=entry.username or "root",
            gname=entry.groupname or "root",
        )

    def build(self, path: Path) -> Path:
        return self._manager.create_archive(entries=self.entries(), target_path=path)


__all__ = ["FILE_MODE", "SourceArchive", "TARGET_MODE"]
