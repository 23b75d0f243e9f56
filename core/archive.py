"""Archive creation utilities reusable across projects."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Protocol, runtime_checkable
import gzip
import shutil
import tarfile
import tempfile

_SUFFIX_FORMATS: list[tuple[str, str]] = [
    (".tar.gz", "gztar"),
    (".tgz", "gztar"),
    (".tar", "tar"),
]


@runtime_checkable
class ArchiveConsole(Protocol):
    """Minimal console interface required by :class:`ArchiveManager`."""

    def debug(self, message: str) -> None:
        ...


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    """A single file to place into an archive.

    ``arcname`` is the member path inside the archive; ``mode`` and the owner
    names override what is found on disk.
    """

    source: Path
    arcname: str
    mode: int = 0o644
    uname: str = "root"
    gname: str = "root"


class ArchiveManager:
    """Create compressed tarballs from explicit file lists."""

    def __init__(self, console: ArchiveConsole | None = None) -> None:
        self._console = console

    def create_archive(
        self,
        *,
        entries: Iterable[ArchiveEntry],
        target_path: Path | str,
    ) -> Path:
        """Create an archive holding *entries* at *target_path*.

        The format is inferred from the suffix of *target_path*. An existing
        target is replaced.
        """

        target = Path(target_path).expanduser()
        archive_format = self._resolve_archive_format(target)
        members = list(entries)

        for entry in members:
            if not entry.source.is_file():
                raise FileNotFoundError(f"Archive source file '{entry.source}' does not exist")

        target.parent.mkdir(parents=True, exist_ok=True)
        temp_tar = self._create_pax_tar(members=members, temp_dir=target.parent)

        try:
            if archive_format == "gztar":
                with temp_tar.open("rb") as src, gzip.GzipFile(target, "wb", compresslevel=9, mtime=0) as dst:
                    shutil.copyfileobj(src, dst)
            else:
                shutil.copyfile(temp_tar, target)
        finally:
            temp_tar.unlink(missing_ok=True)

        return target

    @staticmethod
    def _resolve_archive_format(target: Path) -> str:
        filename = target.name.lower()
        for suffix, fmt in _SUFFIX_FORMATS:
            if filename.endswith(suffix):
                return fmt

        raise ValueError(
            f"Unable to determine archive format from '{target.name}'. "
            f"Supported suffixes: {', '.join(suffix for suffix, _ in _SUFFIX_FORMATS)}"
        )

    def _create_pax_tar(self, *, members: list[ArchiveEntry], temp_dir: Path) -> Path:
        with tempfile.NamedTemporaryFile(dir=temp_dir, suffix=".tar", delete=False) as temp_handle:
            temp_path = Path(temp_handle.name)

        try:
            with tarfile.open(temp_path, mode="w", format=tarfile.PAX_FORMAT) as tar:
                for entry in members:
                    info = tar.gettarinfo(str(entry.source), arcname=entry.arcname)
                    info.mode = entry.mode
                    info.uid = info.gid = 0
                    info.uname = entry.uname
                    info.gname = entry.gname
                    if self._console is not None:
                        self._console.debug(f"adding {entry.source} as {entry.arcname}")
                    with entry.source.open("rb") as handle:
                        tar.addfile(info, handle)
        except Exception:
            temp_path.unlink(missing_ok=True)
            raise

        return temp_path


__all__ = [
    "ArchiveConsole",
    "ArchiveEntry",
    "ArchiveManager",
]
