"""Wrapper around the ``rpmbuild`` executable."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence
import shutil

from core.command_runner import CommandRunner

from .console import Console
from .errors import ExternalCommandError, ToolNotFoundError

RPMBUILD = "rpmbuild"


def parse_version(output: str) -> str:
    """Extract the version from ``rpmbuild --version`` output.

    ``"RPM version 4.18.2"`` yields ``"4.18.2"``; unrecognised output is
    returned stripped.
    """
    text = output.strip()
    for line in text.splitlines():
        words = line.split()
        if len(words) >= 3 and words[0] == "RPM" and words[1] == "version":
            return words[2]
    return text


@dataclass
class Rpmbuild:
    """A resolved ``rpmbuild`` executable."""

    path: Path
    version: str
    runner: CommandRunner
    verbose: bool = False

    @classmethod
    def locate(
        cls,
        runner: CommandRunner,
        *,
        verbose: bool = False,
        which: Callable[[str], str | None] = shutil.which,
    ) -> "Rpmbuild":
        found = which(RPMBUILD)
        if not found:
            raise ToolNotFoundError(RPMBUILD)
        path = Path(found)

        result = runner.run([str(path), "--version"])
        if not result.succeeded:
            raise ExternalCommandError(RPMBUILD, result.returncode)
        return cls(path=path, version=parse_version(result.stdout), runner=runner, verbose=verbose)

    def exec(self, args: Sequence[str], *, cwd: Path, console: Console | None = None) -> None:
        """Run ``rpmbuild`` with ``args`` inside ``cwd``.

        Output is streamed in verbose mode; otherwise it is captured and only
        shown when the build fails.
        """
        result = self.runner.run([str(self.path), *args], cwd=cwd, stream=self.verbose)
        if result.succeeded:
            return
        if console is not None and not result.streamed:
            for captured in (result.stdout, result.stderr):
                if captured.strip():
                    console.info(captured.rstrip())
        raise ExternalCommandError(RPMBUILD, result.returncode)
