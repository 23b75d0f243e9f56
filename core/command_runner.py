"""Run external programs and capture or stream their results."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Sequence
import os
import shlex
import subprocess


@dataclass
class CommandResult:
    """Represents the outcome of an executed command."""

    command: Sequence[str]
    returncode: int
    stdout: str
    stderr: str
    streamed: bool = False

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


def format_command(command: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(part)) for part in command)


class CommandRunner:
    """Abstract command runner interface.

    Runners never raise on a non-zero exit; callers inspect
    :attr:`CommandResult.returncode` and decide how to fail.
    """

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        stream: bool = False,
    ) -> CommandResult:
        raise NotImplementedError

    def format_command(self, command: Sequence[str]) -> str:
        return format_command(command)


class SubprocessCommandRunner(CommandRunner):
    """Command runner that executes commands via :mod:`subprocess`.

    Streamed commands inherit stdout/stderr from this process; otherwise the
    output is captured as text on the returned :class:`CommandResult`.
    """

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        stream: bool = False,
    ) -> CommandResult:
        process = subprocess.run(
            [str(part) for part in command],
            cwd=str(cwd) if cwd else None,
            capture_output=not stream,
            text=True,
            check=False,
        )
        return CommandResult(
            command=list(command),
            returncode=process.returncode,
            stdout="" if stream else process.stdout,
            stderr="" if stream else process.stderr,
            streamed=stream,
        )


@dataclass(slots=True)
class RecordedCommand:
    command: List[str]
    cwd: str | None
    stream: bool


@dataclass(slots=True)
class ScriptedResponse:
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""


@dataclass
class RecordingCommandRunner(CommandRunner):
    """Command runner that records commands instead of executing them.

    Responses can be scripted per program (matched on the basename of the
    first argument); unscripted programs succeed with empty output.
    """

    commands: List[RecordedCommand] = field(default_factory=list)
    responses: Dict[str, ScriptedResponse] = field(default_factory=dict)

    def script(self, program: str, *, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.responses[program] = ScriptedResponse(returncode=returncode, stdout=stdout, stderr=stderr)

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        stream: bool = False,
    ) -> CommandResult:
        self.commands.append(
            RecordedCommand(
                command=[str(part) for part in command],
                cwd=str(cwd) if cwd else None,
                stream=stream,
            )
        )
        response = self.responses.get(os.path.basename(str(command[0])), ScriptedResponse())
        return CommandResult(
            command=list(command),
            returncode=response.returncode,
            stdout="" if stream else response.stdout,
            stderr="" if stream else response.stderr,
            streamed=stream,
        )

    def iter_commands(self) -> Iterable[RecordedCommand]:
        return iter(self.commands)


__all__ = [
    "CommandResult",
    "CommandRunner",
    "RecordedCommand",
    "RecordingCommandRunner",
    "ScriptedResponse",
    "SubprocessCommandRunner",
    "format_command",
]
