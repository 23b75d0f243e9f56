"""Exception types reported by the rpmpack command line."""
from __future__ import annotations


class RpmpackError(RuntimeError):
    """Base class for failures that abort a packaging run."""


class ConfigurationError(RpmpackError):
    """The project is not configured correctly for RPM builds."""

    def __init__(self, message: str, *, hint: str | None = None):
        super().__init__(message)
        self.hint = hint


class MissingMetadataError(ConfigurationError):
    """The manifest has no ``[package.metadata.rpm]`` table."""

    def __init__(self, manifest: str = "Cargo.toml"):
        super().__init__(
            f"No [package.metadata.rpm] in {manifest}!",
            hint="Run 'rpmpack init' to configure the project for RPM builds",
        )


class TemplateNotFoundError(ConfigurationError):
    """The ``.spec`` template is missing from the RPM config directory."""

    def __init__(self, path: str):
        super().__init__(
            f"RPM spec template not found: {path}",
            hint="Run 'rpmpack init' to generate one",
        )
        self.path = path


class ExternalCommandError(RpmpackError):
    """An external program exited unsuccessfully."""

    def __init__(self, program: str, returncode: int):
        super().__init__(f"{program} exited with status {returncode}")
        self.program = program
        self.returncode = returncode

    @property
    def exit_code(self) -> int:
        # Negative return codes mean the process was killed by a signal.
        return self.returncode if self.returncode > 0 else 1


class ToolNotFoundError(RpmpackError):
    """A required external program could not be found on ``PATH``."""

    def __init__(self, program: str):
        super().__init__(f"Could not find '{program}' on PATH. Is it installed?")
        self.program = program


__all__ = [
    "ConfigurationError",
    "ExternalCommandError",
    "MissingMetadataError",
    "RpmpackError",
    "TemplateNotFoundError",
    "ToolNotFoundError",
]
