"""Shared core utilities for process execution, manifests, archives and templating."""

from .archive import ArchiveConsole, ArchiveEntry, ArchiveManager
from .template import TemplateError, TemplateResolver
from .command_runner import (
    CommandResult,
    CommandRunner,
    RecordingCommandRunner,
    SubprocessCommandRunner,
    format_command,
)
from .config_loader import (
    ConfigLoader,
    FILE_LOADERS,
    load_config_file,
    lookup_table,
    normalize_string_list,
)

__all__ = [
    "TemplateError",
    "TemplateResolver",
    "ArchiveConsole",
    "ArchiveEntry",
    "ArchiveManager",
    "CommandResult",
    "CommandRunner",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "format_command",
    "ConfigLoader",
    "FILE_LOADERS",
    "load_config_file",
    "lookup_table",
    "normalize_string_list",
]
