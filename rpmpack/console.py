"""Status output for rpmpack."""
import os
import sys
from typing import TextIO


class Console:
    """Simple console output handler with configurable log level.

    Levels: none < error < info < debug
    Default: 'info'. ``RPMPACK_LOG`` overrides the level passed in.
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "info": 2,
        "debug": 3,
    }

    LABEL_WIDTH = 12

    def __init__(self, level: str = "info", *, stream: TextIO | None = None, err_stream: TextIO | None = None):
        level = os.environ.get("RPMPACK_LOG", level)
        self.level_name = level if level in self.LEVELS else "info"
        self.level = self.LEVELS[self.level_name]
        self._stream = stream
        self._err_stream = err_stream

    @classmethod
    def for_verbosity(cls, verbose: bool) -> "Console":
        return cls("debug" if verbose else "info")

    @property
    def verbose(self) -> bool:
        return self.level >= self.LEVELS["debug"]

    def status(self, label: str, message: str) -> None:
        """Print a cargo-style status line with a right-aligned label."""
        if self.level >= self.LEVELS["info"]:
            print(f"{label:>{self.LABEL_WIDTH}} {message}", file=self._stream or sys.stdout)

    def info(self, message: str) -> None:
        if self.level >= self.LEVELS["info"]:
            print(message, file=self._stream or sys.stdout)

    def error(self, message: str) -> None:
        if self.level >= self.LEVELS["error"]:
            print(f"error: {message}", file=self._err_stream or sys.stderr)

    def debug(self, message: str) -> None:
        if self.verbose:
            print(f"[DEBUG] {message}", file=self._stream or sys.stdout)
