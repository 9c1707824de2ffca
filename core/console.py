"""Leveled console output shared by the command line tools."""
from __future__ import annotations

from typing import TextIO
import sys


class Console:
    """Simple console output handler with configurable log level.

    Levels: none < error < warn < info < debug < trace
    Default: 'info'
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "warn": 2,
        "info": 3,
        "debug": 4,
        "trace": 5,
    }

    def __init__(
        self,
        level: str = "info",
        dry_run: bool = False,
        *,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        normalized = level.strip().lower()
        if normalized not in self.LEVELS:
            choices = ", ".join(self.LEVELS)
            raise ValueError(f"Unknown log level '{level}'. Expected one of: {choices}")
        self.level_name = normalized
        self.level = self.LEVELS[normalized]
        self.dry_run = dry_run
        self._stdout = stdout
        self._stderr = stderr

    @property
    def out(self) -> TextIO:
        return self._stdout or sys.stdout

    @property
    def err(self) -> TextIO:
        return self._stderr or sys.stderr

    def enabled(self, level: str) -> bool:
        return self.level >= self.LEVELS[level]

    def error(self, message: str) -> None:
        if self.enabled("error"):
            print(f"[ERROR] {message}", file=self.err)

    def warn(self, message: str) -> None:
        if self.enabled("warn"):
            print(f"[WARN] {message}", file=self.err)

    def info(self, message: str) -> None:
        if self.enabled("info"):
            print(f"[INFO] {message}", file=self.out)

    def debug(self, message: str) -> None:
        if self.enabled("debug"):
            print(f"[DEBUG] {message}", file=self.out)

    def trace(self, message: str) -> None:
        if self.enabled("trace"):
            print(f"[TRACE] {message}", file=self.out)

    def dry(self, message: str) -> None:
        if self.dry_run:
            print(f"[DRY] {message}", file=self.out)


__all__ = ["Console"]
