"""Shared core utilities for running tools, console output and archiving."""

from .archive import ARCHIVE_FORMATS, BundleArchiver, archive_path_for, resolve_archive_format
from .command_runner import (
    CommandError,
    CommandResult,
    CommandRunner,
    RecordingCommandRunner,
    SubprocessCommandRunner,
)
from .console import Console

__all__ = [
    "ARCHIVE_FORMATS",
    "BundleArchiver",
    "archive_path_for",
    "resolve_archive_format",
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "Console",
]
