"""Run external tools (cargo, wasmer) behind a swappable interface."""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Deque, Iterable, List, Sequence
import shlex
import subprocess

from .console import Console


@dataclass
class CommandResult:
    """Represents the outcome of an executed command."""

    command: Sequence[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    streamed: bool = False

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0

    @property
    def exit_code(self) -> int | None:
        """The process exit code, or ``None`` when a signal terminated it."""

        return self.returncode if self.returncode >= 0 else None

    @property
    def signal(self) -> int | None:
        return -self.returncode if self.returncode < 0 else None


class CommandError(RuntimeError):
    """Raised when a command fails."""

    def __init__(self, result: CommandResult):
        message = f"Command failed with exit code {result.returncode}: {' '.join(map(shlex.quote, result.command))}"
        if result.streamed:
            message = f"{message}\nstdout/stderr already streamed above."
        elif result.stderr.strip():
            message = f"{message}\nstderr: {result.stderr.strip()}"
        super().__init__(message)
        self.result = result


class CommandRunner:
    """Abstract command runner interface.

    ``stream`` lets the child write straight to the terminal (compiler and
    publisher progress); otherwise stdout and stderr are captured. With
    ``check`` a non-zero exit raises :class:`CommandError`.
    """

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
        note: str | None = None,
        stream: bool = False,
    ) -> CommandResult:
        raise NotImplementedError

    def format_command(self, command: Sequence[str]) -> str:
        return " ".join(shlex.quote(part) for part in command)


class SubprocessCommandRunner(CommandRunner):
    """Command runner that executes commands via :mod:`subprocess`.

    Launch failures (missing executable, permissions) propagate as
    :class:`OSError` so callers can report which tool could not be started.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console("none")

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
        note: str | None = None,
        stream: bool = False,
    ) -> CommandResult:
        location = f" (cwd={cwd})" if cwd else ""
        self._console.trace(f"{note or 'Running'}: {self.format_command(command)}{location}")

        process = subprocess.run(
            list(command),
            cwd=str(cwd) if cwd else None,
            capture_output=not stream,
            text=True,
            check=False,
        )
        result = CommandResult(
            command=command,
            returncode=process.returncode,
            stdout=process.stdout or "",
            stderr=process.stderr or "",
            streamed=stream,
        )
        if check and not result.succeeded:
            raise CommandError(result)
        return result


@dataclass(slots=True)
class RecordedCommand:
    command: List[str]
    cwd: str | None
    note: str | None
    stream: bool


@dataclass(slots=True)
class ScriptedResponse:
    """Canned outcome returned by :class:`RecordingCommandRunner` for one call."""

    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    side_effect: Callable[[RecordedCommand], None] | None = None
    error: OSError | None = None


class RecordingCommandRunner(CommandRunner):
    """Command runner that records commands instead of executing them.

    Responses queued with :meth:`script` are consumed in call order; once the
    queue is empty every command "succeeds" with empty output.
    """

    def __init__(self, responses: Iterable[ScriptedResponse] | None = None) -> None:
        self.commands: List[RecordedCommand] = []
        self._responses: Deque[ScriptedResponse] = deque(responses or ())

    def script(
        self,
        *,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        side_effect: Callable[[RecordedCommand], None] | None = None,
        error: OSError | None = None,
    ) -> "RecordingCommandRunner":
        self._responses.append(
            ScriptedResponse(
                returncode=returncode,
                stdout=stdout,
                stderr=stderr,
                side_effect=side_effect,
                error=error,
            )
        )
        return self

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
        note: str | None = None,
        stream: bool = False,
    ) -> CommandResult:
        record = RecordedCommand(
            command=list(command),
            cwd=str(cwd) if cwd else None,
            note=note,
            stream=stream,
        )
        self.commands.append(record)

        response = self._responses.popleft() if self._responses else ScriptedResponse()
        if response.error is not None:
            raise response.error
        if response.side_effect is not None:
            response.side_effect(record)

        result = CommandResult(
            command=command,
            returncode=response.returncode,
            stdout=response.stdout,
            stderr=response.stderr,
            streamed=stream,
        )
        if check and not result.succeeded:
            raise CommandError(result)
        return result

    def describe(self) -> List[str]:
        """One line per recorded command: ``note (cwd=...) command``."""

        lines: List[str] = []
        for record in self.commands:
            parts: List[str] = []
            if record.note:
                parts.append(record.note)
            if record.cwd:
                parts.append(f"(cwd={record.cwd})")
            parts.append(self.format_command(record.command))
            lines.append(" ".join(parts))
        return lines


__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "RecordedCommand",
    "RecordingCommandRunner",
    "ScriptedResponse",
    "SubprocessCommandRunner",
]
