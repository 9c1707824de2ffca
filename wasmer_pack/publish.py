"""Hand an assembled bundle to the ``wasmer`` CLI."""
from __future__ import annotations

from pathlib import Path
from typing import List

from core.command_runner import CommandRunner
from core.console import Console

from .errors import PublishFailed, PublisherNotFound


class Publisher:
    def __init__(
        self,
        runner: CommandRunner,
        *,
        program: str = "wasmer",
        dry_run: bool = False,
        console: Console | None = None,
    ) -> None:
        self._runner = runner
        self._program = program
        self._dry_run = dry_run
        self._console = console or Console("none")

    def command(self) -> List[str]:
        command = [self._program, "publish"]
        if self._dry_run:
            command.append("--dry-run")
        return command

    def publish(self, bundle_dir: Path) -> None:
        command = self.command()
        self._console.debug(
            f"Publishing with the {self._program} CLI: {self._runner.format_command(command)} (cwd={bundle_dir})"
        )
        if self._dry_run:
            self._console.dry(f"Publishing {bundle_dir} without uploading")

        try:
            result = self._runner.run(command, cwd=bundle_dir, check=False, stream=True, note="Publishing")
        except OSError as exc:
            raise PublisherNotFound(self._program) from exc

        if not result.succeeded:
            raise PublishFailed(self._program, result.exit_code)


__all__ = ["Publisher"]
