"""Compile a package to WebAssembly with ``cargo build``."""
from __future__ import annotations

from pathlib import Path
from typing import List

from core.command_runner import CommandRunner
from core.console import Console

from .descriptor import Abi
from .errors import ArtifactMissing, CompilerFailed, CompilerNotFound
from .metadata import Features, Package, Target
from .targets import artifact_filename

_TARGET_TRIPLES = {
    Abi.WASI: "wasm32-wasi",
    Abi.EMSCRIPTEN: "wasm32-unknown-emscripten",
    Abi.NONE: "wasm32-unknown-unknown",
}


def target_triple(abi: Abi) -> str:
    return _TARGET_TRIPLES[Abi.parse(abi)]


def profile_dir(debug: bool) -> str:
    return "debug" if debug else "release"


class CompilerInvoker:
    """Runs cargo for one package and checks the ``.wasm`` file it should produce."""

    def __init__(
        self,
        runner: CommandRunner,
        *,
        cargo: str = "cargo",
        features: Features | None = None,
        debug: bool = False,
        console: Console | None = None,
    ) -> None:
        self._runner = runner
        self._cargo = cargo
        self._features = features or Features()
        self._debug = debug
        self._console = console or Console("none")

    def command(self, package: Package, abi: Abi) -> List[str]:
        command = [
            self._cargo,
            "build",
            "--quiet",
            "--manifest-path",
            str(package.manifest_path),
            "--target",
            target_triple(abi),
        ]
        command.extend(self._features.build_args())
        if not self._debug:
            command.append("--release")
        return command

    def expected_artifact(self, target_dir: Path, abi: Abi, target: Target) -> Path:
        return target_dir / target_triple(abi) / profile_dir(self._debug) / artifact_filename(target)

    def compile(self, package: Package, target_dir: Path, abi: Abi, target: Target) -> Path:
        command = self.command(package, abi)
        self._console.debug(f"Compiling the WebAssembly package: {self._runner.format_command(command)}")

        try:
            result = self._runner.run(command, check=False, stream=True, note="Compiling")
        except OSError as exc:
            raise CompilerNotFound(self._cargo) from exc

        if not result.succeeded:
            raise CompilerFailed(result.exit_code, signal=result.signal)

        # The artifact must exist even when cargo exits 0.
        binary = self.expected_artifact(target_dir, abi, target)
        if not binary.exists():
            raise ArtifactMissing(binary)
        return binary


__all__ = ["CompilerInvoker", "profile_dir", "target_triple"]
