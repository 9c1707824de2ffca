"""Lay out a package bundle on disk for the publisher."""
from __future__ import annotations

from pathlib import Path
import shutil

from core.console import Console

from .bindings import referenced_files, relative_to_base
from .descriptor import DESCRIPTOR_FILENAME, Descriptor
from .errors import BundleIOError
from .metadata import Package


class BundleAssembler:
    """Writes ``wasmer.toml``, the compiled module and its auxiliary files.

    The destination is wiped first so every bundle is a clean rebuild. The
    steps are not transactional: a failure can leave a partial directory
    behind, which the next run removes.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console("none")

    def assemble(self, dest: Path, descriptor: Descriptor, artifact: Path, package: Package) -> Path:
        self._reset(dest)

        manifest_path = dest / DESCRIPTOR_FILENAME
        text = descriptor.dumps()
        self._console.debug(f"Writing manifest {manifest_path} ({len(text)} bytes)")
        try:
            manifest_path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise BundleIOError(f'Unable to write to "{manifest_path}"', path=manifest_path) from exc

        self._copy(artifact, dest / artifact.name)

        base_dir = package.base_dir
        # License and readme are hoisted to the bundle root.
        for declared in (package.license_file, package.readme):
            if not declared:
                continue
            source = base_dir / declared
            self._copy(source, dest / source.name)

        for module in descriptor.modules:
            if module.bindings is None:
                continue
            for path in referenced_files(module.bindings, base_dir):
                # Keep the location relative to Cargo.toml so includes still resolve.
                relative = relative_to_base(path, base_dir)
                self._copy(path, dest / relative)

        return dest

    def _reset(self, dest: Path) -> None:
        if dest.exists():
            self._console.debug(f"Removing previous generated package {dest}")
            try:
                shutil.rmtree(dest)
            except OSError as exc:
                raise BundleIOError(f'Unable to remove "{dest}"', path=dest) from exc
        try:
            dest.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BundleIOError(f'Unable to create the "{dest}" directory', path=dest) from exc

    def _copy(self, source: Path, target: Path) -> None:
        self._console.debug(f"Copying {source} to {target}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except OSError as exc:
            raise BundleIOError(f'Unable to copy "{source}" to "{target}"', path=source) from exc


__all__ = ["BundleAssembler"]
