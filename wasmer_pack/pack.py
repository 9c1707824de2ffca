"""Pipeline that turns selected workspace packages into bundles and publishes them."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence

from core.archive import BundleArchiver, archive_path_for
from core.command_runner import CommandRunner
from core.console import Console

from .bundle import BundleAssembler
from .compiler import CompilerInvoker
from .errors import BundleIOError, PackError, PackageFailed
from .manifest import generate_manifest
from .metadata import Features, MetadataQuery, Package, WorkspaceMetadata
from .publish import Publisher
from .selection import SelectionPolicy, select_packages
from .settings import Settings
from .targets import determine_target

DEFAULT_OUTPUT_DIRNAME = "wasmer"


@dataclass(slots=True)
class PackOptions:
    policy: SelectionPolicy = field(default_factory=SelectionPolicy.current)
    features: Features = field(default_factory=Features)
    debug: bool = False
    manifest_path: Path | None = None
    out_dir: Path | None = None
    archive: str | None = None


class Packager:
    """Compiles packages to WebAssembly and assembles their bundles, one at a time."""

    def __init__(
        self,
        *,
        runner: CommandRunner,
        options: PackOptions,
        settings: Settings | None = None,
        console: Console | None = None,
    ) -> None:
        self._runner = runner
        self._options = options
        self._settings = settings or Settings()
        self._console = console or Console(self._settings.log_level)
        self._compiler = CompilerInvoker(
            runner,
            cargo=self._settings.cargo,
            features=options.features,
            debug=options.debug,
            console=self._console,
        )
        self._assembler = BundleAssembler(self._console)
        self._archiver = BundleArchiver(self._console)

    def metadata(self, cwd: Path | None = None) -> WorkspaceMetadata:
        query = MetadataQuery(self._runner, cargo=self._settings.cargo)
        return query.load(
            manifest_path=self._options.manifest_path,
            features=self._options.features,
            cwd=cwd,
        )

    def resolve_packages(self, metadata: WorkspaceMetadata, current_dir: Path) -> List[Package]:
        return select_packages(metadata, self._options.policy, current_dir, console=self._console)

    def out_dir(self, package: Package, target_dir: Path) -> Path:
        """Directory the bundle for ``package`` is written to.

        Defaults to ``<target-dir>/wasmer``. Workspace runs get one
        subdirectory per package so bundles do not collide.
        """

        base = self._options.out_dir or self._settings.out_dir or target_dir / DEFAULT_OUTPUT_DIRNAME
        if self._options.policy.is_workspace:
            return base / package.name
        return base

    def generate_package(self, package: Package, target_dir: Path) -> Path:
        self._console.debug(f"Generating the Wasmer package for {package.name}")

        target = determine_target(package)
        descriptor = generate_manifest(package, target, console=self._console)
        module = descriptor.modules[0]
        wasm_path = self._compiler.compile(package, target_dir, module.abi, target)

        dest = self.out_dir(package, target_dir)
        self._assembler.assemble(dest, descriptor, wasm_path, package)

        if self._options.archive:
            archive_path = archive_path_for(dest, self._options.archive)
            try:
                self._archiver.archive(dest, self._options.archive, target=archive_path, label=package.name)
            except OSError as exc:
                raise BundleIOError(f'Unable to archive "{dest}" to "{archive_path}"', path=dest) from exc

        return dest

    def pack_all(self, packages: Sequence[Package], target_dir: Path) -> List[Path]:
        bundles: List[Path] = []
        for package in packages:
            try:
                bundles.append(self.generate_package(package, target_dir))
            except PackError as exc:
                raise PackageFailed(package.name, action="pack") from exc
        return bundles


def publish_all(
    packager: Packager,
    publisher: Publisher,
    packages: Sequence[Package],
    target_dir: Path,
    *,
    console: Console,
) -> List[Path]:
    """Pack and publish each package in turn, stopping at the first failure."""

    published: List[Path] = []
    for package in packages:
        # Only packages with a wasmer (or legacy wapm) table are published.
        if not package.has_config_table:
            console.info(f"No [package.metadata.wasmer] found in {package.name}. Skipping...")
            continue

        console.info(f"Getting ready to publish {package.name}")
        try:
            dest = packager.generate_package(package, target_dir)
            publisher.publish(dest)
        except PackError as exc:
            raise PackageFailed(package.name, action="publish") from exc
        console.info(f"Published {package.name}!")
        published.append(dest)
    return published


__all__ = ["DEFAULT_OUTPUT_DIRNAME", "PackOptions", "Packager", "publish_all"]
