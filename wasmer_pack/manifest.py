"""Turn a resolved package and target into a ``wasmer.toml`` descriptor."""
from __future__ import annotations

from pathlib import PurePath

from core.console import Console

from .descriptor import Command, Descriptor, Module, PackageInfo
from .errors import EmptyDescription, MissingDescription
from .metadata import Package, Target
from .targets import artifact_filename


def _file_name(path: str | None) -> str | None:
    if not path:
        return None
    name = PurePath(path).name
    return name or None


def package_name(package: Package) -> str:
    config = package.require_config()
    return f"{config.namespace}/{config.package or package.name}"


def generate_manifest(package: Package, target: Target, *, console: Console | None = None) -> Descriptor:
    """Build the descriptor for ``package``.

    Only validates and maps metadata; no file is touched. The license and
    readme are recorded by file name because the bundle hoists them to its
    top-level directory.
    """

    console = console or Console("none")
    console.trace(f"Generating manifest for {package.name} from target {target.name} {target.kinds}")

    config = package.require_config()

    if package.description is None:
        raise MissingDescription(package.name)
    if package.description == "":
        raise EmptyDescription(package.name)

    name = package_name(package)

    module = Module(
        name=target.name,
        source=artifact_filename(target),
        abi=config.abi,
        bindings=config.bindings,
    )

    commands = []
    if target.is_binary:
        commands.append(Command(name=target.name, module=target.name, package=name))

    return Descriptor(
        package=PackageInfo(
            name=name,
            version=package.version,
            description=package.description,
            license=package.license,
            license_file=_file_name(package.license_file),
            readme=_file_name(package.readme),
            repository=package.repository,
            homepage=package.homepage,
            wasmer_extra_flags=config.wasmer_extra_flags,
        ),
        modules=[module],
        commands=commands,
        fs=dict(config.fs),
    )


__all__ = ["generate_manifest", "package_name"]
