"""Exception hierarchy for resolving, building, bundling and publishing packages."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Sequence


class PackError(RuntimeError):
    """Base class for every failure surfaced by the packaging pipeline."""


# Configuration ---------------------------------------------------------------


class ConfigurationError(PackError):
    """Tool metadata or package metadata is missing or malformed."""


class MetadataQueryFailed(ConfigurationError):
    """``cargo metadata`` could not be run or produced unusable output."""


class MetadataTableMissing(ConfigurationError):
    def __init__(self, package: str) -> None:
        super().__init__(
            f'The "{package}" package has no [package.metadata.wasmer] table'
        )
        self.package = package


class MetadataTableInvalid(ConfigurationError):
    def __init__(self, package: str, reason: str) -> None:
        super().__init__(
            f'Unable to deserialize the [package.metadata.wasmer] table of "{package}": {reason}'
        )
        self.package = package
        self.reason = reason


class MissingDescription(ConfigurationError):
    def __init__(self, package: str) -> None:
        super().__init__(f'The "description" field in the Cargo.toml of "{package}" wasn\'t set')
        self.package = package


class EmptyDescription(ConfigurationError):
    def __init__(self, package: str) -> None:
        super().__init__(f'The "description" field in the Cargo.toml of "{package}" is empty')
        self.package = package


# Resolution ------------------------------------------------------------------


class ResolutionError(PackError):
    """The packages or targets to process could not be determined."""


class NoPackageSelected(ResolutionError):
    def __init__(self) -> None:
        super().__init__(
            'Unable to determine which package to publish. Either "cd" into the crate '
            'folder or use the "--workspace" flag.'
        )


class NoPackageableTarget(ResolutionError):
    def __init__(self, package: str) -> None:
        super().__init__(
            f'The {package} package doesn\'t contain any binaries or "cdylib" libraries'
        )
        self.package = package


class AmbiguousTarget(ResolutionError):
    def __init__(self, package: str, candidates: Iterable[tuple[str, Sequence[str]]]) -> None:
        self.package = package
        self.candidates: List[tuple[str, tuple[str, ...]]] = [
            (name, tuple(kinds)) for name, kinds in candidates
        ]
        listing = ", ".join(
            f"{name} ({', '.join(kinds)})" for name, kinds in self.candidates
        )
        super().__init__(
            f'Unable to decide what to publish for {package}. Expected one executable or '
            f'"cdylib" library, but found {listing}'
        )


# Build -----------------------------------------------------------------------


class BuildError(PackError):
    """The compiler could not produce the expected WebAssembly artifact."""


class CompilerNotFound(BuildError):
    def __init__(self, program: str) -> None:
        super().__init__(f'Unable to start "{program}". Is it installed?')
        self.program = program


class CompilerFailed(BuildError):
    def __init__(self, exit_code: int | None, *, signal: int | None = None) -> None:
        if exit_code is not None:
            message = f"Cargo exited unsuccessfully with exit code {exit_code}"
        elif signal is not None:
            message = f"Cargo was terminated by signal {signal}"
        else:
            message = "Cargo exited unsuccessfully"
        super().__init__(message)
        self.exit_code = exit_code
        self.signal = signal


class ArtifactMissing(BuildError):
    def __init__(self, path: Path) -> None:
        super().__init__(f'Expected "{path}" to exist')
        self.path = path


# Bundle I/O ------------------------------------------------------------------


class BundleIOError(PackError):
    """A filesystem operation while assembling a bundle failed."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class PathEscapesBaseDirectory(BundleIOError):
    def __init__(self, path: Path, base_dir: Path) -> None:
        super().__init__(f'"{path}" should be inside "{base_dir}"', path=path)
        self.base_dir = base_dir


# Publishing ------------------------------------------------------------------


class PublishError(PackError):
    """The publisher CLI rejected or failed to upload a bundle."""


class PublisherNotFound(PublishError):
    def __init__(self, program: str) -> None:
        super().__init__(f'Unable to start "{program}". Is it installed?')
        self.program = program


class PublishFailed(PublishError):
    def __init__(self, program: str, exit_code: int | None) -> None:
        if exit_code is None:
            message = f"The {program} CLI exited unsuccessfully"
        else:
            message = f"The {program} CLI exited unsuccessfully with exit code {exit_code}"
        super().__init__(message)
        self.program = program
        self.exit_code = exit_code


class PackageFailed(PackError):
    """Wraps the first failure of a package so the chain names the package."""

    def __init__(self, package: str, action: str = "publish") -> None:
        super().__init__(f'Unable to {action} "{package}"')
        self.package = package


def iter_causes(exc: BaseException) -> Iterable[BaseException]:
    """Yield ``exc`` followed by every exception in its ``__cause__`` chain."""

    current: BaseException | None = exc
    seen: set[int] = set()
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__


__all__ = [
    "AmbiguousTarget",
    "ArtifactMissing",
    "BuildError",
    "BundleIOError",
    "CompilerFailed",
    "CompilerNotFound",
    "ConfigurationError",
    "EmptyDescription",
    "MetadataQueryFailed",
    "MetadataTableInvalid",
    "MetadataTableMissing",
    "MissingDescription",
    "NoPackageSelected",
    "NoPackageableTarget",
    "PackError",
    "PackageFailed",
    "PathEscapesBaseDirectory",
    "PublishError",
    "PublishFailed",
    "PublisherNotFound",
    "ResolutionError",
    "iter_causes",
]
