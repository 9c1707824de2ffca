"""Decide which workspace packages a run should process."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List

from core.console import Console

from .errors import NoPackageSelected
from .metadata import Package, WorkspaceMetadata


class Scope(str, Enum):
    CURRENT = "current"
    WORKSPACE = "workspace"


@dataclass(frozen=True, slots=True)
class SelectionPolicy:
    """Which packages to process: the one around the current directory, or the workspace.

    Exclusions only make sense for a workspace-wide run; use the
    constructors so an invalid combination never reaches the selector.
    """

    scope: Scope = Scope.CURRENT
    exclude: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.scope is Scope.CURRENT and self.exclude:
            raise ValueError("--exclude can only be used together with --workspace")

    @classmethod
    def current(cls) -> "SelectionPolicy":
        return cls(scope=Scope.CURRENT)

    @classmethod
    def workspace(cls, exclude: Iterable[str] = ()) -> "SelectionPolicy":
        return cls(scope=Scope.WORKSPACE, exclude=tuple(exclude))

    @property
    def is_workspace(self) -> bool:
        return self.scope is Scope.WORKSPACE


def _is_ancestor(directory: Path, path: Path) -> bool:
    return path == directory or directory in path.parents


def select_packages(
    metadata: WorkspaceMetadata,
    policy: SelectionPolicy,
    current_dir: Path,
    *,
    console: Console | None = None,
) -> List[Package]:
    console = console or Console("none")
    members = metadata.members()

    if policy.is_workspace:
        console.debug("Looking for publishable packages in the workspace")
        selected: List[Package] = []
        for pkg in members:
            # Names are compared literally.
            if pkg.name in policy.exclude:
                console.debug(f"{pkg.name}: explicitly ignoring")
                continue
            if not pkg.has_config_table:
                console.trace(
                    f"{pkg.name}: skipping because it doesn't contain a [package.metadata.wasmer] table"
                )
                continue
            selected.append(pkg)
        return selected

    # Packages can be nested, so the most specific enclosing one wins.
    candidates = [pkg for pkg in members if _is_ancestor(pkg.base_dir, current_dir)]
    if candidates:
        best = max(candidates, key=lambda pkg: len(pkg.manifest_path.parts))
        console.debug(f"Selected {best.name} from {current_dir}")
        return [best]

    root = metadata.root_package()
    if root is not None:
        console.debug(f"Falling back to the root package, {root.name}")
        return [root]

    raise NoPackageSelected()


__all__ = ["Scope", "SelectionPolicy", "select_packages"]
