"""Choose the single packageable target of a package."""
from __future__ import annotations

from .descriptor import WASM_EXTENSION
from .errors import AmbiguousTarget, NoPackageableTarget
from .metadata import Package, Target


def determine_target(package: Package) -> Target:
    """Return the only binary or ``cdylib`` target of ``package``.

    Zero or several candidates is always an error; there is no tie-break.
    """

    candidates = [target for target in package.targets if target.is_packageable]
    if not candidates:
        raise NoPackageableTarget(package.name)
    if len(candidates) > 1:
        raise AmbiguousTarget(package.name, [(target.name, target.kinds) for target in candidates])
    return candidates[0]


def artifact_stem(target: Target) -> str:
    # rustc keeps dashes in binary names but turns them into underscores for libraries.
    if target.is_binary:
        return target.name
    return target.name.replace("-", "_")


def artifact_filename(target: Target) -> str:
    return f"{artifact_stem(target)}{WASM_EXTENSION}"


__all__ = ["artifact_filename", "artifact_stem", "determine_target"]
