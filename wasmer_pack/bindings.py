"""Locate every file an interface description pulls in."""
from __future__ import annotations

from pathlib import Path
from typing import List
import re

from .descriptor import Bindings
from .errors import BundleIOError, PathEscapesBaseDirectory

# use { a, b } from other-interface
# use * from other-interface
# Braced lists may span several lines.
_USE_PATTERN = re.compile(
    r"\buse\s*(?:\*|\{[^}]*\})\s*from\s+([A-Za-z0-9_][A-Za-z0-9_\-]*)",
    re.S,
)
_COMMENT_PATTERN = re.compile(r"//[^\n]*|/\*.*?\*/", re.S)


def included_names(text: str) -> List[str]:
    """Return the interface names referenced by ``use ... from <name>`` statements."""

    names: List[str] = []
    for match in _USE_PATTERN.finditer(_COMMENT_PATTERN.sub(" ", text)):
        name = match.group(1)
        if name not in names:
            names.append(name)
    return names


def _read_interface(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise BundleIOError(f'Unable to read "{path}"', path=path) from exc


def relative_to_base(path: Path, base_dir: Path) -> Path:
    """Return ``path`` relative to ``base_dir`` once symlinks and ``..`` are resolved."""

    resolved_base = base_dir.resolve()
    resolved = path.resolve()
    try:
        return resolved.relative_to(resolved_base)
    except ValueError:
        raise PathEscapesBaseDirectory(resolved, resolved_base) from None


def referenced_files(bindings: Bindings, base_dir: Path) -> List[Path]:
    """Resolve ``bindings`` into the ordered list of files it references.

    Entry points are relative to ``base_dir``; an included interface
    ``foo`` is looked up as ``foo`` plus the includer's suffix, next to the
    including file. Includes are followed transitively and every path is
    returned once, in discovery order, resolved to an absolute path.

    Raises :class:`PathEscapesBaseDirectory` as soon as a reference leaves
    ``base_dir``, before that file is read.
    """

    resolved_base = base_dir.resolve()
    pending = [resolved_base / entry for entry in bindings.entry_points()]
    found: List[Path] = []

    while pending:
        path = resolved_base / relative_to_base(pending.pop(0), resolved_base)
        if path in found:
            continue
        found.append(path)
        for name in included_names(_read_interface(path)):
            pending.append(path.parent / f"{name}{path.suffix}")

    return found


__all__ = ["included_names", "referenced_files", "relative_to_base"]
