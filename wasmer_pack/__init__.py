"""Compile Rust crates to WebAssembly and bundle them as Wasmer packages."""
from __future__ import annotations

from .cli import main
from .descriptor import Abi, Descriptor
from .errors import PackError
from .pack import PackOptions, Packager

__version__ = "0.1.0"

__all__ = ["Abi", "Descriptor", "PackError", "PackOptions", "Packager", "__version__", "main"]
