"""Typed model of the ``wasmer.toml`` package descriptor and its (de)serialization."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

import tomllib

import tomli_w

DESCRIPTOR_FILENAME = "wasmer.toml"
WASM_EXTENSION = ".wasm"


class Abi(str, Enum):
    WASI = "wasi"
    EMSCRIPTEN = "emscripten"
    NONE = "none"

    @classmethod
    def parse(cls, value: Any) -> "Abi":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            choices = ", ".join(f"'{abi.value}'" for abi in cls)
            raise ValueError(f"unknown abi '{value}', expected one of {choices}") from None


def _reject_unknown(section: str, data: Mapping[str, Any], allowed: set[str]) -> None:
    unknown = {str(key) for key in data.keys() if str(key) not in allowed}
    if unknown:
        joined = ", ".join(sorted(unknown))
        raise ValueError(f"{section} contains unknown keys: {joined}")


def _require_str(section: str, data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        raise ValueError(f"{section}.{key} is required")
    if not isinstance(value, str):
        raise TypeError(f"{section}.{key} must be a string")
    return value


def _optional_str(section: str, data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"{section}.{key} must be a string")
    return value


def _without_none(mapping: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in mapping.items() if value is not None}


@dataclass(slots=True)
class WitBindings:
    """Bindings described by a single ``*.wit`` exports file."""

    wit_bindgen: str
    wit_exports: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "WitBindings":
        _reject_unknown("bindings", data, {"wit-bindgen", "wit-exports", "exports"})
        exports = data.get("wit-exports", data.get("exports"))
        if exports is None:
            raise ValueError("bindings.wit-exports is required")
        if not isinstance(exports, str):
            raise TypeError("bindings.wit-exports must be a string")
        return cls(wit_bindgen=_require_str("bindings", data, "wit-bindgen"), wit_exports=exports)

    def to_mapping(self) -> Dict[str, Any]:
        return {"wit-bindgen": self.wit_bindgen, "wit-exports": self.wit_exports}

    def entry_points(self) -> List[str]:
        return [self.wit_exports]


@dataclass(slots=True)
class WaiBindings:
    """Bindings described by ``*.wai`` exports and imports files."""

    wai_version: str
    exports: str | None = None
    imports: List[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "WaiBindings":
        _reject_unknown("bindings", data, {"wai-version", "exports", "imports"})
        raw_imports = data.get("imports", [])
        if not isinstance(raw_imports, list) or not all(isinstance(item, str) for item in raw_imports):
            raise TypeError("bindings.imports must be a list of strings")
        return cls(
            wai_version=_require_str("bindings", data, "wai-version"),
            exports=_optional_str("bindings", data, "exports"),
            imports=list(raw_imports),
        )

    def to_mapping(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"wai-version": self.wai_version}
        if self.exports is not None:
            data["exports"] = self.exports
        if self.imports:
            data["imports"] = list(self.imports)
        return data

    def entry_points(self) -> List[str]:
        points = [self.exports] if self.exports is not None else []
        points.extend(self.imports)
        return points


Bindings = Union[WitBindings, WaiBindings]


def parse_bindings(data: Any) -> Bindings:
    """Pick the bindings flavour from the keys present in ``data``."""

    if not isinstance(data, Mapping):
        raise TypeError("bindings must be a table")
    if "wai-version" in data:
        return WaiBindings.from_mapping(data)
    if "wit-bindgen" in data:
        return WitBindings.from_mapping(data)
    raise ValueError("bindings must specify either 'wai-version' or 'wit-bindgen'")


@dataclass(slots=True)
class PackageInfo:
    name: str
    version: str
    description: str
    license: str | None = None
    license_file: str | None = None
    readme: str | None = None
    repository: str | None = None
    homepage: str | None = None
    wasmer_extra_flags: str | None = None

    _KEYS = {
        "license": "license",
        "license-file": "license_file",
        "readme": "readme",
        "repository": "repository",
        "homepage": "homepage",
        "wasmer-extra-flags": "wasmer_extra_flags",
    }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PackageInfo":
        _reject_unknown("package", data, {"name", "version", "description", *cls._KEYS})
        optional = {attr: _optional_str("package", data, key) for key, attr in cls._KEYS.items()}
        return cls(
            name=_require_str("package", data, "name"),
            version=_require_str("package", data, "version"),
            description=_require_str("package", data, "description"),
            **optional,
        )

    def to_mapping(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "version": self.version,
            "description": self.description,
        }
        for key, attr in self._KEYS.items():
            data[key] = getattr(self, attr)
        return _without_none(data)


@dataclass(slots=True)
class Module:
    name: str
    source: str
    abi: Abi
    bindings: Bindings | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Module":
        _reject_unknown("module", data, {"name", "source", "abi", "bindings"})
        raw_bindings = data.get("bindings")
        return cls(
            name=_require_str("module", data, "name"),
            source=_require_str("module", data, "source"),
            abi=Abi.parse(_require_str("module", data, "abi")),
            bindings=parse_bindings(raw_bindings) if raw_bindings is not None else None,
        )

    def to_mapping(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "source": self.source, "abi": self.abi.value}
        if self.bindings is not None:
            data["bindings"] = self.bindings.to_mapping()
        return data


@dataclass(slots=True)
class Command:
    name: str
    module: str
    package: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Command":
        _reject_unknown("command", data, {"name", "module", "package"})
        return cls(
            name=_require_str("command", data, "name"),
            module=_require_str("command", data, "module"),
            package=_require_str("command", data, "package"),
        )

    def to_mapping(self) -> Dict[str, Any]:
        return {"name": self.name, "module": self.module, "package": self.package}


@dataclass(slots=True)
class Descriptor:
    """The ``wasmer.toml`` written at the root of every bundle."""

    package: PackageInfo
    modules: List[Module] = field(default_factory=list)
    commands: List[Command] = field(default_factory=list)
    fs: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Descriptor":
        _reject_unknown("wasmer.toml", data, {"package", "module", "command", "fs"})
        package_section = data.get("package")
        if not isinstance(package_section, Mapping):
            raise ValueError("wasmer.toml must contain a [package] table")
        fs_section = data.get("fs", {})
        if not isinstance(fs_section, Mapping):
            raise TypeError("fs must be a table of strings")
        return cls(
            package=PackageInfo.from_mapping(package_section),
            modules=[Module.from_mapping(entry) for entry in data.get("module", [])],
            commands=[Command.from_mapping(entry) for entry in data.get("command", [])],
            fs={str(key): str(value) for key, value in fs_section.items()},
        )

    def to_mapping(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"package": self.package.to_mapping()}
        if self.modules:
            data["module"] = [module.to_mapping() for module in self.modules]
        if self.commands:
            data["command"] = [command.to_mapping() for command in self.commands]
        if self.fs:
            data["fs"] = dict(self.fs)
        return data

    def dumps(self) -> str:
        return tomli_w.dumps(self.to_mapping())

    @classmethod
    def loads(cls, text: str) -> "Descriptor":
        return cls.from_mapping(tomllib.loads(text))

    @classmethod
    def read(cls, path: Path) -> "Descriptor":
        with path.open("rb") as handle:
            return cls.from_mapping(tomllib.load(handle))


__all__ = [
    "Abi",
    "Bindings",
    "Command",
    "DESCRIPTOR_FILENAME",
    "Descriptor",
    "Module",
    "PackageInfo",
    "WASM_EXTENSION",
    "WaiBindings",
    "WitBindings",
    "parse_bindings",
]
