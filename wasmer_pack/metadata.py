"""Normalized view of ``cargo metadata`` output and the per-package wasmer table."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping
import json

from core.command_runner import CommandError, CommandRunner

from .descriptor import Abi, Bindings, parse_bindings
from .errors import MetadataQueryFailed, MetadataTableInvalid, MetadataTableMissing

CONFIG_TABLE_NAMES = ("wasmer", "wapm")
"""Keys of ``[package.metadata]`` that hold our configuration, in lookup order."""


class TargetKind(str, Enum):
    BINARY = "bin"
    DYNAMIC_LIBRARY = "cdylib"
    OTHER = "other"

    @classmethod
    def classify(cls, kinds: Iterable[str]) -> "TargetKind":
        values = set(kinds)
        if cls.BINARY.value in values:
            return cls.BINARY
        if cls.DYNAMIC_LIBRARY.value in values:
            return cls.DYNAMIC_LIBRARY
        return cls.OTHER


@dataclass(frozen=True, slots=True)
class Target:
    name: str
    kinds: tuple[str, ...]

    @property
    def kind(self) -> TargetKind:
        return TargetKind.classify(self.kinds)

    @property
    def is_binary(self) -> bool:
        return self.kind is TargetKind.BINARY

    @property
    def is_packageable(self) -> bool:
        return self.kind is not TargetKind.OTHER

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Target":
        return cls(name=str(data["name"]), kinds=tuple(str(kind) for kind in data.get("kind", [])))


def _split_features(values: Iterable[str] | str | None) -> List[str]:
    """Flatten ``-F a,b -F c`` style values into ``["a", "b", "c"]``."""

    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    features: List[str] = []
    for value in values:
        if not isinstance(value, str):
            raise TypeError("features entries must be strings")
        features.extend(part.strip() for part in value.split(",") if part.strip())
    return features


@dataclass(slots=True)
class Features:
    """Cargo feature selection forwarded to both ``cargo metadata`` and ``cargo build``."""

    all_features: bool = False
    no_default_features: bool = False
    features: List[str] = field(default_factory=list)

    @classmethod
    def from_values(
        cls,
        *,
        features: Iterable[str] | str | None = None,
        all_features: bool = False,
        no_default_features: bool = False,
    ) -> "Features":
        return cls(
            all_features=all_features,
            no_default_features=no_default_features,
            features=_split_features(features),
        )

    def metadata_args(self) -> List[str]:
        args: List[str] = []
        if self.all_features:
            args.append("--all-features")
        if self.no_default_features:
            args.append("--no-default-features")
        if self.features:
            args.extend(["--features", ",".join(self.features)])
        return args

    def build_args(self) -> List[str]:
        args: List[str] = []
        if self.all_features:
            args.append("--all-features")
        if self.no_default_features:
            args.append("--no-default-features")
        if self.features:
            args.append(f"--features={','.join(self.features)}")
        return args


@dataclass(slots=True)
class WasmerConfig:
    """The ``[package.metadata.wasmer]`` table of a single package."""

    namespace: str
    abi: Abi
    package: str | None = None
    wasmer_extra_flags: str | None = None
    fs: Dict[str, str] = field(default_factory=dict)
    bindings: Bindings | None = None

    @classmethod
    def from_mapping(cls, data: Any) -> "WasmerConfig":
        if not isinstance(data, Mapping):
            raise TypeError("the table must be a mapping")

        allowed_keys = {"namespace", "package", "wasmer-extra-flags", "abi", "fs", "bindings"}
        unknown = {str(key) for key in data.keys() if str(key) not in allowed_keys}
        if unknown:
            joined = ", ".join(sorted(unknown))
            raise ValueError(f"unknown keys: {joined}")

        namespace = data.get("namespace")
        if not isinstance(namespace, str) or not namespace.strip():
            raise ValueError("'namespace' is required and must be a non-empty string")

        if "abi" not in data:
            raise ValueError("'abi' is required")
        abi = Abi.parse(data["abi"])

        package = data.get("package")
        if package is not None and not isinstance(package, str):
            raise TypeError("'package' must be a string")

        extra_flags = data.get("wasmer-extra-flags")
        if extra_flags is not None and not isinstance(extra_flags, str):
            raise TypeError("'wasmer-extra-flags' must be a string")

        fs_section = data.get("fs", {})
        if not isinstance(fs_section, Mapping):
            raise TypeError("'fs' must be a table")
        fs: Dict[str, str] = {}
        for mount, host in fs_section.items():
            if not isinstance(host, str):
                raise TypeError(f"'fs.{mount}' must be a string path")
            fs[str(mount)] = host

        raw_bindings = data.get("bindings")
        bindings = parse_bindings(raw_bindings) if raw_bindings is not None else None

        return cls(
            namespace=namespace,
            abi=abi,
            package=package,
            wasmer_extra_flags=extra_flags,
            fs=fs,
            bindings=bindings,
        )


class ConfigState(str, Enum):
    ABSENT = "absent"
    PRESENT = "present"
    MALFORMED = "malformed"


@dataclass(frozen=True, slots=True)
class ConfigLookup:
    """Outcome of parsing a package's wasmer table, decided once at load time."""

    state: ConfigState
    config: WasmerConfig | None = None
    error: str | None = None
    table: str | None = None

    @classmethod
    def from_metadata(cls, metadata: Any) -> "ConfigLookup":
        if not isinstance(metadata, Mapping):
            return cls(state=ConfigState.ABSENT)
        for table in CONFIG_TABLE_NAMES:
            if table not in metadata:
                continue
            try:
                config = WasmerConfig.from_mapping(metadata[table])
            except (TypeError, ValueError) as exc:
                return cls(state=ConfigState.MALFORMED, error=str(exc), table=table)
            return cls(state=ConfigState.PRESENT, config=config, table=table)
        return cls(state=ConfigState.ABSENT)


@dataclass(frozen=True, slots=True)
class Package:
    id: str
    name: str
    version: str
    manifest_path: Path
    targets: tuple[Target, ...]
    config: ConfigLookup
    description: str | None = None
    license: str | None = None
    license_file: str | None = None
    readme: str | None = None
    repository: str | None = None
    homepage: str | None = None

    @property
    def base_dir(self) -> Path:
        return self.manifest_path.parent

    @property
    def has_config_table(self) -> bool:
        return self.config.state is not ConfigState.ABSENT

    def require_config(self) -> WasmerConfig:
        if self.config.state is ConfigState.ABSENT:
            raise MetadataTableMissing(self.name)
        if self.config.state is ConfigState.MALFORMED or self.config.config is None:
            raise MetadataTableInvalid(self.name, self.config.error or "malformed table")
        return self.config.config

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Package":
        def optional(key: str) -> str | None:
            value = data.get(key)
            return str(value) if value is not None else None

        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            version=str(data["version"]),
            manifest_path=Path(str(data["manifest_path"])),
            targets=tuple(Target.from_mapping(entry) for entry in data.get("targets", [])),
            config=ConfigLookup.from_metadata(data.get("metadata")),
            description=optional("description"),
            license=optional("license"),
            license_file=optional("license_file"),
            readme=optional("readme"),
            repository=optional("repository"),
            homepage=optional("homepage"),
        )


@dataclass(frozen=True, slots=True)
class WorkspaceMetadata:
    packages: tuple[Package, ...]
    workspace_members: tuple[str, ...]
    target_directory: Path
    workspace_root: Path
    root_package_id: str | None = None

    def members(self) -> List[Package]:
        """Workspace member packages, in ``cargo metadata`` order."""

        member_ids = set(self.workspace_members)
        return [pkg for pkg in self.packages if pkg.id in member_ids]

    def root_package(self) -> Package | None:
        if self.root_package_id is None:
            return None
        for pkg in self.packages:
            if pkg.id == self.root_package_id:
                return pkg
        return None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "WorkspaceMetadata":
        resolve = data.get("resolve")
        root_id = resolve.get("root") if isinstance(resolve, Mapping) else None
        return cls(
            packages=tuple(Package.from_mapping(entry) for entry in data.get("packages", [])),
            workspace_members=tuple(str(member) for member in data.get("workspace_members", [])),
            target_directory=Path(str(data["target_directory"])),
            workspace_root=Path(str(data["workspace_root"])),
            root_package_id=str(root_id) if root_id else None,
        )


class MetadataQuery:
    """Runs ``cargo metadata`` and normalizes its JSON output."""

    def __init__(self, runner: CommandRunner, *, cargo: str = "cargo") -> None:
        self._runner = runner
        self._cargo = cargo

    def command(self, *, manifest_path: Path | None, features: Features) -> List[str]:
        command = [self._cargo, "metadata", "--format-version", "1"]
        if manifest_path is not None:
            command.extend(["--manifest-path", str(manifest_path)])
        command.extend(features.metadata_args())
        return command

    def load(
        self,
        *,
        manifest_path: Path | None = None,
        features: Features | None = None,
        cwd: Path | None = None,
    ) -> WorkspaceMetadata:
        command = self.command(manifest_path=manifest_path, features=features or Features())
        try:
            result = self._runner.run(command, cwd=cwd, note="Parsing Cargo metadata")
        except OSError as exc:
            raise MetadataQueryFailed(f'Unable to start "{self._cargo}". Is it installed?') from exc
        except CommandError as exc:
            raise MetadataQueryFailed("Unable to parse the workspace's metadata") from exc

        return parse_metadata(result.stdout)


def parse_metadata(text: str) -> WorkspaceMetadata:
    try:
        data = json.loads(text)
        return WorkspaceMetadata.from_mapping(data)
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise MetadataQueryFailed("cargo metadata produced output that could not be understood") from exc


__all__ = [
    "CONFIG_TABLE_NAMES",
    "ConfigLookup",
    "ConfigState",
    "Features",
    "MetadataQuery",
    "Package",
    "Target",
    "TargetKind",
    "WasmerConfig",
    "WorkspaceMetadata",
    "parse_metadata",
]
