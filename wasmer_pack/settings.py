"""Tool settings gathered from defaults, an optional config file and the environment."""
from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping
import json
import os
import tomllib

try:  # Optional dependency for YAML support
    import yaml
except ModuleNotFoundError:  # pragma: no cover - exercised when PyYAML absent
    yaml = None

from core.console import Console

from .errors import ConfigurationError

CONFIG_ENV = "CARGO_WASMER_CONFIG"
GLOBAL_SECTION = "global"

_DEFAULTS: Dict[str, Any] = {
    "cargo": "cargo",
    "wasmer": "wasmer",
    "log_level": "info",
    "out_dir": None,
    "dry_run": False,
}

# Environment variable -> settings key
_ENVIRONMENT_KEYS = {
    "CARGO": "cargo",
    "WASMER": "wasmer",
    "CARGO_WASMER_LOG": "log_level",
    "OUT_DIR": "out_dir",
    "DRY_RUN": "dry_run",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _load_yaml(stream: Any) -> Any:
    if yaml is None:
        raise RuntimeError(
            "PyYAML is required to load YAML configuration files. Install with `pip install PyYAML`."
        )
    return yaml.safe_load(stream)


SettingsLoader = Callable[[Any], Any]

SETTINGS_LOADERS: Dict[str, SettingsLoader] = {
    ".toml": tomllib.load,
    ".json": json.load,
    ".yaml": _load_yaml,
    ".yml": _load_yaml,
}
"""Config file suffix -> decoder; TOML is read in binary mode, the rest as UTF-8 text."""


def read_settings_file(path: Path) -> Dict[str, Any]:
    """Return the ``[global]`` table of the config file at ``path``.

    A file without that table yields an empty mapping.
    """

    suffix = path.suffix.lower()
    loader = SETTINGS_LOADERS.get(suffix)
    if loader is None:
        supported = ", ".join(sorted(SETTINGS_LOADERS))
        raise ValueError(f"Unsupported configuration file extension: {suffix}. Supported: {supported}")

    if suffix == ".toml":
        with path.open("rb") as handle:
            document = loader(handle)
    else:
        with path.open("r", encoding="utf-8") as handle:
            document = loader(handle)

    if not isinstance(document, Mapping):
        raise TypeError(f"Configuration file '{path}' must contain a mapping at the root")
    section = document.get(GLOBAL_SECTION, {})
    if not isinstance(section, Mapping):
        raise TypeError(f"[{GLOBAL_SECTION}] in '{path}' must be a table")
    return dict(section)


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"{key} must be a boolean, got '{value}'")


@dataclass(slots=True)
class Settings:
    cargo: str = "cargo"
    wasmer: str = "wasmer"
    log_level: str = "info"
    out_dir: Path | None = None
    dry_run: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Settings":
        unknown = {str(key) for key in data.keys() if str(key) not in _DEFAULTS}
        if unknown:
            joined = ", ".join(sorted(unknown))
            raise ValueError(f"[{GLOBAL_SECTION}] contains unknown keys: {joined}")

        values = {**_DEFAULTS, **data}
        log_level = str(values["log_level"]).strip().lower()
        if log_level not in Console.LEVELS:
            choices = ", ".join(Console.LEVELS)
            raise ValueError(f"log_level must be one of: {choices}")
        out_dir = values["out_dir"]
        return cls(
            cargo=str(values["cargo"]),
            wasmer=str(values["wasmer"]),
            log_level=log_level,
            out_dir=Path(str(out_dir)).expanduser() if out_dir else None,
            dry_run=_parse_bool("dry_run", values["dry_run"]),
        )

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a copy with every non-``None`` override applied."""

        return replace(self, **{key: value for key, value in overrides.items() if value is not None})


def load_settings(config_path: Path | None = None, environ: Mapping[str, str] | None = None) -> Settings:
    """Resolve settings: defaults, then the config file, then environment variables."""

    env = os.environ if environ is None else environ
    data: Dict[str, Any] = {}

    path = config_path
    if path is None and env.get(CONFIG_ENV):
        path = Path(env[CONFIG_ENV])
    if path is not None:
        path = path.expanduser()
        try:
            data.update(read_settings_file(path))
        except (OSError, ValueError, TypeError, RuntimeError) as exc:
            raise ConfigurationError(f'Unable to load the configuration file "{path}"') from exc

    for variable, key in _ENVIRONMENT_KEYS.items():
        value = env.get(variable)
        # DRY_RUN="" explicitly turns dry-run off; other empty variables are unset.
        if value is not None and (value or key == "dry_run"):
            data[key] = value

    try:
        return Settings.from_mapping(data)
    except ValueError as exc:
        raise ConfigurationError("Invalid settings") from exc


__all__ = ["CONFIG_ENV", "SETTINGS_LOADERS", "Settings", "load_settings", "read_settings_file"]
