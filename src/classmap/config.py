"""Scan options and configuration loading for classmap.

Options are resolved from three sources in order of priority:
1. Environment variables (highest priority)
2. Project-level config: <directory>/.classmap.toml
3. Global config: ~/.config/classmap/config.toml (lowest priority)

Explicit arguments passed to the API or CLI override all of them.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
import os
import tomllib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from rich.console import Console

from classmap.exceptions import ConfigError

console = Console(stderr=True)

_GLOBAL_CONFIG_DIR = Path.home() / ".config" / "classmap"
_GLOBAL_CONFIG_PATH = _GLOBAL_CONFIG_DIR / "config.toml"
PROJECT_CONFIG_NAME = ".classmap.toml"

_TRUE_VALUES = ("true", "1", "yes", "on")


def _normalize_extensions(extensions: Iterable[str] | str) -> tuple[str, ...]:
    if isinstance(extensions, str):
        extensions = extensions.split(",")
    normalized: list[str] = []
    for ext in extensions:
        ext = str(ext).strip().lstrip(".").lower()
        if ext and ext not in normalized:
            normalized.append(ext)
    return tuple(normalized)


def _normalize_patterns(patterns: Iterable[str] | str) -> tuple[str, ...]:
    if isinstance(patterns, str):
        patterns = patterns.split(",")
    return tuple(p.strip() for p in patterns if p and p.strip())


@dataclass(frozen=True, slots=True)
class ScanOptions:
    """Options controlling scanning, live registration and artifact rendering.

    Attributes:
        extensions: File extensions (without the dot) that are scanned.
        exclude: Glob patterns matched against root-relative paths.
        case_sensitive: Match requested identifiers in declared case only.
        follow_symlinks: Descend into symlinked directories.
        prepend: Register the resolver ahead of existing ones.
        include_static: Eagerly include declaration-free files.
        relative: Render artifact paths relative to the artifact location.
        namespace: Cosmetic namespace of the generated loader.
        class_name: Cosmetic name of the generated loader.
    """

    extensions: tuple[str, ...] = ("php",)
    exclude: tuple[str, ...] = ()
    case_sensitive: bool = False
    follow_symlinks: bool = False
    prepend: bool = False
    include_static: bool = False
    relative: bool = True
    namespace: str = ""
    class_name: str = "Autoloader"

    def __post_init__(self) -> None:
        object.__setattr__(self, "extensions", _normalize_extensions(self.extensions))
        object.__setattr__(self, "exclude", _normalize_patterns(self.exclude))
        if not self.extensions:
            raise ConfigError("At least one file extension must be configured")

    @classmethod
    def from_mapping(cls, settings: Mapping[str, Any] | None) -> ScanOptions:
        """Build options from a plain mapping of option names to values.

        Args:
            settings: Option values keyed by field name. Missing keys keep
                their defaults.

        Returns:
            A new ScanOptions instance.

        Raises:
            ConfigError: If an unknown option name is given.
        """
        if not settings:
            return cls()
        return cls().merge(settings)

    def merge(self, settings: Mapping[str, Any]) -> ScanOptions:
        """Return a copy with the given option values applied on top.

        Raises:
            ConfigError: If an unknown option name is given.
        """
        known = {f.name for f in dataclasses.fields(self)}
        unknown = sorted(set(settings) - known)
        if unknown:
            raise ConfigError(f"Unknown option(s): {', '.join(unknown)}")

        values: dict[str, Any] = {}
        for key, value in settings.items():
            if key in ("case_sensitive", "follow_symlinks", "prepend", "include_static", "relative"):
                values[key] = _as_bool(value)
            elif key in ("namespace", "class_name"):
                values[key] = str(value)
            else:
                values[key] = value
        return dataclasses.replace(self, **values)

    def fingerprint(self) -> str:
        """Stable digest of every option value, used as part of cache keys."""
        payload = json.dumps(dataclasses.asdict(self), sort_keys=True)
        return hashlib.sha1(payload.encode("utf-8")).hexdigest()


@dataclass
class _Layer:
    """Raw settings collected from one configuration source."""

    source: str
    settings: dict[str, Any] = field(default_factory=dict)


def load_config(directory: Path) -> ScanOptions:
    """Load options from the global config, the project config and env vars.

    Priority: env vars > <directory>/.classmap.toml > ~/.config/classmap/config.toml

    Args:
        directory: Root of the source tree that will be scanned.

    Returns:
        A fully resolved ScanOptions instance.

    Raises:
        ConfigError: If a config source holds an unknown option.
    """
    layers = [
        _Layer(str(_GLOBAL_CONFIG_PATH), _load_toml(_GLOBAL_CONFIG_PATH)),
        _Layer(PROJECT_CONFIG_NAME, _load_toml(directory / PROJECT_CONFIG_NAME)),
        _Layer("environment", _env_settings()),
    ]

    options = ScanOptions()
    for layer in layers:
        if not layer.settings:
            continue
        try:
            options = options.merge(layer.settings)
        except ConfigError as exc:
            raise ConfigError(f"{layer.source}: {exc}") from exc
    return options


def _load_toml(path: Path) -> dict[str, Any]:
    """Load a TOML file, returning an empty dict if missing or invalid."""
    if not path.is_file():
        return {}
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (tomllib.TOMLDecodeError, OSError) as exc:
        console.print(f"[yellow]Warning:[/yellow] Could not parse {path}: {exc}")
        return {}
    # Allow the options to live under a [classmap] table as well
    table = data.get("classmap", data)
    return dict(table) if isinstance(table, dict) else {}


def _env_settings() -> dict[str, Any]:
    """Collect CLASSMAP_* environment overrides."""
    settings: dict[str, Any] = {}
    if extensions := os.environ.get("CLASSMAP_EXTENSIONS"):
        settings["extensions"] = extensions
    if exclude := os.environ.get("CLASSMAP_EXCLUDE"):
        settings["exclude"] = exclude
    for key in ("case_sensitive", "follow_symlinks", "include_static", "relative"):
        if (value := os.environ.get(f"CLASSMAP_{key.upper()}")) is not None:
            settings[key] = value
    return settings


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    return bool(value)
