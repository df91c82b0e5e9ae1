"""Autoloader façade: live resolver registration and loader artifacts.

An :class:`Autoloader` owns the scan cache (through its
:class:`~classmap.indexer.builder.MappingBuilder`) and the registry of
resolvers it has installed in a loader host. The module-level functions
operate on one process-wide instance.

Failures to scan (missing or unreadable roots, trees without declarations)
and host registration failures are reported as ``False``/``None`` with a
warning. An interpreter below the supported minimum raises
:class:`~classmap.exceptions.StaleEnvironmentError` before any work starts.
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Final

from rich.console import Console

from classmap.config import ScanOptions
from classmap.exceptions import (
    ConfigError,
    EmptyResultError,
    HookRegistrationError,
    ScanError,
    StaleEnvironmentError,
)
from classmap.indexer.builder import ClassMap, MappingBuilder
from classmap.loader.host import LoaderHost, default_host
from classmap.loader.render import render_source
from classmap.loader.resolver import MapResolver

console = Console(stderr=True)

MIN_PYTHON: Final[tuple[int, int]] = (3, 11)

RENDER_FORMATS: Final[tuple[str, ...]] = ("source", "table")

OptionsLike = ScanOptions | Mapping[str, Any] | None


@dataclass(frozen=True)
class RegisteredLoader:
    """A resolver installed by :meth:`Autoloader.activate`.

    Attributes:
        directory: Canonical root the mapping was built from.
        resolver: The exact object registered with the host.
        mapping: Identifier to file path map served by the resolver.
    """

    directory: str
    resolver: MapResolver
    mapping: dict[str, str]


class Autoloader:
    """Builds class maps and serves them to a loader host.

    Usage::

        loader = Autoloader()
        loader.activate("/srv/app/src", exclude=["tests/*"])
        source = loader.render("/srv/app/src", relative=True)
    """

    def __init__(
        self,
        host: LoaderHost | None = None,
        builder: MappingBuilder | None = None,
        minimum_python: tuple[int, int] = MIN_PYTHON,
    ) -> None:
        """Initialize the façade.

        Args:
            host: Loader host resolvers are registered with. Defaults to the
                process-wide :class:`~classmap.loader.host.AutoloadStack`.
            builder: Mapping builder (and its cache) to use.
            minimum_python: Oldest interpreter version accepted.
        """
        self._host = host
        self._builder = builder or MappingBuilder()
        self._minimum_python = minimum_python
        self._loaders: list[RegisteredLoader] = []
        self._environment_checked = False
        self._lock = threading.RLock()

    @property
    def host(self) -> LoaderHost:
        return self._host if self._host is not None else default_host()

    @property
    def builder(self) -> MappingBuilder:
        return self._builder

    def check_environment(self) -> None:
        """Validate the interpreter version once; later calls are free.

        Raises:
            StaleEnvironmentError: If the interpreter is too old.
        """
        if self._environment_checked:
            return
        if tuple(sys.version_info[:2]) < self._minimum_python:
            required = ".".join(str(part) for part in self._minimum_python)
            raise StaleEnvironmentError(
                f"classmap requires Python {required} or higher. "
                f"Current version: {sys.version.split()[0]}"
            )
        self._environment_checked = True

    def build(self, directory: Path | str, options: OptionsLike = None, **overrides: Any) -> ClassMap:
        """Scan directory and return the full scan result.

        Raises:
            ScanError: If the root is missing or unreadable.
            ConfigError: If the options are invalid.
        """
        resolved = resolve_options(options, overrides)
        with self._lock:
            self.check_environment()
            return self._builder.build(directory, resolved)

    def build_mapping(
        self, directory: Path | str, options: OptionsLike = None, **overrides: Any
    ) -> dict[str, str] | None:
        """Return the identifier-to-file mapping, or None if nothing was found."""
        result = self.render(directory, options, fmt="table", **overrides)
        return result if isinstance(result, dict) else None

    def activate(self, directory: Path | str, options: OptionsLike = None, **overrides: Any) -> bool:
        """Scan directory and register a resolver for it with the host.

        Args:
            directory: Root of the PHP source tree.
            options: ScanOptions or a mapping of option names to values.
            **overrides: Individual option values applied on top.

        Returns:
            True if a resolver was registered.

        Raises:
            StaleEnvironmentError: If the interpreter is too old.
            ConfigError: If the options are invalid.
        """
        resolved = resolve_options(options, overrides)
        with self._lock:
            self.check_environment()
            host = self.host
            try:
                classmap = self._require_classmap(directory, resolved)
                resolver = self._register(host, classmap, resolved)
            except (ScanError, EmptyResultError, HookRegistrationError) as exc:
                console.print(f"[yellow]Warning[/yellow]: {exc}")
                return False

            self._loaders.append(
                RegisteredLoader(str(classmap.directory), resolver, resolver.mapping)
            )
            if resolved.include_static:
                self._include_static(host, classmap)
            return True

    def render(
        self,
        directory: Path | str,
        options: OptionsLike = None,
        *,
        fmt: str = "source",
        generated_at: datetime | None = None,
        **overrides: Any,
    ) -> str | dict[str, str] | None:
        """Produce a standalone loader artifact for directory.

        Args:
            directory: Root of the PHP source tree.
            options: ScanOptions or a mapping of option names to values.
            fmt: ``"source"`` for PHP loader code, ``"table"`` for the plain
                mapping with absolute paths.
            generated_at: Header timestamp for ``"source"`` output.
            **overrides: Individual option values applied on top.

        Returns:
            The artifact, or None if the scan failed or found nothing.

        Raises:
            StaleEnvironmentError: If the interpreter is too old.
            ConfigError: If the options or format are invalid.
        """
        if fmt not in RENDER_FORMATS:
            raise ConfigError(f"Unknown render format '{fmt}'. Valid: {', '.join(RENDER_FORMATS)}")
        resolved = resolve_options(options, overrides)
        with self._lock:
            self.check_environment()
            try:
                classmap = self._require_classmap(directory, resolved)
            except (ScanError, EmptyResultError) as exc:
                console.print(f"[yellow]Warning[/yellow]: {exc}")
                return None
            if fmt == "table":
                return dict(classmap.mapping)
            return render_source(classmap, resolved, generated_at=generated_at)

    def list_active(self) -> list[dict[str, Any]]:
        """Describe every resolver registered through this façade."""
        with self._lock:
            return [
                {
                    "directory": loader.directory,
                    "symbol_count": len(loader.mapping),
                    # Older name for symbol_count
                    "class_count": len(loader.mapping),
                }
                for loader in self._loaders
            ]

    def clear_cache(self) -> None:
        """Drop memoized scan results; registered resolvers are unaffected."""
        with self._lock:
            self._builder.clear_cache()

    def unregister_all(self) -> int:
        """Remove every registered resolver from the host.

        Returns:
            How many resolvers the host actually removed.
        """
        with self._lock:
            host = self.host
            removed = sum(1 for loader in self._loaders if host.unregister(loader.resolver))
            self._loaders.clear()
            return removed

    def _require_classmap(self, directory: Path | str, options: ScanOptions) -> ClassMap:
        """Scan directory, insisting on a non-empty result.

        Raises:
            ScanError: If the root is missing or unreadable.
            EmptyResultError: If the scan found nothing to serve.
        """
        classmap = self._builder.build(directory, options)
        if classmap.is_empty:
            raise EmptyResultError(f"No declarations found in '{directory}'")
        return classmap

    @staticmethod
    def _register(host: LoaderHost, classmap: ClassMap, options: ScanOptions) -> MapResolver:
        """Install a resolver for classmap with host.

        Raises:
            HookRegistrationError: If the host refuses the resolver.
        """
        resolver = MapResolver(classmap.mapping, options.case_sensitive, host.require_once)
        if not host.register(resolver, prepend=options.prepend):
            raise HookRegistrationError(
                f"Failed to register autoloader for directory '{classmap.directory}'"
            )
        return resolver

    @staticmethod
    def _include_static(host: LoaderHost, classmap: ClassMap) -> None:
        for path in classmap.static_files:
            try:
                host.require_once(path)
            except OSError as exc:
                console.print(f"[yellow]Warning[/yellow]: Cannot include {path}: {exc}")


def resolve_options(options: OptionsLike, overrides: Mapping[str, Any] | None = None) -> ScanOptions:
    """Normalize options given as ScanOptions, a mapping, or None.

    Raises:
        ConfigError: If an unknown option name is given.
    """
    if isinstance(options, ScanOptions):
        resolved = options
    elif options is None:
        resolved = ScanOptions()
    elif isinstance(options, Mapping):
        resolved = ScanOptions.from_mapping(options)
    else:
        raise ConfigError(f"Options must be ScanOptions or a mapping, not {type(options).__name__}")
    return resolved.merge(overrides) if overrides else resolved


_default: Autoloader | None = None


def default_autoloader() -> Autoloader:
    """Return the process-wide Autoloader."""
    global _default
    if _default is None:
        _default = Autoloader()
    return _default


def activate(directory: Path | str, options: OptionsLike = None, **overrides: Any) -> bool:
    return default_autoloader().activate(directory, options, **overrides)


def render(
    directory: Path | str, options: OptionsLike = None, *, fmt: str = "source", **overrides: Any
) -> str | dict[str, str] | None:
    return default_autoloader().render(directory, options, fmt=fmt, **overrides)


def build_mapping(
    directory: Path | str, options: OptionsLike = None, **overrides: Any
) -> dict[str, str] | None:
    return default_autoloader().build_mapping(directory, options, **overrides)


def list_active() -> list[dict[str, Any]]:
    return default_autoloader().list_active()


def clear_cache() -> None:
    default_autoloader().clear_cache()


def unregister_all() -> int:
    return default_autoloader().unregister_all()
