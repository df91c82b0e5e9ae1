"""Class map builder with a per-process scan cache."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console

from classmap.config import ScanOptions
from classmap.exceptions import PerFileScanError
from classmap.indexer.classifier import is_static_file
from classmap.indexer.extractor import SymbolExtractor
from classmap.indexer.tokenizer import read_source, tokenize
from classmap.indexer.walker import (
    TreeWalker,
    canonicalize_root,
    has_extension,
    is_excluded,
    relative_posix,
)

console = Console(stderr=True)


@dataclass(frozen=True)
class ClassMap:
    """Result of scanning one directory.

    Attributes:
        directory: Canonical absolute path of the scanned root.
        mapping: Fully-qualified identifier to canonical file path, in
            traversal order. Later declarations of the same identifier
            replace earlier ones.
        static_files: Declaration-free files selected for eager inclusion.
        files_scanned: Number of candidate files that were read.
    """

    directory: Path
    mapping: dict[str, str] = field(default_factory=dict)
    static_files: tuple[str, ...] = ()
    files_scanned: int = 0

    def __len__(self) -> int:
        return len(self.mapping)

    @property
    def is_empty(self) -> bool:
        return not self.mapping and not self.static_files


class MappingBuilder:
    """Builds and memoizes identifier-to-file maps for source trees.

    Results are cached by canonical directory and options fingerprint and are
    never invalidated by filesystem changes; call :meth:`clear_cache` to
    force a rescan.
    """

    def __init__(self, extractor: SymbolExtractor | None = None) -> None:
        self._extractor = extractor or SymbolExtractor()
        self._cache: dict[tuple[str, str], ClassMap] = {}

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def is_cached(self, directory: Path | str, options: ScanOptions | None = None) -> bool:
        """Check whether a scan result for directory and options is memoized."""
        options = options or ScanOptions()
        key = (os.path.realpath(directory), options.fingerprint())
        return key in self._cache

    def clear_cache(self) -> None:
        """Forget every memoized scan result."""
        self._cache.clear()

    def build(self, directory: Path | str, options: ScanOptions | None = None) -> ClassMap:
        """Scan a directory and return its class map.

        Args:
            directory: Root of the PHP source tree.
            options: Scan options; defaults apply when omitted.

        Returns:
            The (possibly cached) ClassMap. An empty map is a valid result.

        Raises:
            RootNotFoundError: If directory does not exist.
            RootUnreadableError: If directory cannot be read.
        """
        options = options or ScanOptions()
        root = canonicalize_root(directory)

        key = (str(root), options.fingerprint())
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        walker = TreeWalker(
            root,
            extensions=options.extensions,
            exclude=options.exclude,
            follow_symlinks=options.follow_symlinks,
        )

        mapping: dict[str, str] = {}
        static_files: dict[str, None] = {}
        files_scanned = 0

        for path in walker.walk():
            rel = relative_posix(path, root)
            if not has_extension(path, options.extensions) or is_excluded(rel, options.exclude):
                continue

            files_scanned += 1
            try:
                tokens = tokenize(read_source(path))
            except PerFileScanError as exc:
                console.print(f"[yellow]Warning[/yellow]: Skipping {rel}: {exc}")
                continue

            resolved = os.path.realpath(path)
            symbols = self._extractor.extract(tokens)
            for name in symbols.declarations:
                mapping[name] = resolved

            if options.include_static and not symbols.declarations and is_static_file(tokens):
                static_files[resolved] = None

        result = ClassMap(
            directory=root,
            mapping=mapping,
            static_files=tuple(static_files),
            files_scanned=files_scanned,
        )
        self._cache[key] = result

        console.print(
            f"[green]Scanner[/green] mapped [bold]{len(mapping)}[/bold] "
            f"symbols across [bold]{files_scanned}[/bold] files"
        )
        return result
