"""Directory traversal for PHP source trees."""

from __future__ import annotations

import fnmatch
import os
from collections.abc import Iterable, Iterator
from pathlib import Path

from rich.console import Console

from classmap.exceptions import RootNotFoundError, RootUnreadableError

console = Console(stderr=True)


def canonicalize_root(directory: Path | str) -> Path:
    """Resolve a scan root to its canonical absolute path.

    Args:
        directory: Directory to scan.

    Returns:
        The canonical path (symlinks resolved).

    Raises:
        RootNotFoundError: If the directory does not exist.
        RootUnreadableError: If the directory cannot be listed.
    """
    path = Path(os.path.realpath(directory))
    if not path.is_dir():
        raise RootNotFoundError(f"Directory '{directory}' does not exist", path)
    if not os.access(path, os.R_OK | os.X_OK):
        raise RootUnreadableError(f"Directory '{directory}' is not readable", path)
    return path


def relative_posix(path: Path, root: Path) -> str:
    """Return path relative to root with forward slashes."""
    try:
        rel = path.relative_to(root)
    except ValueError:
        return path.as_posix()
    return rel.as_posix()


def is_excluded(rel_path: str, patterns: Iterable[str]) -> bool:
    """Check whether a root-relative path matches any exclusion glob."""
    return any(fnmatch.fnmatch(rel_path, pattern) for pattern in patterns)


def has_extension(path: Path, extensions: Iterable[str]) -> bool:
    """Check a file's lowercased extension against the configured set."""
    return path.suffix.lower().lstrip(".") in extensions


class TreeWalker:
    """Lazily enumerates candidate source files below a root directory.

    Usage::

        walker = TreeWalker(Path("/my/project/src"), exclude=("tests/*",))
        for path in walker.walk():
            ...
    """

    def __init__(
        self,
        root: Path | str,
        extensions: Iterable[str] = ("php",),
        exclude: Iterable[str] = (),
        follow_symlinks: bool = False,
    ) -> None:
        """Initialize the walker.

        Args:
            root: Directory to traverse.
            extensions: Lowercase extensions (without the dot) to yield.
            exclude: Glob patterns tested against root-relative paths.
            follow_symlinks: Descend into symlinked directories.

        Raises:
            RootNotFoundError: If root does not exist.
            RootUnreadableError: If root cannot be listed.
        """
        self._root = canonicalize_root(root)
        self._extensions = frozenset(e.lstrip(".").lower() for e in extensions)
        self._exclude = tuple(exclude)
        self._follow_symlinks = follow_symlinks

    @property
    def root(self) -> Path:
        return self._root

    def walk(self) -> Iterator[Path]:
        """Yield matching files in a deterministic (sorted) order.

        Yields:
            Absolute paths below the root. Paths keep any symlinked
            directory components they were reached through.
        """
        visited: set[str] = {os.path.realpath(self._root)}

        for dirpath_str, dirnames, filenames in os.walk(
            self._root,
            topdown=True,
            onerror=self._on_error,
            followlinks=self._follow_symlinks,
        ):
            dirpath = Path(dirpath_str)

            kept: list[str] = []
            for name in sorted(dirnames):
                if not self._follow_symlinks:
                    kept.append(name)
                    continue
                # Guard against cycles through self-referential links
                real = os.path.realpath(dirpath / name)
                if real in visited:
                    continue
                visited.add(real)
                kept.append(name)
            dirnames[:] = kept

            for fname in sorted(filenames):
                full = dirpath / fname
                if not has_extension(full, self._extensions):
                    continue
                if is_excluded(relative_posix(full, self._root), self._exclude):
                    continue
                if not full.is_file():
                    continue
                yield full

    @staticmethod
    def _on_error(exc: OSError) -> None:
        """Skip subtrees that cannot be listed."""
        console.print(f"[yellow]Warning[/yellow]: Skipping {exc.filename}: {exc.strerror}")
