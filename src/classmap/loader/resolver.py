"""Identifier lookup and the resolver registered with loader hosts."""

from __future__ import annotations

import os
import string
from collections.abc import Callable, Mapping
from pathlib import Path

from rich.console import Console

from classmap.loader.host import default_host

console = Console(stderr=True)

# PHP compares class names with ASCII-only case folding
_ASCII_FOLD = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)


def fold_case(name: str) -> str:
    return name.translate(_ASCII_FOLD)


def lookup(mapping: Mapping[str, str], identifier: str, case_sensitive: bool = False) -> str | None:
    """Find the file that declares identifier.

    Case-insensitive lookups scan the mapping in order and return the first
    key that matches, so among keys differing only in case the one inserted
    first wins.

    Args:
        mapping: Identifier to file path.
        identifier: Requested identifier; a leading backslash is ignored.
        case_sensitive: Require the exact declared case.

    Returns:
        The mapped path, or None.
    """
    identifier = identifier.lstrip("\\")
    if case_sensitive:
        return mapping.get(identifier)

    wanted = fold_case(identifier)
    for name, path in mapping.items():
        if fold_case(name) == wanted:
            return path
    return None


class MapResolver:
    """Resolver that loads the file declaring a requested identifier.

    Instances are registered with a loader host as-is and must be kept to
    unregister them later; equality is identity.
    """

    def __init__(
        self,
        mapping: Mapping[str, str],
        case_sensitive: bool = False,
        include: Callable[[str], bool] | None = None,
    ) -> None:
        self.mapping = dict(mapping)
        self.case_sensitive = case_sensitive
        self._include = include or default_host().require_once

    def __call__(self, identifier: str) -> bool:
        path = lookup(self.mapping, identifier, self.case_sensitive)
        if path is None:
            return False
        if not os.path.isfile(path) or not os.access(path, os.R_OK):
            return False
        try:
            return bool(self._include(path))
        except Exception as exc:  # noqa: BLE001
            console.print(f"[yellow]Warning[/yellow]: Failed to load '{Path(path).name}': {exc}")
            return False

    def __repr__(self) -> str:
        mode = "case-sensitive" if self.case_sensitive else "case-insensitive"
        return f"<MapResolver {len(self.mapping)} symbols, {mode}>"
