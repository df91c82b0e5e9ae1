"""Loader hosts: the chain that resolvers are registered with.

A host owns an ordered list of resolvers and an include-once discipline for
source files. :class:`AutoloadStack` is the in-process implementation; other
hosts only need to provide the :class:`LoaderHost` methods.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path
from typing import Protocol, runtime_checkable

Resolver = Callable[[str], bool]
Executor = Callable[[Path], None]


@runtime_checkable
class LoaderHost(Protocol):
    """Interface of a dynamic-loading chain."""

    def register(self, resolver: Resolver, prepend: bool = False) -> bool: ...

    def unregister(self, resolver: Resolver) -> bool: ...

    def require_once(self, path: Path | str) -> bool: ...


def _read_file(path: Path) -> None:
    path.read_bytes()


class AutoloadStack:
    """Ordered resolver chain with include-once bookkeeping.

    Usage::

        stack = AutoloadStack()
        stack.register(resolver)
        stack.load("App\\Models\\User")
    """

    def __init__(self, executor: Executor | None = None) -> None:
        """Initialize the stack.

        Args:
            executor: Called once per newly included file with its canonical
                path. Defaults to reading the file.
        """
        self._resolvers: list[Resolver] = []
        self._included: dict[str, None] = {}
        self._executor = executor or _read_file

    @property
    def resolvers(self) -> tuple[Resolver, ...]:
        return tuple(self._resolvers)

    @property
    def included_files(self) -> tuple[str, ...]:
        """Canonical paths of included files, in inclusion order."""
        return tuple(self._included)

    def register(self, resolver: Resolver, prepend: bool = False) -> bool:
        """Add a resolver to the front or back of the chain.

        Registering a resolver that is already present is a successful no-op.

        Returns:
            False if resolver is not callable.
        """
        if not callable(resolver):
            return False
        if resolver in self._resolvers:
            return True
        if prepend:
            self._resolvers.insert(0, resolver)
        else:
            self._resolvers.append(resolver)
        return True

    def unregister(self, resolver: Resolver) -> bool:
        """Remove a previously registered resolver.

        Returns:
            True if the resolver was present and has been removed.
        """
        try:
            self._resolvers.remove(resolver)
        except ValueError:
            return False
        return True

    def load(self, identifier: str) -> bool:
        """Ask each resolver in order to load identifier; first success wins."""
        identifier = identifier.lstrip("\\")
        return any(resolver(identifier) for resolver in list(self._resolvers))

    def is_included(self, path: Path | str) -> bool:
        return os.path.realpath(path) in self._included

    def require_once(self, path: Path | str) -> bool:
        """Include a file unless it has been included before.

        Returns:
            True once the file is (or already was) included.

        Raises:
            OSError: If the executor cannot read the file.
        """
        real = os.path.realpath(path)
        if real in self._included:
            return True
        self._executor(Path(real))
        self._included[real] = None
        return True


_default_host: AutoloadStack | None = None


def default_host() -> AutoloadStack:
    """Return the process-wide autoload stack."""
    global _default_host
    if _default_host is None:
        _default_host = AutoloadStack()
    return _default_host
