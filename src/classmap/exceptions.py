"""classmap exception hierarchy.

All exceptions inherit from ClassmapError so callers can catch the base
class when they want to handle any classmap failure uniformly.
"""

from __future__ import annotations

from pathlib import Path


class ClassmapError(Exception):
    """Base exception for all classmap errors."""


class ConfigError(ClassmapError):
    """Invalid options or configuration files."""


class ScanError(ClassmapError):
    """Errors while scanning a source tree."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = path


class RootNotFoundError(ScanError):
    """The directory to scan does not exist or is not a directory."""


class RootUnreadableError(ScanError):
    """The directory to scan exists but cannot be read."""


class PerFileScanError(ScanError):
    """A single file could not be read or tokenized."""


class EmptyResultError(ClassmapError):
    """A scan completed without finding any declarations."""


class HookRegistrationError(ClassmapError):
    """The loader host refused a resolver registration."""


class StaleEnvironmentError(ClassmapError):
    """The running interpreter is older than the supported minimum."""
