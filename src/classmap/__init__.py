"""classmap: static class-map builder and loader for PHP source trees."""

from __future__ import annotations

from classmap.autoloader import (
    Autoloader,
    activate,
    build_mapping,
    clear_cache,
    default_autoloader,
    list_active,
    render,
    unregister_all,
)
from classmap.config import ScanOptions, load_config
from classmap.exceptions import ClassmapError

__version__ = "0.1.0"

__all__ = [
    "Autoloader",
    "ClassmapError",
    "ScanOptions",
    "__version__",
    "activate",
    "build_mapping",
    "clear_cache",
    "default_autoloader",
    "list_active",
    "load_config",
    "render",
    "unregister_all",
]
