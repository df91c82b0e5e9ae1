"""Loader side: resolver hosts, identifier lookup, artifact rendering."""

from __future__ import annotations

from classmap.loader.host import AutoloadStack, LoaderHost, default_host
from classmap.loader.render import relative_path, render_source
from classmap.loader.resolver import MapResolver, lookup

__all__ = [
    "AutoloadStack",
    "LoaderHost",
    "MapResolver",
    "default_host",
    "lookup",
    "relative_path",
    "render_source",
]
