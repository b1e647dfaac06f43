"""Discover content from pluggable origins and build it into routable pages.

Loaders enumerate page sources from a local directory, a GitHub repository,
in-memory definitions or custom callables. A config resolver assigns each
URL its parsers, extensions, layouts and template engine, and every page is
built lazily, at most once, through template, parse, extension and layout
stages. The same app serves pages on demand or writes a static site.

Exports
-------
- ``ContentApp``: discovery, routing, eager page index and invalidation.
- ``PageConfig`` and the resolvers: per-URL build configuration.
- ``StaticGenerator``: writes every route to disk.
- ``app`` / ``main``: the Cyclopts CLI.

Examples
--------
>>> from pageflow import main
>>> main()  # doctest: +SKIP
"""

from __future__ import annotations

from .app import ContentApp
from .cli import app, main
from .config import (
    GlobalConfigResolver,
    PageConfig,
    PatternConfigResolver,
    load_site_config,
)
from .loaders import CustomLoader, FilesystemLoader, GitHubLoader, MemoryLoader, MemoryPage
from .routing import Route, RouteResponse, Router
from .static import StaticBuildReport, StaticGenerator

__all__ = [
    "ContentApp",
    "CustomLoader",
    "FilesystemLoader",
    "GitHubLoader",
    "GlobalConfigResolver",
    "MemoryLoader",
    "MemoryPage",
    "PageConfig",
    "PatternConfigResolver",
    "Route",
    "RouteResponse",
    "Router",
    "StaticBuildReport",
    "StaticGenerator",
    "app",
    "load_site_config",
    "main",
]
