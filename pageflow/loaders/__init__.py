"""Route loaders discovering page sources from content origins.

Each loader owns one origin and implements the small :class:`RouteLoader`
protocol: ``discover`` enumerates page sources, ``read`` retrieves a source's
raw content, and the optional ``read_partial`` and ``watch`` capabilities
serve template includes and change notifications. Built-in variants cover a
local directory tree, a GitHub repository, an in-memory list, and a
callable-backed custom origin.

Example
-------
>>> from pageflow.config import GlobalConfigResolver, PageConfig
>>> from pageflow.loaders import MemoryLoader, MemoryPage
>>> loader = MemoryLoader([MemoryPage("about/index.md", content="# About")])
>>> [source.url for source in loader.discover(GlobalConfigResolver(PageConfig()))]
['/about']
"""

from __future__ import annotations

import typing as typ

from ._discovery import build_sources
from .custom import CustomLoader
from .filesystem import FilesystemLoader
from .github import GitHubLoader
from .memory import MemoryLoader, MemoryPage

if typ.TYPE_CHECKING:
    from pageflow.config.resolver import ConfigResolver
    from pageflow.pages import PageSource


class RouteLoader(typ.Protocol):
    """Discover and read the page sources of one content origin."""

    name: str
    max_concurrency: int

    def discover(self, resolver: ConfigResolver) -> list[PageSource]:
        """Return the origin's page sources or raise DiscoveryError."""
        ...

    def read(self, source: PageSource) -> str:
        """Return the raw content of ``source``."""
        ...


__all__ = [
    "CustomLoader",
    "FilesystemLoader",
    "GitHubLoader",
    "MemoryLoader",
    "MemoryPage",
    "RouteLoader",
    "build_sources",
]
