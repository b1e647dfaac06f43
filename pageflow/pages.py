"""Page sources and the documents built from them.

A :class:`PageSource` is one discovered content unit. It is cheap to create
during discovery and builds its :class:`Page` lazily, at most once, no matter
how many threads ask for it concurrently. Building happens in two memoized
phases:

``load``
    Read the raw content from the owning loader and split off front-matter.
    Eager loading runs this phase for every source at startup.
``build``
    Template, parse, extend, and lay out the loaded content. This always
    waits until the page is actually requested.

Invalidation evicts the cached results without rebuilding; the next request
rebuilds them.
"""

from __future__ import annotations

import dataclasses as dc
import logging
import threading
import types
import typing as typ

from pageflow._once import OnceCell
from pageflow.frontmatter import split_front_matter
from pageflow.pipeline import read_data_dir, render_source

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from pageflow.config.models import PageConfig
    from pageflow.index import PageIndex
    from pageflow.loaders import RouteLoader

logger = logging.getLogger(__name__)

PageBuilder = typ.Callable[["Page"], str]


@dc.dataclass(frozen=True, slots=True)
class LoadedContent:
    """Raw page body and accumulated data produced by the load phase."""

    body: str
    data: cabc.Mapping[str, typ.Any]


@dc.dataclass(frozen=True, slots=True)
class BuildContext:
    """Process-scoped values passed explicitly to every page build.

    Attributes
    ----------
    index : PageIndex | None
        Complete page index under eager loading; ``None`` in lazy mode.
    """

    index: PageIndex | None = None


@dc.dataclass(frozen=True, slots=True)
class Page:
    """A built page.

    Attributes
    ----------
    path : str
        Origin-relative source path.
    url : str
        Resolved page URL.
    content : str
        Body text after templating and before parsing.
    data : Mapping[str, Any]
        Read-only page data: front-matter, loader data, data-directory
        values, parser- and extension-injected keys, and under eager loading
        the ``pages`` index.
    config : PageConfig
        Configuration the page was built with.
    loader : RouteLoader
        Loader that discovered the page.
    """

    path: str
    url: str
    content: str
    data: cabc.Mapping[str, typ.Any]
    config: PageConfig
    loader: RouteLoader = dc.field(repr=False, compare=False)


@dc.dataclass(frozen=True, slots=True)
class RenderedPage:
    """A built page together with its final document."""

    page: Page
    document: str


class PageSource:
    """One discoverable content unit and its memoized build results.

    Parameters
    ----------
    path : str
        Origin-relative POSIX path.
    url : str
        Page URL derived from ``path``.
    loader : RouteLoader
        Owning loader; used for content and partial reads.
    config : PageConfig
        Configuration resolved for ``url``.
    data : Mapping[str, Any], optional
        Loader-supplied default data; front-matter overrides it.
    builder : Callable[[Page], str], optional
        Produces the content HTML directly, bypassing template, parse and
        extension stages.
    apply_layout : bool, optional
        Whether builder output is wrapped in a layout.
    """

    def __init__(
        self,
        *,
        path: str,
        url: str,
        loader: RouteLoader,
        config: PageConfig,
        data: cabc.Mapping[str, typ.Any] | None = None,
        builder: PageBuilder | None = None,
        apply_layout: bool = True,
    ) -> None:
        self._path = path
        self._url = url
        self._loader = loader
        self._config = config
        self._data = types.MappingProxyType(dict(data or {}))
        self._builder = builder
        self._apply_layout = apply_layout
        self._loaded: OnceCell[LoadedContent] = OnceCell()
        self._rendered: OnceCell[RenderedPage] = OnceCell()
        self._counter_lock = threading.Lock()
        self.load_count = 0
        self.build_count = 0

    @property
    def path(self) -> str:
        """Origin-relative source path."""
        return self._path

    @property
    def url(self) -> str:
        """Resolved page URL."""
        return self._url

    @property
    def loader(self) -> RouteLoader:
        """Loader that discovered this source."""
        return self._loader

    @property
    def config(self) -> PageConfig:
        """Configuration resolved for this source's URL."""
        return self._config

    @property
    def data(self) -> cabc.Mapping[str, typ.Any]:
        """Loader-supplied default data."""
        return self._data

    @property
    def builder(self) -> PageBuilder | None:
        """Direct content builder for memory pages, if any."""
        return self._builder

    @property
    def apply_layout(self) -> bool:
        """Whether builder output is wrapped in a layout."""
        return self._apply_layout

    def __repr__(self) -> str:
        return f"PageSource(url={self._url!r}, path={self._path!r})"

    @property
    def is_loaded(self) -> bool:
        """Return ``True`` when loaded content is cached."""
        return self._loaded.is_set

    @property
    def is_built(self) -> bool:
        """Return ``True`` when a rendered page is cached."""
        return self._rendered.is_set

    def load(self) -> LoadedContent:
        """Return the loaded body and data, reading the origin at most once."""
        return self._loaded.get_or_init(self._load)

    def build(self, context: BuildContext | None = None) -> RenderedPage:
        """Return the rendered page, building it at most once.

        Concurrent callers collapse into a single build; all of them observe
        the same :class:`RenderedPage`. Failures are not cached.
        """
        effective = context or BuildContext()
        return self._rendered.get_or_init(lambda: self._build(effective))

    def invalidate(self) -> None:
        """Evict loaded content and the rendered page."""
        self._loaded.invalidate()
        self._rendered.invalidate()

    def invalidate_render(self) -> None:
        """Evict only the rendered page, keeping loaded content."""
        self._rendered.invalidate()

    def _load(self) -> LoadedContent:
        with self._counter_lock:
            self.load_count += 1
        data: dict[str, typ.Any] = {}
        if self._config.data_dir is not None:
            data.update(read_data_dir(self._config.data_dir))
        data.update(self._data)
        if self._builder is not None:
            return LoadedContent(body="", data=types.MappingProxyType(data))

        raw = self._loader.read(self)
        body = raw
        if self._config.enable_front_matter:
            front_matter, body = split_front_matter(raw)
            data.update(front_matter)
        logger.debug("Loaded %s from %s", self._url, self._loader.name)
        return LoadedContent(body=body, data=types.MappingProxyType(data))

    def _build(self, context: BuildContext) -> RenderedPage:
        with self._counter_lock:
            self.build_count += 1
        loaded = self.load()
        rendered = render_source(self, loaded, context)
        logger.debug("Built %s", self._url)
        return rendered


__all__ = [
    "BuildContext",
    "LoadedContent",
    "Page",
    "PageBuilder",
    "PageSource",
    "RenderedPage",
]
