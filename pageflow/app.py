"""Content application root: discovery, routing, eager index and invalidation.

:class:`ContentApp` owns the configured loaders and the config resolver. It
discovers every loader's sources, checks that URLs are unique across
loaders, and assembles the route table. In eager mode :meth:`ContentApp.start`
runs the load phase of every source concurrently, bounded per loader, and
builds the :class:`~pageflow.index.PageIndex` before any page may render.

Change events from watching loaders evict cached results; nothing is rebuilt
until the next request.

Example
-------
>>> from pageflow import ContentApp, GlobalConfigResolver, PageConfig
>>> from pageflow.loaders import MemoryLoader, MemoryPage
>>> loader = MemoryLoader([MemoryPage("index.md", builder=lambda page: "<p>hi</p>")])
>>> app = ContentApp([loader], GlobalConfigResolver(PageConfig())).start()
>>> app.handle("/").body
'<p>hi</p>'
"""

from __future__ import annotations

import collections.abc as cabc
import concurrent.futures as cf
import logging
import threading
import typing as typ

from pageflow._once import OnceCell
from pageflow.errors import DiscoveryError, PipelineError
from pageflow.index import PageIndex
from pageflow.pages import BuildContext
from pageflow.paths import is_ignored
from pageflow.routing import Route, RouteResponse, Router, build_routes

if typ.TYPE_CHECKING:
    from pathlib import Path

    from pageflow.config.models import SiteConfig
    from pageflow.config.resolver import ConfigResolver
    from pageflow.loaders import RouteLoader
    from pageflow.pages import PageSource
    from pageflow.static import StaticBuildReport
    from pageflow.watch import ChangeEvent

logger = logging.getLogger(__name__)

WrapFunction = cabc.Callable[[list[list[Route]]], typ.Any]


class ContentApp:
    """Assemble loaders into a routable, buildable site.

    Parameters
    ----------
    loaders : Sequence[RouteLoader]
        Content origins in priority order; the order is kept in route lists.
    resolver : ConfigResolver
        Maps each discovered URL to its page config.
    eager : bool, optional
        Load every source at startup and expose the ``pages`` index.
    routes : Iterable[Route], optional
        Custom routes appended after the loader routes.
    wrap : Callable[[list[list[Route]]], Any], optional
        Receives the per-loader route lists (custom routes last) and returns
        the routing component exposed as :attr:`router`. Defaults to
        :func:`~pageflow.routing.build_routes`.
    """

    def __init__(
        self,
        loaders: cabc.Sequence[RouteLoader],
        resolver: ConfigResolver,
        *,
        eager: bool = False,
        routes: cabc.Iterable[Route] = (),
        wrap: WrapFunction | None = None,
    ) -> None:
        self.loaders = list(loaders)
        self.resolver = resolver
        self.eager = eager
        self.custom_routes = list(routes)
        self.wrap = wrap
        self.discovery_errors: dict[str, DiscoveryError] = {}
        self._sources: dict[int, list[PageSource]] = {}
        self._table: Router | None = None
        self._router: typ.Any = None
        self._index: OnceCell[PageIndex] = OnceCell()
        self._lock = threading.RLock()
        self._watchers: list[typ.Any] = []

    @classmethod
    def from_site_config(
        cls, site: SiteConfig, *, token: str | None = None
    ) -> ContentApp:
        """Build an app from a loaded site configuration."""
        from pageflow.config.helpers import build_loaders

        loaders = build_loaders(site.sources, base_dir=site.base_dir, token=token)
        return cls(loaders, site.resolver, eager=site.eager)

    def __repr__(self) -> str:
        names = ", ".join(loader.name for loader in self.loaders)
        return f"ContentApp([{names}], eager={self.eager})"

    @property
    def started(self) -> bool:
        """Return ``True`` once routes have been assembled."""
        return self._table is not None

    @property
    def sources(self) -> list[PageSource]:
        """Return every discovered source in loader order."""
        with self._lock:
            return [
                source
                for loader in self.loaders
                for source in self._sources.get(id(loader), [])
            ]

    @property
    def routes(self) -> Router:
        """Return the route table, starting the app on first access."""
        if self._table is None:
            self.start()
        return typ.cast("Router", self._table)

    @property
    def router(self) -> typ.Any:
        """Return the routing component produced by the wrap function."""
        if self._table is None:
            self.start()
        return self._router

    def discover(self) -> list[PageSource]:
        """Discover every loader's sources and assemble the route table.

        A loader whose discovery fails is logged and left out; discovery
        aborts only when no loader produced any routes.

        Raises
        ------
        DiscoveryError
            If every failing loader left the app without routes.
        RouteCollisionError
            If two sources or routes share a URL.
        UnresolvedConfigError
            If the resolver has no config for a discovered URL.
        """
        discovered: dict[int, list[PageSource]] = {}
        errors: dict[str, DiscoveryError] = {}
        for loader in self.loaders:
            try:
                discovered[id(loader)] = loader.discover(self.resolver)
            except DiscoveryError as exc:
                logger.warning("Discovery failed for %s: %s", loader.name, exc)
                errors[loader.name] = exc
        if errors and not any(discovered.values()) and not self.custom_routes:
            first = next(iter(errors.values()))
            msg = f"No loader produced routes; {len(errors)} loader(s) failed"
            raise DiscoveryError(msg) from first
        with self._lock:
            self._install(discovered)
            self.discovery_errors = errors
        return self.sources

    def start(self) -> ContentApp:
        """Discover routes and, in eager mode, build the page index."""
        if self._table is None:
            self.discover()
        if self.eager:
            self.page_index()
        return self

    def page_index(self) -> PageIndex | None:
        """Return the eager page index, loading every source on first use."""
        if not self.eager:
            return None
        return self._index.get_or_init(self._build_index)

    def build_context(self) -> BuildContext:
        """Return the context passed to every page build."""
        return BuildContext(index=self.page_index())

    def handle(self, url: str) -> RouteResponse:
        """Render ``url`` through the route table."""
        return self.routes.handle(url)

    def render(self, url: str) -> str:
        """Return the document for ``url``, raising any pipeline error."""
        return self.routes.lookup(url).handler()

    def generate(self, output_dir: Path) -> StaticBuildReport:
        """Write every route below ``output_dir``."""
        from pageflow.static import StaticGenerator

        return StaticGenerator(self).run(output_dir)

    def watch(self) -> list[typ.Any]:
        """Start watching every loader that supports change notifications."""
        for loader in self.loaders:
            watch = getattr(loader, "watch", None)
            if watch is None:
                continue
            watcher = watch(lambda event, loader=loader: self.apply_change(loader, event))
            self._watchers.append(watcher)
        return list(self._watchers)

    def stop(self) -> None:
        """Stop all watchers started by :meth:`watch`."""
        while self._watchers:
            self._watchers.pop().stop()

    def apply_change(self, loader: RouteLoader, event: ChangeEvent) -> None:
        """Evict cached state affected by ``event`` from ``loader``.

        Modifying a page evicts that page. Adding or removing an entry
        rediscovers the loader and rebuilds the route table. A change under
        an ignored entry such as ``_partials/`` evicts every rendered page of
        the loader, since any of them may include it. In eager mode the page
        index and every rendered page are evicted as well.
        """
        logger.debug("Change in %s: %s %s", loader.name, event.kind, event.path)
        with self._lock:
            sources = self._sources.get(id(loader), [])
            if is_ignored(event.path):
                for source in sources:
                    source.invalidate_render()
            elif event.kind == "modified" and not event.is_directory:
                match = next((s for s in sources if s.path == event.path), None)
                if match is None:
                    self._rediscover(loader)
                else:
                    match.invalidate()
            else:
                self._rediscover(loader)
            if self.eager:
                self._index.invalidate()
                for source in self.sources:
                    source.invalidate_render()

    def _rediscover(self, loader: RouteLoader) -> None:
        previous = self._sources.get(id(loader), [])
        discovered = dict(self._sources)
        try:
            discovered[id(loader)] = loader.discover(self.resolver)
            self._install(discovered)
        except PipelineError as exc:
            logger.warning(
                "Rediscovery failed for %s, keeping previous routes: %s", loader.name, exc
            )
            return
        kept = {id(source) for source in discovered[id(loader)]}
        for source in previous:
            if id(source) not in kept:
                source.invalidate()

    def _install(self, discovered: dict[int, list[PageSource]]) -> None:
        route_lists = [
            [self._route_for(loader, source) for source in discovered.get(id(loader), [])]
            for loader in self.loaders
        ]
        route_lists.append(list(self.custom_routes))
        table = build_routes(route_lists)
        self._sources = discovered
        self._table = table
        self._router = self.wrap(route_lists) if self.wrap else table
        logger.debug("Assembled %d routes", len(table))

    def _route_for(self, loader: RouteLoader, source: PageSource) -> Route:
        def handler() -> str:
            return source.build(self.build_context()).document

        return Route(url=source.url, handler=handler, source=source, origin=loader.name)

    def _build_index(self) -> PageIndex:
        entries: dict[str, cabc.Mapping[str, typ.Any]] = {}
        with self._lock:
            grouped = [
                (loader, list(self._sources.get(id(loader), [])))
                for loader in self.loaders
            ]
        executors = [
            cf.ThreadPoolExecutor(
                max_workers=max(1, loader.max_concurrency),
                thread_name_prefix=f"pageflow-load-{position}",
            )
            for position, (loader, _sources) in enumerate(grouped)
        ]
        try:
            futures = {
                executor.submit(source.load): source
                for executor, (_loader, sources) in zip(executors, grouped, strict=True)
                for source in sources
            }
            for future in cf.as_completed(futures):
                source = futures[future]
                try:
                    entries[source.url] = future.result().data
                except PipelineError as exc:
                    if exc.fatal:
                        raise
                    logger.error("Failed to load %s: %s", source.url, exc)
        finally:
            for executor in executors:
                executor.shutdown(wait=True, cancel_futures=True)
        logger.info("Loaded %d pages into the page index", len(entries))
        return PageIndex(entries)


__all__ = ["ContentApp", "WrapFunction"]
