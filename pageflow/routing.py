"""Route table and the request boundary for page builds.

A :class:`Router` is an immutable mapping of canonical URL to :class:`Route`.
:meth:`Router.handle` is where pipeline failures are classified: page-local
errors become a 500 response for that URL only, unknown URLs become a 404,
and fatal errors propagate to the caller.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import logging
import typing as typ
from http import HTTPStatus

from pageflow.errors import PageNotFoundError, PipelineError, RouteCollisionError
from pageflow.paths import normalize_url

if typ.TYPE_CHECKING:
    from pageflow.pages import PageSource

logger = logging.getLogger(__name__)

RouteHandler = cabc.Callable[[], str]


@dc.dataclass(frozen=True, slots=True)
class Route:
    """One routable URL.

    Attributes
    ----------
    url : str
        Canonical URL.
    handler : Callable[[], str]
        Returns the final document for the URL.
    source : PageSource | None
        Page source backing the route; ``None`` for custom routes.
    origin : str
        Name of the loader (or ``"custom"``) that contributed the route.
    """

    url: str
    handler: RouteHandler = dc.field(compare=False)
    source: PageSource | None = dc.field(default=None, compare=False)
    origin: str = "custom"


@dc.dataclass(frozen=True, slots=True)
class RouteResponse:
    """Outcome of handling one request."""

    status: int
    body: str
    url: str

    @property
    def ok(self) -> bool:
        """Return ``True`` for a successful response."""
        return self.status == HTTPStatus.OK


class Router(cabc.Mapping[str, Route]):
    """Immutable URL to route mapping.

    Raises
    ------
    RouteCollisionError
        If two routes share a URL.
    """

    def __init__(self, routes: cabc.Iterable[Route]) -> None:
        table: dict[str, Route] = {}
        for route in routes:
            url = normalize_url(route.url)
            existing = table.get(url)
            if existing is not None:
                msg = (
                    f"URL '{url}' is produced by both '{existing.origin}' "
                    f"and '{route.origin}'"
                )
                raise RouteCollisionError(msg)
            table[url] = route
        self._routes = dict(sorted(table.items()))

    def __getitem__(self, url: str) -> Route:
        return self._routes[url]

    def __iter__(self) -> cabc.Iterator[str]:
        return iter(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    def __repr__(self) -> str:
        return f"Router({len(self._routes)} routes)"

    def lookup(self, url: str) -> Route:
        """Return the route for ``url`` after normalisation.

        Raises
        ------
        PageNotFoundError
            If no route serves ``url``.
        """
        canonical = normalize_url(url)
        route = self._routes.get(canonical)
        if route is None:
            msg = f"No page is routed at '{canonical}'"
            raise PageNotFoundError(msg)
        return route

    def handle(self, url: str) -> RouteResponse:
        """Render ``url`` and classify failures into a response.

        Raises
        ------
        PipelineError
            If the failure is fatal (for example an unresolvable config or a
            missing layout registry).
        """
        canonical = normalize_url(url)
        try:
            route = self.lookup(canonical)
        except PageNotFoundError as exc:
            return RouteResponse(status=HTTPStatus.NOT_FOUND, body=str(exc), url=canonical)
        try:
            body = route.handler()
        except PipelineError as exc:
            if exc.fatal:
                raise
            logger.error("Failed to build %s: %s", canonical, exc)
            return RouteResponse(
                status=HTTPStatus.INTERNAL_SERVER_ERROR, body=str(exc), url=canonical
            )
        return RouteResponse(status=HTTPStatus.OK, body=body, url=canonical)


def build_routes(route_lists: cabc.Sequence[cabc.Sequence[Route]]) -> Router:
    """Default wrap function: flatten per-loader route lists into a Router."""
    return Router(route for routes in route_lists for route in routes)


__all__ = ["Route", "RouteHandler", "RouteResponse", "Router", "build_routes"]
