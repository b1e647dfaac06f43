"""Template stage: render raw page bodies against page data with Jinja2.

The template engine runs before parsing. It substitutes values from the
page's accumulated data (``{{ title }}``), supports Jinja's block constructs
for iteration and conditionals (``{% for post in pages.values() %}``), and
resolves ``{% include "name" %}`` directives through the owning loader's
``read_partial`` capability so partials stay scoped to one origin.

Undefined variables raise instead of rendering empty strings, so a typo in a
page surfaces as a page-local :class:`~pageflow.errors.TemplateError`.
"""

from __future__ import annotations

import threading
import typing as typ

from jinja2 import BaseLoader, Environment, StrictUndefined, TemplateNotFound
from jinja2 import TemplateError as JinjaTemplateError

from pageflow.errors import PartialNotFoundError, PipelineError, TemplateError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from pageflow.loaders import RouteLoader


class TemplateEngine(typ.Protocol):
    """Pre-process raw content text against a data mapping."""

    def render(
        self,
        text: str,
        data: cabc.Mapping[str, typ.Any],
        *,
        loader: RouteLoader,
    ) -> str:
        """Return ``text`` with directives expanded using ``data``."""
        ...


class _PartialLoader(BaseLoader):
    """Jinja loader that reads include targets from a route loader."""

    def __init__(self, route_loader: RouteLoader) -> None:
        self.route_loader = route_loader

    def get_source(
        self, environment: Environment, template: str
    ) -> tuple[str, str | None, cabc.Callable[[], bool] | None]:
        read_partial = getattr(self.route_loader, "read_partial", None)
        if read_partial is None:
            raise TemplateNotFound(template)
        try:
            source = read_partial(template)
        except PartialNotFoundError as exc:
            raise TemplateNotFound(template) from exc
        # Always report stale so watched partials are re-read.
        return source, None, lambda: False


class JinjaTemplateEngine:
    """Render page bodies with a strict Jinja2 environment per loader.

    Parameters
    ----------
    strict : bool, optional
        Raise on undefined variables (default). When ``False`` undefined
        values render as empty strings.
    """

    def __init__(self, *, strict: bool = True) -> None:
        self.strict = strict
        self._environments: dict[int, Environment] = {}
        self._lock = threading.Lock()

    def environment_for(self, loader: RouteLoader) -> Environment:
        """Return the cached environment bound to ``loader``'s partials."""
        key = id(loader)
        with self._lock:
            env = self._environments.get(key)
            if env is None:
                options: dict[str, typ.Any] = {}
                if self.strict:
                    options["undefined"] = StrictUndefined
                env = Environment(
                    loader=_PartialLoader(loader),
                    autoescape=False,
                    keep_trailing_newline=True,
                    **options,
                )
                self._environments[key] = env
            return env

    def render(
        self,
        text: str,
        data: cabc.Mapping[str, typ.Any],
        *,
        loader: RouteLoader,
    ) -> str:
        """Render ``text`` with ``data`` and return the expanded body.

        Raises
        ------
        PartialNotFoundError
            If an include names a partial the loader cannot provide.
        TemplateError
            If rendering fails, for example on an undefined variable or an
            expression that raises.
        """
        env = self.environment_for(loader)
        try:
            return env.from_string(text).render(dict(data))
        except TemplateNotFound as exc:
            msg = f"Partial '{exc.name}' not found in loader '{loader.name}'."
            raise PartialNotFoundError(msg) from exc
        except PipelineError:
            raise
        except JinjaTemplateError as exc:
            msg = f"Template rendering failed: {exc}"
            raise TemplateError(msg) from exc
        except Exception as exc:
            msg = f"Template raised {type(exc).__name__}: {exc}"
            raise TemplateError(msg) from exc


__all__ = ["JinjaTemplateEngine", "TemplateEngine"]
