"""In-memory route loader for programmatically defined pages.

A :class:`MemoryPage` either carries raw ``content``, which then runs through
the normal pipeline exactly like a file would, or a ``builder`` callable that
produces the content HTML directly. Builder output skips templating, parsing
and extensions, and is only wrapped in a layout when ``apply_layout`` is set.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import logging
import typing as typ

from pageflow.errors import PageNotFoundError, PartialNotFoundError
from pageflow.pages import PageSource
from pageflow.paths import derive_url

if typ.TYPE_CHECKING:
    from pageflow.config.resolver import ConfigResolver
    from pageflow.pages import PageBuilder

logger = logging.getLogger(__name__)


@dc.dataclass(frozen=True, slots=True)
class MemoryPage:
    """One page defined in code.

    Attributes
    ----------
    path : str
        Logical path; the URL is derived from it like a file path.
    content : str, optional
        Raw page content run through the full pipeline.
    builder : Callable[[Page], str], optional
        Callable returning the content HTML directly.
    data : Mapping[str, Any]
        Default page data; front-matter in ``content`` overrides it.
    apply_layout : bool
        Wrap builder output in the selected layout.
    """

    path: str
    content: str | None = None
    builder: PageBuilder | None = None
    data: cabc.Mapping[str, typ.Any] = dc.field(default_factory=dict)
    apply_layout: bool = False

    def __post_init__(self) -> None:
        if (self.content is None) == (self.builder is None):
            msg = f"Memory page '{self.path}' needs exactly one of content or builder"
            raise ValueError(msg)


class MemoryLoader:
    """Serve a fixed list of :class:`MemoryPage` definitions.

    Parameters
    ----------
    pages : Iterable[MemoryPage]
        Page definitions; their paths must be unique.
    name : str, optional
        Loader name used in logs.
    partials : Mapping[str, str], optional
        Include targets available to the template engine.
    keep_suffix : Sequence[str], optional
        Path globs that keep their suffix in the URL.

    Raises
    ------
    ValueError
        If two pages share a path.
    """

    max_concurrency = 32

    def __init__(
        self,
        pages: cabc.Iterable[MemoryPage],
        *,
        name: str = "memory",
        partials: cabc.Mapping[str, str] | None = None,
        keep_suffix: cabc.Sequence[str] = (),
    ) -> None:
        self.name = name
        self.pages: dict[str, MemoryPage] = {}
        for page in pages:
            path = page.path.strip("/")
            if path in self.pages:
                msg = f"Duplicate memory page path '{path}' in loader '{name}'"
                raise ValueError(msg)
            self.pages[path] = page
        self.partials = dict(partials or {})
        self.keep_suffix = tuple(keep_suffix)

    def __repr__(self) -> str:
        return f"MemoryLoader(name={self.name!r}, pages={len(self.pages)})"

    def discover(self, resolver: ConfigResolver) -> list[PageSource]:
        """Return one source per page definition."""
        sources = []
        for path, page in self.pages.items():
            url = derive_url(path, keep_suffix=self.keep_suffix)
            sources.append(
                PageSource(
                    path=path,
                    url=url,
                    loader=self,
                    config=resolver.resolve(url),
                    data=page.data,
                    builder=page.builder,
                    apply_layout=page.apply_layout if page.builder else True,
                )
            )
        logger.debug("Discovered %d memory sources in %s", len(sources), self.name)
        return sources

    def read(self, source: PageSource) -> str:
        """Return the raw content of ``source``."""
        page = self.pages.get(source.path)
        if page is None or page.content is None:
            msg = f"Memory page '{source.path}' has no content"
            raise PageNotFoundError(msg)
        return page.content

    def read_partial(self, name: str) -> str:
        """Return the partial registered under ``name``."""
        try:
            return self.partials[name]
        except KeyError as exc:
            msg = f"Partial '{name}' is not registered with {self.name}"
            raise PartialNotFoundError(msg) from exc


__all__ = ["MemoryLoader", "MemoryPage"]
