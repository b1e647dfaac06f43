"""Source construction shared by the built-in loaders."""

from __future__ import annotations

import typing as typ

from pageflow.pages import PageSource
from pageflow.paths import derive_url

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from pageflow.config.resolver import ConfigResolver
    from pageflow.loaders import RouteLoader


def build_sources(
    loader: RouteLoader,
    paths: cabc.Iterable[str],
    resolver: ConfigResolver,
    *,
    keep_suffix: cabc.Sequence[str] = (),
    data_for: cabc.Callable[[str], cabc.Mapping[str, typ.Any]] | None = None,
) -> list[PageSource]:
    """Create one :class:`PageSource` per path, resolving each URL's config.

    Parameters
    ----------
    loader : RouteLoader
        Loader that owns the sources.
    paths : Iterable[str]
        Origin-relative POSIX paths, already filtered for ignore prefixes.
    resolver : ConfigResolver
        Resolver mapping each derived URL to its config.
    keep_suffix : Sequence[str], optional
        Glob patterns of file names that keep their suffix in the URL.
    data_for : Callable[[str], Mapping[str, Any]], optional
        Returns loader-supplied default data for a path.

    Raises
    ------
    UnresolvedConfigError
        If the resolver has no config for a derived URL.
    """
    sources: list[PageSource] = []
    for path in paths:
        url = derive_url(path, keep_suffix=keep_suffix)
        sources.append(
            PageSource(
                path=path,
                url=url,
                loader=loader,
                config=resolver.resolve(url),
                data=data_for(path) if data_for else None,
            )
        )
    return sources


__all__ = ["build_sources"]
