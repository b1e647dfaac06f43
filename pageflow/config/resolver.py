"""Resolve the :class:`PageConfig` that applies to a page URL.

Two strategies are provided. :class:`GlobalConfigResolver` applies one config
to every URL. :class:`PatternConfigResolver` evaluates an ordered list of
path-glob rules: the first specific rule matching a URL wins, and a catch-all
rule (``**``) answers any URL no specific rule matched. Resolution is a pure
function of the URL and the registered rules.

Patterns are matched segment by segment over ``/``-separated URLs:

* an exact segment (``blog``) matches only itself;
* ``*`` matches exactly one segment (``fnmatch`` wildcards such as
  ``post-*`` are allowed inside a segment);
* ``**`` matches zero or more segments.

Example
-------
>>> from pageflow.config.models import PageConfig
>>> from pageflow.config.resolver import PatternConfigResolver
>>> blog, default = PageConfig(), PageConfig(enable_front_matter=False)
>>> resolver = PatternConfigResolver([("/blog/**", blog), ("**", default)])
>>> resolver.resolve("/blog/2024/hello") is blog
True
>>> resolver.resolve("/about") is default
True
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import fnmatch
import functools
import typing as typ

from pageflow.errors import UnresolvedConfigError

if typ.TYPE_CHECKING:
    from pageflow.config.models import PageConfig

RECURSIVE_WILDCARD = "**"
SEGMENT_WILDCARD = "*"


class ConfigResolver(typ.Protocol):
    """Map a candidate page URL to the config that governs it."""

    def resolve(self, url: str) -> PageConfig:
        """Return the config for ``url`` or raise UnresolvedConfigError."""
        ...


def split_url(url: str) -> tuple[str, ...]:
    """Return the non-empty path segments of ``url``."""
    return tuple(segment for segment in url.split("/") if segment)


@dc.dataclass(frozen=True, slots=True)
class UrlPattern:
    """A compiled path-glob pattern over URL segments."""

    source: str
    segments: tuple[str, ...]

    @classmethod
    def compile(cls, pattern: str) -> UrlPattern:
        """Compile ``pattern`` into its segment form."""
        return cls(source=pattern, segments=split_url(pattern))

    @property
    def is_catch_all(self) -> bool:
        """Return ``True`` when the pattern matches every URL."""
        return self.segments == (RECURSIVE_WILDCARD,)

    def matches(self, url: str) -> bool:
        """Return ``True`` when ``url`` satisfies the pattern."""
        return _match_segments(self.segments, split_url(url))


@functools.lru_cache(maxsize=4096)
def _match_segments(pattern: tuple[str, ...], parts: tuple[str, ...]) -> bool:
    if not pattern:
        return not parts
    head, rest = pattern[0], pattern[1:]
    if head == RECURSIVE_WILDCARD:
        # Zero segments consumed, or one segment consumed with ** kept.
        return _match_segments(rest, parts) or (
            bool(parts) and _match_segments(pattern, parts[1:])
        )
    if not parts:
        return False
    if head == SEGMENT_WILDCARD or fnmatch.fnmatchcase(parts[0], head):
        return _match_segments(rest, parts[1:])
    return False


class GlobalConfigResolver:
    """Resolve every URL to a single shared config."""

    def __init__(self, config: PageConfig) -> None:
        self.config = config

    def resolve(self, url: str) -> PageConfig:  # noqa: ARG002
        """Return the shared config."""
        return self.config


class PatternConfigResolver:
    """Resolve URLs against ordered ``(pattern, config)`` rules.

    Specific rules are evaluated in registration order and the first match
    wins; ties between equally specific patterns therefore go to the rule
    registered first. When no specific rule matches, the last registered
    catch-all rule is used. Without a catch-all, resolution fails with
    :class:`~pageflow.errors.UnresolvedConfigError`.
    """

    def __init__(
        self, rules: cabc.Iterable[tuple[str, PageConfig]] = ()
    ) -> None:
        self._rules: list[tuple[UrlPattern, PageConfig]] = []
        self._catch_all: PageConfig | None = None
        for pattern, config in rules:
            self.add_rule(pattern, config)

    def add_rule(self, pattern: str, config: PageConfig) -> None:
        """Register ``config`` for URLs matching ``pattern``."""
        compiled = UrlPattern.compile(pattern)
        if compiled.is_catch_all:
            self._catch_all = config
            return
        self._rules.append((compiled, config))

    @property
    def patterns(self) -> list[str]:
        """Return the specific rule patterns in evaluation order."""
        return [pattern.source for pattern, _config in self._rules]

    def resolve(self, url: str) -> PageConfig:
        """Return the config of the first rule matching ``url``.

        Raises
        ------
        UnresolvedConfigError
            If no specific rule matches and no catch-all is registered.
        """
        for pattern, config in self._rules:
            if pattern.matches(url):
                return config
        if self._catch_all is not None:
            return self._catch_all
        known = ", ".join(self.patterns) or "<none>"
        msg = f"No configuration rule matches '{url}'. Known patterns: {known}"
        raise UnresolvedConfigError(msg)


__all__ = [
    "ConfigResolver",
    "GlobalConfigResolver",
    "PatternConfigResolver",
    "UrlPattern",
    "split_url",
]
