"""Utility helpers shared by the pageflow configuration loader.

Parsers, extensions and loader kinds are chosen by name through the
registries below; each name maps to a factory taking the merged settings
mapping for one page configuration or source entry.
"""

from __future__ import annotations

import collections.abc as cabc
import typing as typ
from pathlib import Path

from pageflow.extensions import HeadingAnchorsExtension, TableOfContentsExtension
from pageflow.layouts import default_layout, load_layouts
from pageflow.loaders import FilesystemLoader, GitHubLoader
from pageflow.parsers import HtmlParser, MarkdownParser
from pageflow.templating import JinjaTemplateEngine

from .models import PageConfig, SiteConfigError, SourceSpec

if typ.TYPE_CHECKING:
    from pageflow.extensions import PageExtension
    from pageflow.layouts import PageLayout
    from pageflow.loaders import RouteLoader
    from pageflow.parsers import PageParser

Settings = cabc.Mapping[str, typ.Any]

DEFAULT_PARSERS = ("markdown", "html")
DEFAULT_EXTENSIONS = ("heading_anchors", "toc")
DEFAULT_PYGMENTS_STYLE = "monokai"

PARSER_FACTORIES: dict[str, cabc.Callable[[Settings], PageParser]] = {
    "markdown": lambda settings: MarkdownParser(
        settings.get("pygments_style", DEFAULT_PYGMENTS_STYLE)
    ),
    "html": lambda _settings: HtmlParser(),
}

EXTENSION_FACTORIES: dict[str, cabc.Callable[[Settings], PageExtension]] = {
    "heading_anchors": lambda _settings: HeadingAnchorsExtension(),
    "toc": lambda settings: TableOfContentsExtension(
        levels=tuple(settings.get("toc_levels", (2, 3)))
    ),
}


def _string_list(value: object, *, field: str) -> list[str]:
    """Normalize a scalar or list setting into a list of non-empty strings."""
    match value:
        case None:
            return []
        case str():
            return [segment for segment in value.replace(",", " ").split() if segment]
        case list() | tuple():
            return [str(item).strip() for item in value if str(item).strip()]
        case _:
            msg = f"Setting '{field}' must be a string or a list, got {value!r}"
            raise SiteConfigError(msg)


def _resolve_path(base_dir: Path, value: object | None) -> Path | None:
    """Return ``value`` as a path anchored at ``base_dir``, or None when unset."""
    if value is None or value is False:
        return None
    text = str(value).strip()
    if not text:
        return None
    path = Path(text).expanduser()
    return path if path.is_absolute() else base_dir / path


def _build_from_registry(
    names: cabc.Iterable[str],
    registry: cabc.Mapping[str, cabc.Callable[[Settings], typ.Any]],
    settings: Settings,
    *,
    kind: str,
) -> tuple[typ.Any, ...]:
    built = []
    for name in names:
        factory = registry.get(name)
        if factory is None:
            known = ", ".join(sorted(registry))
            msg = f"Unknown {kind} '{name}'. Known {kind}s: {known}"
            raise SiteConfigError(msg)
        built.append(factory(settings))
    return tuple(built)


class LayoutCache:
    """Load each layouts directory once and share the result across rules."""

    def __init__(self) -> None:
        self._cache: dict[tuple[Path | None, str | None], tuple[PageLayout, ...]] = {}

    def get(self, layouts_dir: Path | None, default: str | None) -> tuple[PageLayout, ...]:
        key = (layouts_dir, default)
        if key not in self._cache:
            if layouts_dir is None:
                self._cache[key] = (default_layout(),)
            else:
                try:
                    self._cache[key] = tuple(load_layouts(layouts_dir, default=default))
                except FileNotFoundError as exc:
                    raise SiteConfigError(str(exc)) from exc
        return self._cache[key]


def _build_page_config(
    settings: Settings, *, base_dir: Path, layouts: LayoutCache
) -> PageConfig:
    """Build a PageConfig from merged default and rule settings."""
    parser_names = _string_list(settings.get("parsers", DEFAULT_PARSERS), field="parsers")
    extension_names = _string_list(
        settings.get("extensions", DEFAULT_EXTENSIONS), field="extensions"
    )
    templating = settings.get("templating", True)
    return PageConfig(
        parsers=_build_from_registry(parser_names, PARSER_FACTORIES, settings, kind="parser"),
        extensions=_build_from_registry(
            extension_names, EXTENSION_FACTORIES, settings, kind="extension"
        ),
        layouts=layouts.get(
            _resolve_path(base_dir, settings.get("layouts_dir")),
            settings.get("default_layout"),
        ),
        template_engine=JinjaTemplateEngine() if templating else None,
        enable_front_matter=bool(settings.get("front_matter", True)),
        data_dir=_resolve_path(base_dir, settings.get("data_dir")),
    )


def _build_filesystem_loader(
    options: Settings, *, base_dir: Path, token: str | None  # noqa: ARG001
) -> RouteLoader:
    root = _resolve_path(base_dir, options.get("root", "content"))
    return FilesystemLoader(
        typ.cast("Path", root),
        name=options.get("name"),
        keep_suffix=_string_list(options.get("keep_suffix"), field="keep_suffix"),
    )


def _build_github_loader(
    options: Settings, *, base_dir: Path, token: str | None  # noqa: ARG001
) -> RouteLoader:
    repo = options.get("repo")
    if not repo:
        msg = "GitHub sources require a 'repo' in 'owner/name' form."
        raise SiteConfigError(msg)
    try:
        return GitHubLoader(
            str(repo),
            ref=str(options.get("ref", "main")),
            path=str(options.get("path", "docs/")),
            token=options.get("token") or token,
            keep_suffix=_string_list(options.get("keep_suffix"), field="keep_suffix"),
            commit_dates=bool(options.get("commit_dates", False)),
            name=options.get("name"),
        )
    except ValueError as exc:
        raise SiteConfigError(str(exc)) from exc


LOADER_FACTORIES: dict[str, cabc.Callable[..., RouteLoader]] = {
    "filesystem": _build_filesystem_loader,
    "github": _build_github_loader,
}


def build_loaders(
    sources: cabc.Iterable[SourceSpec],
    *,
    base_dir: Path,
    token: str | None = None,
) -> list[RouteLoader]:
    """Instantiate one loader per source entry.

    Raises
    ------
    SiteConfigError
        If a source names an unknown loader kind.
    """
    loaders = []
    for spec in sources:
        factory = LOADER_FACTORIES.get(spec.kind)
        if factory is None:
            known = ", ".join(sorted(LOADER_FACTORIES))
            msg = f"Unknown source kind '{spec.kind}'. Known kinds: {known}"
            raise SiteConfigError(msg)
        loaders.append(factory(spec.options, base_dir=base_dir, token=token))
    return loaders


__all__ = [
    "DEFAULT_EXTENSIONS",
    "DEFAULT_PARSERS",
    "EXTENSION_FACTORIES",
    "LOADER_FACTORIES",
    "PARSER_FACTORIES",
    "LayoutCache",
    "build_loaders",
]
