"""Build pipeline orchestration: template, parse, extend, lay out.

:func:`render_source` runs the stages for one loaded page source in order:

1. The template engine (when configured) expands the body against the page
   data, the page identity, and the ``pages`` index.
2. The first parser accepting the source path turns the body into a node
   tree. Parser-derived values only fill keys the page does not already have.
3. Extensions run in registration order over the tree and the page data.
4. The selected layout wraps the content into the final document.

Each stage failure surfaces as a :class:`~pageflow.errors.PipelineError`
subclass so the route boundary can decide whether it is page-local.
"""

from __future__ import annotations

import logging
import types
import typing as typ

from bs4 import BeautifulSoup
from jinja2 import TemplateError as JinjaTemplateError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from pageflow._constants import LAYOUT_KEY, PAGES_KEY
from pageflow.errors import (
    BuilderError,
    ExtensionError,
    NoParserFoundError,
    ParseError,
    PipelineError,
    TemplateError,
)
from pageflow.index import MISSING_PAGE_INDEX
from pageflow.layouts import select_layout
from pageflow.parsers import ParsedDocument, select_parser

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from pageflow.config.models import PageConfig
    from pageflow.pages import BuildContext, LoadedContent, Page, PageSource, RenderedPage

logger = logging.getLogger(__name__)

DATA_SUFFIXES = (".yaml", ".yml", ".json")


def read_data_dir(data_dir: Path) -> dict[str, typ.Any]:
    """Load every YAML/JSON file in ``data_dir`` keyed by its file stem.

    A missing directory yields an empty mapping. JSON is parsed by the YAML
    1.2 loader, of which it is a subset.

    Raises
    ------
    TemplateError
        If a data file cannot be parsed.
    """
    if not data_dir.is_dir():
        logger.debug("Data directory %s does not exist", data_dir)
        return {}
    loader = YAML(typ="safe")
    loader.version = (1, 2)
    values: dict[str, typ.Any] = {}
    for path in sorted(data_dir.iterdir()):
        if not path.is_file() or path.suffix.lower() not in DATA_SUFFIXES:
            continue
        try:
            with path.open("r", encoding="utf-8") as handle:
                values[path.stem] = loader.load(handle)
        except YAMLError as exc:
            msg = f"Data file '{path}' is not valid YAML/JSON: {exc}"
            raise TemplateError(msg) from exc
    return values


def _template_context(
    source: PageSource, data: cabc.Mapping[str, typ.Any]
) -> dict[str, typ.Any]:
    context = dict(data)
    context.setdefault("page", {"url": source.url, "path": source.path})
    context.setdefault(PAGES_KEY, MISSING_PAGE_INDEX)
    return context


def _apply_template(source: PageSource, body: str, data: dict[str, typ.Any]) -> str:
    engine = source.config.template_engine
    if engine is None:
        return body
    return engine.render(body, _template_context(source, data), loader=source.loader)


def _parse(source: PageSource, content: str) -> ParsedDocument:
    parser = select_parser(source.config.parsers, source.path)
    if parser is None:
        if not content.strip():
            return ParsedDocument.empty()
        names = ", ".join(parser.name for parser in source.config.parsers) or "<none>"
        msg = f"No parser accepts '{source.path}'. Configured parsers: {names}"
        raise NoParserFoundError(msg)
    try:
        return parser.parse(content, source=source)
    except PipelineError:
        raise
    except Exception as exc:
        msg = f"Parser '{parser.name}' failed on {source.url}: {exc}"
        raise ParseError(msg) from exc


def _run_extensions(
    source: PageSource, nodes: BeautifulSoup, data: dict[str, typ.Any]
) -> BeautifulSoup:
    for extension in source.config.extensions:
        try:
            replacement = extension.apply(nodes, data, source=source)
        except PipelineError:
            raise
        except Exception as exc:
            msg = f"Extension '{extension.name}' failed on {source.url}: {exc}"
            raise ExtensionError(msg) from exc
        if replacement is not None:
            nodes = replacement
    return nodes


def _apply_layout(page: Page, nodes: BeautifulSoup, config: PageConfig) -> str:
    layout = select_layout(config.layouts, _layout_name(page.data))
    if layout is None:
        return str(nodes)
    try:
        return layout.render(page, nodes)
    except PipelineError:
        raise
    except JinjaTemplateError as exc:
        msg = f"Layout '{layout.name}' failed for {page.url}: {exc}"
        raise TemplateError(msg) from exc
    except Exception as exc:
        msg = f"Layout '{layout.name}' raised {type(exc).__name__} for {page.url}: {exc}"
        raise TemplateError(msg) from exc


def _layout_name(data: cabc.Mapping[str, typ.Any]) -> str | None:
    value = data.get(LAYOUT_KEY)
    if value is None:
        return None
    return str(value).strip() or None


def render_source(
    source: PageSource, loaded: LoadedContent, context: BuildContext
) -> RenderedPage:
    """Run every pipeline stage for ``source`` and return the rendered page.

    Parameters
    ----------
    source : PageSource
        The source being built.
    loaded : LoadedContent
        Output of the source's load phase.
    context : BuildContext
        Build context carrying the eager page index, if any.

    Returns
    -------
    RenderedPage
        The immutable page and its final document.
    """
    from pageflow.pages import Page, RenderedPage

    data = dict(loaded.data)
    if context.index is not None:
        data[PAGES_KEY] = context.index

    if source.builder is not None:
        page = Page(
            path=source.path,
            url=source.url,
            content="",
            data=types.MappingProxyType(data),
            config=source.config,
            loader=source.loader,
        )
        try:
            html = source.builder(page)
        except PipelineError:
            raise
        except Exception as exc:
            msg = f"Builder for {source.url} failed: {exc}"
            raise BuilderError(msg) from exc
        if not source.apply_layout:
            return RenderedPage(page=page, document=html)
        nodes = BeautifulSoup(html, "html.parser")
        return RenderedPage(page=page, document=_apply_layout(page, nodes, source.config))

    content = _apply_template(source, loaded.body, data)
    parsed = _parse(source, content)
    for key, value in parsed.data.items():
        data.setdefault(key, value)
    nodes = _run_extensions(source, parsed.nodes, data)
    page = Page(
        path=source.path,
        url=source.url,
        content=content,
        data=types.MappingProxyType(data),
        config=source.config,
        loader=source.loader,
    )
    return RenderedPage(page=page, document=_apply_layout(page, nodes, source.config))


__all__ = ["DATA_SUFFIXES", "read_data_dir", "render_source"]
