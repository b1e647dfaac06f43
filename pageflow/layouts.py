"""Layouts wrapping processed page content into the final document.

A page selects its layout by name through the front-matter ``layout`` key.
Selection walks the registered layouts in order; when the key is absent or
names no registered layout, the first registered layout is the default.

Layouts are Jinja2 templates. They render with the finished page, its data,
the content HTML, the page index (``pages``), and a :class:`PageHead` derived
from the page data for ``<head>`` metadata.

Example
-------
>>> from pageflow.layouts import JinjaLayout, select_layout
>>> docs = JinjaLayout("docs", template="{{ content }}")
>>> blog = JinjaLayout("blog", template="<article>{{ content }}</article>")
>>> select_layout([docs, blog], "blog").name
'blog'
>>> select_layout([docs, blog], "missing").name
'docs'
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import logging
import typing as typ
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from pageflow._constants import (
    DESCRIPTION_KEY,
    IGNORE_PREFIXES,
    KEYWORDS_KEY,
    PAGES_KEY,
    TITLE_KEY,
    TOC_KEY,
)
from pageflow.errors import LayoutNotFoundError
from pageflow.index import MISSING_PAGE_INDEX

if typ.TYPE_CHECKING:
    from bs4 import BeautifulSoup

    from pageflow.pages import Page

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
DEFAULT_LAYOUT_NAME = "page"
LAYOUT_SUFFIX = ".jinja"


class PageLayout(typ.Protocol):
    """Wrap processed page content into a complete document."""

    name: str

    def render(self, page: Page, nodes: BeautifulSoup) -> str:
        """Return the final document for ``page`` with content ``nodes``."""
        ...


@dc.dataclass(frozen=True, slots=True)
class PageHead:
    """Head metadata derived from page data.

    Attributes
    ----------
    title : str | None
        Document title, from the ``title`` key.
    description : str | None
        Meta description, from the ``description`` key.
    keywords : tuple[str, ...]
        Meta keywords, from a ``keywords`` list or comma-separated string.
    """

    title: str | None = None
    description: str | None = None
    keywords: tuple[str, ...] = ()

    @classmethod
    def from_data(cls, data: cabc.Mapping[str, typ.Any]) -> PageHead:
        """Build head metadata from a page data mapping."""
        return cls(
            title=_optional_str(data.get(TITLE_KEY)),
            description=_optional_str(data.get(DESCRIPTION_KEY)),
            keywords=_normalize_keywords(data.get(KEYWORDS_KEY)),
        )


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _normalize_keywords(value: object | None) -> tuple[str, ...]:
    match value:
        case str():
            parts = value.split(",")
        case cabc.Iterable():
            parts = [str(item) for item in value]
        case _:
            return ()
    return tuple(part.strip() for part in parts if part.strip())


def _build_environment(templates_dir: Path) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=select_autoescape(["html", "xml", "jinja"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


class JinjaLayout:
    """A named layout rendered from a Jinja2 template.

    Parameters
    ----------
    name : str
        Name matched against the page's ``layout`` key.
    template : str, optional
        Inline template source. Mutually exclusive with ``template_name``.
    template_name : str, optional
        Template file looked up in ``environment``.
    environment : Environment, optional
        Environment for ``template_name``; defaults to the package templates.
    """

    def __init__(
        self,
        name: str,
        *,
        template: str | None = None,
        template_name: str | None = None,
        environment: Environment | None = None,
    ) -> None:
        if (template is None) == (template_name is None):
            msg = "Provide exactly one of 'template' or 'template_name'."
            raise ValueError(msg)
        self.name = name
        self.env = environment or _build_environment(TEMPLATES_DIR)
        if template is not None:
            self.template = self.env.from_string(template)
        else:
            self.template = self.env.get_template(typ.cast("str", template_name))

    def __repr__(self) -> str:
        return f"JinjaLayout({self.name!r})"

    def render(self, page: Page, nodes: BeautifulSoup) -> str:
        """Render ``page`` and its content tree through the template."""
        context = {
            "page": page,
            "data": page.data,
            "content": Markup(str(nodes)),
            "head": PageHead.from_data(page.data),
            "toc": page.data.get(TOC_KEY),
            PAGES_KEY: page.data.get(PAGES_KEY, MISSING_PAGE_INDEX),
        }
        return self.template.render(**context)


def default_layout() -> JinjaLayout:
    """Return the package's minimal HTML layout."""
    return JinjaLayout(
        DEFAULT_LAYOUT_NAME, template_name=f"{DEFAULT_LAYOUT_NAME}{LAYOUT_SUFFIX}"
    )


def load_layouts(layouts_dir: Path, *, default: str | None = None) -> list[JinjaLayout]:
    """Register every ``*.jinja`` file in ``layouts_dir`` as a layout.

    Files whose names start with an ignore prefix (``_base.jinja``) are left
    out of the registry but remain available to ``{% extends %}``. Layouts are
    ordered by name, with ``default`` moved to the front when present.

    Raises
    ------
    FileNotFoundError
        If ``layouts_dir`` is not a directory.
    """
    if not layouts_dir.is_dir():
        msg = f"Layouts directory '{layouts_dir}' not found."
        raise FileNotFoundError(msg)
    env = _build_environment(layouts_dir)
    layouts = [
        JinjaLayout(path.stem, template_name=path.name, environment=env)
        for path in sorted(layouts_dir.glob(f"*{LAYOUT_SUFFIX}"))
        if not path.name.startswith(IGNORE_PREFIXES)
    ]
    if default:
        layouts.sort(key=lambda layout: layout.name != default)
    return layouts


def select_layout(
    layouts: cabc.Sequence[PageLayout], name: str | None
) -> PageLayout | None:
    """Return the layout called ``name``, falling back to the first registered.

    Returns ``None`` when no layouts are registered and the page does not ask
    for one.

    Raises
    ------
    LayoutNotFoundError
        If the page names a layout but no layouts are registered.
    """
    if not layouts:
        if name:
            msg = f"Page requests layout '{name}' but no layouts are registered."
            raise LayoutNotFoundError(msg)
        return None
    if name:
        for layout in layouts:
            if layout.name == name:
                return layout
        logger.warning(
            "Layout '%s' is not registered; falling back to '%s'.",
            name,
            layouts[0].name,
        )
    return layouts[0]


__all__ = [
    "DEFAULT_LAYOUT_NAME",
    "JinjaLayout",
    "PageHead",
    "PageLayout",
    "default_layout",
    "load_layouts",
    "select_layout",
]
