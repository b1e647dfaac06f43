"""Shared fixtures for pageflow tests."""

from __future__ import annotations

import typing as typ

import pytest

from pageflow.config import GlobalConfigResolver, PageConfig
from pageflow.extensions import HeadingAnchorsExtension, TableOfContentsExtension
from pageflow.layouts import JinjaLayout
from pageflow.parsers import HtmlParser, MarkdownParser
from pageflow.templating import JinjaTemplateEngine

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path


@pytest.fixture
def write_tree(tmp_path: Path) -> cabc.Callable[[dict[str, str]], Path]:
    """Return a helper that writes ``{relative_path: text}`` under ``content/``."""
    root = tmp_path / "content"

    def _write(files: dict[str, str]) -> Path:
        for relative, text in files.items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        root.mkdir(parents=True, exist_ok=True)
        return root

    return _write


@pytest.fixture
def layouts() -> tuple[JinjaLayout, ...]:
    """Return a default and a blog layout with easily asserted markup."""
    return (
        JinjaLayout(
            "default",
            template=(
                "<html><head><title>{{ head.title or '' }}</title></head>"
                '<body class="default">{{ content }}</body></html>'
            ),
        ),
        JinjaLayout(
            "blog",
            template='<article class="blog">{{ content }}</article>',
        ),
    )


@pytest.fixture
def page_config(layouts: tuple[JinjaLayout, ...]) -> PageConfig:
    """Return a config with markdown/html parsers, both extensions and templating."""
    return PageConfig(
        parsers=(MarkdownParser(), HtmlParser()),
        extensions=(HeadingAnchorsExtension(), TableOfContentsExtension()),
        layouts=layouts,
        template_engine=JinjaTemplateEngine(),
    )


@pytest.fixture
def resolver(page_config: PageConfig) -> GlobalConfigResolver:
    """Return a resolver applying ``page_config`` everywhere."""
    return GlobalConfigResolver(page_config)
