"""Tests for in-memory and callable-backed loaders."""

from __future__ import annotations

import typing as typ

import pytest

from pageflow.app import ContentApp
from pageflow.errors import DiscoveryError, PartialNotFoundError, SourceReadError
from pageflow.loaders import CustomLoader, MemoryLoader, MemoryPage

if typ.TYPE_CHECKING:
    from pageflow.config import GlobalConfigResolver
    from pageflow.pages import Page


def test_memory_page_requires_exactly_one_body() -> None:
    """A memory page must carry content or a builder, not both or neither."""
    with pytest.raises(ValueError, match="exactly one"):
        MemoryPage("a.md")
    with pytest.raises(ValueError, match="exactly one"):
        MemoryPage("a.md", content="x", builder=lambda page: "x")


def test_memory_content_runs_full_pipeline(resolver: GlobalConfigResolver) -> None:
    """Content pages should be templated, parsed and laid out like files."""
    loader = MemoryLoader(
        [MemoryPage("guide.md", content="# {{ name }}\n", data={"name": "Guide"})]
    )
    app = ContentApp([loader], resolver)

    document = app.render("/guide")

    assert '<h1 id="guide">Guide</h1>' in document, f"unexpected document: {document}"
    assert 'class="default"' in document, "expected the default layout to wrap content"


def test_builder_pages_bypass_pipeline(resolver: GlobalConfigResolver) -> None:
    """Builder output should not be parsed, and only wrapped when requested."""
    seen: list[Page] = []

    def build(page: Page) -> str:
        seen.append(page)
        return "<p>{{ raw }}</p>"

    loader = MemoryLoader(
        [
            MemoryPage("raw.md", builder=build, data={"title": "Raw"}),
            MemoryPage("wrapped.md", builder=build, apply_layout=True),
        ]
    )
    app = ContentApp([loader], resolver)

    assert app.render("/raw") == "<p>{{ raw }}</p>", "expected untouched builder output"
    wrapped = app.render("/wrapped")
    assert wrapped.startswith("<html>"), f"expected layout wrapping, got {wrapped!r}"
    assert seen[0].data["title"] == "Raw", "expected builder to see page data"


def test_memory_partials(resolver: GlobalConfigResolver) -> None:
    """Template includes should resolve against the loader's partials."""
    loader = MemoryLoader(
        [MemoryPage("index.md", content='{% include "footer.md" %}\n')],
        partials={"footer.md": "Footer text"},
    )

    assert "<p>Footer text</p>" in ContentApp([loader], resolver).render("/"), (
        "expected the partial to be included"
    )
    with pytest.raises(PartialNotFoundError):
        loader.read_partial("missing.md")


def test_custom_loader_uses_callables(resolver: GlobalConfigResolver) -> None:
    """A custom loader should list and read through its callables."""
    store = {"index.md": "# Home\n", "docs/setup.md": "# Setup\n", "_skip.md": "x"}
    loader = CustomLoader("store", lambda: list(store), store.__getitem__)

    sources = loader.discover(resolver)

    assert [source.url for source in sources] == ["/docs/setup", "/"], (
        f"unexpected URLs {[source.url for source in sources]!r}"
    )
    assert "<h1" in ContentApp([loader], resolver).render("/docs/setup"), (
        "expected custom content to render"
    )
    with pytest.raises(PartialNotFoundError):
        loader.read_partial("nav.md")


def test_custom_loader_listing_failure_is_discovery_error(
    resolver: GlobalConfigResolver,
) -> None:
    """Exceptions from the listing callable should become DiscoveryError."""

    def broken() -> list[str]:
        msg = "backend offline"
        raise OSError(msg)

    loader = CustomLoader("broken", broken, lambda path: "")

    with pytest.raises(DiscoveryError, match="backend offline") as excinfo:
        loader.discover(resolver)

    assert isinstance(excinfo.value.__cause__, OSError), "expected the cause to be chained"


def test_memory_loader_rejects_duplicate_paths() -> None:
    """Two memory pages sharing a path should be refused, not merged."""
    with pytest.raises(ValueError, match="Duplicate memory page path 'a.md'"):
        MemoryLoader(
            [MemoryPage("a.md", content="one"), MemoryPage("/a.md", content="two")]
        )


def test_custom_loader_read_failure_is_page_local(resolver: GlobalConfigResolver) -> None:
    """A read callable that raises should fail only the page being read."""

    def read(path: str) -> str:
        if path == "broken.md":
            msg = "row locked"
            raise LookupError(msg)
        return "# Fine\n"

    loader = CustomLoader("store", lambda: ["fine.md", "broken.md"], read)
    app = ContentApp([loader], resolver)

    with pytest.raises(SourceReadError, match="row locked"):
        app.render("/broken")
    assert app.handle("/broken").status == 500, "expected a 500 for the broken page"
    assert app.handle("/fine").ok, "expected the other page to render"
