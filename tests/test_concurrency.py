"""Tests for single-flight builds, invalidation and the eager page index."""

from __future__ import annotations

import concurrent.futures as cf
import threading
import time
import typing as typ

import pytest

from pageflow._once import OnceCell
from pageflow.app import ContentApp
from pageflow.config import GlobalConfigResolver, PageConfig
from pageflow.errors import PageNotFoundError
from pageflow.index import PageIndex
from pageflow.loaders import CustomLoader, MemoryLoader, MemoryPage
from pageflow.parsers import MarkdownParser
from pageflow.templating import JinjaTemplateEngine

if typ.TYPE_CHECKING:
    from pageflow.pages import PageSource


def test_concurrent_builds_collapse_into_one(resolver: GlobalConfigResolver) -> None:
    """Many threads requesting one page should trigger a single load and build."""
    gate = threading.Event()
    reads: list[str] = []

    def read(path: str) -> str:
        reads.append(path)
        gate.wait(timeout=5)
        return "# Slow\n"

    loader = CustomLoader("slow", lambda: ["slow.md"], read)
    app = ContentApp([loader], resolver).start()
    (source,) = app.sources

    with cf.ThreadPoolExecutor(max_workers=16) as pool:
        futures = [pool.submit(app.render, "/slow") for _ in range(16)]
        gate.set()
        documents = {future.result(timeout=10) for future in futures}

    assert len(documents) == 1, "expected every caller to observe the same document"
    assert source.load_count == 1, f"expected one load, got {source.load_count}"
    assert source.build_count == 1, f"expected one build, got {source.build_count}"
    assert reads == ["slow.md"], f"expected one read, got {reads!r}"


def test_failed_builds_are_not_cached(resolver: GlobalConfigResolver) -> None:
    """An exception should propagate and the next request should retry."""
    attempts: list[int] = []

    def read(path: str) -> str:
        attempts.append(1)
        if len(attempts) == 1:
            msg = f"{path} is temporarily unavailable"
            raise PageNotFoundError(msg)
        return "# Recovered\n"

    app = ContentApp([CustomLoader("flaky", lambda: ["a.md"], read)], resolver)

    with pytest.raises(PageNotFoundError):
        app.render("/a")
    assert "Recovered" in app.render("/a"), "expected the retry to succeed"
    assert len(attempts) == 2, "expected the failed read to be retried"


def test_invalidate_evicts_without_rebuilding(resolver: GlobalConfigResolver) -> None:
    """Invalidation should drop cached results and rebuild only on request."""
    store = {"a.md": "# One\n"}
    app = ContentApp(
        [CustomLoader("store", lambda: list(store), store.__getitem__)], resolver
    ).start()
    (source,) = app.sources
    assert "One" in app.render("/a"), "expected the first version"

    store["a.md"] = "# Two\n"
    source.invalidate()

    assert not source.is_built, "expected the rendered page to be evicted"
    assert not source.is_loaded, "expected the loaded content to be evicted"
    assert source.build_count == 1, "expected no rebuild until requested"
    assert "Two" in app.render("/a"), "expected the new version after invalidation"
    assert source.build_count == 2, "expected exactly one rebuild"


def test_stale_in_flight_value_is_returned_but_not_stored() -> None:
    """A value built before invalidation should not satisfy later callers."""
    cell: OnceCell[int] = OnceCell()
    calls: list[int] = []

    def factory() -> int:
        calls.append(1)
        if len(calls) == 1:
            cell.invalidate()
        return len(calls)

    assert cell.get_or_init(factory) == 1, "expected the in-flight caller to get its value"
    assert not cell.is_set, "expected the stale value not to be stored"
    assert cell.get_or_init(factory) == 2, "expected a rebuild after invalidation"
    assert cell.get_or_init(factory) == 2, "expected the rebuilt value to be cached"


def _index_probe_app(observed: list[PageIndex]) -> tuple[ContentApp, list[str]]:
    def capture(page: typ.Any) -> str:
        observed.append(page.data["pages"])
        return "<p>probe</p>"

    pages = [
        MemoryPage("a.md", content="---\ntitle: A\n---\n{{ pages | length }} pages\n"),
        MemoryPage("b.md", content="---\ntitle: B\n---\n{{ pages['/a'].title }}\n"),
        MemoryPage("c.md", builder=capture, data={"title": "C"}),
    ]
    config = PageConfig(parsers=(MarkdownParser(),), template_engine=JinjaTemplateEngine())
    app = ContentApp([MemoryLoader(pages)], GlobalConfigResolver(config), eager=True)
    return app, ["/a", "/b", "/c"]


def test_eager_index_holds_every_page_before_render() -> None:
    """Under eager loading every render should see the complete page index."""
    observed: list[PageIndex] = []
    app, urls = _index_probe_app(observed)

    app.start()

    assert all(source.is_loaded for source in app.sources), (
        "expected every source to be loaded at startup"
    )
    assert not any(source.is_built for source in app.sources), (
        "expected rendering to wait until requested"
    )
    assert app.render("/a") == "<p>3 pages</p>", "expected the index to list three pages"
    assert app.render("/b") == "<p>A</p>", "expected cross-page data lookups"
    app.render("/c")
    (index,) = observed
    assert sorted(index) == urls, f"unexpected index keys {sorted(index)!r}"
    assert index["/c"]["title"] == "C", "expected loader data in the index"
    assert "pages" not in index["/a"], "expected index entries to exclude the index"


def test_eager_loading_respects_loader_concurrency() -> None:
    """The eager fan-out should never exceed the loader's concurrency bound."""
    active = 0
    peak = 0
    lock = threading.Lock()

    def read(path: str) -> str:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.01)
        with lock:
            active -= 1
        return f"# {path}\n"

    paths = [f"p{number}.md" for number in range(12)]
    loader = CustomLoader("bounded", lambda: paths, read, max_concurrency=2)
    config = PageConfig(parsers=(MarkdownParser(),))
    app = ContentApp([loader], GlobalConfigResolver(config), eager=True).start()

    assert len(typ.cast("PageIndex", app.page_index())) == 12, "expected all pages indexed"
    assert peak <= 2, f"expected at most two concurrent reads, saw {peak}"


def test_lazy_app_has_no_index(resolver: GlobalConfigResolver) -> None:
    """Lazy apps should never build a page index."""
    app = ContentApp([MemoryLoader([MemoryPage("a.md", content="x")])], resolver).start()
    sources: list[PageSource] = app.sources

    assert app.page_index() is None, "expected no index in lazy mode"
    assert not sources[0].is_loaded, "expected lazy sources to stay unloaded"
