"""Behaviour tests for building a site from a content directory.

The scenarios live in ``features/site_build.feature``. Each one writes a small
content tree and ``site.yaml`` into a temporary directory, loads it through
:func:`~pageflow.config.load_site_config`, runs the static generator and then
inspects the written HTML with BeautifulSoup.

Usage:
    Run these behaviour tests with pytest, for example:

        pytest tests/bdd/test_site_build.py -v
"""

from __future__ import annotations

import typing as typ
from pathlib import Path

import pytest
from bs4 import BeautifulSoup
from pytest_bdd import given, scenarios, then, when

from pageflow.app import ContentApp
from pageflow.config import load_site_config

if typ.TYPE_CHECKING:
    from pageflow.static import StaticBuildReport

FEATURE_FILE = Path(__file__).resolve().parents[2] / "features" / "site_build.feature"
scenarios(FEATURE_FILE)

BLOG_LAYOUT = (
    "<html><head><title>{{ head.title }}</title></head>"
    '<body><article class="post">{{ content }}</article></body></html>'
)


@pytest.fixture
def scenario_state() -> dict[str, object]:
    """Return a mutable dict used to share scenario state across BDD steps."""
    return {}


def _write_site(
    root: Path, files: dict[str, str], *, eager: bool = False
) -> Path:
    for relative, text in files.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    config_path = root / "site.yaml"
    config_path.write_text(
        f"""
eager: {"true" if eager else "false"}
output_dir: public
defaults:
  layouts_dir: layouts
  default_layout: page
sources:
  - kind: filesystem
    root: content
""".lstrip(),
        encoding="utf-8",
    )
    return config_path


def _soup(scenario_state: dict[str, object], relative: str) -> BeautifulSoup:
    output_dir: Path = scenario_state["output_dir"]  # type: ignore[assignment]
    path = output_dir / relative
    assert path.is_file(), f"expected {relative} to be written"
    return BeautifulSoup(path.read_text(encoding="utf-8"), "html.parser")


@given("a site with a blog post using front-matter")
def given_blog_post(tmp_path: Path, scenario_state: dict[str, object]) -> None:
    """Write a post that names the blog layout and sets its title."""
    scenario_state["config_path"] = _write_site(
        tmp_path,
        {
            "layouts/page.jinja": "<main>{{ content }}</main>",
            "layouts/blog.jinja": BLOG_LAYOUT,
            "content/posts/hello.md": (
                "---\ntitle: Hello Front Matter\nlayout: blog\n---\n"
                "## Intro\n\nWritten by {{ author | default('nobody') }}.\n"
            ),
        },
    )


@given("a site with one good page and one broken page")
def given_broken_page(tmp_path: Path, scenario_state: dict[str, object]) -> None:
    """Write a valid page next to one referencing an undefined variable."""
    scenario_state["config_path"] = _write_site(
        tmp_path,
        {
            "layouts/page.jinja": "<main>{{ content }}</main>",
            "content/index.md": "# Welcome\n",
            "content/broken.md": "{{ not_defined_anywhere }}\n",
        },
    )


@given("an eager site with two posts and an index listing")
def given_eager_listing(tmp_path: Path, scenario_state: dict[str, object]) -> None:
    """Write two posts and an index page that lists every post title."""
    scenario_state["config_path"] = _write_site(
        tmp_path,
        {
            "layouts/page.jinja": "<main>{{ content }}</main>",
            "content/index.md": (
                "{% for url, data in pages.under('/posts') %}"
                "- [{{ data.title }}]({{ url }})\n"
                "{% endfor %}"
            ),
            "content/posts/first.md": "---\ntitle: First Post\n---\nOne.\n",
            "content/posts/second.md": "---\ntitle: Second Post\n---\nTwo.\n",
        },
        eager=True,
    )


@when("I build the site")
def when_build_site(scenario_state: dict[str, object]) -> None:
    """Load the site configuration and run the static generator."""
    site = load_site_config(scenario_state["config_path"])  # type: ignore[arg-type]
    report: StaticBuildReport = ContentApp.from_site_config(site).generate(site.output_dir)
    scenario_state["output_dir"] = site.output_dir
    scenario_state["report"] = report


@then("the post is written inside the blog layout")
def then_blog_layout(scenario_state: dict[str, object]) -> None:
    """Verify the post body sits inside the blog layout's article."""
    soup = _soup(scenario_state, "posts/hello/index.html")
    article = soup.select_one("article.post")
    assert article is not None, "expected the blog layout's article element"
    heading = article.select_one("h2")
    assert heading is not None, "expected the markdown heading inside the layout"
    assert heading.get("id") == "intro", f"expected a heading anchor, got {heading!r}"
    assert "Written by nobody." in article.get_text(), "expected the template default"


@then("the post title comes from its front-matter")
def then_front_matter_title(scenario_state: dict[str, object]) -> None:
    """Verify the layout head uses the front-matter title."""
    soup = _soup(scenario_state, "posts/hello/index.html")
    assert soup.title is not None, "expected a title element"
    assert soup.title.get_text() == "Hello Front Matter", (
        f"expected the front-matter title, got {soup.title.get_text()!r}"
    )


@then("the good page is written")
def then_good_page(scenario_state: dict[str, object]) -> None:
    """Verify the valid page reached the output directory."""
    soup = _soup(scenario_state, "index.html")
    assert soup.select_one("main h1") is not None, "expected the welcome heading"


@then("the broken page is reported as a failure")
def then_broken_reported(scenario_state: dict[str, object]) -> None:
    """Verify the report names the broken URL and nothing was written for it."""
    report: StaticBuildReport = scenario_state["report"]  # type: ignore[assignment]
    output_dir: Path = scenario_state["output_dir"]  # type: ignore[assignment]
    assert list(report.failures) == ["/broken"], (
        f"expected only /broken to fail, got {list(report.failures)!r}"
    )
    assert "not_defined_anywhere" in report.failures["/broken"], (
        "expected the undefined variable in the failure message"
    )
    assert not (output_dir / "broken").exists(), "expected no output for /broken"


@then("the index lists both post titles")
def then_index_lists_posts(scenario_state: dict[str, object]) -> None:
    """Verify the index page links to both posts by title."""
    report: StaticBuildReport = scenario_state["report"]  # type: ignore[assignment]
    assert report.ok, f"unexpected failures {report.failures!r}"
    soup = _soup(scenario_state, "index.html")
    links = [(link.get_text(), link.get("href")) for link in soup.select("main a")]
    assert links == [
        ("First Post", "/posts/first"),
        ("Second Post", "/posts/second"),
    ], f"unexpected index links {links!r}"
