"""Unit tests for the GitHub contents API loader."""

from __future__ import annotations

import datetime as dt
import typing as typ
from types import SimpleNamespace

import pytest
import requests

from pageflow.errors import (
    DiscoveryError,
    PartialNotFoundError,
    RateLimitError,
    RemoteNotFoundError,
    RemoteSourceError,
)
from pageflow.loaders import GitHubLoader
from pageflow.loaders.github import _extract_commit_timestamp

if typ.TYPE_CHECKING:
    from unittest import mock

    from pytest_mock import MockerFixture

    from pageflow.config import GlobalConfigResolver

API = "https://example.invalid"
CONTENTS = f"{API}/repos/owner/repo/contents"


def _response(
    mocker: MockerFixture,
    *,
    status: int = 200,
    payload: object = None,
    text: str = "",
    links: dict[str, dict[str, str]] | None = None,
    headers: dict[str, str] | None = None,
) -> mock.Mock:
    response = mocker.Mock()
    response.status_code = status
    response.json.return_value = payload
    response.text = text
    response.links = links or {}
    response.headers = headers or {}
    return response


def _file(path: str) -> dict[str, str]:
    return {
        "type": "file",
        "path": path,
        "download_url": f"https://raw.example.invalid/{path}",
    }


@pytest.fixture
def session(mocker: MockerFixture) -> mock.Mock:
    """Return a session double whose responses are routed by URL."""
    return mocker.Mock(spec=requests.Session)


def _route(session: mock.Mock, table: dict[str, list[mock.Mock]]) -> None:
    def _get(url: str, **_kwargs: object) -> mock.Mock:
        queue = table[url]
        return queue.pop(0) if len(queue) > 1 else queue[0]

    session.get.side_effect = _get


def test_discovery_paginates_and_recurses(
    mocker: MockerFixture,
    session: mock.Mock,
    resolver: GlobalConfigResolver,
) -> None:
    """Listing should follow ``Link: next`` pages and descend into directories."""
    next_url = f"{CONTENTS}/docs?page=2"
    _route(
        session,
        {
            f"{CONTENTS}/docs": [
                _response(
                    mocker,
                    payload=[
                        _file("docs/index.md"),
                        {"type": "dir", "path": "docs/guide"},
                        {"type": "dir", "path": "docs/_private"},
                    ],
                    links={"next": {"url": next_url}},
                )
            ],
            next_url: [
                _response(mocker, payload=[_file("docs/_nav.md"), _file("docs/b.md")])
            ],
            f"{CONTENTS}/docs/guide": [
                _response(mocker, payload=[_file("docs/guide/setup.md")])
            ],
        },
    )
    loader = GitHubLoader(
        "owner/repo", api_base=API, session=session, token="secret-token"
    )

    urls = sorted(source.url for source in loader.discover(resolver))

    assert urls == ["/", "/b", "/guide/setup"], f"unexpected URLs: {urls!r}"
    called = [call.args[0] for call in session.get.call_args_list]
    assert called == [f"{CONTENTS}/docs", next_url, f"{CONTENTS}/docs/guide"], (
        f"expected ignored directories to be skipped, got {called!r}"
    )
    first_call = session.get.call_args_list[0]
    assert first_call.kwargs["params"] == {"ref": "main", "per_page": 100}, (
        "expected ref and page size on the first listing request"
    )
    assert first_call.kwargs["headers"]["Authorization"] == "Bearer secret-token", (
        "expected Authorization header to include Bearer token"
    )
    assert session.get.call_args_list[1].kwargs["params"] is None, (
        "expected the next link to be followed verbatim"
    )


def test_read_uses_download_url(
    mocker: MockerFixture,
    session: mock.Mock,
    resolver: GlobalConfigResolver,
) -> None:
    """Page content should be fetched from the entry's download URL."""
    _route(
        session,
        {
            f"{CONTENTS}/docs": [_response(mocker, payload=[_file("docs/page.md")])],
            "https://raw.example.invalid/docs/page.md": [
                _response(mocker, text="# Remote page\n")
            ],
        },
    )
    loader = GitHubLoader("owner/repo", api_base=API, session=session)
    (source,) = loader.discover(resolver)

    assert loader.read(source) == "# Remote page\n", "expected raw page text"


def test_rate_limit_is_retryable_and_wrapped_during_discovery(
    mocker: MockerFixture,
    session: mock.Mock,
    resolver: GlobalConfigResolver,
) -> None:
    """An exhausted rate limit should surface as a retryable error under discovery."""
    sleep = mocker.patch("pageflow.loaders.github.time.sleep")
    _route(
        session,
        {
            f"{CONTENTS}/docs": [
                _response(
                    mocker,
                    status=403,
                    text="API rate limit exceeded",
                    headers={"X-RateLimit-Remaining": "0"},
                )
            ]
        },
    )
    loader = GitHubLoader(
        "owner/repo", api_base=API, session=session, rate_limit_retries=1
    )

    with pytest.raises(DiscoveryError) as excinfo:
        loader.discover(resolver)

    cause = excinfo.value.__cause__
    assert isinstance(cause, RateLimitError), f"expected RateLimitError, got {cause!r}"
    assert cause.retryable, "expected rate limits to be retryable"
    assert cause.status == 403, f"expected status 403, got {cause.status!r}"
    assert sleep.call_count == 1, "expected one backoff before giving up"
    assert session.get.call_count == 2, "expected the request to be retried once"


def test_rate_limit_recovers_after_backoff(
    mocker: MockerFixture,
    session: mock.Mock,
    resolver: GlobalConfigResolver,
) -> None:
    """A throttled listing should succeed when a retry is answered normally."""
    mocker.patch("pageflow.loaders.github.time.sleep")
    _route(
        session,
        {
            f"{CONTENTS}/docs": [
                _response(mocker, status=429),
                _response(mocker, payload=[_file("docs/index.md")]),
            ]
        },
    )
    loader = GitHubLoader("owner/repo", api_base=API, session=session)

    assert [source.url for source in loader.discover(resolver)] == ["/"], (
        "expected discovery to succeed after the retry"
    )


def test_not_found_is_definitive(
    mocker: MockerFixture,
    session: mock.Mock,
    resolver: GlobalConfigResolver,
) -> None:
    """A 404 should be classified as non-retryable not-found."""
    _route(session, {f"{CONTENTS}/docs": [_response(mocker, status=404)]})
    loader = GitHubLoader("owner/repo", api_base=API, session=session)

    with pytest.raises(DiscoveryError) as excinfo:
        loader.discover(resolver)

    cause = excinfo.value.__cause__
    assert isinstance(cause, RemoteNotFoundError), (
        f"expected RemoteNotFoundError, got {cause!r}"
    )
    assert not cause.retryable, "expected not-found to be non-retryable"


def test_partial_not_found_maps_to_partial_error(
    mocker: MockerFixture, session: mock.Mock
) -> None:
    """Missing include targets should raise PartialNotFoundError."""
    session.get.return_value = _response(mocker, status=404)
    loader = GitHubLoader("owner/repo", api_base=API, session=session)

    with pytest.raises(PartialNotFoundError, match="_partials/nav.md"):
        loader.read_partial("_partials/nav.md")
    url = session.get.call_args.args[0]
    assert url == "https://raw.githubusercontent.com/owner/repo/main/docs/_partials/nav.md", (
        f"unexpected partial URL {url!r}"
    )


def test_transport_failure_is_remote_source_error(session: mock.Mock) -> None:
    """Connection failures should be reported as non-retryable remote errors."""
    session.get.side_effect = requests.ConnectionError("boom")
    loader = GitHubLoader("owner/repo", api_base=API, session=session)

    with pytest.raises(RemoteSourceError, match="boom") as excinfo:
        loader.list_entries()

    assert type(excinfo.value) is RemoteSourceError, "expected the base remote error"


def test_commit_dates_are_recorded(
    mocker: MockerFixture,
    session: mock.Mock,
    resolver: GlobalConfigResolver,
) -> None:
    """With commit dates enabled each page should carry its last commit time."""
    _route(
        session, {f"{CONTENTS}/docs": [_response(mocker, payload=[_file("docs/a.md")])]}
    )
    commit = SimpleNamespace(
        commit=SimpleNamespace(author=SimpleNamespace(date="2025-01-02T03:04:05Z"))
    )
    github_cls = mocker.patch("pageflow.loaders.github.GitHub")
    repository = github_cls.return_value.repository.return_value
    repository.commits.return_value = iter([commit])
    loader = GitHubLoader(
        "owner/repo", api_base=API, session=session, commit_dates=True, token="t"
    )

    (source,) = loader.discover(resolver)

    assert source.data["updated_at"] == dt.datetime(2025, 1, 2, 3, 4, 5, tzinfo=dt.UTC), (
        f"unexpected commit date {source.data.get('updated_at')!r}"
    )
    github_cls.assert_called_once_with(token="t")
    repository.commits.assert_called_once_with(path="docs/a.md", sha="main", number=1)


def test_repository_name_is_validated() -> None:
    """Repository identifiers must use the owner/name form."""
    with pytest.raises(ValueError, match="owner/name"):
        GitHubLoader("not-a-repo")


@pytest.mark.parametrize(
    ("commit", "expected"),
    [
        (
            {"commit": {"author": None, "committer": {"date": "2024-06-01T12:00:00+02:00"}}},
            dt.datetime(2024, 6, 1, 10, 0, tzinfo=dt.UTC),
        ),
        (
            SimpleNamespace(
                commit=SimpleNamespace(author={"date": dt.datetime(2024, 1, 1)})
            ),
            dt.datetime(2024, 1, 1, tzinfo=dt.UTC),
        ),
        ({"commit": {"author": {"date": "not a date"}}}, None),
        (SimpleNamespace(), None),
    ],
)
def test_commit_timestamp_extraction(commit: object, expected: dt.datetime | None) -> None:
    """Commit dates should be read from models or mappings and normalized to UTC."""
    assert _extract_commit_timestamp(commit) == expected, (
        f"unexpected timestamp for {commit!r}"
    )
