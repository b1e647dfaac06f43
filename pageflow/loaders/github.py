r"""GitHub repository route loader.

Lists a repository directory through the GitHub contents API, following
``Link: rel="next"`` pagination and recursing into subdirectories, then
fetches each page's raw bytes from the entry's ``download_url``. The same
ignore-prefix and index rules as the filesystem loader apply to paths below
the configured prefix. Remote content is treated as fixed for the lifetime
of the process, so the loader offers no watch support.

Failures are classified for callers: throttling (HTTP 429, or 403 with an
exhausted rate limit) raises :class:`~pageflow.errors.RateLimitError`, which
is retryable and retried with backoff; HTTP 404 raises
:class:`~pageflow.errors.RemoteNotFoundError`, which is definitive.

Example
-------
>>> from pageflow.loaders import GitHubLoader
>>> loader = GitHubLoader("psf/requests", ref="main", path="docs/")  # doctest: +SKIP
>>> [source.url for source in loader.discover(resolver)][:1]  # doctest: +SKIP
['/']
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import datetime as dt
import json
import logging
import posixpath
import threading
import time
import typing as typ
from http import HTTPStatus

import requests
from github3 import GitHub
from github3 import exceptions as gh_exc
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from pageflow._constants import IGNORE_PREFIXES
from pageflow.errors import (
    DiscoveryError,
    PartialNotFoundError,
    RateLimitError,
    RemoteNotFoundError,
    RemoteSourceError,
)
from pageflow.paths import is_ignored

from ._discovery import build_sources

if typ.TYPE_CHECKING:
    from pageflow.config.resolver import ConfigResolver
    from pageflow.pages import PageSource

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.github.com"
DEFAULT_RAW_BASE = "https://raw.githubusercontent.com"
UPDATED_AT_KEY = "updated_at"
_ACCEPT_HEADER = "application/vnd.github+json"


@dc.dataclass(frozen=True, slots=True)
class RemoteEntry:
    """A file listed by the contents API.

    Attributes
    ----------
    path : str
        Path relative to the configured prefix.
    repo_path : str
        Full path inside the repository.
    download_url : str | None
        Raw content URL reported by GitHub.
    """

    path: str
    repo_path: str
    download_url: str | None = None


class GitHubLoader:
    """Discover page sources in a GitHub repository directory.

    Parameters
    ----------
    repo : str
        Repository identifier in ``owner/name`` form.
    ref : str, optional
        Branch, tag, or commit to read. Defaults to ``"main"``.
    path : str, optional
        Directory prefix inside the repository. Defaults to ``"docs/"``.
    token : str, optional
        Access token sent as a bearer ``Authorization`` header; without it
        GitHub applies the anonymous rate limit.
    api_base : str, optional
        API base URL; override for GitHub Enterprise.
    session : requests.Session, optional
        Preconfigured session. When omitted a session with transport retries
        and backoff for 429/5xx responses is created.
    timeout : float, optional
        Per-request timeout in seconds.
    per_page : int, optional
        Page size requested from the contents API.
    keep_suffix : Sequence[str], optional
        File-name globs that keep their suffix in the URL.
    commit_dates : bool, optional
        Record each page's latest commit timestamp under ``updated_at``.
    rate_limit_retries : int, optional
        Extra attempts after a rate-limit response before giving up.
    backoff_factor : float, optional
        Base delay in seconds for rate-limit backoff, doubled per attempt.
    max_concurrency : int, optional
        Fan-out bound for eager loading against this origin.
    """

    def __init__(
        self,
        repo: str,
        *,
        ref: str = "main",
        path: str = "docs/",
        token: str | None = None,
        api_base: str = DEFAULT_API_BASE,
        session: requests.Session | None = None,
        timeout: float = 10.0,
        per_page: int = 100,
        keep_suffix: cabc.Sequence[str] = (),
        ignore_prefixes: cabc.Sequence[str] = IGNORE_PREFIXES,
        commit_dates: bool = False,
        rate_limit_retries: int = 2,
        backoff_factor: float = 1.0,
        max_concurrency: int = 4,
        name: str | None = None,
    ) -> None:
        normalized = repo.strip().strip("/")
        if normalized.count("/") != 1:
            msg = f"Repository must be given as 'owner/name', got {repo!r}"
            raise ValueError(msg)
        self.repo = normalized
        self.ref = ref
        self.prefix = path.strip("/")
        self.name = name or f"github:{normalized}@{ref}"
        self.keep_suffix = tuple(keep_suffix)
        self.ignore_prefixes = tuple(ignore_prefixes)
        self.commit_dates = commit_dates
        self.rate_limit_retries = rate_limit_retries
        self.backoff_factor = backoff_factor
        self.max_concurrency = max_concurrency
        self.timeout = timeout
        self.per_page = per_page
        self._token = token
        self._api_base = api_base.rstrip("/") or DEFAULT_API_BASE
        self._session = session or _build_session()
        self._headers = {
            "Accept": _ACCEPT_HEADER,
            "User-Agent": "pageflow/0.1",
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"
        self._entries: dict[str, RemoteEntry] = {}
        self._lock = threading.Lock()
        self._github_client: GitHub | None = None

    def __repr__(self) -> str:
        return f"GitHubLoader({self.repo!r}, ref={self.ref!r}, path={self.prefix!r})"

    def discover(self, resolver: ConfigResolver) -> list[PageSource]:
        """List the repository directory and return its page sources.

        Raises
        ------
        DiscoveryError
            If listing fails; the remote error is chained as the cause.
        """
        try:
            entries = self.list_entries()
        except RemoteSourceError as exc:
            msg = f"Failed to list {self.repo}@{self.ref}/{self.prefix}: {exc}"
            raise DiscoveryError(msg) from exc

        visible = [
            entry
            for entry in entries
            if not is_ignored(entry.path, self.ignore_prefixes)
        ]
        with self._lock:
            self._entries = {entry.path: entry for entry in visible}
        data_for = self._commit_data if self.commit_dates else None
        sources = build_sources(
            self,
            [entry.path for entry in visible],
            resolver,
            keep_suffix=self.keep_suffix,
            data_for=data_for,
        )
        logger.debug("Discovered %d sources in %s", len(sources), self.name)
        return sources

    def list_entries(self) -> list[RemoteEntry]:
        """Return every file below the prefix, walking subdirectories."""
        files: list[RemoteEntry] = []
        pending = [self.prefix]
        while pending:
            directory = pending.pop(0)
            for item in self._list_directory(directory):
                item_type = item.get("type")
                repo_path = str(item.get("path", ""))
                if item_type == "dir":
                    if not posixpath.basename(repo_path).startswith(self.ignore_prefixes):
                        pending.append(repo_path)
                elif item_type == "file":
                    files.append(
                        RemoteEntry(
                            path=self._relative(repo_path),
                            repo_path=repo_path,
                            download_url=item.get("download_url"),
                        )
                    )
        return sorted(files, key=lambda entry: entry.path)

    def read(self, source: PageSource) -> str:
        """Fetch the raw content of ``source``."""
        with self._lock:
            entry = self._entries.get(source.path)
        url = entry.download_url if entry and entry.download_url else None
        return self._get(url or self._raw_url(self._repo_path(source.path))).text

    def read_partial(self, name: str) -> str:
        """Fetch the partial ``name`` relative to the prefix.

        Raises
        ------
        PartialNotFoundError
            If the repository has no such file.
        """
        try:
            return self._get(self._raw_url(self._repo_path(name))).text
        except RemoteNotFoundError as exc:
            msg = f"Partial '{name}' not found in {self.repo}@{self.ref}"
            raise PartialNotFoundError(msg) from exc

    def _list_directory(self, directory: str) -> list[dict[str, typ.Any]]:
        url: str | None = f"{self._api_base}/repos/{self.repo}/contents/{directory}"
        params: dict[str, typ.Any] | None = {"ref": self.ref, "per_page": self.per_page}
        items: list[dict[str, typ.Any]] = []
        while url:
            response = self._get(url, params=params)
            try:
                payload = response.json()
            except json.JSONDecodeError as exc:
                msg = f"GitHub listing for '{directory}' was not valid JSON"
                raise RemoteSourceError(msg, status=response.status_code) from exc
            match payload:
                case list():
                    items.extend(item for item in payload if isinstance(item, dict))
                case dict():
                    items.append(payload)
                case _:
                    msg = f"Unexpected GitHub listing payload for '{directory}'"
                    raise RemoteSourceError(msg, status=response.status_code)
            url = (response.links or {}).get("next", {}).get("url")
            params = None
        return items

    def _get(
        self, url: str, *, params: dict[str, typ.Any] | None = None
    ) -> requests.Response:
        """Issue a GET, retrying rate-limit responses with exponential backoff."""
        attempt = 0
        while True:
            try:
                return self._get_once(url, params=params)
            except RateLimitError as exc:
                if attempt >= self.rate_limit_retries:
                    raise
                delay = self.backoff_factor * (2**attempt)
                logger.warning(
                    "Rate limited by GitHub (%s); retrying in %.1fs", exc, delay
                )
                time.sleep(delay)
                attempt += 1

    def _get_once(
        self, url: str, *, params: dict[str, typ.Any] | None = None
    ) -> requests.Response:
        try:
            response = self._session.get(
                url, params=params, headers=self._headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            msg = f"Failed to reach GitHub at {url}: {exc}"
            raise RemoteSourceError(msg) from exc

        status = response.status_code
        if status < HTTPStatus.BAD_REQUEST:
            return response
        if _is_rate_limited(response):
            msg = f"GitHub rate limit exceeded for {url} (status {status})"
            if not self._token:
                msg = f"{msg}; set a token to raise the limit"
            raise RateLimitError(msg, status=status)
        if status == HTTPStatus.NOT_FOUND:
            msg = f"GitHub resource not found: {url}"
            raise RemoteNotFoundError(msg, status=status)
        snippet = (response.text or "")[:200]
        msg = f"GitHub request to {url} failed with status {status}: {snippet}"
        raise RemoteSourceError(msg, status=status)

    def _relative(self, repo_path: str) -> str:
        if self.prefix and repo_path.startswith(f"{self.prefix}/"):
            return repo_path[len(self.prefix) + 1 :]
        return repo_path

    def _repo_path(self, relative: str) -> str:
        relative = relative.lstrip("/")
        return f"{self.prefix}/{relative}" if self.prefix else relative

    def _raw_url(self, repo_path: str) -> str:
        return f"{DEFAULT_RAW_BASE}/{self.repo}/{self.ref}/{repo_path}"

    def _github(self) -> GitHub:
        """Return a cached github3.py client configured with the loader token."""
        if self._github_client is None:
            self._github_client = GitHub(token=self._token)
        return self._github_client

    def _commit_data(self, relative: str) -> dict[str, typ.Any]:
        updated_at = self._fetch_commit_date(self._repo_path(relative))
        return {UPDATED_AT_KEY: updated_at} if updated_at else {}

    def _fetch_commit_date(self, repo_path: str) -> dt.datetime | None:
        """Return the latest commit timestamp for ``repo_path`` or None on errors."""
        owner, name = self.repo.split("/", 1)
        try:
            repository = self._github().repository(owner, name)
            commits = repository.commits(path=repo_path, sha=self.ref, number=1)
            latest_commit = next(iter(commits), None)
        except gh_exc.GitHubException as exc:
            logger.warning("Could not fetch commit date for %s: %s", repo_path, exc)
            return None
        if latest_commit is None:
            return None
        return _extract_commit_timestamp(latest_commit)


def _build_session() -> requests.Session:
    session = requests.Session()
    retry = Retry(
        total=5,
        read=5,
        connect=3,
        backoff_factor=0.5,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET", "HEAD"),
        respect_retry_after_header=True,
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def _is_rate_limited(response: requests.Response) -> bool:
    if response.status_code == HTTPStatus.TOO_MANY_REQUESTS:
        return True
    if response.status_code != HTTPStatus.FORBIDDEN:
        return False
    headers = response.headers or {}
    if headers.get("X-RateLimit-Remaining") == "0":
        return True
    return "rate limit" in (response.text or "").lower()


def _field(value: object, name: str) -> object:
    """Read ``name`` from a github3 model or a raw JSON mapping."""
    if isinstance(value, cabc.Mapping):
        return value.get(name)
    return getattr(value, name, None)


def _extract_commit_timestamp(commit: object) -> dt.datetime | None:
    """Return the author (or committer) date of ``commit`` in UTC."""
    git_commit = _field(commit, "commit")
    if git_commit is None:
        return None
    dates = (
        _parse_timestamp(_field(_field(git_commit, role), "date"))
        for role in ("author", "committer")
    )
    return next((value for value in dates if value is not None), None)


def _parse_timestamp(value: object) -> dt.datetime | None:
    """Parse an ISO 8601 string or datetime into an aware UTC datetime."""
    if isinstance(value, str):
        try:
            value = dt.datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, dt.datetime):
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.UTC)
    return value.astimezone(dt.UTC)

__all__ = ["DEFAULT_API_BASE", "GitHubLoader", "RemoteEntry"]
