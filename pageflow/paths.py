"""URL derivation rules shared by every route loader.

An origin-relative path maps to a page URL by dropping its suffix, except
that an ``index`` file stands for its directory:

>>> from pageflow.paths import derive_url
>>> derive_url("path/to/name.md")
'/path/to/name'
>>> derive_url("path/to/index.md")
'/path/to'
>>> derive_url("index.html")
'/'
>>> derive_url("feed.xml", keep_suffix=("*.xml",))
'/feed.xml'
"""

from __future__ import annotations

import collections.abc as cabc
import fnmatch
import posixpath
from pathlib import PurePosixPath

from pageflow._constants import IGNORE_PREFIXES, INDEX_STEM


def is_ignored(
    path: str, ignore_prefixes: cabc.Sequence[str] = IGNORE_PREFIXES
) -> bool:
    """Return ``True`` when any segment of ``path`` carries an ignore prefix."""
    prefixes = tuple(ignore_prefixes)
    if not prefixes:
        return False
    return any(part.startswith(prefixes) for part in PurePosixPath(path).parts)


def keeps_suffix(path: str, keep_suffix: cabc.Sequence[str] = ()) -> bool:
    """Return ``True`` when the file name matches a keep-suffix pattern."""
    name = PurePosixPath(path).name
    return any(fnmatch.fnmatchcase(name, pattern) for pattern in keep_suffix)


def derive_url(path: str, *, keep_suffix: cabc.Sequence[str] = ()) -> str:
    """Return the page URL for an origin-relative ``path``.

    Parameters
    ----------
    path : str
        POSIX path relative to the loader's origin, for example
        ``"guides/setup.md"``.
    keep_suffix : Sequence[str], optional
        Glob patterns (``"*.xml"``) whose matching files keep their suffix in
        the final URL segment.

    Returns
    -------
    str
        Absolute URL without a trailing slash; the site root is ``"/"``.
    """
    pure = PurePosixPath(path.strip("/"))
    parent = [part for part in pure.parent.parts if part not in ("", ".")]
    if keeps_suffix(path, keep_suffix):
        segments = [*parent, pure.name]
    elif pure.stem == INDEX_STEM:
        segments = parent
    else:
        segments = [*parent, pure.stem]
    return "/" + "/".join(segments) if segments else "/"


def normalize_url(url: str) -> str:
    """Collapse a request URL onto the canonical route key.

    Query strings and fragments are dropped, trailing slashes and a trailing
    ``index.html`` are removed, and the empty path becomes ``"/"``.
    """
    path = url.split("?", 1)[0].split("#", 1)[0]
    path = posixpath.normpath("/" + path.strip("/")) if path.strip("/") else "/"
    if path.endswith("/index.html"):
        path = path.removesuffix("/index.html")
    return path or "/"


__all__ = ["derive_url", "is_ignored", "keeps_suffix", "normalize_url"]
