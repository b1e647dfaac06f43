r"""Split a leading YAML front-matter block from page content.

Front-matter is an optional mapping fenced by ``---`` lines at the very start
of a content unit. The block is parsed with ruamel.yaml's safe loader (YAML
1.2, matching the site configuration loader) and the remainder is returned as
the page body.

Example
-------
>>> from pageflow.frontmatter import split_front_matter
>>> data, body = split_front_matter("---\ntitle: Hello\n---\n# Body\n")
>>> data
{'title': 'Hello'}
>>> body
'# Body\n'
"""

from __future__ import annotations

import re
import typing as typ

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from pageflow._constants import FRONT_MATTER_FENCE
from pageflow.errors import FrontMatterError

_CLOSING_FENCE_PATTERN = re.compile(r"^(?:---|\.\.\.)[ \t]*$", re.MULTILINE)


def _build_loader() -> YAML:
    loader = YAML(typ="safe")
    loader.version = (1, 2)
    return loader


def split_front_matter(text: str) -> tuple[dict[str, typ.Any], str]:
    """Return the front-matter mapping and the body that follows it.

    Parameters
    ----------
    text : str
        Raw content, optionally beginning with a ``---`` fenced YAML block.

    Returns
    -------
    tuple[dict[str, Any], str]
        Parsed front-matter (empty when no block is present) and the body
        text with the block removed.

    Raises
    ------
    FrontMatterError
        If the block is not valid YAML or does not hold a mapping.
    """
    source = text.removeprefix("\ufeff")
    first_line, newline, rest = source.partition("\n")
    if first_line.rstrip() != FRONT_MATTER_FENCE or not newline:
        return {}, text

    closing = _CLOSING_FENCE_PATTERN.search(rest)
    if closing is None:
        return {}, text

    block = rest[: closing.start()]
    body = rest[closing.end() :].removeprefix("\n")
    try:
        loaded = _build_loader().load(block) if block.strip() else None
    except YAMLError as exc:
        msg = f"Front-matter is not valid YAML: {exc}"
        raise FrontMatterError(msg) from exc

    match loaded:
        case None:
            return {}, body
        case dict():
            return {str(key): value for key, value in loaded.items()}, body
        case _:
            msg = (
                "Front-matter must be a YAML mapping, "
                f"got {type(loaded).__name__}."
            )
            raise FrontMatterError(msg)


__all__ = ["split_front_matter"]
