"""Static site generation from a content app's route table.

Every route is rendered exactly once and written below the output directory:
``/`` becomes ``index.html``, ``/a/b`` becomes ``a/b/index.html``, and URLs
whose last segment carries a suffix (``/feed.xml``) are written as files.
Page-local failures are collected per URL so one broken page does not stop
the rest of the site; fatal errors abort the run.
"""

from __future__ import annotations

import dataclasses as dc
import logging
import typing as typ
from pathlib import Path, PurePosixPath

from pageflow.errors import PipelineError

if typ.TYPE_CHECKING:
    from pageflow.app import ContentApp

logger = logging.getLogger(__name__)

INDEX_FILENAME = "index.html"


@dc.dataclass(slots=True)
class StaticBuildReport:
    """Outcome of a static build.

    Attributes
    ----------
    written : list[Path]
        Files written, in route order.
    failures : dict[str, str]
        Error message per URL that failed to build.
    """

    written: list[Path] = dc.field(default_factory=list)
    failures: dict[str, str] = dc.field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Return ``True`` when every route built."""
        return not self.failures

    def summary(self) -> str:
        """Return a human-readable failure summary."""
        lines = [f"{len(self.written)} written, {len(self.failures)} failed"]
        lines.extend(f"  {url}: {message}" for url, message in self.failures.items())
        return "\n".join(lines)


def output_path_for(url: str, output_dir: Path) -> Path:
    """Return the file that stores the document for ``url``.

    Examples
    --------
    >>> from pathlib import Path
    >>> output_path_for("/", Path("out")).as_posix()
    'out/index.html'
    >>> output_path_for("/guides/setup", Path("out")).as_posix()
    'out/guides/setup/index.html'
    >>> output_path_for("/feed.xml", Path("out")).as_posix()
    'out/feed.xml'
    """
    parts = PurePosixPath(url).parts[1:]
    if not parts:
        return output_dir / INDEX_FILENAME
    if PurePosixPath(parts[-1]).suffix:
        return output_dir.joinpath(*parts)
    return output_dir.joinpath(*parts, INDEX_FILENAME)


class StaticGenerator:
    """Render every route of ``app`` into files."""

    def __init__(self, app: ContentApp) -> None:
        self.app = app

    def run(self, output_dir: Path) -> StaticBuildReport:
        """Build all routes into ``output_dir`` and report the outcome.

        Raises
        ------
        PipelineError
            If a fatal error occurs; files written so far are kept.
        """
        report = StaticBuildReport()
        routes = self.app.start().routes
        for url, route in routes.items():
            try:
                document = route.handler()
            except PipelineError as exc:
                if exc.fatal:
                    raise
                logger.error("Failed to build %s: %s", url, exc)
                report.failures[url] = str(exc)
                continue
            target = output_path_for(url, output_dir)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(document, encoding="utf-8")
            report.written.append(target)
            logger.debug("Wrote %s", target)
        return report


__all__ = ["INDEX_FILENAME", "StaticBuildReport", "StaticGenerator", "output_path_for"]
