"""Exception taxonomy for the pageflow content pipeline.

Every error raised by discovery, configuration resolution, or a page build
derives from :class:`PipelineError`. The ``fatal`` class attribute tells the
route boundary and the static generator whether a failure is local to one
page (recorded, rendered as an error response) or a configuration problem
that aborts the whole run.

Examples
--------
>>> from pageflow.errors import TemplateError, UnresolvedConfigError
>>> TemplateError.fatal
False
>>> UnresolvedConfigError.fatal
True
"""

from __future__ import annotations


class PipelineError(RuntimeError):
    """Base class for all content pipeline failures."""

    fatal: bool = False


class DiscoveryError(PipelineError):
    """Raised when an origin is unreachable or malformed during discovery."""

    fatal = True


class RouteCollisionError(DiscoveryError):
    """Raised when two discovered sources resolve to the same URL."""


class UnresolvedConfigError(PipelineError):
    """Raised when no resolution rule yields a config for a URL."""

    fatal = True


class TemplateError(PipelineError):
    """Raised when the template stage cannot render a page body."""


class PartialNotFoundError(TemplateError):
    """Raised when an include directive names a partial the loader lacks."""


class FrontMatterError(TemplateError):
    """Raised when a leading front-matter block is not a YAML mapping."""


class NoParserFoundError(PipelineError):
    """Raised when no configured parser accepts a source."""


class ParseError(PipelineError):
    """Raised when a parser fails on a page body."""


class SourceReadError(PipelineError):
    """Raised when a loader cannot read a discovered source."""


class ExtensionError(PipelineError):
    """Raised when a page extension fails while transforming a node tree."""


class BuilderError(PipelineError):
    """Raised when a programmatic page builder fails."""


class LayoutNotFoundError(PipelineError):
    """Raised when a page requires a layout but none are registered."""

    fatal = True


class PageNotFoundError(PipelineError):
    """Raised when a requested URL has no route."""


class PageIndexUnavailableError(PipelineError):
    """Raised when a page reads the ``pages`` index outside eager mode."""


class RemoteSourceError(PipelineError):
    """Raised when a remote origin answers with an error or is unreachable.

    Attributes
    ----------
    status : int | None
        HTTP status code of the failing response, when one was received.
    retryable : bool
        Whether repeating the request later may succeed.
    """

    retryable: bool = False

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class RateLimitError(RemoteSourceError):
    """Raised when the remote API throttles the client."""

    retryable = True


class RemoteNotFoundError(RemoteSourceError):
    """Raised when the remote API reports a definitive not-found."""


__all__ = [
    "BuilderError",
    "DiscoveryError",
    "ExtensionError",
    "FrontMatterError",
    "LayoutNotFoundError",
    "NoParserFoundError",
    "PageIndexUnavailableError",
    "PageNotFoundError",
    "ParseError",
    "PartialNotFoundError",
    "PipelineError",
    "RateLimitError",
    "RemoteNotFoundError",
    "RemoteSourceError",
    "RouteCollisionError",
    "SourceReadError",
    "TemplateError",
    "UnresolvedConfigError",
]
