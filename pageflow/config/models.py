"""Typed dataclasses describing page and site configuration structures."""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path

if typ.TYPE_CHECKING:
    from pageflow.config.resolver import ConfigResolver
    from pageflow.extensions import PageExtension
    from pageflow.layouts import PageLayout
    from pageflow.parsers import PageParser
    from pageflow.templating import TemplateEngine


class SiteConfigError(ValueError):
    """Raised when the site configuration is invalid or incomplete."""


@dc.dataclass(frozen=True, slots=True)
class PageConfig:
    """Immutable configuration bundle shared by every URL it is resolved for.

    Attributes
    ----------
    parsers : tuple[PageParser, ...]
        Candidate parsers; the first one accepting a source's path wins.
    extensions : tuple[PageExtension, ...]
        Node-tree transforms run in registration order after parsing.
    layouts : tuple[PageLayout, ...]
        Registered layouts; index 0 is the default.
    template_engine : TemplateEngine | None
        Engine applied to the raw body before parsing; ``None`` disables it.
    enable_front_matter : bool
        Whether a leading YAML block is split off into page data.
    data_dir : Path | None
        Directory of YAML/JSON files merged into page data by file stem.
    """

    parsers: tuple[PageParser, ...] = ()
    extensions: tuple[PageExtension, ...] = ()
    layouts: tuple[PageLayout, ...] = ()
    template_engine: TemplateEngine | None = None
    enable_front_matter: bool = True
    data_dir: Path | None = None

    def layout_names(self) -> list[str]:
        """Return the registered layout names in priority order."""
        return [layout.name for layout in self.layouts]


@dc.dataclass(frozen=True, slots=True)
class SourceSpec:
    """A content origin declared in the site configuration.

    Attributes
    ----------
    kind : str
        Loader kind, for example ``"filesystem"`` or ``"github"``.
    options : dict[str, Any]
        Loader-specific keyword arguments.
    """

    kind: str
    options: dict[str, typ.Any] = dc.field(default_factory=dict)


@dc.dataclass(slots=True)
class SiteConfig:
    """Resolved site configuration ready to assemble a content app."""

    resolver: ConfigResolver
    sources: list[SourceSpec]
    eager: bool = False
    output_dir: Path = Path("build")
    base_dir: Path = Path()


__all__ = ["PageConfig", "SiteConfig", "SiteConfigError", "SourceSpec"]
