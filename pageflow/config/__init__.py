"""Page configuration, URL-based config resolution and site YAML loading.

A :class:`PageConfig` bundles the parsers, extensions, layouts and template
engine used to build a page. A :class:`ConfigResolver` decides which bundle
governs each discovered URL, and :func:`load_site_config` assembles both,
together with the content source declarations, from a ``site.yaml`` file.

Examples
--------
>>> from pageflow.config import GlobalConfigResolver, PageConfig
>>> config = PageConfig()
>>> GlobalConfigResolver(config).resolve("/anything") is config
True
"""

from .helpers import build_loaders
from .loader import load_site_config
from .models import PageConfig, SiteConfig, SiteConfigError, SourceSpec
from .resolver import (
    ConfigResolver,
    GlobalConfigResolver,
    PatternConfigResolver,
    UrlPattern,
)

__all__ = [
    "ConfigResolver",
    "GlobalConfigResolver",
    "PageConfig",
    "PatternConfigResolver",
    "SiteConfig",
    "SiteConfigError",
    "SourceSpec",
    "UrlPattern",
    "build_loaders",
    "load_site_config",
]
