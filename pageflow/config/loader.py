"""Load site configuration YAML into typed dataclasses."""

from __future__ import annotations

import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from .helpers import LayoutCache, _build_page_config
from .models import SiteConfig, SiteConfigError, SourceSpec
from .resolver import RECURSIVE_WILDCARD, GlobalConfigResolver, PatternConfigResolver


def load_site_config(path: Path) -> SiteConfig:
    """Load the YAML file describing content sources and page configuration.

    Parameters
    ----------
    path : Path
        Filesystem path to the YAML site configuration (for example,
        ``site.yaml``). Relative paths inside it are anchored at its folder.

    Returns
    -------
    SiteConfig
        The config resolver, source declarations, eager flag and output
        directory.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist at ``path``.
    TypeError
        If the top-level YAML structure is not a mapping.
    SiteConfigError
        If no sources are declared, or a rule, parser, extension or source
        entry is invalid.
    YAMLError
        If the YAML content cannot be parsed by the underlying loader.

    Examples
    --------
    >>> from pathlib import Path
    >>> from pageflow.config import load_site_config
    >>> site = load_site_config(Path("site.yaml"))  # doctest: +SKIP
    >>> [spec.kind for spec in site.sources]  # doctest: +SKIP
    ['filesystem']
    """
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):  # pragma: no cover - config error guard
        msg = "Top-level YAML structure must be a mapping."
        raise TypeError(msg)
    raw: dict[str, typ.Any] = dict(loaded)
    base_dir = path.resolve().parent

    defaults = raw.get("defaults") or {}
    if not isinstance(defaults, dict):
        msg = "'defaults' must be a mapping."
        raise SiteConfigError(msg)

    sources = _build_sources(raw.get("sources") or [])
    layouts = LayoutCache()
    default_config = _build_page_config(defaults, base_dir=base_dir, layouts=layouts)

    rules_raw = raw.get("rules") or []
    if not rules_raw:
        resolver: GlobalConfigResolver | PatternConfigResolver = GlobalConfigResolver(
            default_config
        )
    else:
        resolver = PatternConfigResolver()
        for position, rule in enumerate(rules_raw):
            match rule:
                case {"pattern": str() as pattern, **overrides}:
                    settings = {**defaults, **overrides}
                    resolver.add_rule(
                        pattern,
                        _build_page_config(settings, base_dir=base_dir, layouts=layouts),
                    )
                case _:
                    msg = f"Rule #{position + 1} must be a mapping with a 'pattern'."
                    raise SiteConfigError(msg)
        if RECURSIVE_WILDCARD not in {str(rule["pattern"]).strip("/") for rule in rules_raw}:
            resolver.add_rule(RECURSIVE_WILDCARD, default_config)

    output_dir = Path(raw.get("output_dir", "build"))
    return SiteConfig(
        resolver=resolver,
        sources=sources,
        eager=bool(raw.get("eager", False)),
        output_dir=output_dir if output_dir.is_absolute() else base_dir / output_dir,
        base_dir=base_dir,
    )


def _build_sources(payload: object) -> list[SourceSpec]:
    if not isinstance(payload, list) or not payload:
        msg = "No sources defined in site configuration."
        raise SiteConfigError(msg)
    sources: list[SourceSpec] = []
    for position, entry in enumerate(payload):
        match entry:
            case {"kind": str() as kind, **options}:
                sources.append(SourceSpec(kind=kind, options=dict(options)))
            case _:
                msg = f"Source #{position + 1} must be a mapping with a 'kind'."
                raise SiteConfigError(msg)
    return sources


__all__ = ["load_site_config"]
