"""Cyclopts CLI entrypoint for building, listing and serving pageflow sites.

The ``pageflow`` console script reads a ``site.yaml`` configuration, assembles
the declared content sources into a :class:`~pageflow.app.ContentApp`, and
then either writes the static site, lists the discovered routes, or serves
pages on demand for local previews. Every option can also be supplied
through an ``INPUT_*`` environment variable so the commands run unchanged in
CI workflows.

Examples
--------
Build the site described by the default configuration:

>>> from pageflow.cli import main
>>> main()  # doctest: +SKIP

Build into a custom directory:

>>> from pageflow.cli import app
>>> app(["build", "--output-dir", "dist"])  # doctest: +SKIP
"""

from __future__ import annotations

import logging
import os
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from .app import ContentApp
from .config import load_site_config
from .server import DEFAULT_HOST, DEFAULT_PORT, serve as serve_app

DEFAULT_CONFIG = Path("site.yaml")

app = App(name="pageflow", config=cyclopts.config.Env("INPUT_", command=False))  # type: ignore[unknown-argument]

ConfigOption = typ.Annotated[
    Path, Parameter(help="Path to site config", env_var="INPUT_CONFIG")
]
TokenOption = typ.Annotated[
    str | None,
    Parameter(
        help="Optional GitHub token (falls back to GITHUB_TOKEN)",
        env_var="INPUT_GITHUB_TOKEN",
    ),
]
VerboseOption = typ.Annotated[
    bool, Parameter(help="Log debug output", env_var="INPUT_VERBOSE")
]


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_app(config: Path, github_token: str | None) -> tuple[ContentApp, Path]:
    token = github_token or os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN")
    site = load_site_config(config)
    return ContentApp.from_site_config(site, token=token), site.output_dir


@app.command(help="Render every discovered page into a static site.")
def build(
    *,
    config: ConfigOption = DEFAULT_CONFIG,
    output_dir: typ.Annotated[
        Path | None,
        Parameter(help="Override the output folder", env_var="INPUT_OUTPUT_DIR"),
    ] = None,
    github_token: TokenOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Write the static site described by ``config``.

    Parameters
    ----------
    config : Path, optional
        Path to the ``site.yaml`` configuration file (overridable via
        ``INPUT_CONFIG``).
    output_dir : Path or None, optional
        Override the output directory declared in the configuration.
    github_token : str or None, optional
        Token for GitHub sources. If ``None``, the function falls back to the
        ``GITHUB_TOKEN`` or ``GH_TOKEN`` environment variables.
    verbose : bool, optional
        Enable debug logging.

    Raises
    ------
    SystemExit
        With status 1 when any page failed to build; the per-URL failure
        summary is printed first.
    """
    _configure_logging(verbose)
    content_app, configured_output = _load_app(config, github_token)
    report = content_app.generate(output_dir or configured_output)
    for path in report.written:
        print(f"wrote {_format_path(path)}")
    if not report.ok:
        print(report.summary())
        raise SystemExit(1)


@app.command(help="List every routed URL and the source that provides it.")
def routes(
    *,
    config: ConfigOption = DEFAULT_CONFIG,
    github_token: TokenOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Print one ``url -> origin`` line per route."""
    _configure_logging(verbose)
    content_app, _output_dir = _load_app(config, github_token)
    for url, route in content_app.routes.items():
        origin = route.origin
        if route.source is not None:
            origin = f"{origin}:{route.source.path}"
        print(f"{url} -> {origin}")
    for name, error in content_app.discovery_errors.items():
        print(f"! {name}: {error}")


@app.command(help="Serve pages on demand for local previews.")
def serve(
    *,
    config: ConfigOption = DEFAULT_CONFIG,
    host: typ.Annotated[
        str, Parameter(help="Interface to bind", env_var="INPUT_HOST")
    ] = DEFAULT_HOST,
    port: typ.Annotated[
        int, Parameter(help="Port to bind", env_var="INPUT_PORT")
    ] = DEFAULT_PORT,
    watch: typ.Annotated[
        bool, Parameter(help="Evict pages when their files change", env_var="INPUT_WATCH")
    ] = True,
    github_token: TokenOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Serve the configured site until interrupted."""
    _configure_logging(verbose)
    content_app, _output_dir = _load_app(config, github_token)
    content_app.start()
    if watch:
        content_app.watch()
    try:
        serve_app(content_app, host, port)
    finally:
        content_app.stop()


def main() -> None:
    """Invoke the Cyclopts application that powers the ``pageflow`` command.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
