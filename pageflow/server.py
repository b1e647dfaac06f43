"""Development server answering requests from a content app's router.

Pages are built on first request and served from their memoized results
afterwards, so editing a watched file is visible on the next reload.
"""

from __future__ import annotations

import functools
import http.server
import logging
import typing as typ
from urllib.parse import unquote, urlsplit

if typ.TYPE_CHECKING:
    from pageflow.app import ContentApp

logger = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8787
_CONTENT_TYPES = {
    ".xml": "application/xml; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".txt": "text/plain; charset=utf-8",
    ".css": "text/css; charset=utf-8",
}


class PageRequestHandler(http.server.BaseHTTPRequestHandler):
    """Serve GET and HEAD requests from the app's route table."""

    def __init__(self, *args: typ.Any, app: ContentApp, **kwargs: typ.Any) -> None:
        self.app = app
        super().__init__(*args, **kwargs)

    def do_GET(self) -> None:  # noqa: N802
        self._respond(include_body=True)

    def do_HEAD(self) -> None:  # noqa: N802
        self._respond(include_body=False)

    def _respond(self, *, include_body: bool) -> None:
        response = self.app.handle(unquote(urlsplit(self.path).path))
        payload = response.body.encode("utf-8")
        self.send_response(response.status)
        self.send_header("Content-Type", content_type_for(response.url))
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        if include_body:
            self.wfile.write(payload)

    def log_message(self, format: str, *args: typ.Any) -> None:  # noqa: A002
        logger.info("%s - %s", self.address_string(), format % args)


def content_type_for(url: str) -> str:
    """Return the response content type for ``url``."""
    for suffix, content_type in _CONTENT_TYPES.items():
        if url.endswith(suffix):
            return content_type
    return "text/html; charset=utf-8"


def make_server(
    app: ContentApp, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT
) -> http.server.ThreadingHTTPServer:
    """Return a threading HTTP server bound to ``host:port`` for ``app``."""
    handler = functools.partial(PageRequestHandler, app=app)
    return http.server.ThreadingHTTPServer((host, port), handler)


def serve(app: ContentApp, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
    """Serve ``app`` until interrupted."""
    httpd = make_server(app, host, port)
    url = f"http://{host}:{httpd.server_address[1]}/"
    print(f"Serving {url}")
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        print("Shutting down server.")
    finally:
        httpd.server_close()


__all__ = [
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "PageRequestHandler",
    "content_type_for",
    "make_server",
    "serve",
]
