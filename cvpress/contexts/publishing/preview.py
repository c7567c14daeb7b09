"""
Local preview of a built site.

Serves the site directory and answers visits to the root the way the
landing page script would, with an HTTP redirect instead of JavaScript.
"""

from functools import partial
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import List
from urllib.parse import urlsplit

from cvpress.contexts.publishing.logger import _log_info
from cvpress.contexts.publishing.routing import resolve_route

ROOT_PATHS = ("/", "/index.html")


def published_languages(site_dir: Path) -> List[str]:
    """Language codes of the <lang>.pdf files in a built site."""
    return sorted(p.stem for p in Path(site_dir).glob("*.pdf"))


class PreviewHandler(SimpleHTTPRequestHandler):
    languages: List[str] = []
    auto_detect_language = False

    def do_GET(self):
        url = urlsplit(self.path)
        if url.path in ROOT_PATHS:
            target = resolve_route(
                self.languages,
                url.query,
                accept_language=self.headers.get("Accept-Language"),
                auto_detect_language=self.auto_detect_language,
            )
            if target:
                self.send_response(302)
                self.send_header("Location", f"/{target}")
                self.send_header("Content-Length", "0")
                self.end_headers()
                return
        super().do_GET()

    def log_message(self, format, *args):
        _log_info(f"preview {self.address_string()} {format % args}")


def make_preview_server(
    site_dir: Path,
    host: str = "127.0.0.1",
    port: int = 8000,
    auto_detect_language: bool = False,
) -> ThreadingHTTPServer:
    """Create (but do not start) a preview server for *site_dir*. Port 0 picks a free port."""
    site_dir = Path(site_dir).resolve()
    handler_cls = type(
        "SitePreviewHandler",
        (PreviewHandler,),
        {
            "languages": published_languages(site_dir),
            "auto_detect_language": auto_detect_language,
        },
    )
    handler = partial(handler_cls, directory=str(site_dir))
    return ThreadingHTTPServer((host, port), handler)


def preview_site(
    site_dir: Path,
    host: str = "127.0.0.1",
    port: int = 8000,
    auto_detect_language: bool = False,
) -> None:
    """Serve *site_dir* until interrupted."""
    server = make_preview_server(site_dir, host, port, auto_detect_language)
    bound_host, bound_port = server.server_address[:2]
    _log_info(f"Previewing {site_dir} at http://{bound_host}:{bound_port}/")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        _log_info("Preview stopped")
    finally:
        server.server_close()
