"""
server.py — PDF Endpoint and Review UI Server.

A single-threaded ``http.server`` that prints HTML to PDF and hosts the
operator review page. One request is handled at a time, which also keeps the
shared review session free of concurrent writers.

Routes
------
    GET  /health            → 200 {"status": "healthy"}
    GET  /                  → review page (upload, choose, preview, export)
    POST /pdf               → {"html": "..."} → application/pdf
    POST /pdf/summary       → {"bundle": {...}, "chosen": {...}} → ReportLab PDF
    POST /render            → {"bundle": {...}, "chosen": {...}} → text/html
    POST /drilldown         → CSV body → text/html
    POST /review/upload     → file body, X-Filename header → session state
    POST /review/choose     → {"sectionId": "...", "text": "..."} → session state
    GET  /review/state      → session state
    GET  /review/preview    → text/html
"""

import json
import logging
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Callable, Optional
from urllib.parse import unquote, urlsplit

from practice_report.bundle import BundleError, bundle_from_dict
from practice_report.config import DEFAULTS
from practice_report.csv_parser import UnterminatedQuoteError
from practice_report.drilldown import DrilldownError, build_drilldown_table
from practice_report.pdf_builder import build_summary_pdf
from practice_report.pdf_service import PdfConversionError, html_to_pdf
from practice_report.render import get_environment, render_drilldown, render_report
from practice_report.reviewer import ReviewError, ReviewSession

logger = logging.getLogger(__name__)

_HEALTH_PATHS = frozenset(("/health", "/healthz", "/ping"))
_HEALTH_BODY = b'{"status":"healthy","service":"practice-report"}'

Converter = Callable[[str, Optional[dict[str, Any]]], bytes]


class _BadRequest(Exception):
    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status


def make_handler(
    session: ReviewSession,
    cfg: Optional[dict[str, Any]] = None,
    converter: Converter = html_to_pdf,
) -> type[BaseHTTPRequestHandler]:
    """Build a request handler class bound to a session and PDF converter."""
    cfg = cfg or DEFAULTS
    max_body = int(cfg["server"]["max_body_bytes"])

    class _ReportHandler(BaseHTTPRequestHandler):
        server_version = "practice-report/1.0"

        # -- plumbing --------------------------------------------------------

        def _send(self, status: int, body: bytes, content_type: str,
                  extra: Optional[dict[str, str]] = None) -> None:
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            self.send_header("Access-Control-Allow-Origin", "*")
            for key, value in (extra or {}).items():
                self.send_header(key, value)
            self.end_headers()
            self.wfile.write(body)

        def _send_json(self, status: int, payload: Any) -> None:
            self._send(status, json.dumps(payload).encode("utf-8"), "application/json")

        def _send_html(self, html: str) -> None:
            self._send(200, html.encode("utf-8"), "text/html; charset=utf-8")

        def _send_pdf(self, pdf: bytes) -> None:
            self._send(200, pdf, "application/pdf",
                       {"Content-Disposition": 'inline; filename="report.pdf"'})

        def _read_body(self) -> bytes:
            try:
                length = int(self.headers.get("Content-Length") or 0)
            except ValueError as exc:
                raise _BadRequest(400, "Invalid Content-Length header") from exc
            if length < 0:
                raise _BadRequest(400, "Invalid Content-Length header")
            if length > max_body:
                raise _BadRequest(413, f"Request body exceeds {max_body} bytes")
            return self.rfile.read(length) if length else b""

        def _read_json(self) -> dict[str, Any]:
            try:
                payload = json.loads(self._read_body() or b"{}")
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                raise _BadRequest(400, f"Invalid JSON body: {exc}") from exc
            if not isinstance(payload, dict):
                raise _BadRequest(400, "JSON body must be an object")
            return payload

        def _read_text(self) -> str:
            try:
                return self._read_body().decode("utf-8")
            except UnicodeDecodeError as exc:
                raise _BadRequest(400, "Body must be UTF-8 text") from exc

        def _dispatch(self, routes: dict[str, Callable[[], None]]) -> None:
            path = urlsplit(self.path).path
            route = routes.get(path)
            if route is None:
                self._send_json(404, {"error": f"Not found: {path}"})
                return
            try:
                route()
            except _BadRequest as exc:
                self._send_json(exc.status, {"error": str(exc)})
            except (ReviewError, BundleError, DrilldownError, UnterminatedQuoteError) as exc:
                self._send_json(400, {"error": str(exc)})
            except PdfConversionError as exc:
                self._send_json(500, {"error": str(exc)})
            except Exception as exc:
                logger.error("Unhandled error on %s %s: %s", self.command, path, exc, exc_info=True)
                self._send_json(500, {"error": "Internal server error"})

        # -- verbs -----------------------------------------------------------

        def do_OPTIONS(self) -> None:  # noqa: N802
            self.send_response(204)
            self.send_header("Access-Control-Allow-Origin", "*")
            self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
            self.send_header("Access-Control-Allow-Headers", "Content-Type, X-Filename")
            self.send_header("Content-Length", "0")
            self.end_headers()

        def do_GET(self) -> None:  # noqa: N802
            routes = {p: self._health for p in _HEALTH_PATHS}
            routes.update({
                "/": self._review_page,
                "/review/state": lambda: self._send_json(200, session.state()),
                "/review/preview": lambda: self._send_html(session.preview_html()),
            })
            self._dispatch(routes)

        def do_POST(self) -> None:  # noqa: N802
            self._dispatch({
                "/pdf": self._pdf,
                "/pdf/summary": self._pdf_summary,
                "/render": self._render,
                "/drilldown": self._drilldown,
                "/review/upload": self._review_upload,
                "/review/choose": self._review_choose,
            })

        # -- routes ----------------------------------------------------------

        def _health(self) -> None:
            self._send(200, _HEALTH_BODY, "application/json")

        def _pdf(self) -> None:
            html = self._read_json().get("html")
            if not isinstance(html, str) or not html:
                raise _BadRequest(400, "Body must be JSON {\"html\": \"...\"}")
            self._send_pdf(converter(html, cfg))

        def _bundle_request(self):
            payload = self._read_json()
            bundle = bundle_from_dict(payload.get("bundle"))
            chosen = payload.get("chosen") or {}
            if not isinstance(chosen, dict):
                raise _BadRequest(400, "'chosen' must be an object")
            return bundle, {str(k): str(v) for k, v in chosen.items()}

        def _pdf_summary(self) -> None:
            bundle, chosen = self._bundle_request()
            self._send_pdf(build_summary_pdf(bundle, chosen, cfg))

        def _render(self) -> None:
            bundle, chosen = self._bundle_request()
            self._send_html(render_report(bundle, chosen, cfg))

        def _drilldown(self) -> None:
            strict = bool(cfg["csv"]["strict_quotes"])
            self._send_html(render_drilldown(build_drilldown_table(self._read_text(), strict)))

        def _review_page(self) -> None:
            html = get_environment().get_template("reviewer.html.j2").render()
            self._send_html(html)

        def _review_upload(self) -> None:
            filename = unquote(self.headers.get("X-Filename") or "upload.json")
            session.upload(filename, self._read_text())
            self._send_json(200, session.state())

        def _review_choose(self) -> None:
            payload = self._read_json()
            section_id, text = payload.get("sectionId"), payload.get("text")
            if not isinstance(section_id, str) or not isinstance(text, str):
                raise _BadRequest(400, "Body must be JSON {\"sectionId\": ..., \"text\": ...}")
            session.choose(section_id, text)
            self._send_json(200, session.state())

        def log_message(self, fmt: str, *args: object) -> None:  # noqa: D102
            logger.debug("%s - %s", self.address_string(), fmt % args)

    return _ReportHandler


def create_server(
    cfg: Optional[dict[str, Any]] = None,
    host: Optional[str] = None,
    port: Optional[int] = None,
    converter: Converter = html_to_pdf,
) -> HTTPServer:
    """Create (but do not start) the HTTP server with a fresh review session."""
    cfg = cfg or DEFAULTS
    host = host if host is not None else cfg["server"]["host"]
    port = port if port is not None else int(cfg["server"]["port"])
    handler = make_handler(ReviewSession(cfg), cfg, converter)
    server = HTTPServer((host, port), handler)
    logger.info("PDF service bound to %s:%d", host, server.server_address[1])
    return server


def serve(cfg: Optional[dict[str, Any]] = None) -> None:
    """Run the server until interrupted."""
    server = create_server(cfg)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutdown requested -- stopping server")
    finally:
        server.server_close()
