from __future__ import annotations

import json
import logging
import re
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, List, Optional, Pattern, Tuple
from urllib.parse import unquote, urlparse

from ..config.settings import DashboardSettings, get_settings
from .api import ApiError, TaskMasterApi


LOG = logging.getLogger(__name__)

_SEGMENT = r"([^/]+)"

# (method, path pattern, api method name, whether the handler takes the JSON body)
_ROUTES: List[Tuple[str, Pattern[str], str, bool]] = [
    ("GET", re.compile(r"^/api/taskmaster/installation-status$"), "installation_status", False),
    ("GET", re.compile(r"^/api/taskmaster/detect-all$"), "detect_all", False),
    ("GET", re.compile(rf"^/api/taskmaster/detect/{_SEGMENT}$"), "detect", False),
    ("GET", re.compile(rf"^/api/taskmaster/next/{_SEGMENT}$"), "next_task", False),
    ("GET", re.compile(rf"^/api/taskmaster/tasks/{_SEGMENT}$"), "tasks", False),
    ("GET", re.compile(rf"^/api/taskmaster/prd/{_SEGMENT}$"), "list_prds", False),
    ("POST", re.compile(rf"^/api/taskmaster/prd/{_SEGMENT}$"), "save_prd", True),
    ("GET", re.compile(rf"^/api/taskmaster/prd/{_SEGMENT}/{_SEGMENT}$"), "read_prd", False),
    ("DELETE", re.compile(rf"^/api/taskmaster/prd/{_SEGMENT}/{_SEGMENT}$"), "delete_prd", False),
    ("POST", re.compile(rf"^/api/taskmaster/init/{_SEGMENT}$"), "init", False),
    ("POST", re.compile(rf"^/api/taskmaster/add-task/{_SEGMENT}$"), "add_task", True),
    ("PUT", re.compile(rf"^/api/taskmaster/update-task/{_SEGMENT}/{_SEGMENT}$"), "update_task", True),
    ("POST", re.compile(rf"^/api/taskmaster/parse-prd/{_SEGMENT}$"), "parse_prd", True),
    ("GET", re.compile(r"^/api/taskmaster/prd-templates$"), "prd_templates", False),
    ("POST", re.compile(rf"^/api/taskmaster/apply-template/{_SEGMENT}$"), "apply_template", True),
    ("GET", re.compile(r"^/api/mcp-utils/taskmaster-server$"), "mcp_server", False),
    ("GET", re.compile(r"^/api/mcp-utils/all-servers$"), "all_mcp_servers", False),
    ("GET", re.compile(r"^/api/projects$"), "projects", False),
    ("GET", re.compile(r"^/api/settings/tasks$"), "tasks_settings", False),
    ("PUT", re.compile(r"^/api/settings/tasks$"), "set_tasks_settings", True),
]

EVENTS_PATH = "/api/events"


def match_route(method: str, path: str) -> Optional[Tuple[str, List[str], bool]]:
    """Resolve a request to (api method name, url-decoded path params, wants body)."""
    for route_method, pattern, name, wants_body in _ROUTES:
        if route_method != method:
            continue
        found = pattern.match(path)
        if found:
            return name, [unquote(value) for value in found.groups()], wants_body
    return None


def _path_exists(path: str) -> bool:
    return any(pattern.match(path) for _, pattern, _, _ in _ROUTES)


class DashboardRequestHandler(BaseHTTPRequestHandler):
    server_version = "TaskMasterDashboard/0.1"

    def _send(self, code: int, body: bytes, *, content_type: str) -> None:
        self.send_response(code)
        self.send_header("Content-Type", content_type)
        self.send_header("Cache-Control", "no-store")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _send_json(self, code: int, payload: Dict[str, Any]) -> None:
        body = json.dumps(payload, indent=2, default=str).encode("utf-8")
        self._send(code, body, content_type="application/json; charset=utf-8")

    def _read_body(self) -> Dict[str, Any]:
        length = int(self.headers.get("Content-Length") or 0)
        if length <= 0:
            return {}
        raw = self.rfile.read(length)
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ApiError(400, "Invalid JSON body", str(exc)) from exc
        if not isinstance(payload, dict):
            raise ApiError(400, "Invalid JSON body", "Request body must be a JSON object")
        return payload

    def _dispatch(self, method: str) -> None:
        path = urlparse(self.path).path or "/"
        if method == "GET" and path == EVENTS_PATH:
            self._stream_events()
            return

        route = match_route(method, path)
        if route is None:
            if _path_exists(path):
                self._send_json(405, {"error": "Method not allowed", "message": f"{method} {path}"})
            else:
                self._send_json(404, {"error": "Not found", "message": f"No route for {method} {path}"})
            return

        name, params, wants_body = route
        api: TaskMasterApi = self.server.api  # type: ignore[attr-defined]
        try:
            args: List[Any] = list(params)
            if wants_body:
                args.append(self._read_body())
            payload = getattr(api, name)(*args)
            self._send_json(200, payload)
        except ApiError as exc:
            self._send_json(exc.status, exc.payload)
        except Exception as exc:
            LOG.exception("Unhandled error for %s %s", method, path)
            self._send_json(500, {"error": "Internal server error", "message": str(exc)})

    def do_GET(self) -> None:  # noqa: N802 - stdlib signature
        self._dispatch("GET")

    def do_POST(self) -> None:  # noqa: N802 - stdlib signature
        self._dispatch("POST")

    def do_PUT(self) -> None:  # noqa: N802 - stdlib signature
        self._dispatch("PUT")

    def do_DELETE(self) -> None:  # noqa: N802 - stdlib signature
        self._dispatch("DELETE")

    def _stream_events(self) -> None:
        """Server-sent events: one `event:`/`data:` frame per hub message."""
        server: DashboardServer = self.server  # type: ignore[assignment]
        self.send_response(200)
        self.send_header("Content-Type", "text/event-stream")
        self.send_header("Cache-Control", "no-cache")
        self.send_header("Connection", "keep-alive")
        self.send_header("X-Accel-Buffering", "no")
        self.end_headers()
        self.close_connection = True

        keepalive = max(1, server.api.settings.sse_keepalive_seconds)
        with server.api.hub.subscribe() as subscription:
            try:
                self.wfile.write(b"retry: 3000\n\n")
                self.wfile.flush()
                while not server.stopping.is_set():
                    message = subscription.get(timeout=keepalive)
                    if message is None:
                        frame = ": keepalive\n\n"
                    else:
                        data = json.dumps(message, default=str)
                        frame = f"event: {message.get('type', 'message')}\ndata: {data}\n\n"
                    self.wfile.write(frame.encode("utf-8"))
                    self.wfile.flush()
            except (BrokenPipeError, ConnectionResetError):
                LOG.debug("Event stream client %s disconnected", subscription.id)

    def log_message(self, format: str, *args: object) -> None:  # noqa: A003 - stdlib signature
        LOG.debug("%s - %s", self.address_string(), format % args)


class DashboardServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(
        self,
        server_address: Tuple[str, int],
        *,
        settings: Optional[DashboardSettings] = None,
        api: Optional[TaskMasterApi] = None,
    ) -> None:
        super().__init__(server_address, DashboardRequestHandler)
        self.api = api or TaskMasterApi(settings)
        self.stopping = threading.Event()

    def shutdown(self) -> None:
        self.stopping.set()
        super().shutdown()


def run_dashboard_server(
    *,
    host: Optional[str] = None,
    port: Optional[int] = None,
    settings: Optional[DashboardSettings] = None,
) -> None:
    settings = settings or get_settings()
    httpd = DashboardServer((host or settings.host, port if port is not None else settings.port), settings=settings)
    LOG.info("TaskMaster dashboard listening on http://%s:%s", *httpd.server_address[:2])
    try:
        httpd.serve_forever(poll_interval=0.25)
    finally:
        httpd.stopping.set()
        httpd.server_close()
