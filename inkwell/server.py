"""Development server for Inkwell.

Serves the built site with live reload for local authoring:
- Builds in a preview run mode, so drafts are visible.
- Builds into a staging directory and swaps it in, so the served tree is never half-written.
- Injects a reload script into HTML responses and pushes reloads over a websocket.
- Watches the content, public and css folders plus configured watch targets.

Key classes:
- DevServer: Main class for running the development server.
- _ReloadHandler: HTTP request handler that injects the reload script.
- _ChangeHandler: File system event handler for triggering rebuilds.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import os
import re
import shutil
import threading
import time
from collections.abc import Iterable
from fnmatch import fnmatch
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import BuildError, build_site
from .config import ConfigError, RunMode, load_config

logger = logging.getLogger(__name__)

WATCHED_FOLDERS = ("public", "css")

_RELOAD_SCRIPT = """
<script>
(() => {{
  const ws = new WebSocket('ws://' + location.hostname + ':{ws_port}');
  ws.onmessage = (event) => {{
    const data = JSON.parse(event.data || '{{}}');
    if (data.type === 'reload') location.reload();
  }};
}})();
</script>
"""


def _expand_braces(pattern: str) -> list[str]:
    match = re.search(r"\{([^{}]*)\}", pattern)
    if not match:
        return [pattern]
    expanded: list[str] = []
    for option in match.group(1).split(","):
        expanded.extend(
            _expand_braces(pattern[: match.start()] + option + pattern[match.end() :])
        )
    return expanded


def matches_watch_target(rel_path: str, patterns: Iterable[str]) -> bool:
    """Check a project-relative POSIX path against watch globs.

    Supports ``**`` (zero or more directories) and ``{a,b}`` alternatives.
    """
    for pattern in patterns:
        for expanded in _expand_braces(pattern):
            if fnmatch(rel_path, expanded) or fnmatch(rel_path, expanded.replace("**/", "")):
                return True
    return False


class _ReloadHandler(SimpleHTTPRequestHandler):
    """HTTP request handler that injects the live reload script into HTML pages."""

    reload_script = _RELOAD_SCRIPT.format(ws_port=8081)

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        super().end_headers()

    def log_message(self, format, *args):  # noqa: A002 - signature fixed by base class
        logger.debug("%s - %s", self.address_string(), format % args)

    def list_directory(self, path):  # pragma: no cover - exercised via send_head
        return self._send_html(Path(self.directory) / "404.html", 404)

    def _inject(self, content: str) -> str:
        if "</body>" in content:
            return content.replace("</body>", f"{self.reload_script}</body>")
        return content + self.reload_script

    def _send_html(self, path: Path, status: int):
        if not path.exists():
            self.send_error(404, "File not found")
            return None
        encoded = self._inject(path.read_text(encoding="utf-8")).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)
        return None

    def send_head(self):
        path = Path(self.translate_path(self.path))
        if path.is_dir():
            path = path / "index.html"
        if not path.exists():
            return self._send_html(Path(self.directory) / "404.html", 404)
        if path.suffix == ".html":
            return self._send_html(path, 200)
        return super().send_head()


class DevServer:
    """Development server with live reload functionality.

    Attributes:
        project_root: Root directory of the project.
        run_mode: Run mode passed to every build.
        output_dir: Directory the built site is served from.
        http_port: Port for the HTTP server.
        ws_port: Port for websocket connections.
    """

    def __init__(
        self,
        project_root: Path,
        run_mode: RunMode = RunMode.SERVE,
        http_port: int | None = None,
        ws_port: int | None = None,
    ):
        self.project_root = project_root
        self.run_mode = run_mode
        self.config = load_config(project_root)
        self.output_dir = self.config.output_dir
        self._staging_dir = self.output_dir.with_name(self.output_dir.name + ".staging")
        self.http_port = int(http_port or self.config.port)
        self.ws_port = int(ws_port) if ws_port is not None else self.http_port + 1
        self._reload_script = _RELOAD_SCRIPT.format(ws_port=self.ws_port)
        self._observer: Observer | None = None
        self._ws_clients: set = set()
        self._loop = asyncio.new_event_loop()
        self._rebuilding = False
        self._last_rebuild_at = 0.0
        self._debounce_seconds = 0.05
        self._post_build_delay = 0.05

    def start(self) -> None:  # pragma: no cover - integration path
        self._build()
        threading.Thread(target=self._start_http, daemon=True).start()
        threading.Thread(target=self._start_ws, daemon=True).start()
        self._start_watcher()
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
        self._loop.call_soon_threadsafe(self._loop.stop)

    def _build(self) -> None:
        staging = self._staging_dir
        if staging.exists():
            shutil.rmtree(staging)
        build_site(
            self.project_root,
            self.run_mode,
            clean_output=True,
            output_dir_override=staging,
        )
        if self.output_dir.exists():
            shutil.rmtree(self.output_dir)
        os.replace(staging, self.output_dir)

    def _start_http(self) -> None:  # pragma: no cover - integration path
        handler_cls = type(
            "_ReloadHandlerWithPort",
            (_ReloadHandler,),
            {"reload_script": self._reload_script},
        )
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        httpd = ThreadingHTTPServer(("", self.http_port), handler)
        logger.info("Serving %s at http://localhost:%d", self.output_dir, self.http_port)
        httpd.serve_forever()

    def _start_ws(self) -> None:  # pragma: no cover - integration path
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._run_ws_server())
        except OSError as exc:
            logger.error("WebSocket server failed to start (port %d): %s", self.ws_port, exc)

    async def _run_ws_server(self) -> None:  # pragma: no cover - integration path
        async with websockets.serve(self._ws_handler, "0.0.0.0", self.ws_port):
            await asyncio.Future()

    async def _ws_handler(self, websocket):
        self._ws_clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self._ws_clients.discard(websocket)

    def _broadcast_reload(self) -> None:
        message = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self._async_broadcast(message), self._loop)

    async def _async_broadcast(self, message: str) -> None:
        stale = set()
        for ws in self._ws_clients:
            try:
                await ws.send(message)
            except Exception:
                stale.add(ws)
        self._ws_clients -= stale

    def _start_watcher(self) -> None:  # pragma: no cover - integration path
        observer = Observer()
        observer.schedule(_ChangeHandler(self), str(self.project_root), recursive=True)
        observer.start()
        self._observer = observer

    def should_rebuild(self, path: Path) -> bool:
        """Decide whether a change to ``path`` needs a rebuild."""
        try:
            rel = path.resolve().relative_to(self.project_root.resolve())
        except ValueError:
            return False
        for ignored in (self.output_dir, self._staging_dir):
            if path.resolve().is_relative_to(ignored.resolve()):
                return False
        if "node_modules" in rel.parts or ".git" in rel.parts:
            return False
        input_rel = self.config.input_dir.resolve().relative_to(self.project_root.resolve())
        watched = (*input_rel.parts[:1], *WATCHED_FOLDERS)
        if rel.parts and rel.parts[0] in watched:
            return True
        if rel.as_posix() == "inkwell.yaml":
            return True
        return matches_watch_target(rel.as_posix(), self.config.watch_targets)

    def rebuild(self) -> None:
        now = time.time()
        if self._rebuilding or (now - self._last_rebuild_at) < self._debounce_seconds:
            return
        self._rebuilding = True
        try:
            logger.info("Change detected; rebuilding...")
            try:
                self._build()
            except (BuildError, ConfigError, OSError) as exc:
                logger.error("Build failed: %s", exc)
                return
            if self._post_build_delay:
                time.sleep(self._post_build_delay)
            self._broadcast_reload()
        finally:
            self._rebuilding = False
            self._last_rebuild_at = time.time()


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, server: DevServer):
        super().__init__()
        self.server = server

    def on_any_event(self, event):
        if event.is_directory:
            return
        if self.server.should_rebuild(Path(event.src_path)):
            self.server.rebuild()
