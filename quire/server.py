"""Development server for Quire.

``quire serve`` builds the site once, serves the output folder over HTTP
and rebuilds whenever a source file changes. Browsers are told to reload
through a websocket; a small script is appended to every HTML response so
that they connect to it.

Key classes:
- DevServer: Builds, serves and watches a project.
- LiveReloadHub: Websocket endpoint that pushes reload messages to browsers.
- _ReloadHandler: HTTP handler that adds the reload script and serves 404s.
- _ChangeHandler: Watchdog handler that triggers rebuilds.

A rebuild that fails is logged and the last good output stays online.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import SOURCE_FOLDERS, build_site
from .config import CONFIG_FILENAME, load_config
from .errors import QuireError

logger = logging.getLogger(__name__)

RELOAD_SCRIPT = """<script>
(function connect() {{
  var socket = new WebSocket("ws://" + location.hostname + ":{ws_port}");
  socket.onmessage = function (event) {{
    var message = JSON.parse(event.data || "{{}}");
    if (message.type === "reload") {{ location.reload(); }}
  }};
  socket.onclose = function () {{ setTimeout(connect, 1000); }};
}})();
</script>
"""


def inject_reload_script(html: str, script: str) -> bytes:
    """Place ``script`` before ``</body>``, or at the end when there is none."""
    head, marker, tail = html.rpartition("</body>")
    if marker:
        html = f"{head}{script}{marker}{tail}"
    else:
        html += script
    return html.encode("utf-8")


def snapshot_sources(project_root: Path, roots: list[Path]) -> tuple | None:
    """Return (path, mtime, size) for every file under ``roots``.

    Two equal snapshots mean nothing a build reads has changed. Returns None
    when there are no files at all.
    """
    entries: list[tuple[str, int, int]] = []
    for root in roots:
        if not root.exists():
            continue
        files = [root] if root.is_file() else sorted(root.rglob("*"))
        for path in files:
            try:
                stat = path.stat()
            except OSError:
                continue
            if path.is_dir():
                continue
            entries.append(
                (path.relative_to(project_root).as_posix(), stat.st_mtime_ns, stat.st_size)
            )
    return tuple(entries) or None


class _ReloadHandler(SimpleHTTPRequestHandler):
    """Serves the output folder with the reload script added to HTML.

    Directories without an ``index.html`` and missing files get a 404,
    rendered from the site's own ``404.html`` when it exists.
    """

    reload_script = RELOAD_SCRIPT.format(ws_port=1314)

    def end_headers(self):
        self.send_header("Cache-Control", "no-store")
        super().end_headers()

    def log_message(self, format, *args):  # noqa: A002
        logger.debug("%s %s", self.address_string(), format % args)

    def list_directory(self, path):  # pragma: no cover
        return self._not_found()

    def _write_html(self, status: int, path: Path) -> None:
        body = inject_reload_script(path.read_text(encoding="utf-8"), self.reload_script)
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _not_found(self):
        page = Path(self.directory) / "404.html"
        if page.is_file():
            self._write_html(404, page)
        else:
            self.send_error(404, "File not found")
        return None

    def send_head(self):
        target = Path(self.translate_path(self.path))
        if target.is_dir():
            target = target / "index.html"
        if not target.is_file():
            return self._not_found()
        if target.suffix == ".html":
            self._write_html(200, target)
            return None
        return super().send_head()


class LiveReloadHub:
    """Websocket endpoint that tells connected browsers to reload.

    The websocket server runs on its own event loop in a background thread;
    ``notify`` may be called from any thread.
    """

    def __init__(self, port: int):
        self.port = port
        self.clients: set = set()
        self.loop = asyncio.new_event_loop()

    def run(self) -> None:  # pragma: no cover
        asyncio.set_event_loop(self.loop)
        try:
            self.loop.run_until_complete(self._serve())
        except OSError as exc:
            logger.error("Live reload unavailable on port %d: %s", self.port, exc)

    async def _serve(self) -> None:  # pragma: no cover
        async with websockets.serve(self.register, "0.0.0.0", self.port):
            await asyncio.Future()

    async def register(self, websocket):
        self.clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self.clients.discard(websocket)

    def notify(self) -> None:
        asyncio.run_coroutine_threadsafe(
            self.broadcast(json.dumps({"type": "reload"})), self.loop
        )

    async def broadcast(self, message: str) -> None:
        for websocket in list(self.clients):
            try:
                await websocket.send(message)
            except websockets.ConnectionClosed:
                self.clients.discard(websocket)

    def stop(self) -> None:
        self.loop.call_soon_threadsafe(self.loop.stop)


class DevServer:
    """Builds a project, serves its output and rebuilds on change.

    Attributes:
        project_root: Root directory of the project.
        output_dir: Folder that is served.
        content_dir: Content folder being watched.
        http_port: HTTP port.
        ws_port: Live reload websocket port.
    """

    def __init__(
        self,
        project_root: Path,
        http_port: int | None = None,
        ws_port: int | None = None,
    ):
        config = load_config(project_root)
        self.project_root = project_root
        self.output_dir = project_root / config.output_dir
        self.content_dir = project_root / config.content_dir
        self.http_port = http_port or config.port
        if ws_port is None:
            # An explicit HTTP port moves the websocket next to it.
            ws_port = self.http_port + 1 if http_port else config.ws_port
        self.ws_port = ws_port
        self.base_url = f"http://localhost:{self.http_port}/"
        self.hub = LiveReloadHub(self.ws_port)
        self._observer: Observer | None = None
        self._lock = threading.Lock()
        self._snapshot: tuple | None = None
        self._last_rebuild_at = 0.0
        self._debounce_seconds = 0.05

    @property
    def reload_script(self) -> str:
        return RELOAD_SCRIPT.format(ws_port=self.ws_port)

    def start(
        self, include_drafts: bool = False, include_future: bool = False
    ) -> None:  # pragma: no cover
        self._build(include_drafts, include_future)
        self._snapshot = self.source_snapshot()
        threading.Thread(target=self._serve_http, daemon=True).start()
        threading.Thread(target=self.hub.run, daemon=True).start()
        self._watch(include_drafts, include_future)
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
        self.hub.stop()

    def _build(self, include_drafts: bool, include_future: bool):
        result = build_site(
            self.project_root,
            include_drafts=include_drafts,
            include_future=include_future,
            base_url=self.base_url,
        )
        for error in result.errors:
            logger.warning("%s: %s", error.source_path, error.message)
        return result

    def _serve_http(self) -> None:  # pragma: no cover
        handler_cls = type(
            "_ProjectReloadHandler", (_ReloadHandler,), {"reload_script": self.reload_script}
        )
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        httpd = ThreadingHTTPServer(("", self.http_port), handler)
        logger.info("Serving %s at %s", self.output_dir, self.base_url)
        httpd.serve_forever()

    def watched_paths(self) -> list[Path]:
        candidates = [self.content_dir]
        candidates.extend(self.project_root / name for name in SOURCE_FOLDERS)
        return [path for path in candidates if path.is_dir()]

    def source_snapshot(self) -> tuple | None:
        roots = self.watched_paths() + [self.project_root / CONFIG_FILENAME]
        return snapshot_sources(self.project_root, roots)

    def _watch(self, include_drafts: bool, include_future: bool) -> None:
        handler = _ChangeHandler(self, include_drafts, include_future)
        observer = Observer()
        for path in self.watched_paths():
            observer.schedule(handler, str(path), recursive=True)
        # quire.yaml lives in the project root
        observer.schedule(handler, str(self.project_root), recursive=False)
        observer.start()
        self._observer = observer

    def rebuild(self, include_drafts: bool, include_future: bool = False) -> bool:
        """Rebuild the site if sources changed since the last build.

        Events arriving while a rebuild runs, or within the debounce window
        after one, are dropped.

        Returns:
            True if a rebuild ran and browsers were told to reload.
        """
        if not self._lock.acquire(blocking=False):
            return False
        try:
            if time.time() - self._last_rebuild_at < self._debounce_seconds:
                return False
            snapshot = self.source_snapshot()
            if snapshot is not None and snapshot == self._snapshot:
                return False
            logger.info("Change detected; rebuilding...")
            try:
                self._build(include_drafts, include_future)
            except QuireError as exc:
                logger.error("Rebuild failed: %s", exc)
                return False
            self._snapshot = snapshot
            self.hub.notify()
            return True
        finally:
            self._last_rebuild_at = time.time()
            self._lock.release()

    def is_output_path(self, path: Path) -> bool:
        """True for paths inside the output, staging or previous-output folders."""
        name = self.output_dir.name
        for folder in (name, f"{name}.staging", f"{name}.previous"):
            if path.is_relative_to(self.output_dir.with_name(folder)):
                return True
        return False


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, server: DevServer, include_drafts: bool, include_future: bool):
        super().__init__()
        self.server = server
        self.include_drafts = include_drafts
        self.include_future = include_future

    def on_any_event(self, event):
        if event.is_directory:
            return
        path = Path(event.src_path)
        if self.server.is_output_path(path):
            return
        if path.parent == self.server.project_root and path.name != CONFIG_FILENAME:
            return
        self.server.rebuild(self.include_drafts, self.include_future)
