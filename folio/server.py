"""Development server for Folio.

Serves the built site with live reload for local authoring:
- Injects a reload script into HTML responses.
- Answers missing paths and bare directories with a 404 (serving 404.html when present).
- Watches the project and rebuilds on change, then tells connected browsers to reload.

A failed rebuild is reported on the console and the last good output keeps
being served, since the emitter only replaces the output tree on success.

Key classes:
- DevServer: Main class for running the development server.
- _ReloadHandler: HTTP request handler that injects the reload script.
- _ChangeHandler: File system event handler for triggering rebuilds.
"""

from __future__ import annotations

import asyncio
import functools
import json
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import CONFIG_FILENAME, build_site, load_config
from .errors import FolioError

WATCHED_FOLDERS = ("site", "assets", "data")


def _describe_failure(exc: FolioError) -> str:
    lines = [f"Build failed: {exc.message}"]
    for path, message in exc.describe():
        lines.append(f"  {path}: {message}" if path else f"  {message}")
    return "\n".join(lines)


class _ReloadHandler(SimpleHTTPRequestHandler):
    """HTTP request handler that injects a live reload script into HTML pages."""

    reload_script_template = """
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
    reload_script = reload_script_template.format(ws_port=4001)

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        super().end_headers()

    def list_directory(self, path):  # pragma: no cover - exercised via send_head
        return self._send_html(Path(self.directory) / "404.html", status=404)

    def _inject(self, content: str) -> str:
        if "</body>" in content:
            return content.replace("</body>", f"{self.reload_script}</body>")
        return content + self.reload_script

    def _send_html(self, path: Path, status: int = 200):
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
        not_found = Path(self.directory) / "404.html"
        if path.is_dir():
            path = path / "index.html"
        elif not path.exists() and path.with_suffix(".html").exists():
            # Extensionless permalinks are written as <name>.html.
            path = path.with_suffix(".html")
        if not path.exists():
            return self._send_html(not_found, status=404)
        if path.suffix == ".html":
            return self._send_html(path)
        return super().send_head()


class DevServer:
    """Development server with live reload functionality.

    Attributes:
        project_root: Root directory of the project.
        config: Site configuration.
        output_dir: Directory where the built site is served from.
        http_port: Port for the HTTP server.
        ws_port: Port for WebSocket connections.
    """

    def __init__(
        self, project_root: Path, http_port: int | None = None, ws_port: int | None = None
    ):
        """Initialize the development server.

        Args:
            project_root: Root directory of the project.
            http_port: Optional override for the HTTP port.
            ws_port: Optional override for the websocket port; defaults to
                the HTTP port plus one.
        """
        self.project_root = project_root
        self.config = load_config(project_root)
        self.output_dir = project_root / self.config.get("output_dir", "output")
        self.http_port = int(http_port or self.config.get("port", 4000))
        if ws_port is not None:
            self.ws_port = ws_port
        elif http_port is None and "ws_port" in self.config:
            self.ws_port = int(self.config["ws_port"])
        else:
            self.ws_port = self.http_port + 1
        self._reload_script = _ReloadHandler.reload_script_template.format(
            ws_port=self.ws_port
        )
        self._root_url = f"http://localhost:{self.http_port}"
        self._observer: Observer | None = None
        self._ws_clients: set = set()
        self._loop = asyncio.new_event_loop()
        self._rebuilding = False
        self._last_rebuild_at = 0.0
        self._last_signature: tuple | None = None
        self._debounce_seconds = 0.05
        self._post_build_delay = 0.05

    def start(self, include_drafts: bool = False) -> None:  # pragma: no cover - integration path
        self._build(include_drafts)
        self._last_signature = self._compute_signature()
        threading.Thread(target=self._start_http, daemon=True).start()
        threading.Thread(target=self._start_ws, daemon=True).start()
        self._start_watcher(include_drafts)
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

    def _build(self, include_drafts: bool) -> bool:
        try:
            result = build_site(
                self.project_root,
                include_drafts=include_drafts,
                root_url=self._root_url,
                output_dir_override=self.output_dir,
            )
        except FolioError as exc:
            print(_describe_failure(exc))
            return False
        print(f"Built {len(result.pages)} pages into {result.output_dir}")
        if result.load_error is not None:
            print(_describe_failure(result.load_error))
        return True

    def _start_http(self) -> None:  # pragma: no cover - integration path
        handler_cls = type(
            "_ReloadHandlerWithPort",
            (_ReloadHandler,),
            {"reload_script": self._reload_script},
        )
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        httpd = ThreadingHTTPServer(("", self.http_port), handler)
        print(f"Serving {self.output_dir} at http://localhost:{self.http_port}")
        httpd.serve_forever()

    def _start_ws(self) -> None:
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._run_ws_server())
        except OSError as exc:
            print(f"WebSocket server failed to start (port {self.ws_port}): {exc}")

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
            except websockets.ConnectionClosed:
                stale.add(ws)
        for ws in stale:
            self._ws_clients.discard(ws)

    def _watch_paths(self) -> list[tuple[Path, bool]]:
        paths = [
            (self.project_root / folder, True)
            for folder in WATCHED_FOLDERS
            if (self.project_root / folder).exists()
        ]
        # Root, non-recursive, for folio.yaml.
        paths.append((self.project_root, False))
        return paths

    def _start_watcher(self, include_drafts: bool) -> None:
        handler = _ChangeHandler(self, include_drafts)
        observer = Observer()
        for path, recursive in self._watch_paths():
            observer.schedule(handler, str(path), recursive=recursive)
        observer.start()
        self._observer = observer

    def rebuild(self, include_drafts: bool) -> None:
        now = time.time()
        if self._rebuilding or (now - self._last_rebuild_at) < self._debounce_seconds:
            return
        signature = self._compute_signature()
        if signature is not None and signature == self._last_signature:
            return
        self._rebuilding = True
        try:
            print("Change detected; rebuilding...")
            built = self._build(include_drafts)
            self._last_signature = signature
            if built:
                if self._post_build_delay:
                    time.sleep(self._post_build_delay)
                self._broadcast_reload()
        finally:
            self._rebuilding = False
            self._last_rebuild_at = time.time()

    def _compute_signature(self) -> tuple | None:
        entries: list[tuple] = []
        candidates: list[Path] = [self.project_root / CONFIG_FILENAME]
        for folder in WATCHED_FOLDERS:
            root = self.project_root / folder
            if root.exists():
                candidates.extend(sorted(root.rglob("*")))
        for path in candidates:
            try:
                if path.is_dir():
                    continue
                stat = path.stat()
            except OSError:
                continue
            rel = path.relative_to(self.project_root)
            entries.append((rel.as_posix(), stat.st_mtime_ns, stat.st_size))
        return tuple(entries) if entries else None


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, server: DevServer, include_drafts: bool):
        super().__init__()
        self.server = server
        self.include_drafts = include_drafts

    def on_any_event(self, event):
        if event.is_directory:
            return
        path = Path(event.src_path)
        output_dir = self.server.output_dir
        for ignored in (
            output_dir,
            output_dir.with_name(f"{output_dir.name}.staging"),
            output_dir.with_name(f"{output_dir.name}.previous"),
        ):
            try:
                path.relative_to(ignored)
                return
            except ValueError:
                pass
        if path.parent == self.server.project_root and path.name != CONFIG_FILENAME:
            return
        self.server.rebuild(self.include_drafts)
