"""Static file server for PXE and ZTP content."""

from __future__ import annotations

import copy
import functools
import logging
import posixpath
import threading
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional

_log = logging.getLogger("topohub.httpserver")


class _FileHandler(SimpleHTTPRequestHandler):
    def translate_path(self, path: str) -> str:
        head, sep, tail = path.partition("?")
        cleaned = posixpath.normpath("/" + head.split("#", 1)[0])
        return super().translate_path(cleaned + sep + tail)

    def log_message(self, format: str, *args: Any) -> None:
        _log.debug("%s - %s", self.address_string(), format % args)


class HttpServer:
    """Serves the agent's HTTP storage directory over plain HTTP."""

    def __init__(self, config: Any) -> None:
        self.config = copy.copy(config)
        port = self.config.http_port
        self.address = ("", int(port) if port else 0)
        self._lock = threading.Lock()
        self._server: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None
        self._stopped = False

    @property
    def server_address(self) -> Optional[tuple[str, int]]:
        """The bound (host, port), or None while not running."""
        server = self._server
        if server is None:
            return None
        host, port = server.server_address[:2]
        return str(host), int(port)

    def run(self) -> None:
        """Bind the listening socket and serve in a background thread."""
        with self._lock:
            if self._stopped:
                raise RuntimeError("http server is closed")
            if self._server is not None:
                raise RuntimeError("http server is already running")
            root = self.config.storage_path_http
            handler = functools.partial(_FileHandler, directory=root)
            self._server = ThreadingHTTPServer(self.address, handler)
            self._thread = threading.Thread(
                target=self._server.serve_forever, name="topohub-httpserver", daemon=True
            )
            self._thread.start()
        _log.info("starting HTTP server on address %s, root path: %s",
                  self.server_address, self.config.storage_path_http)

    def stop(self) -> None:
        """Shut the server down; later calls do nothing."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            server, thread = self._server, self._thread
            self._server = None
            self._thread = None
        if server is not None:
            server.shutdown()
            server.server_close()
        if thread is not None:
            thread.join()
        _log.info("HTTP server stopped")