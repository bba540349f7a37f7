"""Local socket server that lets a front end load profiles into the mapper."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import selectors
import socket
import sys
import threading
from pathlib import Path

from keybinder.keymap import KeyMap
from keybinder.mapper import Mapper
from keybinder.profile import LATEST_PROFILE_FILE_LOCATION, Profile

log = logging.getLogger(__name__)

PIPE_PATH = r"\\.\pipe\clickr" if sys.platform == "win32" else "/tmp/clickr.sock"

_POLL_SECONDS = 0.2
_RECV_SIZE = 4096


def _response(status: str, error: str = "") -> bytes:
    body = {"status": status}
    if status == "fail":
        body["error"] = error
    return json.dumps(body, sort_keys=True, separators=(",", ":")).encode() + b"\n"


class ClientConnection:
    """One client: splits its stream into JSON lines and answers each one."""

    def __init__(
        self,
        mapper: Mapper,
        key_map: KeyMap | None = None,
        latest_path: str | Path | None = LATEST_PROFILE_FILE_LOCATION,
    ) -> None:
        self.mapper = mapper
        self.key_map = key_map
        self.latest_path = latest_path
        self._buffer = bytearray()
        log.info("New client connected")

    def feed(self, data: bytes) -> list[bytes]:
        """Take received bytes and return the responses for every complete line."""
        self._buffer += data
        responses = []
        while (end := self._buffer.find(b"\n")) != -1:
            line = bytes(self._buffer[:end])
            del self._buffer[: end + 1]
            responses.append(self.handle_line(line))
        return responses

    def handle_line(self, line: bytes | str) -> bytes:
        """Handle one message and return the encoded response line."""
        if isinstance(line, str):
            line = line.encode("utf-8")
        if line.endswith(b"\r"):
            line = line[:-1]
        try:
            doc = json.loads(line)
        except ValueError as exc:
            log.warning("JSON parse error: %s", exc)
            doc = None
        if not isinstance(doc, dict):
            return _response("fail", "invalid json")

        msg_type = doc.get("type")
        if not isinstance(msg_type, str):
            msg_type = ""
        if msg_type != "load_profile":
            log.warning("Unknown message_type: %s", msg_type)
            return _response("fail", f"unknown message_type: {msg_type}")

        profile_obj = doc.get("profile")
        if not isinstance(profile_obj, dict):
            profile_obj = {}
        try:
            profile = Profile.from_json(profile_obj, self.key_map, self.latest_path)
            self.mapper.set_profile(profile)
        except ValueError as exc:
            log.warning("Invalid profile JSON: %s", exc)
            return _response("fail", str(exc))
        return _response("ok")


class LocalServer:
    """Listens on a local socket and serves ClientConnections."""

    def __init__(
        self,
        mapper: Mapper,
        path: str | Path = PIPE_PATH,
        key_map: KeyMap | None = None,
        latest_path: str | Path | None = LATEST_PROFILE_FILE_LOCATION,
    ) -> None:
        self.mapper = mapper
        self.path = str(path)
        self.key_map = key_map
        self.latest_path = latest_path
        self._sock: socket.socket | None = None
        self._selector: selectors.BaseSelector | None = None
        self._stop = threading.Event()
        self._serving = threading.Event()
        self._done = threading.Event()
        self._lock = threading.Lock()

    def __enter__(self) -> LocalServer:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _remove_socket_file(self) -> None:
        with contextlib.suppress(OSError):
            os.unlink(self.path)

    def start(self) -> bool:
        """Bind and listen, replacing a stale socket file; raise OSError on failure."""
        self._remove_socket_file()
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.bind(self.path)
            sock.listen()
        except OSError:
            sock.close()
            log.critical("Could not listen on: %s", self.path)
            raise
        sock.setblocking(False)
        selector = selectors.DefaultSelector()
        selector.register(sock, selectors.EVENT_READ, None)
        self._sock = sock
        self._selector = selector
        self._stop.clear()
        log.debug("Server listening on: %s", self.path)
        return True

    def serve_forever(self) -> None:
        """Accept clients and answer their messages until close() is called."""
        if self._selector is None:
            self.start()
        self._done.clear()
        self._serving.set()
        try:
            while not self._stop.is_set():
                for key, _ in self._selector.select(timeout=_POLL_SECONDS):
                    if key.data is None:
                        self._accept()
                    else:
                        self._serve(key.fileobj, key.data)
        finally:
            self._serving.clear()
            self._done.set()

    def _accept(self) -> None:
        try:
            conn, _ = self._sock.accept()
        except BlockingIOError:
            return
        conn.setblocking(True)
        client = ClientConnection(self.mapper, self.key_map, self.latest_path)
        self._selector.register(conn, selectors.EVENT_READ, client)

    def _drop(self, conn: socket.socket) -> None:
        with contextlib.suppress(KeyError, ValueError):
            self._selector.unregister(conn)
        conn.close()

    def _serve(self, conn: socket.socket, client: ClientConnection) -> None:
        try:
            data = conn.recv(_RECV_SIZE)
        except OSError:
            data = b""
        if not data:
            self._drop(conn)
            return
        log.info("New message from client")
        try:
            for response in client.feed(data):
                conn.sendall(response)
        except OSError:
            self._drop(conn)

    def close(self) -> None:
        """Stop serving, close every socket and remove the socket file."""
        self._stop.set()
        if self._serving.is_set():
            self._done.wait()
        with self._lock:
            if self._selector is not None:
                for key in list(self._selector.get_map().values()):
                    self._selector.unregister(key.fileobj)
                    key.fileobj.close()
                self._selector.close()
                self._selector = None
                self._sock = None
            self._remove_socket_file()