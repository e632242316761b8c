"""The listening socket: accepts connections and hands each request to the application."""

from __future__ import annotations

import ipaddress
import logging
import socket
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

from bmweb.app import Application
from bmweb.request import to_int
from bmweb.response import ResponseWriter

log = logging.getLogger(__name__)

BUFSIZE = 4096
CONNECTION_BACKLOG = 10
DEFAULT_PORT = 2605
MIN_PORT = 1
MAX_PORT = 65535

CONFIG_WEB_PORT = "web.port"
CONFIG_WEB_ALLOW_REMOTE = "web.allow_remote"
ALLOW_REMOTE_CONNECT = 1
ALLOW_REMOTE_ADMIN = 2

_POLL_SECONDS = 0.2
_CLIENT_TIMEOUT = 30.0


@dataclass
class ServerSettings:
    """Where and to whom the server listens."""

    port: int = DEFAULT_PORT
    allow_remote_connect: bool = False
    allow_remote_admin: bool = False
    web_root: Union[str, Path] = "."


def port_from_config(value: Optional[Union[str, int]]) -> int:
    """The configured port, or the default if it is unset or out of range."""
    port = value if isinstance(value, int) else to_int(value, -1)
    if port is None or port < 0:
        return DEFAULT_PORT
    if MIN_PORT <= port <= MAX_PORT:
        return port
    log.error(
        "The config value %s contained an invalid port number of %s, "
        "using default of %d instead.",
        CONFIG_WEB_PORT,
        value,
        DEFAULT_PORT,
    )
    return DEFAULT_PORT


def settings_from_config(
    store: Mapping[str, str], web_root: Union[str, Path]
) -> ServerSettings:
    """Server settings read from the config store."""
    allow_remote = to_int(store.get(CONFIG_WEB_ALLOW_REMOTE), 0) or 0
    return ServerSettings(
        port=port_from_config(store.get(CONFIG_WEB_PORT)),
        allow_remote_connect=allow_remote >= ALLOW_REMOTE_CONNECT,
        allow_remote_admin=allow_remote == ALLOW_REMOTE_ADMIN,
        web_root=web_root,
    )


def is_local_address(address: str) -> bool:
    """True for any IPv4 address in the 127.x.x.x range."""
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    return ip.version == 4 and ip in ipaddress.ip_network("127.0.0.0/8")


class WebServer:
    """Listens on the configured port and serves each connection on its own thread."""

    def __init__(self, application: Application, settings: ServerSettings) -> None:
        self.application = application
        self.settings = settings
        self._stopped = threading.Event()
        host = "" if settings.allow_remote_connect else "127.0.0.1"
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            self._listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self._listener.bind((host, settings.port))
            self._listener.listen(CONNECTION_BACKLOG)
        except OSError:
            self._listener.close()
            raise

    @property
    def server_address(self) -> tuple[str, int]:
        """The address the listener is bound to."""
        return self._listener.getsockname()

    def serve_forever(self) -> None:
        """Accept connections until :meth:`shutdown` is called."""
        self._listener.settimeout(_POLL_SECONDS)
        try:
            while not self._stopped.is_set():
                try:
                    conn, _ = self._listener.accept()
                except socket.timeout:
                    continue
                except OSError as error:
                    if self._stopped.is_set():
                        break
                    log.error("accept() failed: %s", error)
                    continue
                conn.settimeout(_CLIENT_TIMEOUT)
                threading.Thread(
                    target=self.handle_connection, args=(conn,), daemon=True
                ).start()
        finally:
            self._listener.close()

    def shutdown(self) -> None:
        """Stop accepting connections and close the listener."""
        self._stopped.set()
        self._listener.close()

    def _allow_admin(self, conn: socket.socket) -> bool:
        if self.settings.allow_remote_admin:
            return True
        try:
            local = conn.getsockname()
        except OSError as error:
            log.error("getsockname() returned an error: %s", error)
            return False
        host = local[0] if isinstance(local, tuple) else local
        return isinstance(host, str) and is_local_address(host)

    def handle_connection(self, conn: socket.socket) -> None:
        """Read one request from ``conn``, answer it and close the connection."""
        with conn:
            try:
                raw = conn.recv(BUFSIZE)
            except OSError as error:
                log.error("read() failed: %s", error)
                return
            if not raw:
                log.error("read() returned 0")
                return

            allow_admin = self._allow_admin(conn)
            with conn.makefile("wb") as stream:
                writer = ResponseWriter(stream, self.application.clock)
                self.application.handle(writer, raw, allow_admin)