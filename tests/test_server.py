import socket
import threading

import pytest

from bmweb.app import Application
from bmweb.models import Data, Summary
from bmweb.server import (
    DEFAULT_PORT,
    ServerSettings,
    WebServer,
    is_local_address,
    port_from_config,
    settings_from_config,
)

NOW = 1257674400


class FakeSource:
    def get_monitor_values(self, ts, host, adapter):
        return []

    def get_query_values(self, start, end, group, host, adapter):
        return []

    def get_sync_values(self, ts):
        return []

    def get_summary_values(self, host, adapter):
        return Summary()

    def get_dump_values(self):
        return []


class EmptyAlerts:
    def get_alerts(self):
        return []

    def add_alert(self, alert):
        return None

    def update_alert(self, alert):
        return False

    def remove_alert(self, alert_id):
        return False

    def get_totals_for_alert(self, alert, now):
        return Data()


def make_server(tmp_path, config=None, **settings):
    app = Application(FakeSource(), config if config is not None else {}, EmptyAlerts(), tmp_path, lambda: NOW)
    return WebServer(app, ServerSettings(port=0, web_root=tmp_path, **settings))


def read_all(sock):
    chunks = []
    while chunk := sock.recv(4096):
        chunks.append(chunk)
    return b"".join(chunks)


@pytest.mark.parametrize(
    "value, expected",
    [(None, DEFAULT_PORT), (-1, DEFAULT_PORT), (0, DEFAULT_PORT), (70000, DEFAULT_PORT),
     ("8080", 8080), (65535, 65535), ("abc", DEFAULT_PORT)],
)
def test_port_from_config(value, expected):
    assert port_from_config(value) == expected


def test_settings_remote_admin(tmp_path):
    settings = settings_from_config({"web.allow_remote": "2", "web.port": "9000"}, tmp_path)
    assert settings.port == 9000
    assert settings.allow_remote_connect is True
    assert settings.allow_remote_admin is True
    assert settings.web_root == tmp_path


def test_settings_remote_connect_only(tmp_path):
    settings = settings_from_config({"web.allow_remote": "1"}, tmp_path)
    assert settings.allow_remote_connect is True
    assert settings.allow_remote_admin is False
    assert settings.port == DEFAULT_PORT


def test_settings_defaults(tmp_path):
    settings = settings_from_config({}, tmp_path)
    assert (settings.allow_remote_connect, settings.allow_remote_admin) == (False, False)


@pytest.mark.parametrize(
    "address, expected",
    [("127.0.0.1", True), ("127.5.6.7", True), ("192.168.1.1", False),
     ("", False), ("::1", False)],
)
def test_is_local_address(address, expected):
    assert is_local_address(address) is expected


def test_handle_connection_rejects_post(tmp_path):
    config = {}
    server = make_server(tmp_path, config, allow_remote_admin=True)
    try:
        client, conn = socket.socketpair()
        with client:
            client.sendall(b"POST /config?web.rss.items=5 HTTP/1.1\r\n\r\n")
            server.handle_connection(conn)
            response = read_all(client)
    finally:
        server.shutdown()
    assert config == {}
    assert response.startswith(b"HTTP/1.0 405 Method not allowed\r\n")
    assert b"Allow: GET\r\n" in response


def test_remote_admin_allows_config_update(tmp_path):
    config = {}
    server = make_server(tmp_path, config, allow_remote_admin=True)
    try:
        client, conn = socket.socketpair()
        with client:
            client.sendall(b"GET /config?web.rss.items=5 HTTP/1.1\r\n\r\n")
            server.handle_connection(conn)
            response = read_all(client)
    finally:
        server.shutdown()
    assert response.endswith(b"{}")
    assert config == {"web.rss.items": "5"}


def test_serves_over_tcp(tmp_path):
    (tmp_path / "hello.html").write_text("hi there")
    server = make_server(tmp_path)
    thread = threading.Thread(target=server.serve_forever)
    thread.start()
    try:
        with socket.create_connection(server.server_address, timeout=5) as client:
            client.sendall(b"GET /hello.html HTTP/1.1\r\n\r\n")
            response = read_all(client)
        with socket.create_connection(server.server_address, timeout=5) as client:
            client.sendall(b"GET /missing.html HTTP/1.1\r\n\r\n")
            missing = read_all(client)
    finally:
        server.shutdown()
        thread.join(timeout=5)
    assert response.startswith(b"HTTP/1.0 200 OK\r\nContent-Type: text/html\r\n")
    assert response.endswith(b"hi there")
    assert missing.startswith(b"HTTP/1.0 404 Not Found")
    assert not thread.is_alive()


def test_local_connection_is_admin(tmp_path):
    config = {}
    server = make_server(tmp_path, config)
    thread = threading.Thread(target=server.serve_forever)
    thread.start()
    try:
        with socket.create_connection(server.server_address, timeout=5) as client:
            client.sendall(b"GET /config?web.rss.freq=2 HTTP/1.1\r\n\r\n")
            response = read_all(client)
    finally:
        server.shutdown()
        thread.join(timeout=5)
    assert response.endswith(b"{}")
    assert config == {"web.rss.freq": "2"}