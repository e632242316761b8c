import io

from bmweb.models import Data
from bmweb.request import Request
from bmweb.response import SERVER_SOFTWARE, SYNC_CONTENT_TYPE, ResponseWriter
from bmweb.sync import process_sync_request

NOW = 1257674400


class RecordingSource:
    def __init__(self, rows=()):
        self.rows = list(rows)
        self.calls = []

    def get_sync_values(self, since):
        self.calls.append(since)
        return self.rows


def run(params, source):
    stream = io.BytesIO()
    request = Request("GET", "/sync", params=params)
    process_sync_request(ResponseWriter(stream, clock=lambda: NOW), request, source)
    return stream.getvalue().decode()


def test_missing_ts_is_server_error():
    source = RecordingSource()
    result = run([], source)
    assert result == (
        "HTTP/1.0 500 Bad/missing parameter\r\n"
        f"Server: {SERVER_SOFTWARE}\r\n"
        "Date: Sun, 08 Nov 2009 10:00:00 +0000\r\n"
        "Connection: Close\r\n\r\n"
    )
    assert source.calls == []


def test_invalid_ts_is_server_error():
    result = run([("ts", "abc")], RecordingSource())
    assert result.startswith("HTTP/1.0 500 ")


def test_rows_are_written_one_per_line():
    rows = [
        Data(ts=NOW, dr=3600, dl=1, ul=2, ad="eth0"),
        Data(ts=NOW - 3600, dr=3600, dl=3, ul=4, ad="eth1"),
    ]
    source = RecordingSource(rows)
    result = run([("ts", "1257670000")], source)
    head, body = result.split("\r\n\r\n", 1)
    assert source.calls == [1257670000]
    assert f"Content-Type: {SYNC_CONTENT_TYPE}" in head.split("\r\n")
    assert body == (
        f"{NOW},3600,1,2,eth0\r\n"
        f"{NOW - 3600},3600,3,4,eth1\r\n"
    )


def test_no_rows_gives_empty_body():
    result = run([("ts", "0")], RecordingSource())
    assert result.startswith("HTTP/1.0 200 OK\r\n")
    assert result.endswith("\r\n\r\n")