"""The '/monitor' request: traffic for the last few seconds, for the live graph."""

from __future__ import annotations

from dataclasses import replace
from itertools import dropwhile
from typing import TYPE_CHECKING, Optional

from bmweb.models import DataSource
from bmweb.response import MIME_JSON, ResponseWriter

if TYPE_CHECKING:
    from bmweb.request import Request

NO_TS = -1
LOCAL_HOST = "local"


def _split_host_adapter(
    host_adapter: Optional[str],
) -> tuple[Optional[str], Optional[str]]:
    """Split a ``host:adapter`` parameter; the host 'local' means this machine."""
    if host_adapter is None:
        return None, None
    host, sep, adapter = host_adapter.rpartition(":")
    if not sep:
        return None, host_adapter
    return ("" if host == LOCAL_HOST else host), adapter


def write_monitor_data(
    writer: ResponseWriter,
    source: DataSource,
    offset: int,
    host_adapter: Optional[str],
) -> None:
    """Send the rows from the last ``offset`` seconds as JSON.

    Timestamps are sent as offsets back from the server time, so that a client
    whose clock differs from the server's still sees the data. Rows stamped in
    the future are left out.
    """
    writer.headers_ok(MIME_JSON, True)

    now = int(writer.clock())
    host, adapter = _split_host_adapter(host_adapter)
    rows = source.get_monitor_values(now - offset, host, adapter)

    current = dropwhile(lambda row: row.ts > now, rows)
    relative = [replace(row, ts=now - row.ts) for row in current]

    writer.write_text(f'{{"serverTime" : {now}, "data" : ')
    writer.write_data_json(relative)
    writer.write_text("}")


def process_monitor_request(
    writer: ResponseWriter, request: "Request", source: DataSource
) -> None:
    """Handle '/monitor'; the 'ts' parameter is required, 'ha' is optional."""
    offset = request.int_param("ts", NO_TS)
    if offset == NO_TS:
        writer.headers_server_error(
            "processMonitorRequest, ts parameter missing/invalid: %s",
            request.param("ts"),
        )
        return
    write_monitor_data(writer, source, offset, request.param("ha"))