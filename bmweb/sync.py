"""The '/sync' request: local rows for another machine to copy."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bmweb.models import DataSource
from bmweb.response import SYNC_CONTENT_TYPE, ResponseWriter

if TYPE_CHECKING:
    from bmweb.request import Request

NO_TS = -1


def process_sync_request(
    writer: ResponseWriter, request: "Request", source: DataSource
) -> None:
    """Send every row newer than the required 'ts' parameter, one per line."""
    since = request.int_param("ts", NO_TS)
    if since == NO_TS:
        writer.headers_server_error(
            "processSyncRequest ts param missing/invalid: %s", request.param("ts")
        )
        return

    writer.headers_ok(SYNC_CONTENT_TYPE, True)
    for row in source.get_sync_values(since):
        writer.write_sync_data(row)