"""The '/query' request: totals over a date range, as JSON or CSV."""

from __future__ import annotations

import time
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from bmweb.models import Data, DataSource
from bmweb.monitor import _split_host_adapter
from bmweb.response import MIME_CSV, MIME_JSON, ResponseWriter

if TYPE_CHECKING:
    from bmweb.request import Request

BAD_PARAM = -1


def query_range(start: int, end: int) -> tuple[int, int]:
    """Order the bounds and move the end on a day, so that its whole date is included."""
    if start > end:
        start, end = end, start
    end_of_day = datetime.fromtimestamp(end) + timedelta(days=1)
    return start, int(end_of_day.timestamp())


def csv_row(row: Data) -> str:
    """A CSV line with the local start time of the row and its totals."""
    start = time.localtime(row.ts - row.dr)
    return f"{time.strftime('%Y-%m-%d %H:%M:%S', start)},{row.dl},{row.ul}\n"


def process_query_request(
    writer: ResponseWriter, request: "Request", source: DataSource
) -> None:
    """Handle '/query'; 'from', 'to' and 'group' are required."""
    start = request.int_param("from", BAD_PARAM)
    end = request.int_param("to", BAD_PARAM)
    group = request.int_param("group", BAD_PARAM)
    as_csv = request.int_param("csv", 0)

    if start == BAD_PARAM or end == BAD_PARAM or group == BAD_PARAM:
        writer.headers_server_error(
            "processQueryRequest, param bad/missing from=%s, to=%s, group=%s",
            request.param("from"),
            request.param("to"),
            request.param("group"),
        )
        return

    start, end = query_range(start, end)
    host, adapter = _split_host_adapter(request.param("ha"))
    rows = source.get_query_values(start, end, group, host, adapter)

    if as_csv:
        writer.headers_ok(MIME_CSV, False)
        writer.write_header(
            "Content-Disposition", "attachment;filename=bitmeterOsQuery.csv"
        )
        writer.end_headers()
        for row in rows:
            writer.write_text(csv_row(row))
    else:
        writer.headers_ok(MIME_JSON, True)
        writer.write_data_json(rows)