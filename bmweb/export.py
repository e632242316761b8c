"""The '/export' request: every stored row as a CSV download."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from bmweb.models import Data, DataSource
from bmweb.response import MIME_CSV, ResponseWriter

if TYPE_CHECKING:
    from bmweb.request import Request


def export_row(row: Data) -> str:
    """A CSV line: date, start time, end time, download, upload, host, adapter."""
    start = time.localtime(row.ts - row.dr)
    end = time.localtime(row.ts)
    return (
        f"{time.strftime('%Y-%m-%d', start)},"
        f"{time.strftime('%H:%M:%S', start)},"
        f"{time.strftime('%H:%M:%S', end)},"
        f"{row.dl},{row.ul},{row.hs or ''},{row.ad or ''}\n"
    )


def process_export_request(
    writer: ResponseWriter, request: "Request", source: DataSource
) -> None:
    """Send all the data as an attached CSV file."""
    writer.headers_ok(MIME_CSV, False)
    writer.write_header("Content-Disposition", "attachment;filename=bitmeterOsExport.csv")
    writer.end_headers()
    for row in source.get_dump_values():
        writer.write_text(export_row(row))