"""The '/summary' request: day, month, year and all-time totals."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bmweb.models import Data, DataSource
from bmweb.monitor import _split_host_adapter
from bmweb.response import MIME_JSON, ResponseWriter

if TYPE_CHECKING:
    from bmweb.request import Request


def process_summary_request(
    writer: ResponseWriter, request: "Request", source: DataSource
) -> None:
    """Send the summary totals, host names and earliest timestamp as JSON."""
    host, adapter = _split_host_adapter(request.param("ha"))
    writer.headers_ok(MIME_JSON, True)

    summary = source.get_summary_values(host, adapter)
    totals = (
        ("today", summary.today),
        ("month", summary.month),
        ("year", summary.year),
        ("total", summary.total),
    )

    writer.write_text("{")
    for name, amounts in totals:
        writer.write_text(f'"{name}": ')
        writer.write_single_data_json(Data(dl=amounts.dl, ul=amounts.ul))
        writer.write_text(", ")

    if summary.host_names is None:
        writer.write_text('"hosts": null')
    else:
        names = ", ".join(f'"{name}"' for name in summary.host_names)
        writer.write_text(f'"hosts": [{names}]')

    writer.write_text(f', "since": {int(summary.ts_min)}}}')