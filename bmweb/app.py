"""Routing parsed requests to the handler for each path."""

from __future__ import annotations

import logging
import threading
import time
from contextlib import nullcontext
from enum import Enum, auto
from pathlib import Path
from typing import Callable, MutableMapping, Optional, Union

from bmweb.alerts import AlertStore, process_alert_request
from bmweb.config import process_config_request
from bmweb.export import process_export_request
from bmweb.files import process_file_request
from bmweb.models import DataSource
from bmweb.monitor import process_monitor_request
from bmweb.query import process_query_request
from bmweb.request import Request, parse_request
from bmweb.response import VERSION, ResponseWriter
from bmweb.summary import process_summary_request
from bmweb.sync import process_sync_request

log = logging.getLogger(__name__)


class Route(Enum):
    """The operations the server performs for a client."""

    FILE = auto()
    MONITOR = auto()
    SUMMARY = auto()
    QUERY = auto()
    SYNC = auto()
    CONFIG = auto()
    ALERT = auto()
    EXPORT = auto()
    MOBILE_ABOUT = auto()


_ROUTES = {
    "/monitor": Route.MONITOR,
    "/summary": Route.SUMMARY,
    "/query": Route.QUERY,
    "/sync": Route.SYNC,
    "/config": Route.CONFIG,
    "/export": Route.EXPORT,
    "/alert": Route.ALERT,
    "/m/about": Route.MOBILE_ABOUT,
}


def route_for(path: str) -> Route:
    """The route for a request path; anything unknown is a file."""
    return _ROUTES.get(path, Route.FILE)


class Application:
    """Answers requests using the data source, config and alert stores."""

    def __init__(
        self,
        source: DataSource,
        config_store: MutableMapping[str, str],
        alert_store: AlertStore,
        web_root: Union[str, Path],
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.source = source
        self.config_store = config_store
        self.alert_store = alert_store
        self.web_root = Path(web_root)
        self.clock = clock if clock is not None else time.time
        self._lock = threading.Lock()

    def _adapters(self) -> list[tuple[Optional[str], str]]:
        pairs = {(row.hs, row.ad) for row in self.source.get_dump_values()}
        return sorted(pairs, key=lambda pair: (pair[0] or "", pair[1] or ""))

    def _dispatch(
        self, writer: ResponseWriter, request: Request, route: Route, allow_admin: bool
    ) -> None:
        if route is Route.MONITOR:
            process_monitor_request(writer, request, self.source)
        elif route is Route.SUMMARY:
            process_summary_request(writer, request, self.source)
        elif route is Route.QUERY:
            process_query_request(writer, request, self.source)
        elif route is Route.SYNC:
            process_sync_request(writer, request, self.source)
        elif route is Route.CONFIG:
            process_config_request(
                writer, request, allow_admin, self.config_store, self._adapters()
            )
        elif route is Route.EXPORT:
            process_export_request(writer, request, self.source)
        elif route is Route.ALERT:
            process_alert_request(writer, request, allow_admin, self.alert_store)
        elif route is Route.MOBILE_ABOUT:
            process_file_request(writer, request, self.web_root, {"version": VERSION})
        else:
            process_file_request(writer, request, self.web_root, None)

    def handle(
        self, writer: ResponseWriter, raw: Union[str, bytes], allow_admin: bool = False
    ) -> None:
        """Parse ``raw`` and write the response for it; only GET is allowed."""
        try:
            request = parse_request(raw)
        except ValueError as error:
            writer.headers_server_error("Unable to parse request: %s", error)
            return

        if request.method != "GET":
            writer.headers_not_allowed(request.method)
            writer.write_header("Allow", "GET")
            writer.end_headers()
            return

        route = route_for(request.path)
        # Everything except plain files touches shared data, so serialise it
        needs_data = route is not Route.FILE or request.path == "/"
        with self._lock if needs_data else nullcontext():
            self._dispatch(writer, request, route, allow_admin)