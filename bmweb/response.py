"""Writing HTTP responses and the small JSON fragments the web client reads."""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import TYPE_CHECKING, BinaryIO, Callable, Iterable, Optional, Sequence

from bmweb.models import Data

if TYPE_CHECKING:
    from bmweb.request import Request

log = logging.getLogger(__name__)

VERSION = "1.0.0"
SERVER_SOFTWARE = f"bmweb {VERSION} Web Server"

SMALL_BUFSIZE = 256
HTTP_EOL = "\r\n"
HEADER_CONTENT_TYPE = "Content-Type"

MIME_JSON = "application/json"
MIME_HTML = "text/html"
MIME_TEXT = "text/plain"
MIME_CSV = "text/csv"
MIME_JPEG = "image/jpeg"
MIME_GIF = "image/gif"
MIME_PNG = "image/png"
MIME_ICO = "image/vnd.microsoft.icon"
MIME_JS = "application/x-javascript"
MIME_CSS = "text/css"
MIME_BIN = "application/octet-stream"
MIME_XML = "application/xhtml+xml"
SYNC_CONTENT_TYPE = "application/vnd.codebox.bitmeter-sync"


class HttpStatus(Enum):
    """The response codes this server sends, with their reason phrases."""

    OK = (200, "OK")
    SEE_OTHER = (303, "See Other")
    FORBIDDEN = (403, "Forbidden")
    NOT_FOUND = (404, "Not Found")
    NOT_ALLOWED = (405, "Method not allowed")
    SERVER_ERROR = (500, "Bad/missing parameter")

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message


class ResponseWriter:
    """Writes a response to a binary stream, stamping it with ``clock()``."""

    def __init__(
        self, stream: BinaryIO, clock: Optional[Callable[[], float]] = None
    ) -> None:
        self.stream = stream
        self.clock = clock if clock is not None else time.time

    def write_text(self, text: str) -> None:
        self.write_data(text.encode("utf-8"))

    def write_data(self, data: bytes) -> None:
        self.stream.write(data)

    def write_header(self, name: str, value: str) -> None:
        self.write_text(f"{name}: {value}{HTTP_EOL}")

    def end_headers(self) -> None:
        self.write_text(HTTP_EOL)

    def _write_common_headers(self) -> None:
        self.write_header("Server", SERVER_SOFTWARE)
        now = time.gmtime(int(self.clock()))
        self.write_header("Date", time.strftime("%a, %d %b %Y %H:%M:%S +0000", now))
        self.write_header("Connection", "Close")

    def _write_headers(
        self,
        status: HttpStatus,
        end_headers: bool,
        content_type: Optional[str] = None,
        location: Optional[str] = None,
    ) -> None:
        self.write_text(f"HTTP/1.0 {status.code} {status.message}{HTTP_EOL}")
        if status is HttpStatus.OK and content_type is not None:
            self.write_header(HEADER_CONTENT_TYPE, content_type)
        if status is HttpStatus.SEE_OTHER and location is not None:
            log.info("Redirect Location: %s", location)
            self.write_header("Location", location)
        self._write_common_headers()
        if end_headers:
            self.end_headers()

    def headers_ok(self, content_type: Optional[str], end_headers: bool = True) -> None:
        self._write_headers(HttpStatus.OK, end_headers, content_type=content_type)

    def headers_see_other(self, request: "Request", end_headers: bool = True) -> None:
        """Redirect to the index page on the request's Host; nothing if no Host."""
        host = request.header("Host")
        if host is not None:
            self._write_headers(
                HttpStatus.SEE_OTHER,
                end_headers,
                location=f"http://{host}/index.html",
            )

    def headers_not_found(self, file_name: str) -> None:
        log.error("%s: %s", HttpStatus.NOT_FOUND.message, file_name)
        self._write_headers(HttpStatus.NOT_FOUND, True)

    def headers_forbidden(self, what: str) -> None:
        log.error("%s: %s", HttpStatus.FORBIDDEN.message, what)
        self._write_headers(HttpStatus.FORBIDDEN, True)

    def headers_not_allowed(self, method: str) -> None:
        """Start a 405 response; the caller adds Allow and ends the headers."""
        log.error("%s: %s", HttpStatus.NOT_ALLOWED.message, method)
        self._write_headers(HttpStatus.NOT_ALLOWED, False)

    def headers_server_error(self, message: str, *args: object) -> None:
        log.error(message, *args)
        self._write_headers(HttpStatus.SERVER_ERROR, True)

    def write_data_json(self, rows: Iterable[Data]) -> None:
        self.write_text("[")
        for index, row in enumerate(rows):
            if index:
                self.write_text(",")
            self.write_single_data_json(row)
        self.write_text("]")

    def write_single_data_json(self, row: Optional[Data]) -> None:
        self.write_text("{")
        if row is not None:
            self.write_text(
                f'"dl": {row.dl},"ul": {row.ul},"ts": {int(row.ts)},"dr": {row.dr}'
            )
        self.write_text("}")

    def write_text_array_json(self, key: Optional[str], values: Sequence[str]) -> None:
        if key is not None:
            self.write_text(f'"{key}" : ')
        self.write_text("[" + ",".join(f'"{value}"' for value in values) + "]")

    def write_text_value_json(self, key: str, value: str) -> None:
        if len(key) + len(value) + 8 > SMALL_BUFSIZE:
            log.error(
                "Input values too large for buffer, key='%s' value='%s'", key, value
            )
            return
        self.write_text(f'"{key}" : "{value}"')

    def write_num_value_json(self, key: str, value: int) -> None:
        if len(key) + 40 > SMALL_BUFSIZE:
            log.error("Input values too large for buffer, key='%s' value=%d", key, value)
            return
        self.write_text(f'"{key}" : {value}')

    def write_sync_data(self, row: Data) -> None:
        self.write_text(
            f"{int(row.ts)},{row.dr},{row.dl},{row.ul},{row.ad}{HTTP_EOL}"
        )