"""Parsing of incoming HTTP requests into :class:`Request` objects."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

log = logging.getLogger(__name__)

Pair = tuple[str, str]

_ESCAPES = (("%27", "'"), ("%20", " "), ("%3C", "<"), ("%3E", ">"))
_INTEGER = re.compile(r"\s*[+-]?\d+")
_HEADER = re.compile(r"[: ]*([^: ]+)[: ](.*)")


def to_int(text: Optional[str], default: Optional[int]) -> Optional[int]:
    """Convert ``text`` to an integer, or return ``default`` if it is not one."""
    if text is None or not _INTEGER.fullmatch(text):
        return default
    return int(text)


def get_value(
    name: str, pairs: Optional[Iterable[Pair]], default: Optional[str]
) -> Optional[str]:
    """Return the value of the first pair called ``name``, else ``default``."""
    for pair_name, value in pairs or ():
        if pair_name == name:
            return value
    return default


def get_int_value(
    name: str, pairs: Optional[Iterable[Pair]], default: Optional[int]
) -> Optional[int]:
    """Like :func:`get_value`, converting the value to an integer."""
    return to_int(get_value(name, pairs, None), default)


def unescape_value(value: str) -> str:
    """Decode the few percent-escapes that the web client sends."""
    for escape, replacement in _ESCAPES:
        value = value.replace(escape, replacement)
    return value


@dataclass
class Request:
    """An HTTP request: method, path, query parameters and headers in order."""

    method: str
    path: str
    params: list[Pair] = field(default_factory=list)
    headers: list[Pair] = field(default_factory=list)

    def param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Value of query parameter ``name``."""
        return get_value(name, self.params, default)

    def int_param(self, name: str, default: Optional[int] = None) -> Optional[int]:
        """Value of query parameter ``name`` as an integer."""
        return get_int_value(name, self.params, default)

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Value of header ``name``."""
        return get_value(name, self.headers, default)


def _parse_params(query: str) -> Iterable[Pair]:
    for part in query.split("&"):
        name, equals, value = part.partition("=")
        if not equals:
            # Parts without an '=' are ignored
            continue
        yield name, unescape_value(value)


def _parse_headers(text: str) -> Iterable[Pair]:
    lines = text.split("\n")[1:]
    for line in lines:
        line = line.rstrip("\r")
        if not line.strip():
            break
        match = _HEADER.match(line.lstrip(" \r\n"))
        if match is None:
            continue
        value = match.group(2).lstrip(" ")
        if value:
            yield match.group(1), value


def parse_request(text: str | bytes) -> Request:
    """Parse the raw text of an HTTP request.

    Raises ValueError if there is no method and resource to read.
    """
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("latin-1")
    log.debug("Request: %s", text)

    tokens = text.split(None, 2)
    if len(tokens) < 2:
        raise ValueError(f"malformed request line: {text[:80]!r}")
    method, resource = tokens[0], tokens[1]

    path, _, query = resource.partition("?")
    request = Request(
        method=method,
        path=path,
        params=list(_parse_params(query)),
        headers=list(_parse_headers(text)),
    )

    if log.isEnabledFor(logging.INFO):
        log.info("Parsed Request to: %s %s", request.method, request.path)
        for name, value in request.params + request.headers:
            log.info("        %s=%s", name, value)
    return request