"""Serving static files from the web root, with optional placeholder substitution."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Iterable, Mapping, Optional, Union

from bmweb.response import (
    MIME_BIN,
    MIME_CSS,
    MIME_GIF,
    MIME_HTML,
    MIME_ICO,
    MIME_JPEG,
    MIME_JS,
    MIME_PNG,
    MIME_XML,
    ResponseWriter,
)

if TYPE_CHECKING:
    from bmweb.request import Request

log = logging.getLogger(__name__)

BUFSIZE = 4096
SUBST_BUFSIZE = 20480

Substitutions = Union[Mapping[str, str], Iterable[tuple[str, str]]]


@dataclass(frozen=True)
class MimeType:
    """A file extension with the content type it is served as."""

    extension: str
    content_type: str
    binary: bool


MIME_TYPES = (
    MimeType("html", MIME_HTML, False),
    MimeType("htm", MIME_HTML, False),
    MimeType("xml", MIME_XML, False),
    MimeType("jpeg", MIME_JPEG, True),
    MimeType("jpg", MIME_JPEG, True),
    MimeType("gif", MIME_GIF, True),
    MimeType("png", MIME_PNG, True),
    MimeType("ico", MIME_ICO, True),
    MimeType("js", MIME_JS, False),
    MimeType("css", MIME_CSS, False),
)
DEFAULT_MIME_TYPE = MimeType("bin", MIME_BIN, True)
_BY_EXTENSION = {mime.extension: mime for mime in MIME_TYPES}


def mime_type_for(file_name: str) -> MimeType:
    """The MIME type for a file, judged by the text after its last dot."""
    _, dot, extension = file_name.rpartition(".")
    if not dot:
        return DEFAULT_MIME_TYPE
    return _BY_EXTENSION.get(extension, DEFAULT_MIME_TYPE)


def resolve_path(web_root: Union[str, Path], path: str) -> Path:
    """The absolute file for a request path, which must lie inside ``web_root``.

    Raises PermissionError for a path that escapes the web root.
    """
    root = Path(web_root).resolve()
    candidate = (root / path.lstrip("/\\")).resolve()
    if candidate != root and root not in candidate.parents:
        log.error(
            "Possible folder-traversal attack, request was %s which is not "
            "inside the web root of %s",
            path,
            root,
        )
        raise PermissionError(f"{path} is outside the web root")
    return candidate


def _pairs(substitutions: Substitutions) -> Iterable[tuple[str, str]]:
    if isinstance(substitutions, Mapping):
        return substitutions.items()
    return substitutions


def do_subs(
    writer: ResponseWriter, stream: BinaryIO, substitutions: Substitutions
) -> None:
    """Write ``stream`` out with every ``<!--[name]-->`` marker replaced by its value.

    Files of SUBST_BUFSIZE bytes or more are not sent at all; a substitution that
    would take the content to that size is left undone.
    """
    content = stream.read(SUBST_BUFSIZE)
    if len(content) >= SUBST_BUFSIZE:
        log.error("doSubs, file too large - exceeded %d bytes", len(content))
        return

    for name, value in _pairs(substitutions):
        marker = f"<!--[{name}]-->".encode("utf-8")
        replacement = value.encode("utf-8")
        start = 0
        while (position := content.find(marker, start)) >= 0:
            if len(content) - len(marker) + len(replacement) >= SUBST_BUFSIZE:
                log.error(
                    "doSubs, file too large after substitution of value %s - "
                    "max is %d bytes",
                    value,
                    SUBST_BUFSIZE,
                )
                break
            content = content[:position] + replacement + content[position + len(marker):]
            start = position + len(replacement)

    writer.write_data(content)


def _effective_path(path: str) -> tuple[str, bool]:
    if path == "/":
        return "/index.html", True
    if path in ("/m", "/m/"):
        return "/m/index.xml", True
    if path.startswith("/m/") and "." not in path:
        return path + ".xml", False
    return path, False


def process_file_request(
    writer: ResponseWriter,
    request: "Request",
    web_root: Union[str, Path],
    substitutions: Optional[Substitutions] = None,
) -> None:
    """Send the file the request names, or a 404/403 if it cannot be read."""
    path, redirect = _effective_path(request.path)
    mime_type = mime_type_for(path)

    try:
        fp = open(resolve_path(web_root, path), "rb")
    except FileNotFoundError:
        writer.headers_not_found(path)
        return
    except OSError:
        writer.headers_forbidden("file access")
        return

    with fp:
        if redirect:
            for name, _ in request.headers:
                if name == "Host":
                    writer.headers_see_other(request, True)
        else:
            writer.headers_ok(mime_type.content_type, True)

        if substitutions is None:
            while chunk := fp.read(BUFSIZE):
                writer.write_data(chunk)
        else:
            do_subs(writer, fp, substitutions)