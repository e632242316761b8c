"""The '/config' request: reading and updating the web interface settings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Mapping, MutableMapping, Optional

from bmweb.request import to_int
from bmweb.response import MIME_JS, MIME_JSON, VERSION, ResponseWriter

if TYPE_CHECKING:
    from bmweb.request import Request

log = logging.getLogger(__name__)

CONFIG_WEB_SERVER_NAME = "web.server_name"
CONFIG_WEB_RSS_HOST = "web.rss.host"
CONFIG_WEB_RSS_FREQ = "web.rss.freq"
CONFIG_WEB_RSS_ITEMS = "web.rss.items"
CONFIG_WEB_MONITOR_INTERVAL = "web.monitor_interval"
CONFIG_WEB_HISTORY_INTERVAL = "web.history_interval"
CONFIG_WEB_SUMMARY_INTERVAL = "web.summary_interval"
CONFIG_WEB_COLOUR_DL = "web.colour_dl"
CONFIG_WEB_COLOUR_UL = "web.colour_ul"

WEB_SERVER_NAME_MAX_LEN = 32
RSS_HOST_NAME_MAX_LEN = 32
RSS_ITEMS_MIN, RSS_ITEMS_MAX = 1, 20
RSS_FREQ_MIN, RSS_FREQ_MAX = 1, 2
COLOUR_LEN = 6
MONITOR_INTERVAL_MIN, MONITOR_INTERVAL_MAX = 1000, 30000
HISTORY_INTERVAL_MIN, HISTORY_INTERVAL_MAX = 5000, 60000
SUMMARY_INTERVAL_MIN, SUMMARY_INTERVAL_MAX = 1000, 60000

# jQuery adds this to every AJAX request to defeat caching
CACHE_BUSTER_PARAM = "_"

_NUMERIC_RANGES = {
    CONFIG_WEB_MONITOR_INTERVAL: (MONITOR_INTERVAL_MIN, MONITOR_INTERVAL_MAX),
    CONFIG_WEB_HISTORY_INTERVAL: (HISTORY_INTERVAL_MIN, HISTORY_INTERVAL_MAX),
    CONFIG_WEB_SUMMARY_INTERVAL: (SUMMARY_INTERVAL_MIN, SUMMARY_INTERVAL_MAX),
    CONFIG_WEB_RSS_FREQ: (RSS_FREQ_MIN, RSS_FREQ_MAX),
    CONFIG_WEB_RSS_ITEMS: (RSS_ITEMS_MIN, RSS_ITEMS_MAX),
}
_TEXT_LIMITS = {
    CONFIG_WEB_SERVER_NAME: WEB_SERVER_NAME_MAX_LEN,
    CONFIG_WEB_RSS_HOST: RSS_HOST_NAME_MAX_LEN,
}
_COLOURS = (CONFIG_WEB_COLOUR_DL, CONFIG_WEB_COLOUR_UL)
_HEX_DIGITS = set("0123456789abcdef")


class ConfigError(ValueError):
    """A config update named an unknown setting or carried a bad value."""

    def __init__(self, name: str, value: str, reason: str) -> None:
        super().__init__(f"{name}={value}: {reason}")
        self.name = name
        self.value = value
        self.reason = reason


def _check_numeric(name: str, value: str, low: int, high: int) -> str:
    number = to_int(value, None)
    if number is None or not low <= number <= high:
        raise ConfigError(
            name, value, f"invalid/out-of-range value (min={low} max={high})"
        )
    return value


def _check_text(name: str, value: str, max_len: int) -> str:
    if len(value) > max_len:
        raise ConfigError(name, value, f"value too long (maxlen={max_len})")
    if "<" in value or ">" in value:
        raise ConfigError(name, value, "suspicious characters")
    return value


def _check_colour(name: str, value: str) -> str:
    if len(value) != COLOUR_LEN:
        raise ConfigError(name, value, f"length must be {COLOUR_LEN}")
    if not set(value) <= _HEX_DIGITS:
        raise ConfigError(name, value, "characters must be 0-9 or a-f")
    return "#" + value


def validate_update(name: str, value: str) -> Optional[str]:
    """The value to store for setting ``name``, or None for a parameter to ignore.

    Raises ConfigError if the setting cannot be changed from the web or the value
    is not acceptable.
    """
    if name in _NUMERIC_RANGES:
        low, high = _NUMERIC_RANGES[name]
        return _check_numeric(name, value, low, high)
    if name in _TEXT_LIMITS:
        return _check_text(name, value, _TEXT_LIMITS[name])
    if name in _COLOURS:
        return _check_colour(name, value)
    if name == CACHE_BUSTER_PARAM:
        return None
    raise ConfigError(name, value, "illegal/unknown config param")


def apply_updates(
    store: MutableMapping[str, str], params: Iterable[tuple[str, str]]
) -> None:
    """Store each update in turn, stopping with ConfigError at the first bad one.

    Updates before the bad one stay stored.
    """
    for name, value in params:
        try:
            stored = validate_update(name, value)
        except ConfigError as error:
            log.error("Rejected config update %s", error)
            raise
        if stored is not None:
            store[name] = stored


def _num(value: Optional[object]) -> str:
    return "null" if value is None else str(value)


def _txt(value: Optional[str]) -> str:
    return '""' if value is None else f'"{value}"'


def write_config(
    writer: ResponseWriter,
    store: Mapping[str, str],
    adapters: Iterable[tuple[Optional[str], str]],
    allow_admin: bool,
) -> None:
    """Send the settings as a JavaScript ``config`` object."""
    writer.headers_ok(MIME_JS, True)

    fields = [
        ("monitorInterval", _num(store.get(CONFIG_WEB_MONITOR_INTERVAL))),
        ("summaryInterval", _num(store.get(CONFIG_WEB_SUMMARY_INTERVAL))),
        ("historyInterval", _num(store.get(CONFIG_WEB_HISTORY_INTERVAL))),
        ("monitorIntervalMin", _num(MONITOR_INTERVAL_MIN)),
        ("monitorIntervalMax", _num(MONITOR_INTERVAL_MAX)),
        ("historyIntervalMin", _num(HISTORY_INTERVAL_MIN)),
        ("historyIntervalMax", _num(HISTORY_INTERVAL_MAX)),
        ("summaryIntervalMin", _num(SUMMARY_INTERVAL_MIN)),
        ("summaryIntervalMax", _num(SUMMARY_INTERVAL_MAX)),
        ("serverName", _txt(store.get(CONFIG_WEB_SERVER_NAME))),
        ("dlColour", _txt(store.get(CONFIG_WEB_COLOUR_DL))),
        ("ulColour", _txt(store.get(CONFIG_WEB_COLOUR_UL))),
        ("allowAdmin", "1" if allow_admin else "0"),
        ("version", _txt(VERSION)),
        ("rssItems", _num(store.get(CONFIG_WEB_RSS_ITEMS))),
        ("rssFreq", _num(store.get(CONFIG_WEB_RSS_FREQ))),
        ("rssHost", _txt(store.get(CONFIG_WEB_RSS_HOST))),
    ]
    adapter_items = ",".join(
        f'{{"hs" : {_txt(host or "local")},"ad" : {_txt(adapter)}}}'
        for host, adapter in adapters
    )
    parts = [f'"{key}" : {value}' for key, value in fields]
    parts.append(f'"adapters" : [{adapter_items}]')

    writer.write_text("var config = { " + ", ".join(parts) + " };")


def process_config_request(
    writer: ResponseWriter,
    request: "Request",
    allow_admin: bool,
    store: MutableMapping[str, str],
    adapters: Iterable[tuple[Optional[str], str]] = (),
) -> None:
    """Send the settings, or, when parameters are given, apply them as updates."""
    if not request.params:
        write_config(writer, store, adapters, allow_admin)
        return

    if not allow_admin:
        writer.headers_forbidden("config update")
        return

    try:
        apply_updates(store, request.params)
    except ConfigError as error:
        writer.headers_server_error("Config update failed %s=%s", error.name, error.value)
        return

    writer.headers_ok(MIME_JSON, True)
    writer.write_text("{}")