"""The '/alert' request: listing, creating, changing and deleting alerts."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Optional, Protocol, Sequence

from bmweb.models import Data
from bmweb.request import get_int_value, get_value, to_int
from bmweb.response import MIME_JSON, ResponseWriter

if TYPE_CHECKING:
    from bmweb.request import Request

log = logging.getLogger(__name__)

BAD_NUM = -1
DL_FLAG = 1
UL_FLAG = 2

DateCriteria = tuple[str, str, str, str, str]

_CRITERIA_DELIMS = re.compile(r"[' \[\]]+")
_LIST_DELIMS = re.compile(r"[\[\]]")


class AlertError(ValueError):
    """An alert request carried missing or malformed parameters."""


@dataclass
class Alert:
    """A traffic limit: ``amount`` bytes in ``direction`` within ``bound``/``periods``.

    Date criteria hold year, month, day, weekday and hour, each as text.
    """

    name: str
    active: int
    direction: int
    amount: int
    bound: DateCriteria
    periods: list[DateCriteria] = field(default_factory=list)
    id: Optional[int] = None


class AlertStore(Protocol):
    """Where alerts are kept, and how their running totals are worked out."""

    def get_alerts(self) -> Sequence[Alert]:
        """Every alert that has been defined."""
        ...

    def add_alert(self, alert: Alert) -> Optional[int]:
        """Store a new alert, returning its id, or None if it could not be stored."""
        ...

    def update_alert(self, alert: Alert) -> bool:
        """Replace the alert with the same id; False if that failed."""
        ...

    def remove_alert(self, alert_id: int) -> bool:
        """Delete an alert; False if that failed."""
        ...

    def get_totals_for_alert(self, alert: Alert, now: int) -> Data:
        """Traffic counted against ``alert`` as of time ``now``."""
        ...


def parse_date_criteria(text: str) -> DateCriteria:
    """Parse text such as ``['*','*','1','3','4-5']`` into five criteria parts."""
    tokens = [token for token in _CRITERIA_DELIMS.split(text) if token]
    if len(tokens) != 9 or any(token != "," for token in tokens[1::2]):
        raise AlertError(f"malformed date criteria: {text!r}")
    year, month, day, weekday, hour = tokens[0::2]
    return year, month, day, weekday, hour


def parse_date_criteria_list(text: str) -> list[DateCriteria]:
    """Parse text such as ``[['*','*','1','3','4-5'],[...]]`` into a list of criteria."""
    return [
        parse_date_criteria(segment)
        for segment in _LIST_DELIMS.split(text)
        if segment and segment != ","
    ]


def alert_from_params(
    params: Iterable[tuple[str, str]], require_id: bool = False
) -> Alert:
    """Build an alert from request parameters.

    Raises AlertError if any required parameter is missing or malformed.
    """
    params = list(params)
    alert_id = get_int_value("id", params, BAD_NUM) if require_id else None
    name = get_value("name", params, None)
    active = get_int_value("active", params, BAD_NUM)
    direction = get_int_value("direction", params, BAD_NUM)
    amount_txt = get_value("amount", params, None)
    bound_txt = get_value("bound", params, None)
    periods_txt = get_value("periods", params, None)
    amount = to_int(amount_txt, BAD_NUM)

    if (
        alert_id == BAD_NUM
        or name is None
        or active == BAD_NUM
        or direction == BAD_NUM
        or amount == BAD_NUM
        or bound_txt is None
        or periods_txt is None
    ):
        raise AlertError(
            "param bad/missing id=%s, name=%s, active=%s, direction=%s, "
            "amount=%s, bound=%s, periods=%s"
            % (
                get_value("id", params, None),
                name,
                get_value("active", params, None),
                get_value("direction", params, None),
                amount_txt,
                bound_txt,
                periods_txt,
            )
        )

    return Alert(
        id=alert_id,
        name=name,
        active=active,
        direction=direction,
        amount=amount,
        bound=parse_date_criteria(bound_txt),
        periods=parse_date_criteria_list(periods_txt),
    )


def _json_array(values: Iterable[str]) -> str:
    return "[" + ",".join(f'"{value}"' for value in values) + "]"


def alert_to_json(alert: Alert) -> str:
    """The JSON object the web client reads for one alert."""
    alert_id = 0 if alert.id is None else alert.id
    periods = ",".join(_json_array(period) for period in alert.periods)
    return (
        f'{{"id" : {alert_id},"name" : "{alert.name}","active" : {alert.active},'
        f'"direction" : {alert.direction},"amount" : {alert.amount},'
        f'"bound" : {_json_array(alert.bound)},"periods" : [{periods}]}}'
    )


def _alert_total(alert: Alert, totals: Data) -> int:
    total = 0
    if alert.direction & DL_FLAG:
        total += totals.dl
    if alert.direction & UL_FLAG:
        total += totals.ul
    return total


def _write_list(writer: ResponseWriter, store: AlertStore) -> None:
    writer.headers_ok(MIME_JSON, True)
    writer.write_text("[" + ",".join(alert_to_json(a) for a in store.get_alerts()) + "]")


def _write_status(writer: ResponseWriter, store: AlertStore) -> None:
    now = int(writer.clock())
    writer.headers_ok(MIME_JSON, True)
    items = []
    for alert in store.get_alerts():
        total = _alert_total(alert, store.get_totals_for_alert(alert, now))
        items.append(
            f'{{"id" : {alert.id},"name" : "{alert.name}",'
            f'"current" : {total},"limit" : {alert.amount}}}'
        )
    writer.write_text("[" + ",".join(items) + "]")


def _delete(writer: ResponseWriter, request: "Request", store: AlertStore) -> None:
    alert_id = request.int_param("id", BAD_NUM)
    if alert_id == BAD_NUM:
        writer.headers_server_error(
            "Invalid alert id in delete request: %s", request.param("id")
        )
    elif store.remove_alert(alert_id):
        writer.headers_ok(MIME_JSON, True)
        writer.write_text("{}")
    else:
        writer.headers_server_error("removeAlert() failed")


def _update(writer: ResponseWriter, request: "Request", store: AlertStore) -> None:
    try:
        alert = alert_from_params(request.params, require_id=True)
    except AlertError as error:
        writer.headers_server_error("processAlertUpdate %s", error)
        return
    if store.update_alert(alert):
        writer.headers_ok(MIME_JSON, True)
        writer.write_text("{}")
    else:
        writer.headers_server_error("updateAlert() failed")


def _create(writer: ResponseWriter, request: "Request", store: AlertStore) -> None:
    try:
        alert = alert_from_params(request.params, require_id=False)
    except AlertError as error:
        writer.headers_server_error("processAlertCreate %s", error)
        return
    if store.add_alert(alert) is not None:
        writer.headers_ok(MIME_JSON, True)
        writer.write_text("{}")
    else:
        writer.headers_server_error("addAlert failed")


_ADMIN_ACTIONS = {"delete": _delete, "update": _update, "create": _create}


def process_alert_request(
    writer: ResponseWriter, request: "Request", allow_admin: bool, store: AlertStore
) -> None:
    """Handle '/alert'; changing alerts needs admin access."""
    action = request.param("action", "")
    if action == "list":
        _write_list(writer, store)
    elif action == "status":
        _write_status(writer, store)
    elif action in _ADMIN_ACTIONS:
        if allow_admin:
            _ADMIN_ACTIONS[action](writer, request, store)
        else:
            writer.headers_forbidden(f"alert {action}")
    else:
        writer.headers_server_error("Missing/invalid 'action' parameter: '%s'", action)