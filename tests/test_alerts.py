import io
import json

import pytest

from bmweb.alerts import (
    Alert,
    AlertError,
    alert_from_params,
    alert_to_json,
    parse_date_criteria,
    parse_date_criteria_list,
    process_alert_request,
)
from bmweb.models import Data
from bmweb.request import Request
from bmweb.response import ResponseWriter

NOW = 1257674400
BOUND_TXT = "['*','*','1','3','4-5']"
PERIODS_TXT = "[['*','*','1','3','4-5'],['*','*','*','*','0-6']]"


class FakeStore:
    def __init__(self, alerts=(), totals=None, fail=False):
        self.alerts = list(alerts)
        self.totals = totals or {}
        self.fail = fail

    def get_alerts(self):
        return list(self.alerts)

    def add_alert(self, alert):
        if self.fail:
            return None
        alert.id = len(self.alerts) + 1
        self.alerts.append(alert)
        return alert.id

    def update_alert(self, alert):
        if self.fail:
            return False
        for index, existing in enumerate(self.alerts):
            if existing.id == alert.id:
                self.alerts[index] = alert
                return True
        return False

    def remove_alert(self, alert_id):
        if self.fail:
            return False
        self.alerts = [a for a in self.alerts if a.id != alert_id]
        return True

    def get_totals_for_alert(self, alert, now):
        return self.totals.get(alert.id, Data())


def make_alert(alert_id=1, direction=1):
    return Alert(
        id=alert_id,
        name="cap",
        active=1,
        direction=direction,
        amount=1000,
        bound=("*", "*", "1", "3", "4-5"),
        periods=[("*", "*", "1", "3", "4-5")],
    )


def run(params, store, allow_admin=True):
    buffer = io.BytesIO()
    writer = ResponseWriter(buffer, lambda: NOW)
    process_alert_request(writer, Request("GET", "/alert", list(params)), allow_admin, store)
    return buffer.getvalue()


def body(response):
    return response.split(b"\r\n\r\n", 1)[1]


def create_params(**overrides):
    params = {
        "action": "create",
        "name": "limit",
        "active": "1",
        "direction": "3",
        "amount": "5000",
        "bound": BOUND_TXT,
        "periods": PERIODS_TXT,
    }
    params.update(overrides)
    return [(k, v) for k, v in params.items() if v is not None]


def test_parse_single_criteria():
    assert parse_date_criteria(BOUND_TXT) == ("*", "*", "1", "3", "4-5")


def test_parse_criteria_list():
    assert parse_date_criteria_list(PERIODS_TXT) == [
        ("*", "*", "1", "3", "4-5"),
        ("*", "*", "*", "*", "0-6"),
    ]


def test_parse_empty_list():
    assert parse_date_criteria_list("[]") == []


def test_parse_bad_criteria():
    with pytest.raises(AlertError):
        parse_date_criteria("['*','*']")


def test_alert_to_json_format():
    assert alert_to_json(make_alert()) == (
        '{"id" : 1,"name" : "cap","active" : 1,"direction" : 1,"amount" : 1000,'
        '"bound" : ["*","*","1","3","4-5"],"periods" : [["*","*","1","3","4-5"]]}'
    )


def test_alert_from_params_without_id():
    alert = alert_from_params(create_params(), require_id=False)
    assert alert.id is None
    assert alert.name == "limit"
    assert alert.amount == 5000
    assert alert.direction == 3
    assert alert.bound == ("*", "*", "1", "3", "4-5")
    assert len(alert.periods) == 2


def test_alert_from_params_requires_id():
    with pytest.raises(AlertError):
        alert_from_params(create_params(), require_id=True)


def test_list_is_json():
    store = FakeStore([make_alert()])
    response = run([("action", "list")], store)
    assert response.startswith(b"HTTP/1.0 200 OK\r\nContent-Type: application/json")
    assert json.loads(body(response)) == [
        {
            "id": 1,
            "name": "cap",
            "active": 1,
            "direction": 1,
            "amount": 1000,
            "bound": ["*", "*", "1", "3", "4-5"],
            "periods": [["*", "*", "1", "3", "4-5"]],
        }
    ]


def test_create_stores_alert():
    store = FakeStore()
    response = run(create_params(), store)
    assert body(response) == b"{}"
    assert len(store.alerts) == 1
    assert store.alerts[0].name == "limit"
    assert store.alerts[0].periods[1] == ("*", "*", "*", "*", "0-6")


def test_create_forbidden_without_admin():
    store = FakeStore()
    response = run(create_params(), store, allow_admin=False)
    assert response.startswith(b"HTTP/1.0 403 Forbidden")
    assert store.alerts == []


def test_create_missing_amount():
    store = FakeStore()
    response = run(create_params(amount=None), store)
    assert response.startswith(b"HTTP/1.0 500 Bad/missing parameter")
    assert store.alerts == []


def test_create_store_failure():
    response = run(create_params(), FakeStore(fail=True))
    assert response.startswith(b"HTTP/1.0 500 Bad/missing parameter")


def test_update_replaces_alert():
    store = FakeStore([make_alert()])
    params = create_params(action="update") + [("id", "1")]
    response = run(params, store)
    assert body(response) == b"{}"
    assert store.alerts[0].name == "limit"
    assert store.alerts[0].amount == 5000


def test_update_without_id_fails():
    store = FakeStore([make_alert()])
    response = run(create_params(action="update"), store)
    assert response.startswith(b"HTTP/1.0 500")
    assert store.alerts[0].name == "cap"


def test_delete():
    store = FakeStore([make_alert(1), make_alert(2)])
    response = run([("action", "delete"), ("id", "1")], store)
    assert body(response) == b"{}"
    assert [a.id for a in store.alerts] == [2]


def test_delete_bad_id():
    store = FakeStore([make_alert()])
    response = run([("action", "delete"), ("id", "x")], store)
    assert response.startswith(b"HTTP/1.0 500")
    assert len(store.alerts) == 1


def test_delete_forbidden():
    store = FakeStore([make_alert()])
    response = run([("action", "delete"), ("id", "1")], store, allow_admin=False)
    assert response.startswith(b"HTTP/1.0 403 Forbidden")
    assert len(store.alerts) == 1


@pytest.mark.parametrize("direction, expected", [(1, 10), (2, 5), (3, 15)])
def test_status_counts_directions(direction, expected):
    store = FakeStore([make_alert(1, direction)], totals={1: Data(dl=10, ul=5)})
    response = run([("action", "status")], store)
    assert json.loads(body(response)) == [
        {"id": 1, "name": "cap", "current": expected, "limit": 1000}
    ]


def test_unknown_action():
    response = run([("action", "explode")], FakeStore())
    assert response.startswith(b"HTTP/1.0 500 Bad/missing parameter")