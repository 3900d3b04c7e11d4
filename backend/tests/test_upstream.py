from __future__ import annotations

import itertools
import json
import types
from typing import Callable, List
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from app import upstream
from app.errors import ParseError, UpstreamError, UpstreamTimeout
from app.upstream import build_schedule_url, fetch_with_retry, parse_upstream_payload, redact_url

URL = "https://scheduler.example.com/public/schedule?token=secret"


def _client(responses: List[Callable[[httpx.Request], httpx.Response]]) -> tuple[httpx.Client, List[httpx.Request]]:
    calls: List[httpx.Request] = []
    queue = iter(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return next(queue)(request)

    return httpx.Client(transport=httpx.MockTransport(handler)), calls


def _status(code: int, body: str = "") -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(code, text=body)


def _timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)


def _connect_error(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


def test_success_returns_body() -> None:
    client, calls = _client([_status(200, '{"data": []}')])

    assert fetch_with_retry(URL, 1.0, client=client) == '{"data": []}'
    assert len(calls) == 1


def test_server_errors_are_retried_until_success() -> None:
    client, calls = _client([_status(500), _status(503), _status(200, "ok")])

    assert fetch_with_retry(URL, 1.0, max_retries=2, client=client) == "ok"
    assert len(calls) == 3


def test_server_errors_exhaust_retry_budget() -> None:
    client, calls = _client([_status(502)] * 3)

    with pytest.raises(UpstreamError) as excinfo:
        fetch_with_retry(URL, 1.0, max_retries=2, client=client)

    assert not isinstance(excinfo.value, UpstreamTimeout)
    assert excinfo.value.upstream_status == 502
    assert len(calls) == 3


def test_client_errors_fail_without_retry() -> None:
    client, calls = _client([_status(404), _status(200, "never")])

    with pytest.raises(UpstreamError) as excinfo:
        fetch_with_retry(URL, 1.0, client=client)

    assert excinfo.value.upstream_status == 404
    assert excinfo.value.message == "Upstream returned status 404"
    assert len(calls) == 1


def test_redirects_are_not_followed_or_retried() -> None:
    client, calls = _client([_status(302)])

    with pytest.raises(UpstreamError):
        fetch_with_retry(URL, 1.0, client=client)
    assert len(calls) == 1


def test_transport_errors_are_retried_then_raised() -> None:
    client, calls = _client([_connect_error, _connect_error])

    with pytest.raises(UpstreamError) as excinfo:
        fetch_with_retry(URL, 1.0, max_retries=1, client=client)

    assert not isinstance(excinfo.value, UpstreamTimeout)
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
    assert len(calls) == 2


def test_transport_error_then_success() -> None:
    client, calls = _client([_connect_error, _status(200, "recovered")])

    assert fetch_with_retry(URL, 1.0, client=client) == "recovered"
    assert len(calls) == 2


def test_timeouts_exhaust_into_distinguished_error() -> None:
    client, calls = _client([_timeout, _timeout, _timeout])

    with pytest.raises(UpstreamTimeout) as excinfo:
        fetch_with_retry(URL, 0.5, max_retries=2, client=client)

    assert excinfo.value.code == "UPSTREAM_TIMEOUT"
    assert excinfo.value.status_code == 504
    assert len(calls) == 3


def test_timeout_then_success_is_retried() -> None:
    client, calls = _client([_timeout, _status(200, "late")])

    assert fetch_with_retry(URL, 0.5, client=client) == "late"
    assert len(calls) == 2


def _scripted_clock(monkeypatch: pytest.MonkeyPatch, *readings: float) -> None:
    ticks = itertools.chain(readings, itertools.repeat(readings[-1]))
    monkeypatch.setattr(upstream, "time", types.SimpleNamespace(monotonic=lambda: float(next(ticks))))


def test_attempt_deadline_covers_body_download(monkeypatch: pytest.MonkeyPatch) -> None:
    _scripted_clock(monkeypatch, 0.0, 0.1, 5.0)
    client, calls = _client([_status(200, "slow body")])

    with pytest.raises(UpstreamTimeout):
        fetch_with_retry(URL, 1.0, max_retries=0, client=client)
    assert len(calls) == 1


def test_late_client_error_is_reported_as_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    ticks = itertools.count(start=0, step=100)
    monkeypatch.setattr(upstream, "time", types.SimpleNamespace(monotonic=lambda: float(next(ticks))))
    client, calls = _client([_status(404)])

    with pytest.raises(UpstreamTimeout):
        fetch_with_retry(URL, 1.0, max_retries=0, client=client)
    assert len(calls) == 1


def test_late_empty_success_is_reported_as_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    _scripted_clock(monkeypatch, 0.0, 0.5, 1.5)
    client, calls = _client([_status(200)])

    with pytest.raises(UpstreamTimeout):
        fetch_with_retry(URL, 1.0, max_retries=0, client=client)
    assert len(calls) == 1


def test_late_attempt_is_retried(monkeypatch: pytest.MonkeyPatch) -> None:
    _scripted_clock(monkeypatch, 0.0, 3.0, 10.0, 10.1, 10.2, 10.3)
    client, calls = _client([_status(200, "late"), _status(200, "fresh")])

    assert fetch_with_retry(URL, 1.0, max_retries=1, client=client) == "fresh"
    assert len(calls) == 2


def test_undecodable_body_is_a_parse_error() -> None:
    body = b'{"data": "\xff\xfe"}'
    client, calls = _client(
        [lambda request: httpx.Response(200, content=body, headers={"Content-Type": "application/json; charset=utf-8"})]
    )

    with pytest.raises(ParseError):
        fetch_with_retry(URL, 1.0, client=client)
    assert len(calls) == 1


def test_headers_are_forwarded() -> None:
    client, calls = _client([_status(200, "ok")])

    fetch_with_retry(URL, 1.0, headers={"X-Trace": "abc"}, client=client)

    assert calls[0].headers["X-Trace"] == "abc"


def test_build_schedule_url_encodes_query() -> None:
    url = build_schedule_url("https://api.example.com/", "to ken&x", "2024-02-01", "2024-02-29")
    parts = urlsplit(url)
    query = parse_qs(parts.query)

    assert parts.path == "/public/schedule"
    assert query == {
        "token": ["to ken&x"],
        "startDate": ["2024-02-01"],
        "endDate": ["2024-02-29"],
        "scheduleVersion": ["live"],
    }
    assert redact_url(url) == "https://api.example.com/public/schedule"


def test_parse_upstream_payload_maps_records() -> None:
    text = json.dumps(
        {
            "data": [
                {
                    "start_time": "2024-02-01 08:00:00",
                    "end_time": "2024-02-01 14:00:00",
                    "shift": {"name": "Radiology", "alias": "RATM 8:00AM - 2:00PM", "color": "#fff"},
                    "user": {"id": 42, "fname": "Mario", "lname": "Rossi", "mname": None},
                },
                {
                    "start_time": "2024-02-02 08:00:00",
                    "end_time": "2024-02-02 14:00:00",
                    "shift": {"name": "Day", "alias": "D"},
                    "user": {},
                },
            ]
        }
    )

    shifts = parse_upstream_payload(text)

    assert [shift.alias for shift in shifts] == ["RATM 8:00AM - 2:00PM", "D"]
    assert shifts[0].user_id == 42
    assert shifts[0].first_name == "Mario"
    assert shifts[1].user_id is None
    assert shifts[1].last_name is None


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        "{}",
        '{"data": [{"start_time": "2024-02-01 08:00:00"}]}',
        '{"data": [{"start_time": "x", "end_time": "y", "shift": {"name": "n"}, "user": {}}]}',
    ],
)
def test_parse_upstream_payload_rejects_invalid_schema(text: str) -> None:
    with pytest.raises(ParseError):
        parse_upstream_payload(text)
