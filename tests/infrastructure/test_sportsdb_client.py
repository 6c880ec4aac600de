# mypy: ignore-errors

from typing import Any, Dict, List

import pytest
import requests

from matchday.errors import (
    APIError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
    ServiceUnavailableError,
)
from matchday.infrastructure.sportsdb_client import SportsDBClient


class _FakeResponse:
    def __init__(
        self,
        status_code: int,
        json_data: Any | None = None,
        text: str | None = None,
        headers: Dict[str, str] | None = None,
    ) -> None:
        self.status_code = status_code
        self._json = json_data
        self.text = text if text is not None else ("{}" if json_data is not None else "")
        self.headers = headers or {"Content-Type": "application/json"}

    def json(self) -> Any:
        if self._json is None:
            raise ValueError("no json")
        return self._json


def _client(**kwargs: Any) -> SportsDBClient:
    defaults = dict(base_url="https://example.test/api/v1/json", api_key="123", timeout=15)
    defaults.update(kwargs)
    return SportsDBClient(**defaults)


def test_key_in_path_and_params_normalized(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: List[Dict[str, Any]] = []

    def fake_request(
        method: str, url: str, params: Any | None = None, timeout: float | None = None
    ) -> _FakeResponse:
        calls.append({"method": method, "url": url, "params": params, "timeout": timeout})
        return _FakeResponse(200, json_data={"events": []})

    client = _client()
    monkeypatch.setattr(client._session, "request", fake_request)

    data = client.get("lookupevent.php", params={"id": 441613, "s": None})
    assert data == {"events": []}
    assert calls[0]["url"] == "https://example.test/api/v1/json/123/lookupevent.php"
    assert calls[0]["params"] == {"id": "441613"}
    assert calls[0]["method"] == "GET"
    assert calls[0]["timeout"] == 15.0


def test_429_is_terminal(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[int] = []

    def fake_request(
        method: str, url: str, params: Any | None = None, timeout: float | None = None
    ) -> _FakeResponse:
        calls.append(1)
        return _FakeResponse(429, text="slow down", headers={"Retry-After": "0"})

    client = _client(max_attempts=3)
    monkeypatch.setattr(client._session, "request", fake_request)
    monkeypatch.setattr("time.sleep", lambda s: None)

    with pytest.raises(RateLimitError) as exc:
        client.get("eventspastleague.php", params={"id": "4339"})
    assert exc.value.status_code == 429
    assert len(calls) == 1


def test_non_retriable_4xx_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[int] = []

    def fake_request(
        method: str, url: str, params: Any | None = None, timeout: float | None = None
    ) -> _FakeResponse:
        calls.append(1)
        return _FakeResponse(404, text="not found", headers={"Content-Type": "text/plain"})

    client = _client()
    monkeypatch.setattr(client._session, "request", fake_request)

    with pytest.raises(APIError) as exc:
        client.get("lookupevent.php")
    assert type(exc.value) is APIError
    assert "404" in str(exc.value)
    assert len(calls) == 1


def test_retry_on_5xx_then_success(monkeypatch: pytest.MonkeyPatch) -> None:
    seq = [
        _FakeResponse(503, text="busy", headers={"Content-Type": "text/plain"}),
        _FakeResponse(200, json_data={"ok": 1}),
    ]
    sleeps: list[float] = []

    def fake_request(
        method: str, url: str, params: Any | None = None, timeout: float | None = None
    ) -> _FakeResponse:
        return seq.pop(0)

    client = _client(max_attempts=3, backoff_base=1.0, backoff_cap=5.0)
    monkeypatch.setattr(client._session, "request", fake_request)
    monkeypatch.setattr("time.sleep", lambda s: sleeps.append(s))
    monkeypatch.setattr("random.uniform", lambda a, b: 0.0)

    assert client.get("lookupleague.php") == {"ok": 1}
    assert sleeps == [1.0]


def test_exhaustion_raises_classified_error(monkeypatch: pytest.MonkeyPatch) -> None:
    sleeps: list[float] = []

    def fake_request(
        method: str, url: str, params: Any | None = None, timeout: float | None = None
    ) -> _FakeResponse:
        return _FakeResponse(500, text="boom", headers={"Content-Type": "text/plain"})

    client = _client(max_attempts=3, backoff_base=1.0, backoff_cap=5.0)
    monkeypatch.setattr(client._session, "request", fake_request)
    monkeypatch.setattr("time.sleep", lambda s: sleeps.append(s))
    monkeypatch.setattr("random.uniform", lambda a, b: 0.0)

    with pytest.raises(ServiceUnavailableError) as exc:
        client.get("eventsnextleague.php")
    assert "after 3 attempts" in str(exc.value)
    assert "boom" in str(exc.value)
    assert exc.value.status_code == 500
    # Exponential and no sleep after the last attempt
    assert sleeps == [1.0, 2.0]


def test_backoff_is_capped(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("random.uniform", lambda a, b: 0.05)
    client = _client(backoff_base=1.0, backoff_cap=5.0)
    assert client._compute_sleep_seconds(0) == pytest.approx(1.05)
    assert client._compute_sleep_seconds(2) == pytest.approx(4.05)
    assert client._compute_sleep_seconds(5) == 5.0


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (requests.Timeout("read timed out"), RequestTimeoutError),
        (requests.ConnectionError("refused"), NetworkError),
    ],
)
def test_transport_failures_are_retried(
    monkeypatch: pytest.MonkeyPatch, exc: Exception, expected: type
) -> None:
    calls: list[int] = []

    def fake_request(
        method: str, url: str, params: Any | None = None, timeout: float | None = None
    ) -> _FakeResponse:
        calls.append(1)
        raise exc

    client = _client(max_attempts=3)
    monkeypatch.setattr(client._session, "request", fake_request)
    monkeypatch.setattr("time.sleep", lambda s: None)

    with pytest.raises(expected):
        client.get("lookupevent.php")
    assert len(calls) == 3


def test_empty_body_and_error_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    seq = [
        _FakeResponse(200, text="  "),
        _FakeResponse(200, json_data={"error": "Invalid API key"}),
        _FakeResponse(200, text="<html>", headers={"Content-Type": "text/html"}),
    ]

    def fake_request(
        method: str, url: str, params: Any | None = None, timeout: float | None = None
    ) -> _FakeResponse:
        return seq.pop(0)

    client = _client()
    monkeypatch.setattr(client._session, "request", fake_request)

    assert client.get("eventsnextleague.php") == {}
    with pytest.raises(APIError, match="Invalid API key"):
        client.get("eventsnextleague.php")
    with pytest.raises(APIError, match="Invalid JSON"):
        client.get("eventsnextleague.php")
