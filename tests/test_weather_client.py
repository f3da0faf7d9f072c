from __future__ import annotations

import http.client
from urllib.error import HTTPError, URLError

import pytest

from routecast.adapters.weather import WeatherAdapterError, WeatherProviderUnavailable
from routecast.adapters.weather import client


class FakeResponse:
    def __init__(self, body: bytes | Exception) -> None:
        self._body = body

    def __enter__(self) -> FakeResponse:
        return self

    def __exit__(self, *exc_info) -> None:
        return None

    def read(self) -> bytes:
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


def _install_urlopen(monkeypatch, outcome):
    def fake_urlopen(request, timeout):
        if isinstance(outcome, (HTTPError, URLError)):
            raise outcome
        return FakeResponse(outcome)

    monkeypatch.setattr(client, "urlopen", fake_urlopen)


def test_payload_is_decoded(monkeypatch):
    _install_urlopen(monkeypatch, b'{"current": {"temperature_2m": 4.5}}')

    payload = client.fetch_json("https://weather.test", 5, source="Weather")

    assert payload == {"current": {"temperature_2m": 4.5}}


@pytest.mark.parametrize(
    "failure",
    [
        ConnectionResetError("connection reset by peer"),
        http.client.IncompleteRead(b"{\"hourly\""),
        TimeoutError("read timed out"),
        URLError("name resolution failed"),
        HTTPError("https://weather.test", 503, "Service Unavailable", None, None),
    ],
)
def test_transient_failures_mean_provider_unavailable(monkeypatch, failure):
    _install_urlopen(monkeypatch, failure)

    with pytest.raises(WeatherProviderUnavailable):
        client.fetch_json("https://weather.test", 5, source="Weather")


@pytest.mark.parametrize(
    "outcome",
    [
        b"\xff\xfe\x00",
        b"{not json",
        b"[1, 2, 3]",
        HTTPError("https://weather.test", 400, "Bad Request", None, None),
    ],
)
def test_bad_responses_are_adapter_errors(monkeypatch, outcome):
    _install_urlopen(monkeypatch, outcome)

    with pytest.raises(WeatherAdapterError) as excinfo:
        client.fetch_json("https://weather.test", 5, source="Weather")

    assert not isinstance(excinfo.value, WeatherProviderUnavailable)


def test_client_requires_an_attempt():
    with pytest.raises(ValueError, match="max_attempts"):
        client.JsonHttpClient(source="Weather", timeout_seconds=5, max_attempts=0, backoff_seconds=0)


def test_percent_values_are_clamped():
    assert client.coerce_percent(104.6) == 100
    assert client.coerce_percent(-3) == 0
    assert client.coerce_percent("n/a") is None
