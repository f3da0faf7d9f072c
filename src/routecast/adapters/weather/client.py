from __future__ import annotations

import asyncio
import http.client
import json
import logging
from typing import Any
from urllib.error import HTTPError
from urllib.request import Request, urlopen

from .base import WeatherAdapterError, WeatherProviderUnavailable
from .rate_limit import SlidingWindowRateLimiter

LOGGER = logging.getLogger(__name__)

USER_AGENT = "routecast/0.1"
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def coerce_float(value: Any, *, field_name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise WeatherAdapterError(f"Invalid numeric value for {field_name}") from exc


def coerce_int(value: Any, *, field_name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise WeatherAdapterError(f"Invalid integer value for {field_name}") from exc


def coerce_optional_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def coerce_percent(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return min(max(int(round(float(value))), 0), 100)
    except (TypeError, ValueError):
        return None


def visibility_km(value: Any) -> float | None:
    meters = coerce_optional_float(value)
    if meters is None:
        return None
    return round(meters / 1000, 2)


def fetch_json(url: str, timeout_seconds: float, *, source: str) -> dict[str, Any]:
    request = Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urlopen(request, timeout=timeout_seconds) as response:
            body = response.read()
    except HTTPError as exc:
        if exc.code in RETRYABLE_STATUS_CODES:
            raise WeatherProviderUnavailable(f"{source} returned HTTP {exc.code}") from exc
        raise WeatherAdapterError(f"{source} rejected the request with HTTP {exc.code}") from exc
    except (OSError, http.client.HTTPException) as exc:
        # URLError, timeouts and resets while reading the body all land here.
        raise WeatherProviderUnavailable(f"Failed to reach {source}: {exc}") from exc

    try:
        payload = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise WeatherAdapterError(f"{source} returned malformed JSON") from exc

    if not isinstance(payload, dict):
        raise WeatherAdapterError(f"Unexpected {source} response shape")
    return payload


class JsonHttpClient:
    """GET JSON documents off the event loop, retrying transient failures.

    Each attempt first waits on the optional rate limiter. Only
    ``WeatherProviderUnavailable`` is retried, with a delay of
    ``backoff_seconds * 2 ** attempt``.
    """

    def __init__(
        self,
        *,
        source: str,
        timeout_seconds: float,
        max_attempts: int,
        backoff_seconds: float,
        rate_limiter: SlidingWindowRateLimiter | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._source = source
        self._timeout_seconds = timeout_seconds
        self._max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds
        self._rate_limiter = rate_limiter

    async def get(self, url: str) -> dict[str, Any]:
        for attempt in range(self._max_attempts):
            if self._rate_limiter is not None:
                await self._rate_limiter.acquire()
            try:
                return await asyncio.to_thread(
                    fetch_json, url, self._timeout_seconds, source=self._source
                )
            except WeatherProviderUnavailable as exc:
                if attempt + 1 >= self._max_attempts:
                    raise
                delay = self._backoff_seconds * 2**attempt
                LOGGER.warning(
                    "%s attempt %d/%d failed (%s); retrying in %.2fs",
                    self._source,
                    attempt + 1,
                    self._max_attempts,
                    exc,
                    delay,
                )
                await asyncio.sleep(delay)
        raise WeatherProviderUnavailable(f"{self._source} request was not attempted")
