from __future__ import annotations

import pytest

from fakes import NOW, FakeWeatherProvider


@pytest.fixture
def fixed_clock():
    return lambda: NOW


@pytest.fixture
def provider() -> FakeWeatherProvider:
    return FakeWeatherProvider()
