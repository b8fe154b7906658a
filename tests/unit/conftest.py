"""
Unit test configuration.

Patches dotenv so pydantic-settings never reads the project's real .env file
during unit tests. Tests control config exclusively through monkeypatch.setenv().
"""

import httpx
import pytest

from infrastructure.http_client import HttpClient


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all unit tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


@pytest.fixture
def success_payload():
    """A complete ip-api.com success body for 8.8.8.8."""
    return {
        "query": "8.8.8.8",
        "status": "success",
        "country": "United States",
        "countryCode": "US",
        "region": "VA",
        "regionName": "Virginia",
        "city": "Ashburn",
        "zip": "20149",
        "lat": 37.751,
        "lon": -97.822,
        "timezone": "America/Chicago",
        "isp": "Google LLC",
        "org": "Google Public DNS",
        "as": "AS15169 Google LLC",
    }


@pytest.fixture
def mock_http():
    """Factory: an HttpClient whose requests are answered by ``handler``."""

    def _make(handler) -> HttpClient:
        return HttpClient(transport=httpx.MockTransport(handler))

    return _make
