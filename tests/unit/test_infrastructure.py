"""Unit tests for HttpClient and the logging helpers."""

import hashlib
import logging
from unittest.mock import MagicMock

import httpx
import pytest
import structlog

from config import LoggingSettings
from infrastructure.http_client import HttpClient
from shared.logging import get_logger, hash_ip, log_with_context, setup_logging
from shared.logging_config import redact_sensitive_fields


# ── HttpClient ────────────────────────────────────────────────────────────────


class TestHttpClient:
    async def test_get_delegates_to_httpx(self, mocker):
        client = HttpClient()
        fake_resp = MagicMock(status_code=200)
        mocker.patch.object(client._client, "get", return_value=fake_resp)
        resp = await client.get("http://example.com")
        assert resp.status_code == 200
        await client.aclose()

    async def test_get_propagates_exception(self, mocker):
        client = HttpClient()
        mocker.patch.object(client._client, "get", side_effect=Exception("timeout"))
        with pytest.raises(Exception, match="timeout"):
            await client.get("http://example.com")
        await client.aclose()

    async def test_uses_injected_transport(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(204))
        async with HttpClient(transport=transport) as client:
            resp = await client.get("http://ip-api.com/json/8.8.8.8")
        assert resp.status_code == 204

    async def test_default_headers_sent(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200)

        async with HttpClient(
            headers={"Content-Type": "application/json"},
            transport=httpx.MockTransport(handler),
        ) as client:
            await client.get("http://ip-api.com/json/8.8.8.8")
        assert seen[0].headers["Content-Type"] == "application/json"

    def test_timeout_configured(self):
        client = HttpClient(timeout=3.0)
        assert client.timeout.read == 3.0


# ── Logging ───────────────────────────────────────────────────────────────────


class TestHashIp:
    def test_development_returns_ip(self, monkeypatch):
        monkeypatch.setenv("ENV", "development")
        assert hash_ip("8.8.8.8") == "8.8.8.8"

    def test_production_hashes_ip(self, monkeypatch):
        monkeypatch.setenv("ENV", "production")
        expected = hashlib.sha256(b"8.8.8.8").hexdigest()[:16]
        assert hash_ip("8.8.8.8") == expected

    def test_none_passes_through(self, monkeypatch):
        monkeypatch.setenv("ENV", "production")
        assert hash_ip(None) is None


class TestRedaction:
    def test_sensitive_fields_redacted(self):
        event = {"event": "x", "api_key": "abc", "auth_token": "t", "ip_hash": "h"}
        out = redact_sensitive_fields(None, "info", event)
        assert out["api_key"] == "***REDACTED***"
        assert out["auth_token"] == "***REDACTED***"
        assert out["ip_hash"] == "h"
        assert out["event"] == "x"


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def restore_structlog(self):
        yield
        structlog.reset_defaults()

    @pytest.mark.parametrize("log_format", ["json", "console"])
    def test_configures_structlog(self, log_format):
        setup_logging(LoggingSettings(log_level="DEBUG", log_format=log_format))
        assert structlog.is_configured()
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_log_with_context_binds(self):
        log = log_with_context(get_logger(__name__), ip_hash="abc")
        assert log is not None
