"""
FloodWatch — Configuration, rate limiter, email service, app wiring.
"""

from __future__ import annotations

import asyncio
import json
import smtplib

import pytest
from pydantic import ValidationError as PydanticValidationError
from starlette.requests import Request

from floodwatch.config import Settings
from floodwatch.core.exceptions import RateLimitError
from floodwatch.core.rate_limit import FixedWindowRateLimiter, _client_ip
from floodwatch.services.email import EmailService

# ─── Settings ─────────────────────────────────────────────────────────────────


class TestSettings:
    def test_missing_jwt_secret_fails(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET", raising=False)
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None)

    def test_blank_jwt_secret_fails(self):
        with pytest.raises(PydanticValidationError):
            Settings(JWT_SECRET="   ", _env_file=None)

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("BCRYPT_ROUNDS", raising=False)
        s = Settings(JWT_SECRET="s3cret", _env_file=None)
        assert s.BCRYPT_ROUNDS == 12
        assert s.JWT_EXPIRY_DAYS == 7
        assert s.TWO_FACTOR_CODE_TTL_MINUTES == 10

    def test_invalid_environment(self):
        with pytest.raises(PydanticValidationError):
            Settings(JWT_SECRET="s3cret", ENVIRONMENT="qa", _env_file=None)

    def test_email_configured_needs_host_user_pass(self):
        s = Settings(JWT_SECRET="s3cret", EMAIL_HOST="smtp.x.com", _env_file=None)
        assert s.email_configured is False
        s = Settings(
            JWT_SECRET="s3cret",
            EMAIL_HOST="smtp.x.com",
            EMAIL_USER="bot",
            EMAIL_PASS="pw",
            _env_file=None,
        )
        assert s.email_configured is True


# ─── Rate limiter ─────────────────────────────────────────────────────────────


class TestRateLimiter:
    def test_allows_up_to_limit(self):
        limiter = FixedWindowRateLimiter()
        for _ in range(3):
            limiter.hit("ip", 3, now=100.0)
        with pytest.raises(RateLimitError) as exc_info:
            limiter.hit("ip", 3, now=110.0)
        assert exc_info.value.retry_after == 50

    def test_window_resets(self):
        limiter = FixedWindowRateLimiter()
        limiter.hit("ip", 1, now=0.0)
        limiter.hit("ip", 1, now=60.0)

    def test_keys_are_independent(self):
        limiter = FixedWindowRateLimiter()
        limiter.hit("a", 1, now=0.0)
        limiter.hit("b", 1, now=0.0)

    def test_expired_windows_are_purged(self):
        limiter = FixedWindowRateLimiter()
        for i in range(50):
            limiter.hit(f"ip-{i}", 5, now=0.0)
        assert len(limiter) == 50
        limiter.hit("fresh", 5, now=61.0)
        assert len(limiter) == 1

    def test_live_windows_survive_purge(self):
        limiter = FixedWindowRateLimiter()
        limiter.hit("old", 5, now=0.0)
        limiter.hit("recent", 1, now=30.0)
        limiter.hit("other", 5, now=65.0)
        assert len(limiter) == 2
        with pytest.raises(RateLimitError):
            limiter.hit("recent", 1, now=70.0)


def _request(peer, forwarded=None):
    headers = [(b"x-forwarded-for", forwarded.encode())] if forwarded else []
    return Request({"type": "http", "headers": headers, "client": (peer, 5000)})


class TestClientIp:
    def test_forwarded_header_ignored_from_untrusted_peer(self):
        assert _client_ip(_request("203.0.113.9", "1.2.3.4"), []) == "203.0.113.9"

    def test_trusted_proxy_supplies_client(self):
        req = _request("10.0.0.2", "6.6.6.6, 198.51.100.7")
        assert _client_ip(req, ["10.0.0.2"]) == "198.51.100.7"

    def test_trusted_hops_are_skipped(self):
        req = _request("10.0.0.2", "198.51.100.7, 10.0.0.3")
        assert _client_ip(req, ["10.0.0.2", "10.0.0.3"]) == "198.51.100.7"

    def test_trusted_proxy_without_header(self):
        assert _client_ip(_request("10.0.0.2"), ["10.0.0.2"]) == "10.0.0.2"


# ─── Email ────────────────────────────────────────────────────────────────────


class _FakeSMTP:
    sent = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, user, password):
        pass

    def send_message(self, msg):
        _FakeSMTP.sent.append(msg)


@pytest.fixture
def smtp_settings():
    return Settings(
        JWT_SECRET="s3cret",
        EMAIL_HOST="smtp.x.com",
        EMAIL_USER="bot@floodwatch.ph",
        EMAIL_PASS="pw",
        _env_file=None,
    )


class TestEmailService:
    def test_unconfigured_returns_false(self):
        service = EmailService(Settings(JWT_SECRET="s3cret", _env_file=None))
        assert service.send_two_factor_code("ana@x.com", "123456", 10) is False

    def test_sends_code(self, monkeypatch, smtp_settings):
        _FakeSMTP.sent = []
        monkeypatch.setattr(smtplib, "SMTP", _FakeSMTP)
        service = EmailService(smtp_settings)
        assert service.send_two_factor_code("ana@x.com", "123456", 10) is True
        msg = _FakeSMTP.sent[0]
        assert msg["To"] == "ana@x.com"
        assert "Verification Code" in msg["Subject"]
        assert "123456" in msg.get_body(("plain",)).get_content()

    def test_smtp_failure_returns_false(self, monkeypatch, smtp_settings):
        class Broken(_FakeSMTP):
            def send_message(self, msg):
                raise smtplib.SMTPException("boom")

        monkeypatch.setattr(smtplib, "SMTP", Broken)
        assert EmailService(smtp_settings).send_welcome_email("ana@x.com", "Ana") is False

    def test_welcome_html_escapes_name(self, smtp_settings):
        html_body = EmailService(smtp_settings).welcome_html("<script>")
        assert "<script>" not in html_body
        assert "&lt;script&gt;" in html_body


# ─── App wiring ───────────────────────────────────────────────────────────────


class TestApp:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["database"] == "connected"

    def test_unknown_route_json_404(self, client):
        resp = client.get("/api/nowhere")
        assert resp.status_code == 404
        assert resp.json()["success"] is False
        assert resp.json()["message"] == "Route not found"

    def test_security_headers(self, client):
        resp = client.get("/api/health")
        assert resp.headers["x-content-type-options"] == "nosniff"
        assert resp.headers["x-frame-options"] == "DENY"

    @pytest.mark.parametrize(
        "environment, leaks_detail",
        [("development", True), ("staging", True), ("production", False)],
    )
    def test_unhandled_error_detail_hidden_only_in_production(
        self, monkeypatch, environment, leaks_detail
    ):
        from floodwatch.config import get_settings
        from floodwatch.main import generic_exception_handler

        monkeypatch.setattr(get_settings(), "ENVIRONMENT", environment)
        request = Request(
            {
                "type": "http",
                "method": "GET",
                "path": "/api/boom",
                "headers": [],
                "query_string": b"",
                "scheme": "http",
                "server": ("testserver", 80),
            }
        )
        resp = asyncio.run(generic_exception_handler(request, RuntimeError("db password=hunter2")))
        body = json.loads(resp.body)
        assert resp.status_code == 500
        assert body["message"] == "Internal server error"
        assert ("error" in body) is leaks_detail
