"""Shared fixtures for the contact relay tests."""

import os

# Must be set before the app modules read their configuration
os.environ["ALLOWED_ORIGIN"] = "http://localhost:5173, https://portfolio.example.dev"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["VERIFY_SMTP_ON_STARTUP"] = "false"
os.environ["RECAPTCHA_SECRET_KEY"] = "test-recaptcha-secret"
os.environ["SMTP_USER"] = "owner@portfolio.example.dev"
os.environ["SMTP_PASSWORD"] = "test-smtp-password"
os.environ.pop("CONTACT_RECIPIENT", None)
os.environ.pop("TRUST_PROXY", None)

import time
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from src.app import app
from src.shared.contact.rate_limit import daily_limiter, email_limiter


class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def reset_rate_limits():
    daily_limiter.reset()
    yield
    daily_limiter.reset()
    daily_limiter.clock = time.time
    email_limiter.clock = time.time


@pytest.fixture
def clock():
    fake = FakeClock()
    daily_limiter.clock = fake
    email_limiter.clock = fake
    return fake


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def valid_payload():
    return {
        "firstName": "Jane",
        "lastName": "Doe",
        "email": "jane.doe@example.com",
        "message": "Hello, I would like to talk about a project.",
        "captchaToken": "token-123",
    }


@pytest.fixture
def captcha_ok():
    with patch("src.shared.contact.routes.verify_captcha", return_value=True) as mock_verify:
        yield mock_verify


@pytest.fixture
def mail_ok():
    with patch("src.shared.contact.routes.send_contact_email", return_value=True) as mock_send:
        yield mock_send


@pytest.fixture
def trusted_proxy(monkeypatch):
    """Behave as if one reverse proxy appends the client address to X-Forwarded-For."""
    monkeypatch.setenv("TRUST_PROXY", "1")
