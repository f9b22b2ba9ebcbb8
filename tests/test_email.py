"""
Tests for email_service.py - outgoing mail and the password reset message.
"""

import smtplib

import pytest

from career_findr.core.config import Settings
from career_findr.services.email_service import MailDeliveryError, Mailer


class FakeSMTP:
    sent = []
    fail_with = None

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.calls = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, username, password):
        self.calls.append(("login", username))

    def send_message(self, msg):
        if FakeSMTP.fail_with:
            raise FakeSMTP.fail_with
        FakeSMTP.sent.append((self.host, self.port, self.calls, msg))


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.sent = []
    FakeSMTP.fail_with = None
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


@pytest.fixture
def smtp_mailer():
    return Mailer(Settings(
        smtp_host="smtp.example.com", smtp_port=2525,
        smtp_username="mailer", smtp_password="secret",
    ))


class TestMailer:

    def test_without_smtp_mail_is_held(self, mailer, fake_smtp):
        mailer.send("sam@example.com", "Hello", "Body")

        assert fake_smtp.sent == []
        assert mailer.outbox[0]["Subject"] == "Hello"
        assert mailer.outbox[0]["From"] == "Career Findr <no-reply@careerfindr.local>"

    def test_smtp_delivery(self, smtp_mailer, fake_smtp):
        smtp_mailer.send("sam@example.com", "Hello", "Body")

        host, port, calls, msg = fake_smtp.sent[0]
        assert (host, port) == ("smtp.example.com", 2525)
        assert calls == ["starttls", ("login", "mailer")]
        assert msg["To"] == "sam@example.com"

    def test_smtp_failure_raises(self, smtp_mailer, fake_smtp):
        fake_smtp.fail_with = smtplib.SMTPRecipientsRefused({})

        with pytest.raises(MailDeliveryError):
            smtp_mailer.send("sam@example.com", "Hello", "Body")
        assert len(smtp_mailer.outbox) == 0


class TestPasswordResetMessage:

    def test_link_carries_token(self):
        mailer = Mailer(Settings(smtp_host="", password_reset_url="https://app.example.com/reset"))

        assert mailer.password_reset_link("a.b+c") == "https://app.example.com/reset?token=a.b%2Bc"

    def test_message_contains_link(self, mailer):
        msg = mailer.send_password_reset("sam@example.com", "tok123")

        assert "http://localhost:5173/reset-password?token=tok123" in msg.get_content()
        assert "30 minutes" in msg.get_content()
