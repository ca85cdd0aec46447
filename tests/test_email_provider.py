"""
Tests for email providers and templates
"""
import smtplib
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from classmate_hub.services.email_provider import (
    DevEmailProvider,
    EmailMessage,
    SMTPEmailProvider,
    build_email_provider,
    send_password_reset_email,
    send_verification_email,
)
from classmate_hub.services.email_templates import VerificationEmailTemplate


def smtp_settings(**overrides):
    values = dict(
        ENV="test", is_dev=False, SMTP_HOST=None, SMTP_PORT=465, SMTP_USER=None,
        SMTP_PASSWORD=None, SMTP_FROM_ADDRESS="hub@example.com",
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestLinks:
    def test_verification_link(self):
        provider = MagicMock()
        provider.send.return_value = True

        assert send_verification_email(provider, "a@example.com", "tok/en", "https://hub.example.com/", name="Ada")

        message = provider.send.call_args.args[0]
        assert message.to == "a@example.com"
        assert message.subject == "Verify your email address"
        assert "https://hub.example.com/verify-email?token=tok%2Fen" in message.text_body
        assert "Hi Ada," in message.text_body

    def test_reset_link(self):
        provider = MagicMock()
        provider.send.return_value = False

        assert send_password_reset_email(provider, "a@example.com", "abc", "http://localhost:3000") is False
        message = provider.send.call_args.args[0]
        assert "http://localhost:3000/reset-password?token=abc" in message.html_body
        assert "1 hour" in message.text_body


class TestTemplates:
    def test_html_escapes_name(self):
        html = VerificationEmailTemplate.render_html("https://x.example.com/?a=1&b=2", name="<b>Eve</b>")
        assert "<b>Eve</b>" not in html
        assert "&lt;b&gt;Eve&lt;/b&gt;" in html
        assert "a=1&amp;b=2" in html

    def test_default_greeting(self):
        assert "Hi there," in VerificationEmailTemplate.render_plain_text("https://x.example.com")


class TestProviders:
    def test_dev_provider_logs(self, caplog):
        caplog.set_level("INFO", logger="classmate_hub.services.email_provider")
        message = EmailMessage(to="a@example.com", subject="Hello", html_body="<p>Hi</p>", text_body="Hi")
        assert DevEmailProvider().send(message) is True
        assert "Subject: Hello" in caplog.text

    def test_smtp_failure_returns_false(self):
        provider = SMTPEmailProvider("smtp.example.com", 465, "user", "pw", "hub@example.com")
        message = EmailMessage(to="a@example.com", subject="Hello", html_body="<p>Hi</p>")
        with patch("classmate_hub.services.email_provider.smtplib.SMTP_SSL",
                   side_effect=smtplib.SMTPConnectError(421, "unavailable")):
            assert provider.send(message) is False

    def test_smtp_starttls(self):
        provider = SMTPEmailProvider("smtp.example.com", 587, "user", "pw", "hub@example.com")
        message = EmailMessage(to="a@example.com", subject="Hello", html_body="<p>Hi</p>", text_body="Hi")
        with patch("classmate_hub.services.email_provider.smtplib.SMTP") as smtp:
            server = smtp.return_value
            server.__enter__.return_value = server
            assert provider.send(message) is True

        server.starttls.assert_called_once()
        server.login.assert_called_once_with("user", "pw")
        sent = server.send_message.call_args.args[0]
        assert sent["From"] == "hub@example.com"
        assert sent["To"] == "a@example.com"

    def test_factory(self):
        assert isinstance(build_email_provider(smtp_settings()), DevEmailProvider)
        provider = build_email_provider(smtp_settings(SMTP_HOST="smtp.example.com", SMTP_USER="u", SMTP_PASSWORD="p"))
        assert isinstance(provider, SMTPEmailProvider)
        assert provider.is_available()
