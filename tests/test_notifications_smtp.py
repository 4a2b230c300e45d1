"""Unit tests for the SMTP client wrapper and the email channel.

Covers:
- Connection handling (SMTP and SMTP_SSL)
- STARTTLS negotiation
- Authentication (with and without credentials)
- Error mapping to SMTPDeliveryError
- Recipient parsing and sender address building
- EmailSender message assembly
"""

import smtplib
from unittest.mock import MagicMock, Mock

import pytest
from email.message import EmailMessage

from tasknotify.channels.email_sender import EmailSender
from tasknotify.channels.smtp_client import SMTPClient, build_sender_address, parse_recipients
from tasknotify.config.environment import EnvironmentConfig
from tasknotify.notifications.models import (
    Notification,
    NotificationValidationError,
    SendError,
    SMTPDeliveryError,
)


@pytest.fixture
def env_config_with_auth():
    """Environment config with SMTP authentication."""
    return EnvironmentConfig(
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_user="user@example.com",
        smtp_pass="secret123",
        smtp_sender_name="Task Notifier",
    )


@pytest.fixture
def env_config_without_auth():
    return EnvironmentConfig(smtp_host="smtp.example.com", smtp_port=25)


@pytest.fixture
def env_config_implicit_tls():
    """Environment config for implicit TLS (port 465)."""
    return EnvironmentConfig(
        smtp_host="smtp.gmail.com",
        smtp_port=465,
        smtp_user="user@gmail.com",
        smtp_pass="apppassword",
    )


@pytest.fixture
def sample_message():
    msg = EmailMessage()
    msg["Subject"] = "Test Subject"
    msg["From"] = "sender@example.com"
    msg["To"] = "recipient@example.com"
    msg.set_content("Test body")
    return msg


class TestSMTPClient:
    def test_starttls_and_login(self, env_config_with_auth, sample_message):
        smtp = MagicMock()
        factory = Mock(return_value=smtp)
        client = SMTPClient(env_config_with_auth, smtp_factory=factory)

        client.send(sample_message)

        factory.assert_called_once_with("smtp.example.com", 587)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("user@example.com", "secret123")
        smtp.send_message.assert_called_once_with(sample_message)
        smtp.quit.assert_called_once()

    def test_no_tls_no_auth(self, env_config_without_auth, sample_message):
        smtp = MagicMock()
        client = SMTPClient(env_config_without_auth, use_tls=False, smtp_factory=Mock(return_value=smtp))

        client.send(sample_message)

        smtp.starttls.assert_not_called()
        smtp.login.assert_not_called()
        smtp.send_message.assert_called_once()

    def test_implicit_tls_port(self, env_config_implicit_tls, sample_message):
        smtp = MagicMock()
        plain_factory = Mock()
        ssl_factory = Mock(return_value=smtp)
        client = SMTPClient(
            env_config_implicit_tls, smtp_factory=plain_factory, smtp_ssl_factory=ssl_factory
        )

        client.send(sample_message)

        plain_factory.assert_not_called()
        args, kwargs = ssl_factory.call_args
        assert args == ("smtp.gmail.com", 465)
        assert "context" in kwargs
        smtp.starttls.assert_not_called()
        smtp.login.assert_called_once_with("user@gmail.com", "apppassword")

    def test_auth_error_is_wrapped(self, env_config_with_auth, sample_message):
        smtp = MagicMock()
        smtp.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
        client = SMTPClient(env_config_with_auth, smtp_factory=Mock(return_value=smtp))

        with pytest.raises(SMTPDeliveryError, match="SMTP error"):
            client.send(sample_message)
        smtp.quit.assert_called_once()

    def test_connection_error_is_wrapped(self, env_config_with_auth, sample_message):
        factory = Mock(side_effect=ConnectionRefusedError("refused"))
        client = SMTPClient(env_config_with_auth, smtp_factory=factory)

        with pytest.raises(SMTPDeliveryError, match="Network error"):
            client.send(sample_message)

    def test_delivery_errors_are_retryable(self):
        assert issubclass(SMTPDeliveryError, SendError)

    def test_quit_failure_is_ignored(self, env_config_with_auth, sample_message):
        smtp = MagicMock()
        smtp.quit.side_effect = smtplib.SMTPServerDisconnected("gone")
        client = SMTPClient(env_config_with_auth, smtp_factory=Mock(return_value=smtp))

        client.send(sample_message)

        smtp.send_message.assert_called_once()


class TestParseRecipients:
    def test_single(self):
        assert parse_recipients("user@example.com") == ["user@example.com"]

    def test_multiple_with_whitespace(self):
        assert parse_recipients(" a@example.com , b@example.com,") == [
            "a@example.com",
            "b@example.com",
        ]

    def test_invalid_address(self):
        with pytest.raises(ValueError, match="not-an-email"):
            parse_recipients("not-an-email")

    def test_empty(self):
        with pytest.raises(ValueError):
            parse_recipients(" , ")


class TestBuildSenderAddress:
    def test_prefers_from_email(self):
        env = EnvironmentConfig(
            smtp_host="smtp.example.com",
            smtp_user="user@example.com",
            smtp_from_email="tasks@example.com",
        )
        assert build_sender_address(env) == "Task Notifier <tasks@example.com>"

    def test_falls_back_to_user(self, env_config_with_auth):
        assert build_sender_address(env_config_with_auth) == "Task Notifier <user@example.com>"

    def test_falls_back_to_noreply(self, env_config_without_auth):
        assert build_sender_address(env_config_without_auth) == "Task Notifier <noreply@smtp.example.com>"


class TestEmailSender:
    def test_builds_multipart_message(self, env_config_with_auth):
        smtp_client = Mock()
        sender = EmailSender(env_config_with_auth, smtp_client=smtp_client, subject_prefix="[Tasks]")
        n = Notification(
            type="email",
            title="Task Reminder: Taxes",
            message="Your task 'Taxes' is due in 30 minutes.",
            recipient="owner@example.com",
            task_id=4,
        )

        sender.send(n)

        message = smtp_client.send.call_args[0][0]
        assert message["Subject"] == "[Tasks] Task Reminder: Taxes"
        assert message["To"] == "owner@example.com"
        assert message["From"] == "Task Notifier <user@example.com>"
        assert message.is_multipart()
        text = message.get_body(preferencelist=("plain",)).get_content()
        html = message.get_body(preferencelist=("html",)).get_content()
        assert "due in 30 minutes" in text
        assert "Taxes" in html

    def test_invalid_recipient_is_validation_error(self, env_config_with_auth):
        smtp_client = Mock()
        sender = EmailSender(env_config_with_auth, smtp_client=smtp_client)
        n = Notification(type="email", title="x", recipient="nobody")

        with pytest.raises(NotificationValidationError):
            sender.send(n)
        smtp_client.send.assert_not_called()

    def test_smtp_failure_propagates(self, env_config_with_auth):
        smtp_client = Mock()
        smtp_client.send.side_effect = SMTPDeliveryError("down")
        sender = EmailSender(env_config_with_auth, smtp_client=smtp_client)
        n = Notification(type="email", title="x", recipient="owner@example.com")

        with pytest.raises(SMTPDeliveryError):
            sender.send(n)
