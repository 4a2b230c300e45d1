"""Tests for HTTP senders, the in-app inbox and the sender registry."""

from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest
import requests

from tasknotify.channels import (
    DiscordSender,
    EmailSender,
    HttpSender,
    InAppInbox,
    InAppSender,
    SlackSender,
    SMSGatewaySender,
    WebhookSender,
    build_sender_registry,
)
from tasknotify.config.environment import EnvironmentConfig
from tasknotify.config.models import AppConfig
from tasknotify.notifications.models import Notification, SendError

POST = "tasknotify.channels.http_senders.requests.post"


@pytest.fixture
def ok_response():
    response = Mock()
    response.status_code = 200
    response.raise_for_status.return_value = None
    return response


def make_notification(**overrides):
    fields = {
        "user_id": 7,
        "task_id": 42,
        "title": "Overdue Task: Taxes",
        "message": "Your task 'Taxes' is 3 hours overdue.",
        "priority": "normal",
        "trigger": "overdue",
        "created_at": datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return Notification(**fields)


class TestWebhookSender:
    def test_posts_notification_json(self, ok_response):
        sender = WebhookSender(timeout_seconds=5, user_agent="tests/1.0")
        n = make_notification(type="webhook", channel="https://hooks.example.com/tasks")

        with patch(POST, return_value=ok_response) as mock_post:
            sender.send(n)

        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        assert args[0] == "https://hooks.example.com/tasks"
        assert kwargs["timeout"] == 5
        assert kwargs["headers"]["User-Agent"] == "tests/1.0"
        payload = kwargs["json"]
        assert payload["id"] == n.id
        assert payload["type"] == "webhook"
        assert payload["trigger"] == "overdue"
        assert payload["task_id"] == 42
        assert payload["created_at"] == "2025-01-15T12:00:00Z"

    def test_channel_overrides_default_url(self, ok_response):
        sender = WebhookSender(default_url="https://default.example.com")
        n = make_notification(type="webhook", channel="https://override.example.com")

        with patch(POST, return_value=ok_response) as mock_post:
            sender.send(n)

        assert mock_post.call_args[0][0] == "https://override.example.com"

    def test_no_destination(self):
        sender = WebhookSender()
        assert not sender.has_default_destination()
        with pytest.raises(SendError, match="No destination"):
            sender.send(make_notification(type="webhook"))

    def test_http_error_becomes_send_error(self):
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("503 Server Error")
        sender = WebhookSender(default_url="https://hooks.example.com")

        with patch(POST, return_value=response):
            with pytest.raises(SendError, match="503"):
                sender.send(make_notification(type="webhook"))

    def test_connection_error_becomes_send_error(self):
        sender = WebhookSender(default_url="https://hooks.example.com")

        with patch(POST, side_effect=requests.ConnectionError("refused")):
            with pytest.raises(SendError):
                sender.send(make_notification(type="webhook"))

    def test_base_class_needs_payload_builder(self):
        with pytest.raises(TypeError):
            HttpSender(default_url="https://hooks.example.com")

    def test_timeout_reported(self):
        sender = WebhookSender(default_url="https://hooks.example.com", timeout_seconds=3)

        with patch(POST, side_effect=requests.Timeout("read timeout")):
            with pytest.raises(SendError, match="timed out after 3"):
                sender.send(make_notification(type="webhook"))


class TestSlackSender:
    def test_payload(self, ok_response):
        sender = SlackSender(default_url="https://hooks.slack.com/services/x")
        n = make_notification(type="slack")

        with patch(POST, return_value=ok_response) as mock_post:
            sender.send(n)

        payload = mock_post.call_args.kwargs["json"]
        assert payload["text"] == "Overdue Task: Taxes: Your task 'Taxes' is 3 hours overdue."
        assert payload["blocks"][0]["text"]["text"] == "*Overdue Task: Taxes*"
        assert "task #42" in payload["blocks"][2]["elements"][0]["text"]

    def test_urgent_marker(self):
        payload = SlackSender().build_payload(make_notification(type="slack", priority="high"))
        assert payload["blocks"][0]["text"]["text"].startswith(":rotating_light:")


class TestDiscordSender:
    def test_payload(self):
        sender = DiscordSender(username="Bot")
        payload = sender.build_payload(make_notification(type="discord", priority="critical"))

        assert payload["username"] == "Bot"
        embed = payload["embeds"][0]
        assert embed["title"] == "Overdue Task: Taxes"
        assert embed["color"] == 0xE74C3C
        assert embed["timestamp"] == "2025-01-15T12:00:00+00:00"

    def test_long_message_truncated(self):
        payload = DiscordSender().build_payload(make_notification(type="discord", message="x" * 5000))
        assert len(payload["embeds"][0]["description"]) == 2000


class TestSMSGatewaySender:
    def test_posts_to_gateway_with_token(self, ok_response):
        sender = SMSGatewaySender("https://sms.example.com/send", token="abc")
        n = make_notification(type="sms", recipient="+15551234567", channel="ignored")

        with patch(POST, return_value=ok_response) as mock_post:
            sender.send(n)

        args, kwargs = mock_post.call_args
        assert args[0] == "https://sms.example.com/send"
        assert kwargs["headers"]["Authorization"] == "Bearer abc"
        assert kwargs["json"] == {
            "to": "+15551234567",
            "message": "Overdue Task: Taxes: Your task 'Taxes' is 3 hours overdue.",
            "reference": n.id,
        }

    def test_no_token_no_auth_header(self):
        sender = SMSGatewaySender("https://sms.example.com/send")
        assert "Authorization" not in sender.headers
        assert sender.has_default_destination()


class TestInAppInbox:
    def test_send_stores_copy(self):
        inbox = InAppInbox()
        sender = InAppSender(inbox)
        n = make_notification(type="in_app")

        sender.send(n)
        n.title = "changed afterwards"

        entries = inbox.list_for_user(7)
        assert len(entries) == 1
        assert entries[0].notification.title == "Overdue Task: Taxes"
        assert not entries[0].is_read
        assert sender.auto_confirm

    def test_newest_first_with_paging(self):
        inbox = InAppInbox()
        for i in range(5):
            inbox.add(make_notification(type="in_app", title=f"n{i}"))

        titles = [e.notification.title for e in inbox.list_for_user(7, limit=2, offset=1)]
        assert titles == ["n3", "n2"]
        assert inbox.list_for_user(99) == []

    def test_negative_paging_rejected(self):
        with pytest.raises(ValueError):
            InAppInbox().list_for_user(7, limit=-1)

    def test_eviction(self):
        inbox = InAppInbox(max_per_user=2)
        first = make_notification(type="in_app", title="first")
        inbox.add(first)
        inbox.add(make_notification(type="in_app", title="second"))
        inbox.add(make_notification(type="in_app", title="third"))

        assert [e.notification.title for e in inbox.list_for_user(7)] == ["third", "second"]
        assert inbox.mark_read(first.id) is False

    def test_mark_read_and_unread_count(self):
        inbox = InAppInbox()
        a = make_notification(type="in_app")
        b = make_notification(type="in_app")
        inbox.add(a)
        inbox.add(b)

        assert inbox.unread_count(7) == 2
        assert inbox.mark_read(a.id)
        assert inbox.unread_count(7) == 1
        assert inbox.mark_read("unknown") is False


class TestBuildSenderRegistry:
    def test_minimal_environment(self):
        registry = build_sender_registry(AppConfig(), EnvironmentConfig())

        assert registry.supported_types() == ["discord", "in_app", "slack", "webhook"]
        assert "email" not in registry
        assert "in_app" in registry
        assert not registry.get("slack").has_default_destination()

    def test_full_environment(self):
        env = EnvironmentConfig(
            smtp_host="smtp.example.com",
            slack_webhook_url="https://hooks.slack.com/services/x",
            sms_gateway_url="https://sms.example.com/send",
            sms_gateway_token="tok",
        )
        config = AppConfig.model_validate({"channels": {"http": {"timeout_seconds": 3}}})

        registry = build_sender_registry(config, env)

        assert registry.supported_types() == ["discord", "email", "in_app", "slack", "sms", "webhook"]
        assert isinstance(registry.get("email"), EmailSender)
        assert registry.get("slack").has_default_destination()
        assert registry.get("sms").timeout_seconds == 3

    def test_shared_inbox(self):
        inbox = InAppInbox()
        registry = build_sender_registry(AppConfig(), EnvironmentConfig(), inbox=inbox)
        assert registry.get("in_app").inbox is inbox
