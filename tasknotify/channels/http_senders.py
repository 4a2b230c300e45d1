"""HTTP-based channel senders: generic webhook, Slack, Discord and SMS gateway.

All of them POST a JSON payload with ``requests`` and map any transport or
HTTP status failure to SendError, which the worker retries.
"""

import logging
from abc import abstractmethod
from typing import Any, Dict, Optional

import requests

from tasknotify.notifications.models import (
    Notification,
    NotificationType,
    SendError,
    enum_value,
)
from tasknotify.notifications.senders import ChannelSender
from tasknotify.utils.timestamps import format_timestamp

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10
DEFAULT_USER_AGENT = "tasknotify/0.1"

# Discord embed colors by priority
_DISCORD_COLORS = {
    "low": 0x95A5A6,
    "normal": 0x0099FF,
    "high": 0xE67E22,
    "critical": 0xE74C3C,
}

# Discord rejects embed descriptions above this length
_DISCORD_DESCRIPTION_LIMIT = 2000


class HttpSender(ChannelSender):
    """Base class for senders that POST JSON to a URL.

    The URL is the notification's ``channel`` when set, otherwise the
    sender's ``default_url``.
    """

    def __init__(
        self,
        default_url: Optional[str] = None,
        timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.default_url = default_url
        self.timeout_seconds = timeout_seconds
        self.headers = {"User-Agent": user_agent, **(headers or {})}

    def has_default_destination(self) -> bool:
        return bool(self.default_url)

    def resolve_url(self, notification: Notification) -> str:
        url = notification.channel.strip() or self.default_url
        if not url:
            raise SendError(f"No destination URL for {self.notification_type} notification")
        return url

    @abstractmethod
    def build_payload(self, notification: Notification) -> Dict[str, Any]:
        """JSON body for ``notification``."""

    def send(self, notification: Notification) -> None:
        url = self.resolve_url(notification)
        payload = self.build_payload(notification)

        try:
            response = requests.post(
                url, json=payload, headers=self.headers, timeout=self.timeout_seconds
            )
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            raise SendError(
                f"{self.notification_type} delivery timed out after {self.timeout_seconds}s"
            ) from e
        except requests.RequestException as e:
            raise SendError(f"{self.notification_type} delivery failed: {e}") from e

        logger.debug(
            f"{self.notification_type} notification {notification.id} posted "
            f"(status {response.status_code})"
        )


class WebhookSender(HttpSender):
    """Posts the notification itself as JSON to an arbitrary webhook."""

    notification_type = NotificationType.WEBHOOK.value

    def build_payload(self, notification: Notification) -> Dict[str, Any]:
        return {
            "id": notification.id,
            "user_id": notification.user_id,
            "task_id": notification.task_id,
            "type": notification.type,
            "priority": enum_value(notification.priority),
            "trigger": enum_value(notification.trigger),
            "title": notification.title,
            "message": notification.message,
            "retry_count": notification.retry_count,
            "created_at": format_timestamp(notification.created_at),
            "metadata": notification.metadata,
        }


class SlackSender(HttpSender):
    """Slack incoming-webhook sender."""

    notification_type = NotificationType.SLACK.value

    def build_payload(self, notification: Notification) -> Dict[str, Any]:
        priority = enum_value(notification.priority)
        header = f"*{notification.title}*"
        if priority in ("high", "critical"):
            header = f":rotating_light: {header}"

        return {
            "text": f"{notification.title}: {notification.message}",
            "blocks": [
                {"type": "section", "text": {"type": "mrkdwn", "text": header}},
                {"type": "section", "text": {"type": "mrkdwn", "text": notification.message}},
                {
                    "type": "context",
                    "elements": [
                        {
                            "type": "mrkdwn",
                            "text": f"priority: {priority} | task #{notification.task_id}",
                        }
                    ],
                },
            ],
        }


class DiscordSender(HttpSender):
    """Discord webhook sender using a single embed."""

    notification_type = NotificationType.DISCORD.value

    def __init__(self, *args, username: str = "Task Notifier", **kwargs):
        super().__init__(*args, **kwargs)
        self.username = username

    def build_payload(self, notification: Notification) -> Dict[str, Any]:
        priority = enum_value(notification.priority)
        embed = {
            "title": notification.title,
            "description": notification.message[:_DISCORD_DESCRIPTION_LIMIT],
            "color": _DISCORD_COLORS.get(priority, _DISCORD_COLORS["normal"]),
            "footer": {"text": f"Task #{notification.task_id} | {priority}"},
        }
        if notification.created_at is not None:
            embed["timestamp"] = notification.created_at.isoformat()

        return {"username": self.username, "embeds": [embed]}


class SMSGatewaySender(HttpSender):
    """Sends text messages through a generic HTTP SMS gateway.

    The gateway URL is configured once; the notification's ``recipient``
    holds the phone number.
    """

    notification_type = NotificationType.SMS.value

    def __init__(self, gateway_url: str, token: Optional[str] = None, **kwargs):
        headers = {"Authorization": f"Bearer {token}"} if token else None
        super().__init__(default_url=gateway_url, headers=headers, **kwargs)

    def resolve_url(self, notification: Notification) -> str:
        return self.default_url

    def build_payload(self, notification: Notification) -> Dict[str, Any]:
        return {
            "to": notification.recipient,
            "message": f"{notification.title}: {notification.message}",
            "reference": notification.id,
        }
