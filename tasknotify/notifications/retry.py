"""Retry policy and pre-delivery validation.

The policy is a pure decision: given a notification and the error from an
attempt, either retry after a fixed delay or fail terminally. The delay is
fixed by contract; there is no exponential backoff.
"""

from dataclasses import dataclass
from typing import Optional

from .models import (
    NonRetryableError,
    Notification,
    NotificationType,
    NotificationValidationError,
    UnsupportedTypeError,
)
from .senders import KNOWN_TYPES, ChannelSender

_RECIPIENT_TYPES = frozenset({NotificationType.EMAIL.value, NotificationType.SMS.value})
_CHANNEL_TYPES = frozenset(
    {
        NotificationType.WEBHOOK.value,
        NotificationType.SLACK.value,
        NotificationType.DISCORD.value,
    }
)


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of applying the retry policy to a failed attempt."""

    retry: bool
    delay_seconds: float = 0.0
    reason: str = ""


class RetryPolicy:
    """Fixed-delay retry policy bounded by each notification's max_retries."""

    def __init__(self, default_max_retries: int = 3, retry_delay_seconds: float = 300):
        if default_max_retries < 0:
            raise ValueError("default_max_retries must be >= 0")
        if retry_delay_seconds < 0:
            raise ValueError("retry_delay_seconds must be >= 0")
        self.default_max_retries = default_max_retries
        self.retry_delay_seconds = retry_delay_seconds

    def max_retries_for(self, notification: Notification) -> int:
        if notification.max_retries is None:
            return self.default_max_retries
        return notification.max_retries

    def decide(self, notification: Notification, error: Exception) -> RetryDecision:
        """Decide what happens after ``error`` was raised delivering ``notification``."""
        if isinstance(error, NonRetryableError):
            return RetryDecision(retry=False, reason="non_retryable")

        if notification.retry_count < self.max_retries_for(notification):
            return RetryDecision(
                retry=True,
                delay_seconds=self.retry_delay_seconds,
                reason="retry_budget_remaining",
            )

        return RetryDecision(retry=False, reason="retries_exhausted")


def check_deliverable(notification: Notification, sender: Optional[ChannelSender]) -> None:
    """Reject notifications that can never be delivered.

    Raises:
        UnsupportedTypeError: Unknown type, or no sender registered for it
        NotificationValidationError: A field required by the type is missing
    """
    kind = notification.type
    if kind not in KNOWN_TYPES:
        raise UnsupportedTypeError(f"unsupported notification type: {kind}")
    if sender is None:
        raise UnsupportedTypeError(f"no channel sender registered for type: {kind}")

    if not notification.title.strip():
        raise NotificationValidationError("notification title is required")

    if kind in _RECIPIENT_TYPES and not notification.recipient.strip():
        raise NotificationValidationError(f"{kind} notification requires a recipient")

    if (
        kind in _CHANNEL_TYPES
        and not notification.channel.strip()
        and not sender.has_default_destination()
    ):
        raise NotificationValidationError(f"{kind} notification requires a channel")

    if kind == NotificationType.IN_APP.value and notification.user_id <= 0:
        raise NotificationValidationError("in_app notification requires a user_id")
