"""Notification status state machine.

    pending -> sent -> delivered
    pending -> failed
    pending -> cancelled

A retry keeps the notification in ``pending`` and bumps ``retry_count``.
Every helper stamps ``updated_at``.
"""

from datetime import datetime
from typing import Dict, FrozenSet

from .models import (
    InvalidTransitionError,
    Notification,
    NotificationStatus,
    enum_value,
)

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    NotificationStatus.PENDING.value: frozenset(
        {
            NotificationStatus.SENT.value,
            NotificationStatus.FAILED.value,
            NotificationStatus.CANCELLED.value,
        }
    ),
    NotificationStatus.SENT.value: frozenset({NotificationStatus.DELIVERED.value}),
    NotificationStatus.DELIVERED.value: frozenset(),
    NotificationStatus.FAILED.value: frozenset(),
    NotificationStatus.CANCELLED.value: frozenset(),
}


def can_transition(current, target) -> bool:
    return enum_value(target) in ALLOWED_TRANSITIONS.get(enum_value(current), frozenset())


def transition(notification: Notification, target: NotificationStatus, now: datetime) -> None:
    """Move ``notification`` to ``target`` or raise InvalidTransitionError."""
    current = enum_value(notification.status)
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Notification {notification.id}: cannot go from {current} to {enum_value(target)}"
        )
    notification.status = NotificationStatus(enum_value(target))
    notification.updated_at = now


def mark_sent(notification: Notification, now: datetime) -> None:
    transition(notification, NotificationStatus.SENT, now)
    notification.sent_at = now
    notification.error = ""


def mark_delivered(notification: Notification, now: datetime) -> None:
    transition(notification, NotificationStatus.DELIVERED, now)
    notification.delivered_at = now


def mark_failed(notification: Notification, error: str, now: datetime) -> None:
    """Terminal failure; the last error is kept for diagnostics."""
    transition(notification, NotificationStatus.FAILED, now)
    notification.error = error


def mark_cancelled(notification: Notification, now: datetime) -> None:
    transition(notification, NotificationStatus.CANCELLED, now)


def mark_retry(notification: Notification, error: str, retry_at: datetime, now: datetime) -> None:
    """Record a failed attempt that will be retried at ``retry_at``."""
    current = enum_value(notification.status)
    if current != NotificationStatus.PENDING.value:
        raise InvalidTransitionError(
            f"Notification {notification.id}: only pending notifications can be retried, got {current}"
        )
    notification.retry_count += 1
    notification.error = error
    notification.scheduled_at = retry_at
    notification.updated_at = now
