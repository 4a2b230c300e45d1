"""Asynchronous notification delivery engine."""

from .clock import Clock, SystemClock
from .deferred import DeferredDispatcher
from .models import (
    InvalidTransitionError,
    NonRetryableError,
    Notification,
    NotificationError,
    NotificationPriority,
    NotificationStats,
    NotificationStatus,
    NotificationTemplateError,
    NotificationTrigger,
    NotificationType,
    NotificationValidationError,
    QueueFullError,
    QueueStatus,
    SendError,
    ServiceStoppedError,
    SMTPDeliveryError,
    UnsupportedTypeError,
)
from .retry import RetryDecision, RetryPolicy, check_deliverable
from .senders import ChannelSender, SenderRegistry
from .service import NotificationService, NotificationStore

__all__ = [
    "NotificationService",
    "NotificationStore",
    "Notification",
    "NotificationType",
    "NotificationPriority",
    "NotificationStatus",
    "NotificationTrigger",
    "NotificationStats",
    "QueueStatus",
    "ChannelSender",
    "SenderRegistry",
    "RetryPolicy",
    "RetryDecision",
    "check_deliverable",
    "DeferredDispatcher",
    "Clock",
    "SystemClock",
    "NotificationError",
    "QueueFullError",
    "ServiceStoppedError",
    "SendError",
    "SMTPDeliveryError",
    "NonRetryableError",
    "UnsupportedTypeError",
    "NotificationValidationError",
    "NotificationTemplateError",
    "InvalidTransitionError",
]
