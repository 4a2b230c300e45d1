"""Data models and exceptions for the notification engine.

Defines the Notification work item, its enumerations, the queue status
snapshot, and the exception hierarchy used across the delivery pipeline.
"""

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class QueueFullError(NotificationError):
    """Raised when the delivery queue is at capacity (backpressure)."""

    pass


class ServiceStoppedError(NotificationError):
    """Raised for any submission after the service has been stopped."""

    pass


class SendError(NotificationError):
    """A channel sender failed to deliver. Retryable up to max_retries."""

    pass


class SMTPDeliveryError(SendError):
    """Raised when SMTP delivery fails."""

    pass


class NonRetryableError(NotificationError):
    """A failure that cannot resolve itself; never retried."""

    pass


class UnsupportedTypeError(NonRetryableError):
    """No channel sender is registered for the notification type."""

    pass


class NotificationValidationError(NonRetryableError):
    """A field required by the notification type is missing."""

    pass


class NotificationTemplateError(NonRetryableError):
    """Raised when template rendering fails due to configuration or missing variables."""

    pass


class InvalidTransitionError(NotificationError):
    """Raised on a status change the state machine does not allow."""

    pass


class NotificationType(str, Enum):
    """Delivery channel type."""

    EMAIL = "email"
    IN_APP = "in_app"
    SMS = "sms"
    WEBHOOK = "webhook"
    SLACK = "slack"
    DISCORD = "discord"


class NotificationPriority(str, Enum):
    """Priority level."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


class NotificationStatus(str, Enum):
    """Delivery status."""

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    CANCELLED = "cancelled"


class NotificationTrigger(str, Enum):
    """Why the notification exists."""

    DUE_DATE = "due_date"
    OVERDUE = "overdue"
    STATUS_CHANGE = "status_change"
    CREATED = "created"
    UPDATED = "updated"
    CUSTOM = "custom"


TERMINAL_STATUSES = frozenset(
    {
        NotificationStatus.SENT.value,
        NotificationStatus.DELIVERED.value,
        NotificationStatus.FAILED.value,
        NotificationStatus.CANCELLED.value,
    }
)


def enum_value(value: Any) -> Any:
    """Return the plain value of an enum member, or the value unchanged."""
    if isinstance(value, Enum):
        return value.value
    return value


class Notification(BaseModel):
    """A unit of asynchronous delivery work.

    Mutated only by whoever currently owns it: the caller before submission,
    the worker while delivering, the deferred dispatcher while waiting.

    ``type`` is kept as a plain string so that values outside
    NotificationType can be represented and rejected at delivery time.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: int = 0
    task_id: int = 0
    type: str = NotificationType.EMAIL.value
    priority: NotificationPriority = NotificationPriority.NORMAL
    trigger: NotificationTrigger = NotificationTrigger.CUSTOM
    status: NotificationStatus = NotificationStatus.PENDING

    title: str = ""
    message: str = ""
    recipient: str = ""
    channel: str = ""

    scheduled_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    retry_count: int = Field(0, ge=0)
    max_retries: Optional[int] = Field(None, ge=0)
    error: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"use_enum_values": True}

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, v: Any) -> Any:
        return enum_value(v)

    @model_validator(mode="after")
    def check_retry_budget(self) -> "Notification":
        if self.max_retries is not None and self.retry_count > self.max_retries:
            raise ValueError(
                f"retry_count ({self.retry_count}) exceeds max_retries ({self.max_retries})"
            )
        return self

    @property
    def is_terminal(self) -> bool:
        return enum_value(self.status) in TERMINAL_STATUSES

    def log_fields(self) -> Dict[str, Any]:
        """Fields identifying this notification in structured logs."""
        return {
            "notification_id": self.id,
            "notification_type": self.type,
            "task_id": self.task_id,
            "user_id": self.user_id,
        }


@dataclass
class QueueStatus:
    """Read-only snapshot of the delivery engine."""

    queue_length: int
    worker_count: int
    is_running: bool
    scheduled_count: int = 0
    in_flight: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class NotificationStats:
    """Delivery counters since the service started."""

    total_sent: int = 0
    total_delivered: int = 0
    total_failed: int = 0
    total_cancelled: int = 0
    total_retried: int = 0
    total_rejected: int = 0
    by_type: Dict[str, int] = field(default_factory=dict)
    by_priority: Dict[str, int] = field(default_factory=dict)
    by_trigger: Dict[str, int] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        """Share of finished deliveries that succeeded (0.0 when none finished)."""
        finished = self.total_sent + self.total_failed
        if finished == 0:
            return 0.0
        return self.total_sent / finished

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["success_rate"] = round(self.success_rate, 4)
        return data
