"""ORM models for the ``tasks`` and ``notifications`` tables.

Timestamps are stored as ISO 8601 UTC strings with microseconds, so string
comparison in SQL matches chronological order.
"""

import json
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, Column, Index, Integer, String, Text, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from tasknotify.domain.models import Task, TaskStatus
from tasknotify.notifications.models import Notification, enum_value
from tasknotify.utils.timestamps import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

Base = declarative_base()


class TaskModel(Base):
    """Tasks as far as the notification engine needs them."""

    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=TaskStatus.PENDING.value)
    due_date = Column(String(50), nullable=True)
    user_id = Column(Integer, nullable=True)
    is_archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(String(50), nullable=True)
    updated_at = Column(String(50), nullable=True)

    __table_args__ = (
        Index("idx_tasks_due_date", "due_date"),
        Index("idx_tasks_user", "user_id"),
    )

    def to_domain(self) -> Task:
        return Task(
            id=self.id,
            title=self.title,
            due_date=parse_timestamp(self.due_date),
            user_id=self.user_id,
            status=TaskStatus(self.status),
            is_archived=bool(self.is_archived),
        )


class NotificationModel(Base):
    """Terminal notifications handed over by the delivery engine."""

    __tablename__ = "notifications"

    id = Column(String(64), primary_key=True)
    user_id = Column(Integer, nullable=False, default=0)
    task_id = Column(Integer, nullable=False, default=0)
    type = Column(String(20), nullable=False)
    priority = Column(String(20), nullable=False)
    trigger = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False)

    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False, default="")
    recipient = Column(Text, nullable=False, default="")
    channel = Column(Text, nullable=False, default="")

    scheduled_at = Column(String(50), nullable=True)
    sent_at = Column(String(50), nullable=True)
    delivered_at = Column(String(50), nullable=True)
    created_at = Column(String(50), nullable=True)
    updated_at = Column(String(50), nullable=True)

    retry_count = Column(Integer, nullable=False, default=0)
    max_retries = Column(Integer, nullable=True)
    error = Column(Text, nullable=False, default="")
    # "metadata" is reserved on declarative classes
    metadata_json = Column("metadata", Text, nullable=False, default="{}")

    __table_args__ = (
        Index("idx_notifications_user_created", "user_id", "created_at"),
        Index("idx_notifications_status", "status"),
    )

    def apply(self, notification: Notification) -> None:
        """Copy every field of ``notification`` onto this row."""
        self.user_id = notification.user_id
        self.task_id = notification.task_id
        self.type = notification.type
        self.priority = enum_value(notification.priority)
        self.trigger = enum_value(notification.trigger)
        self.status = enum_value(notification.status)
        self.title = notification.title
        self.message = notification.message
        self.recipient = notification.recipient
        self.channel = notification.channel
        self.scheduled_at = _format(notification.scheduled_at)
        self.sent_at = _format(notification.sent_at)
        self.delivered_at = _format(notification.delivered_at)
        self.created_at = _format(notification.created_at)
        self.updated_at = _format(notification.updated_at)
        self.retry_count = notification.retry_count
        self.max_retries = notification.max_retries
        self.error = notification.error
        self.metadata_json = json.dumps(notification.metadata, default=str)

    def to_domain(self) -> Notification:
        return Notification(
            id=self.id,
            user_id=self.user_id,
            task_id=self.task_id,
            type=self.type,
            priority=self.priority,
            trigger=self.trigger,
            status=self.status,
            title=self.title,
            message=self.message,
            recipient=self.recipient,
            channel=self.channel,
            scheduled_at=parse_timestamp(self.scheduled_at),
            sent_at=parse_timestamp(self.sent_at),
            delivered_at=parse_timestamp(self.delivered_at),
            created_at=parse_timestamp(self.created_at),
            updated_at=parse_timestamp(self.updated_at),
            retry_count=self.retry_count,
            max_retries=self.max_retries,
            error=self.error,
            metadata=json.loads(self.metadata_json or "{}"),
        )

    @classmethod
    def from_domain(cls, notification: Notification) -> "NotificationModel":
        row = cls(id=notification.id)
        row.apply(notification)
        return row


def _format(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return format_timestamp(dt, include_microseconds=True)


def create_schema(engine: Engine) -> None:
    """Create missing tables and indexes. Idempotent."""
    Base.metadata.create_all(engine, checkfirst=True)
    tables = inspect(engine).get_table_names()
    logger.info(f"Database schema ready. Tables: {', '.join(tables)}")
