"""Bridges from the engine's collaborator interfaces to the database.

Both adapters open one short session per call, so they are safe to use
from worker threads and the sweep thread at the same time.
"""

from datetime import datetime
from typing import Callable, List, Optional

from tasknotify.domain.models import Task
from tasknotify.notifications.models import Notification

from .database import get_session
from .repositories import NotificationRepository, TaskRepository


class DatabaseTaskSource:
    """Task source for the sweep scheduler."""

    def __init__(self, now: Optional[Callable[[], datetime]] = None):
        self._now = now

    def get_overdue_tasks(self) -> List[Task]:
        with get_session() as session:
            return TaskRepository(session).get_overdue_tasks(self._now() if self._now else None)

    def get_all_tasks(self) -> List[Task]:
        with get_session() as session:
            return TaskRepository(session).get_all_tasks()


class DatabaseNotificationStore:
    """Notification store receiving terminal notifications from the service."""

    def save(self, notification: Notification) -> None:
        with get_session() as session:
            NotificationRepository(session).save(notification)
