"""Repositories over the ``tasks`` and ``notifications`` tables.

Repositories work inside the caller's session and return domain models,
never ORM rows. The caller (usually ``get_session``) owns the transaction.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from tasknotify.domain.models import Task, TaskStatus
from tasknotify.notifications.models import Notification
from tasknotify.utils.timestamps import format_timestamp, utc_now

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import NotificationModel, TaskModel

logger = logging.getLogger(__name__)


class TaskRepository:
    """Read access to tasks for the sweep, plus inserts for seeding and tests."""

    def __init__(self, session: Session):
        self.session = session

    def add(
        self,
        title: str,
        due_date: Optional[datetime] = None,
        user_id: Optional[int] = None,
        status: TaskStatus = TaskStatus.PENDING,
        is_archived: bool = False,
        description: Optional[str] = None,
    ) -> Task:
        now = format_timestamp(utc_now(), include_microseconds=True)
        row = TaskModel(
            title=title,
            description=description,
            status=TaskStatus(status).value,
            due_date=format_timestamp(due_date, include_microseconds=True) if due_date else None,
            user_id=user_id,
            is_archived=is_archived,
            created_at=now,
            updated_at=now,
        )
        try:
            self.session.add(row)
            self.session.flush()
        except IntegrityError as e:
            raise DataIntegrityError(f"Failed to insert task: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error inserting task: {e}", exc_info=True)
            raise PersistenceError(f"Failed to insert task: {e}") from e
        return row.to_domain()

    def get_by_id(self, task_id: int) -> Optional[Task]:
        try:
            row = self.session.get(TaskModel, task_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to retrieve task {task_id}: {e}") from e
        return row.to_domain() if row else None

    def get_overdue_tasks(self, now: Optional[datetime] = None) -> List[Task]:
        """Open, unarchived tasks whose due date is before ``now``."""
        cutoff = format_timestamp(now or utc_now(), include_microseconds=True)
        stmt = (
            select(TaskModel)
            .where(
                TaskModel.due_date.is_not(None),
                TaskModel.due_date < cutoff,
                TaskModel.status != TaskStatus.COMPLETED.value,
                TaskModel.is_archived.is_(False),
            )
            .order_by(TaskModel.due_date)
        )
        try:
            return [row.to_domain() for row in self.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            logger.error(f"Error querying overdue tasks: {e}", exc_info=True)
            raise PersistenceError(f"Failed to query overdue tasks: {e}") from e

    def get_all_tasks(self) -> List[Task]:
        """Every unarchived task."""
        stmt = select(TaskModel).where(TaskModel.is_archived.is_(False)).order_by(TaskModel.id)
        try:
            return [row.to_domain() for row in self.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            logger.error(f"Error querying tasks: {e}", exc_info=True)
            raise PersistenceError(f"Failed to query tasks: {e}") from e

    def set_status(self, task_id: int, status: TaskStatus) -> Task:
        """Raises RecordNotFoundError for an unknown task."""
        row = self.session.get(TaskModel, task_id)
        if row is None:
            raise RecordNotFoundError(f"Task {task_id} not found")
        row.status = TaskStatus(status).value
        row.updated_at = format_timestamp(utc_now(), include_microseconds=True)
        self.session.flush()
        return row.to_domain()


class NotificationRepository:
    """Storage for terminal notifications."""

    def __init__(self, session: Session):
        self.session = session

    def save(self, notification: Notification) -> None:
        """Insert or update by notification id."""
        try:
            existing = self.session.get(NotificationModel, notification.id)
            if existing is None:
                self.session.add(NotificationModel.from_domain(notification))
            else:
                existing.apply(notification)
            self.session.flush()
        except IntegrityError as e:
            raise DataIntegrityError(f"Failed to save notification {notification.id}: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error saving notification {notification.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save notification: {e}") from e

    def get_by_id(self, notification_id: str) -> Optional[Notification]:
        try:
            row = self.session.get(NotificationModel, notification_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to retrieve notification: {e}") from e
        return row.to_domain() if row else None

    def list_for_user(self, user_id: int, limit: int = 50, offset: int = 0) -> List[Notification]:
        """Newest first."""
        stmt = (
            select(NotificationModel)
            .where(NotificationModel.user_id == user_id)
            .order_by(NotificationModel.created_at.desc(), NotificationModel.id)
            .limit(limit)
            .offset(offset)
        )
        try:
            return [row.to_domain() for row in self.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to list notifications for user {user_id}: {e}") from e

    def count_by_status(self) -> Dict[str, int]:
        stmt = select(NotificationModel.status, func.count()).group_by(NotificationModel.status)
        try:
            return {status: count for status, count in self.session.execute(stmt)}
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to count notifications: {e}") from e
