"""SQLAlchemy persistence for tasks and delivered notifications.

Public API:
    - init_database(database_url) / get_session() / close_database() / get_engine()
    - TaskRepository, NotificationRepository: session-scoped repositories
    - DatabaseTaskSource, DatabaseNotificationStore: engine collaborators
    - PersistenceError and subclasses

Example:
    >>> from tasknotify.persistence import init_database, get_session, TaskRepository
    >>> init_database("sqlite:///./data/tasknotify.db")
    >>> with get_session() as session:
    ...     overdue = TaskRepository(session).get_overdue_tasks()
"""

from .adapters import DatabaseNotificationStore, DatabaseTaskSource
from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import NotificationRepository, TaskRepository

__all__ = [
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    "TaskRepository",
    "NotificationRepository",
    "DatabaseTaskSource",
    "DatabaseNotificationStore",
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
