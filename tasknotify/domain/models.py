"""Task view consumed by the notification engine.

Tasks are owned by the task manager; the engine only reads the fields it
needs to build due-date and overdue reminders.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Protocol

from pydantic import BaseModel, Field, field_validator


class TaskStatus(str, Enum):
    """Task workflow status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Task(BaseModel):
    """A task as seen by the sweep scheduler."""

    id: int = Field(..., description="Task identifier")
    title: str = Field(..., description="Task title")
    due_date: Optional[datetime] = Field(None, description="Due date (UTC)")
    user_id: Optional[int] = Field(None, description="Owning user, if any")
    status: TaskStatus = Field(TaskStatus.PENDING)
    is_archived: bool = False

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Task title cannot be empty")
        return stripped

    @field_validator("due_date")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is None:
            return None
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def is_overdue(self, now: datetime) -> bool:
        """True if the task has a due date before ``now`` and is still open."""
        return (
            self.due_date is not None
            and self.due_date < now
            and not self.is_completed
            and not self.is_archived
        )


class TaskRepository(Protocol):
    """Read access to tasks, as needed by the periodic sweep."""

    def get_overdue_tasks(self) -> List[Task]:
        ...

    def get_all_tasks(self) -> List[Task]:
        ...
