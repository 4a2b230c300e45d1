"""Domain models shared with the task manager."""

from .models import Task, TaskRepository, TaskStatus

__all__ = ["Task", "TaskRepository", "TaskStatus"]
