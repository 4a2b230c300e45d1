"""Title and message text for task notifications.

Shared by the service builders and the periodic sweep so both produce the
same wording.
"""

from typing import Tuple


def task_reminder(task_title: str, minutes_until_due: int) -> Tuple[str, str]:
    return (
        f"Task Reminder: {task_title}",
        f"Your task '{task_title}' is due in {minutes_until_due} minutes.",
    )


def recurring_reminder(task_title: str, index: int, total: int, minutes_until_due: int) -> Tuple[str, str]:
    return (
        f"Task Reminder {index}/{total}: {task_title}",
        f"Your task '{task_title}' is due in {minutes_until_due} minutes.",
    )


def overdue_reminder(task_title: str, overdue_hours: int) -> Tuple[str, str]:
    return (
        f"Overdue Task: {task_title}",
        f"Your task '{task_title}' is {overdue_hours} hours overdue.",
    )


def status_change(task_title: str, old_status: str, new_status: str) -> Tuple[str, str]:
    return (
        "Task Status Updated",
        f"Task '{task_title}' status changed from {old_status} to {new_status}",
    )


def task_created(task_title: str) -> Tuple[str, str]:
    return "New Task Created", f"Task '{task_title}' has been created"


def task_updated(task_title: str) -> Tuple[str, str]:
    return "Task Updated", f"Task '{task_title}' has been updated"


def task_deleted(task_title: str) -> Tuple[str, str]:
    return "Task Deleted", f"Task '{task_title}' has been deleted"
