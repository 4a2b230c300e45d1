"""Periodic scanning of tasks for due-date and overdue reminders."""

from .service import SweepResult, SweepScheduler

__all__ = [
    "SweepScheduler",
    "SweepResult",
]
