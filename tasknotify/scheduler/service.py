"""Periodic sweep that turns overdue and due-soon tasks into notifications."""

import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from tasknotify.domain.models import Task, TaskRepository
from tasknotify.logging import get_logger
from tasknotify.logging.context import log_context
from tasknotify.notifications import messages
from tasknotify.notifications.clock import Clock, SystemClock
from tasknotify.notifications.models import (
    Notification,
    NotificationError,
    NotificationPriority,
    NotificationTrigger,
    NotificationType,
)
from tasknotify.notifications.service import NotificationService
from tasknotify.utils.timestamps import ensure_utc

logger = get_logger(__name__, component="scheduler")

SWEEP_JOB_ID = "task-sweep"


@dataclass
class SweepResult:
    """Counters for one sweep run."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    overdue_sent: int = 0
    due_soon_sent: int = 0
    suppressed: int = 0
    submit_errors: int = 0
    repository_errors: List[str] = field(default_factory=list)

    @property
    def total_sent(self) -> int:
        return self.overdue_sent + self.due_soon_sent

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        data["total_sent"] = self.total_sent
        return data


class SweepScheduler:
    """
    Wraps APScheduler to scan the task repository at a fixed interval.

    Each run synthesizes a high-priority ``overdue`` notification for every
    overdue task and a ``due_date`` reminder for every open task due inside
    the lookahead window, and submits them through the notification
    service. Without ``renotify_interval_seconds`` every run re-notifies.

    The scheduler registers its own shutdown with the service, so
    ``service.stop()`` stops the sweep too.
    """

    def __init__(
        self,
        service: NotificationService,
        repository: TaskRepository,
        interval_seconds: int = 900,
        due_soon_window_seconds: int = 3600,
        renotify_interval_seconds: Optional[int] = None,
        notification_type=NotificationType.IN_APP,
        recipient_resolver: Optional[Callable[[Task], str]] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            service: Notification service receiving synthesized notifications
            repository: Task source
            interval_seconds: Interval between sweeps
            due_soon_window_seconds: Lookahead window for due-date reminders
            renotify_interval_seconds: If set, suppress repeat notifications for
                the same (task, trigger) within this many seconds
            notification_type: Channel for synthesized notifications
            recipient_resolver: Maps a task to a recipient address, for channels that need one
            clock: Time source
        """
        self.service = service
        self.repository = repository
        self.interval_seconds = interval_seconds
        self.due_soon_window = timedelta(seconds=due_soon_window_seconds)
        self.renotify_interval = (
            timedelta(seconds=renotify_interval_seconds) if renotify_interval_seconds else None
        )
        self.notification_type = notification_type
        self.recipient_resolver = recipient_resolver
        self.clock = clock or SystemClock()

        self._last_notified: Dict[Tuple[int, str], datetime] = {}
        self._lock = threading.Lock()

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": interval_seconds,
            },
            timezone=timezone.utc,
        )

        service.register_on_stop(self.shutdown)

    def start(self, run_immediately: bool = True) -> None:
        """Register the sweep job and start the background scheduler."""
        job_kwargs = {}
        if run_immediately:
            job_kwargs["next_run_time"] = datetime.now(timezone.utc)

        self.scheduler.add_job(
            func=self.run_sweep,
            trigger=IntervalTrigger(seconds=self.interval_seconds, timezone=timezone.utc),
            id=SWEEP_JOB_ID,
            name="Task due-date sweep",
            replace_existing=True,
            **job_kwargs,
        )
        self.scheduler.start()

        logger.info(
            f"Sweep scheduler started with interval: {self.interval_seconds} seconds",
            extra={
                "event": "scheduler.started",
                "interval_seconds": self.interval_seconds,
                "due_soon_window_seconds": int(self.due_soon_window.total_seconds()),
                "renotify_enabled": self.renotify_interval is not None,
            },
        )

    def shutdown(self, wait: bool = False) -> None:
        """Stop the background scheduler. Safe to call more than once."""
        if not self.scheduler.running:
            return

        logger.info(
            "Shutting down sweep scheduler",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )
        self.scheduler.shutdown(wait=wait)
        logger.info("Sweep scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self) -> Optional[datetime]:
        job = self.scheduler.get_job(SWEEP_JOB_ID)
        return job.next_run_time if job else None

    def trigger_now(self) -> SweepResult:
        """Run one sweep synchronously in the calling thread."""
        logger.info("Triggering immediate sweep", extra={"event": "scheduler.trigger_now"})
        return self.run_sweep()

    def run_sweep(self) -> SweepResult:
        now = self.clock.now()
        result = SweepResult(started_at=now)

        with log_context(sweep_started_at=now.isoformat()):
            self._sweep_overdue(now, result)
            self._sweep_due_soon(now, result)

            result.finished_at = self.clock.now()
            logger.info(
                f"Sweep completed: {result.overdue_sent} overdue, "
                f"{result.due_soon_sent} due soon, {result.submit_errors} errors",
                extra={"event": "sweep.completed", **result.to_dict()},
            )
        return result

    def schedule_task_reminder(
        self,
        user_id: int,
        task_id: int,
        task_title: str,
        due_date: datetime,
        reminder_minutes: int,
        **overrides,
    ) -> Notification:
        """Schedule one reminder ``reminder_minutes`` before ``due_date``.

        Raises:
            ValueError: If the reminder time has already passed
        """
        reminder_time = ensure_utc(due_date) - timedelta(minutes=reminder_minutes)
        if reminder_time < self.clock.now():
            raise ValueError("reminder time is in the past")

        overrides.setdefault("notification_type", self.notification_type)
        return self.service.create_task_reminder(
            user_id, task_id, task_title, due_date, reminder_minutes, **overrides
        )

    def schedule_recurring_reminder(
        self,
        user_id: int,
        task_id: int,
        task_title: str,
        due_date: datetime,
        interval_minutes: int,
        max_reminders: int,
        recipient: str = "",
        channel: str = "",
    ) -> List[Notification]:
        """Schedule reminders at 1x, 2x, ... ``max_reminders`` x ``interval_minutes`` before due.

        Reminder times already in the past are skipped, as are reminders the
        service refuses. Returns the notifications actually scheduled.
        """
        if interval_minutes <= 0 or max_reminders <= 0:
            raise ValueError("interval_minutes and max_reminders must be positive")

        due_date = ensure_utc(due_date)
        now = self.clock.now()
        scheduled = []

        for i in range(1, max_reminders + 1):
            minutes_before = i * interval_minutes
            reminder_time = due_date - timedelta(minutes=minutes_before)
            if reminder_time <= now:
                continue

            notification = self.service.build_notification(
                user_id,
                task_id,
                self.notification_type,
                NotificationPriority.NORMAL,
                NotificationTrigger.DUE_DATE,
                *messages.recurring_reminder(task_title, i, max_reminders, minutes_before),
                recipient=recipient,
                channel=channel,
            )
            try:
                self.service.schedule_notification(notification, reminder_time)
            except NotificationError as e:
                logger.warning(
                    f"Could not schedule reminder {i}/{max_reminders} for task {task_id}: {e}",
                    extra={"event": "scheduler.reminder.error", "task_id": task_id},
                )
                continue
            scheduled.append(notification)

        return scheduled

    def _sweep_overdue(self, now: datetime, result: SweepResult) -> None:
        try:
            tasks = self.repository.get_overdue_tasks()
        except Exception as e:
            result.repository_errors.append(f"get_overdue_tasks: {e}")
            logger.error(
                f"Error getting overdue tasks: {e}",
                exc_info=True,
                extra={"event": "sweep.repository.error", "query": "overdue"},
            )
            return

        for task in tasks:
            if task.user_id is None or task.due_date is None:
                continue

            overdue_hours = int((now - task.due_date).total_seconds() // 3600)
            notification = self.service.build_notification(
                task.user_id,
                task.id,
                self.notification_type,
                NotificationPriority.HIGH,
                NotificationTrigger.OVERDUE,
                *messages.overdue_reminder(task.title, overdue_hours),
                recipient=self._recipient_for(task),
            )
            if self._submit(task, notification, now, result):
                result.overdue_sent += 1

    def _sweep_due_soon(self, now: datetime, result: SweepResult) -> None:
        try:
            tasks = self.repository.get_all_tasks()
        except Exception as e:
            result.repository_errors.append(f"get_all_tasks: {e}")
            logger.error(
                f"Error getting tasks: {e}",
                exc_info=True,
                extra={"event": "sweep.repository.error", "query": "all"},
            )
            return

        horizon = now + self.due_soon_window
        for task in tasks:
            if task.user_id is None or task.due_date is None:
                continue
            if task.is_completed or task.is_archived:
                continue
            if not (now < task.due_date < horizon):
                continue

            minutes_until_due = int((task.due_date - now).total_seconds() // 60)
            notification = self.service.build_notification(
                task.user_id,
                task.id,
                self.notification_type,
                NotificationPriority.NORMAL,
                NotificationTrigger.DUE_DATE,
                *messages.task_reminder(task.title, minutes_until_due),
                recipient=self._recipient_for(task),
            )
            if self._submit(task, notification, now, result):
                result.due_soon_sent += 1

    def _submit(
        self, task: Task, notification: Notification, now: datetime, result: SweepResult
    ) -> bool:
        key = (task.id, notification.trigger)
        if not self._should_notify(key, now):
            result.suppressed += 1
            return False

        try:
            self.service.send_notification(notification)
        except NotificationError as e:
            result.submit_errors += 1
            logger.warning(
                f"Error sending {notification.trigger} reminder for task {task.id}: {e}",
                extra={
                    "event": "sweep.submit.error",
                    "task_id": task.id,
                    "error_type": type(e).__name__,
                },
            )
            return False

        if self.renotify_interval is not None:
            with self._lock:
                self._last_notified[key] = now
        return True

    def _should_notify(self, key: Tuple[int, str], now: datetime) -> bool:
        if self.renotify_interval is None:
            return True
        with self._lock:
            last = self._last_notified.get(key)
        return last is None or now - last >= self.renotify_interval

    def _recipient_for(self, task: Task) -> str:
        if self.recipient_resolver is None:
            return ""
        return self.recipient_resolver(task) or ""
