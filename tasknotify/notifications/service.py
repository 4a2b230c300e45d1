"""Notification service facade.

This module provides the NotificationService class that owns the delivery
pipeline: the bounded queue, the worker threads, the deferred dispatcher,
the retry policy and the optional store hand-off. Callers only ever submit
notifications and read status; everything else happens on background
threads.
"""

import queue
import threading
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Protocol

from tasknotify.config.models import NotificationConfig
from tasknotify.logging import get_logger
from tasknotify.logging.context import log_context
from tasknotify.utils.timestamps import ensure_utc

from .clock import Clock, SystemClock
from . import messages
from .deferred import DeferredDispatcher
from .models import (
    InvalidTransitionError,
    Notification,
    NotificationPriority,
    NotificationStats,
    NotificationStatus,
    NotificationTrigger,
    NotificationType,
    NotificationValidationError,
    QueueFullError,
    QueueStatus,
    ServiceStoppedError,
    enum_value,
)
from .retry import RetryPolicy
from .senders import SenderRegistry
from .state import mark_cancelled, mark_delivered
from .stats import StatsCollector
from .worker import NotificationWorker

logger = get_logger(__name__, component="notification")


class NotificationStore(Protocol):
    """Receives notifications after every terminal transition."""

    def save(self, notification: Notification) -> None:
        ...


class NotificationService:
    """Asynchronous notification delivery engine.

    Lifecycle:
    1. Construction starts ``worker_count`` worker threads and the deferred
       dispatcher (unless ``start=False``)
    2. ``send_notification`` enqueues without blocking; ``schedule_notification``
       parks the item in the dispatcher until its time comes
    3. Workers deliver through the sender registry and apply the retry policy
    4. ``stop()`` shuts everything down; items not yet picked up are dropped

    Args:
        config: Engine settings (defaults 5 workers / 100 queue / 3 retries / 300s)
        registry: Sender registry; an empty one is created if None
        store: Optional collaborator receiving terminal notifications
        clock: Time source (SystemClock if None)
        start: Start threads immediately
    """

    def __init__(
        self,
        config: Optional[NotificationConfig] = None,
        registry: Optional[SenderRegistry] = None,
        store: Optional[NotificationStore] = None,
        clock: Optional[Clock] = None,
        start: bool = True,
    ):
        self.config = config or NotificationConfig()
        self.registry = registry if registry is not None else SenderRegistry()
        self.store = store
        self.clock = clock or SystemClock()
        self.policy = RetryPolicy(
            default_max_retries=self.config.max_retries,
            retry_delay_seconds=self.config.retry_delay_seconds,
        )

        self._queue: "queue.Queue[Notification]" = queue.Queue(maxsize=self.config.batch_size)
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._running = False
        self._stopped = False
        self._stop_callbacks: List[Callable[[], None]] = []
        self._stats = StatsCollector()

        self._dispatcher = DeferredDispatcher(
            submit=self._enqueue,
            clock=self.clock,
            requeue_delay_seconds=self.config.requeue_delay_seconds,
        )
        self._workers = [
            NotificationWorker(
                worker_id=i,
                work_queue=self._queue,
                stop_event=self._stop_event,
                registry=self.registry,
                policy=self.policy,
                clock=self.clock,
                on_retry=self._defer_retry,
                on_terminal=self._on_terminal,
                stats=self._stats,
            )
            for i in range(self.config.worker_count)
        ]

        if start:
            self.start()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start workers and the deferred dispatcher. No-op if already running."""
        with self._lock:
            if self._stopped:
                raise ServiceStoppedError("notification service cannot be restarted after stop")
            if self._running:
                return
            self._running = True

        self._dispatcher.start()
        for worker in self._workers:
            worker.start()

        logger.info(
            f"Notification service started with {len(self._workers)} workers "
            f"(queue capacity {self.config.batch_size})",
            extra={
                "event": "service.started",
                "worker_count": len(self._workers),
                "batch_size": self.config.batch_size,
                "max_retries": self.config.max_retries,
                "retry_delay_seconds": self.config.retry_delay_seconds,
                "supported_types": self.registry.supported_types(),
            },
        )

    def stop(self, timeout: Optional[float] = None) -> None:
        """Shut the engine down. Safe to call more than once.

        Order matters: the running flag flips first so no submit can
        succeed afterwards, then deferred items and sweeps are cancelled,
        then workers finish their current item and exit. Whatever is still
        in the queue is dropped.
        """
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            self._running = False
            callbacks = list(self._stop_callbacks)

        logger.info("Stopping notification service", extra={"event": "service.stopping"})

        self._dispatcher.stop(timeout)

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(
                    f"Stop callback failed: {e}",
                    exc_info=True,
                    extra={"event": "service.stop_callback.error"},
                )

        self._stop_event.set()
        for worker in self._workers:
            worker.join(timeout)

        dropped = self._drain_queue()

        logger.info(
            "Notification service stopped",
            extra={
                "event": "service.stopped",
                "dropped": dropped,
                **self._stats.snapshot().to_dict(),
            },
        )

    def register_on_stop(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` during ``stop()``; used by sweep schedulers.

        If the service is already stopped the callback runs immediately.
        """
        with self._lock:
            if not self._stopped:
                self._stop_callbacks.append(callback)
                return
        callback()

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def send_notification(self, notification: Notification) -> None:
        """Queue ``notification`` for immediate delivery.

        Raises:
            QueueFullError: The queue already holds ``batch_size`` items
            ServiceStoppedError: The service has been stopped
            InvalidTransitionError: The notification is no longer pending
            NotificationValidationError: retry_count exceeds the retry budget
        """
        self._check_pending(notification)
        self._apply_defaults(notification)
        self._enqueue(notification)

        logger.debug(
            "Notification queued",
            extra={"event": "notification.queued", **notification.log_fields()},
        )

    def schedule_notification(self, notification: Notification, at: datetime) -> None:
        """Deliver ``notification`` at ``at``; immediately if that is not in the future.

        Raises:
            ServiceStoppedError: The service has been stopped
            QueueFullError: Only when ``at`` has passed and the queue is full
            InvalidTransitionError: The notification is no longer pending
        """
        self._check_pending(notification)
        at = ensure_utc(at)
        if at <= self.clock.now():
            self.send_notification(notification)
            return

        with self._lock:
            if not self._running:
                raise ServiceStoppedError("notification service is stopped")

        self._apply_defaults(notification)
        notification.scheduled_at = at
        self._dispatcher.defer(notification, at)

        logger.info(
            f"Notification scheduled for {at.isoformat()}",
            extra={
                "event": "notification.scheduled",
                "scheduled_at": at.isoformat(),
                **notification.log_fields(),
            },
        )

    def cancel_notification(self, notification_id: str) -> bool:
        """Cancel a notification still waiting for its scheduled or retry time.

        Returns:
            True if it was found and cancelled, False otherwise
        """
        notification = self._dispatcher.cancel(notification_id)
        if notification is None:
            return False

        mark_cancelled(notification, self.clock.now())
        self._stats.record_cancelled(notification)
        logger.info(
            "Notification cancelled",
            extra={"event": "notification.cancelled", **notification.log_fields()},
        )
        self._on_terminal(notification)
        return True

    def confirm_delivery(self, notification: Notification) -> None:
        """Record a provider's delivery confirmation (``sent -> delivered``).

        Raises:
            InvalidTransitionError: If the notification is not ``sent``
        """
        mark_delivered(notification, self.clock.now())
        self._stats.record_delivered(notification)
        logger.info(
            "Notification delivery confirmed",
            extra={"event": "notification.delivered", **notification.log_fields()},
        )
        self._on_terminal(notification)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_queue_status(self) -> QueueStatus:
        queue_length = self._queue.qsize()
        # Read after the length: an item stays unfinished from get() until task_done()
        unfinished = self._queue.unfinished_tasks
        return QueueStatus(
            queue_length=queue_length,
            worker_count=self.config.worker_count,
            is_running=self._running,
            scheduled_count=self._dispatcher.pending_count(),
            in_flight=max(unfinished - queue_length, 0),
        )

    def get_stats(self) -> NotificationStats:
        return self._stats.snapshot()

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def create_task_reminder(
        self,
        user_id: int,
        task_id: int,
        task_title: str,
        due_date: datetime,
        reminder_minutes: int,
        notification_type=NotificationType.EMAIL,
        recipient: str = "",
        channel: str = "",
        priority=NotificationPriority.NORMAL,
    ) -> Notification:
        """Schedule a reminder ``reminder_minutes`` before ``due_date``."""
        notification = self.build_notification(
            user_id,
            task_id,
            notification_type,
            priority,
            NotificationTrigger.DUE_DATE,
            *messages.task_reminder(task_title, reminder_minutes),
            recipient=recipient,
            channel=channel,
        )
        reminder_time = ensure_utc(due_date) - timedelta(minutes=reminder_minutes)
        self.schedule_notification(notification, reminder_time)
        return notification

    def create_overdue_reminder(
        self,
        user_id: int,
        task_id: int,
        task_title: str,
        overdue_hours: int,
        notification_type=NotificationType.EMAIL,
        recipient: str = "",
        channel: str = "",
    ) -> Notification:
        notification = self.build_notification(
            user_id,
            task_id,
            notification_type,
            NotificationPriority.HIGH,
            NotificationTrigger.OVERDUE,
            *messages.overdue_reminder(task_title, overdue_hours),
            recipient=recipient,
            channel=channel,
        )
        self.send_notification(notification)
        return notification

    def create_status_change_notification(
        self,
        user_id: int,
        task_id: int,
        task_title: str,
        old_status: str,
        new_status: str,
        notification_type=NotificationType.IN_APP,
        recipient: str = "",
        channel: str = "",
    ) -> Notification:
        notification = self.build_notification(
            user_id,
            task_id,
            notification_type,
            NotificationPriority.NORMAL,
            NotificationTrigger.STATUS_CHANGE,
            *messages.status_change(task_title, old_status, new_status),
            recipient=recipient,
            channel=channel,
        )
        self.send_notification(notification)
        return notification

    def create_task_created_notification(
        self,
        user_id: int,
        task_id: int,
        task_title: str,
        notification_type=NotificationType.IN_APP,
        recipient: str = "",
        channel: str = "",
    ) -> Notification:
        notification = self.build_notification(
            user_id,
            task_id,
            notification_type,
            NotificationPriority.NORMAL,
            NotificationTrigger.CREATED,
            *messages.task_created(task_title),
            recipient=recipient,
            channel=channel,
        )
        self.send_notification(notification)
        return notification

    def create_task_updated_notification(
        self,
        user_id: int,
        task_id: int,
        task_title: str,
        notification_type=NotificationType.IN_APP,
        recipient: str = "",
        channel: str = "",
    ) -> Notification:
        notification = self.build_notification(
            user_id,
            task_id,
            notification_type,
            NotificationPriority.NORMAL,
            NotificationTrigger.UPDATED,
            *messages.task_updated(task_title),
            recipient=recipient,
            channel=channel,
        )
        self.send_notification(notification)
        return notification

    def create_task_deleted_notification(
        self,
        user_id: int,
        task_id: int,
        task_title: str,
        notification_type=NotificationType.IN_APP,
        recipient: str = "",
        channel: str = "",
    ) -> Notification:
        # No dedicated trigger exists for deletions
        notification = self.build_notification(
            user_id,
            task_id,
            notification_type,
            NotificationPriority.NORMAL,
            NotificationTrigger.CUSTOM,
            *messages.task_deleted(task_title),
            recipient=recipient,
            channel=channel,
        )
        self.send_notification(notification)
        return notification

    def create_custom_notification(
        self,
        user_id: int,
        task_id: int,
        title: str,
        message: str,
        notification_type=NotificationType.IN_APP,
        priority=NotificationPriority.NORMAL,
        recipient: str = "",
        channel: str = "",
    ) -> Notification:
        notification = self.build_notification(
            user_id,
            task_id,
            notification_type,
            priority,
            NotificationTrigger.CUSTOM,
            title,
            message,
            recipient=recipient,
            channel=channel,
        )
        self.send_notification(notification)
        return notification

    def build_notification(
        self,
        user_id: int,
        task_id: int,
        notification_type,
        priority,
        trigger,
        title: str,
        message: str,
        recipient: str = "",
        channel: str = "",
    ) -> Notification:
        """Populate a pending notification without submitting it."""
        return Notification(
            user_id=user_id,
            task_id=task_id,
            type=notification_type,
            priority=priority,
            trigger=trigger,
            title=title,
            message=message,
            recipient=recipient,
            channel=channel,
            max_retries=self.config.max_retries,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_pending(self, notification: Notification) -> None:
        # Delivered, failed and cancelled items must not reach a worker a second time
        status = enum_value(notification.status)
        if status != NotificationStatus.PENDING.value:
            raise InvalidTransitionError(
                f"Notification {notification.id} is {status}; only pending "
                "notifications can be submitted"
            )

    def _apply_defaults(self, notification: Notification) -> None:
        max_retries = notification.max_retries
        if max_retries is None:
            max_retries = self.config.max_retries
        if notification.retry_count > max_retries:
            raise NotificationValidationError(
                f"retry_count ({notification.retry_count}) exceeds max_retries ({max_retries})"
            )

        now = self.clock.now()
        notification.max_retries = max_retries
        if notification.created_at is None:
            notification.created_at = now
        notification.updated_at = now

    def _enqueue(self, notification: Notification) -> None:
        """Non-blocking put guarded by the running flag.

        Shared by direct sends and the deferred dispatcher.
        """
        with self._lock:
            if not self._running:
                raise ServiceStoppedError("notification service is stopped")
            try:
                self._queue.put_nowait(notification)
            except queue.Full:
                raise QueueFullError(
                    f"notification queue is full ({self.config.batch_size} items)"
                ) from None

    def _defer_retry(self, notification: Notification, retry_at: datetime) -> None:
        try:
            self._dispatcher.defer(notification, retry_at)
        except ServiceStoppedError:
            logger.info(
                "Service stopped; retry dropped",
                extra={"event": "notification.retry.dropped", **notification.log_fields()},
            )

    def _on_terminal(self, notification: Notification) -> None:
        if self.store is None:
            return
        with log_context(notification_id=notification.id):
            try:
                self.store.save(notification)
            except Exception as e:
                logger.error(
                    f"Failed to persist notification: {e}",
                    exc_info=True,
                    extra={
                        "event": "notification.store.error",
                        "status": notification.status,
                        "error_type": type(e).__name__,
                    },
                )

    def _drain_queue(self) -> int:
        dropped = 0
        while True:
            try:
                notification = self._queue.get_nowait()
            except queue.Empty:
                break
            self._queue.task_done()
            dropped += 1
            logger.debug(
                "Dropping queued notification on shutdown",
                extra={"event": "notification.dropped", **notification.log_fields()},
            )
        return dropped
