"""Delivery workers draining the shared notification queue."""

import queue
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from tasknotify.logging import get_logger
from tasknotify.logging.context import log_context

from .clock import Clock
from .models import NonRetryableError, Notification, NotificationError
from .retry import RetryPolicy, check_deliverable
from .senders import SenderRegistry
from .state import mark_delivered, mark_failed, mark_retry, mark_sent
from .stats import StatsCollector

logger = get_logger(__name__, component="worker")

# How often an idle worker re-checks the shutdown signal.
POLL_INTERVAL_SECONDS = 0.1


class NotificationWorker:
    """One delivery thread.

    Loops on the shared queue until the stop event is set. Each dequeued
    notification is owned exclusively by this worker until it is either
    finished (terminal status) or handed back for a retry.

    Args:
        worker_id: Index used in thread names and logs
        work_queue: Shared bounded queue
        stop_event: Shutdown signal set by the service
        registry: Type -> sender lookup
        policy: Retry policy
        clock: Time source
        on_retry: Called with (notification, retry_at) to re-submit later
        on_terminal: Called after every terminal transition (sent/delivered/failed)
        stats: Delivery counters
    """

    def __init__(
        self,
        worker_id: int,
        work_queue: "queue.Queue[Notification]",
        stop_event: threading.Event,
        registry: SenderRegistry,
        policy: RetryPolicy,
        clock: Clock,
        on_retry: Callable[[Notification, datetime], None],
        on_terminal: Callable[[Notification], None],
        stats: StatsCollector,
    ):
        self.worker_id = worker_id
        self.queue = work_queue
        self.stop_event = stop_event
        self.registry = registry
        self.policy = policy
        self.clock = clock
        self.on_retry = on_retry
        self.on_terminal = on_terminal
        self.stats = stats

        self.processed = 0
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self.run, name=f"notification-worker-{self.worker_id}", daemon=True
        )
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run(self) -> None:
        logger.info(
            f"Notification worker {self.worker_id} started",
            extra={"event": "worker.started", "worker_id": self.worker_id},
        )

        while not self.stop_event.is_set():
            try:
                notification = self.queue.get(timeout=POLL_INTERVAL_SECONDS)
            except queue.Empty:
                continue

            try:
                if self.stop_event.is_set():
                    # Picked up after shutdown was signalled: dropped like the rest of the queue
                    logger.info(
                        "Dropping notification dequeued after shutdown",
                        extra={"event": "worker.dropped", "notification_id": notification.id},
                    )
                    continue
                self.process(notification)
            except Exception as e:
                # One bad item must not take the worker down with it
                logger.error(
                    f"Worker {self.worker_id} failed on notification {notification.id}: {e}",
                    exc_info=True,
                    extra={
                        "event": "worker.error",
                        "worker_id": self.worker_id,
                        "notification_id": notification.id,
                        "error_type": type(e).__name__,
                    },
                )
            finally:
                self.queue.task_done()

        logger.info(
            f"Notification worker {self.worker_id} stopped",
            extra={
                "event": "worker.stopped",
                "worker_id": self.worker_id,
                "processed": self.processed,
            },
        )

    def process(self, notification: Notification) -> None:
        """Deliver one notification and apply the retry policy on failure."""
        with log_context(worker_id=self.worker_id, **notification.log_fields()):
            notification.updated_at = self.clock.now()
            sender = self.registry.get(notification.type)

            try:
                check_deliverable(notification, sender)
                sender.send(notification)
            except Exception as e:
                self._handle_failure(notification, e)
                return
            finally:
                self.processed += 1

            now = self.clock.now()
            mark_sent(notification, now)
            self.stats.record_sent(notification)
            logger.info(
                f"Notification {notification.id} sent via {notification.type} "
                f"(attempt {notification.retry_count + 1})",
                extra={"event": "notification.send.success", "retry_count": notification.retry_count},
            )
            self.on_terminal(notification)

            if sender.auto_confirm:
                mark_delivered(notification, now)
                self.stats.record_delivered(notification)
                self.on_terminal(notification)

    def _handle_failure(self, notification: Notification, error: Exception) -> None:
        if isinstance(error, NotificationError):
            message = str(error)
        else:
            # Sender bug or library exception: treated as a retryable send failure
            message = f"{type(error).__name__}: {error}"

        decision = self.policy.decide(notification, error)
        now = self.clock.now()

        if decision.retry:
            retry_at = now + timedelta(seconds=decision.delay_seconds)
            mark_retry(notification, message, retry_at, now)
            self.stats.record_retry(notification)
            logger.warning(
                f"Delivery failed, retry {notification.retry_count}/"
                f"{self.policy.max_retries_for(notification)} at {retry_at.isoformat()}: {message}",
                extra={
                    "event": "notification.retry.scheduled",
                    "retry_count": notification.retry_count,
                    "error_type": type(error).__name__,
                },
            )
            self.on_retry(notification, retry_at)
            return

        rejected = isinstance(error, NonRetryableError)
        mark_failed(notification, message, now)
        self.stats.record_failed(notification, rejected=rejected)
        logger.error(
            f"Notification {notification.id} failed permanently: {message}",
            extra={
                "event": "notification.failed",
                "reason": decision.reason,
                "retry_count": notification.retry_count,
                "error_type": type(error).__name__,
            },
        )
        self.on_terminal(notification)
