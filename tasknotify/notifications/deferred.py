"""Deferred delivery: one time-ordered heap drained by one timer thread.

Explicitly scheduled notifications and retry re-submissions both wait
here. The dispatcher is owned by the NotificationService and stopped with
it, so nothing deferred can fire after ``stop()``.
"""

import heapq
import itertools
import threading
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from tasknotify.logging import get_logger
from tasknotify.logging.context import log_context
from tasknotify.utils.timestamps import ensure_utc

from .clock import Clock, SystemClock
from .models import Notification, QueueFullError, ServiceStoppedError

logger = get_logger(__name__, component="deferred")

# Upper bound on a single wait so wall-clock jumps are noticed.
MAX_WAIT_SECONDS = 30.0

_HeapEntry = Tuple[datetime, int, Notification]


class DeferredDispatcher:
    """Holds notifications until their due time, then submits them.

    Args:
        submit: Non-blocking enqueue; raises QueueFullError or ServiceStoppedError
        clock: Time source
        requeue_delay_seconds: Wait before another attempt when the queue is full
    """

    def __init__(
        self,
        submit: Callable[[Notification], None],
        clock: Optional[Clock] = None,
        requeue_delay_seconds: float = 1.0,
    ):
        self._submit = submit
        self._clock = clock or SystemClock()
        self._requeue_delay = timedelta(seconds=requeue_delay_seconds)

        self._heap: List[_HeapEntry] = []
        self._sequence = itertools.count()
        self._condition = threading.Condition()
        self._stopped = False
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        with self._condition:
            if self._thread is not None or self._stopped:
                return
            self._thread = threading.Thread(
                target=self._run, name="notification-deferred", daemon=True
            )
            self._thread.start()

    def defer(self, notification: Notification, due_at: datetime) -> None:
        """Hold ``notification`` until ``due_at``.

        Raises:
            ServiceStoppedError: If the dispatcher has been stopped
        """
        due_at = ensure_utc(due_at)
        with self._condition:
            if self._stopped:
                raise ServiceStoppedError("notification service is stopped")
            heapq.heappush(self._heap, (due_at, next(self._sequence), notification))
            # Wake the timer thread in case this item is now the earliest
            self._condition.notify()

        logger.debug(
            "Notification deferred",
            extra={
                "event": "deferred.added",
                "notification_id": notification.id,
                "due_at": due_at.isoformat(),
            },
        )

    def cancel(self, notification_id: str) -> Optional[Notification]:
        """Remove a waiting notification. Returns it, or None if not held here."""
        with self._condition:
            for index, (_, _, notification) in enumerate(self._heap):
                if notification.id == notification_id:
                    self._heap[index] = self._heap[-1]
                    self._heap.pop()
                    heapq.heapify(self._heap)
                    self._condition.notify()
                    return notification
        return None

    def pending_count(self) -> int:
        with self._condition:
            return len(self._heap)

    def next_due_at(self) -> Optional[datetime]:
        with self._condition:
            return self._heap[0][0] if self._heap else None

    def stop(self, timeout: Optional[float] = None) -> int:
        """Cancel every waiting item and join the timer thread.

        Returns:
            Number of notifications dropped
        """
        with self._condition:
            self._stopped = True
            dropped = len(self._heap)
            self._heap.clear()
            self._condition.notify_all()
            thread = self._thread

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

        if dropped:
            logger.info(
                f"Dropped {dropped} deferred notification(s) on shutdown",
                extra={"event": "deferred.dropped", "dropped": dropped},
            )
        return dropped

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stopped

    def _run(self) -> None:
        logger.debug("Deferred dispatcher started", extra={"event": "deferred.started"})
        while True:
            notification = self._next_due()
            if notification is None:
                break
            self._fire(notification)
        logger.debug("Deferred dispatcher stopped", extra={"event": "deferred.stopped"})

    def _next_due(self) -> Optional[Notification]:
        """Block until an item is due; None once stopped."""
        with self._condition:
            while not self._stopped:
                if not self._heap:
                    self._condition.wait()
                    continue

                due_at = self._heap[0][0]
                delay = (due_at - self._clock.now()).total_seconds()
                if delay > 0:
                    self._clock.wait(self._condition, min(delay, MAX_WAIT_SECONDS))
                    continue

                _, _, notification = heapq.heappop(self._heap)
                return notification
        return None

    def _fire(self, notification: Notification) -> None:
        with log_context(notification_id=notification.id):
            try:
                self._submit(notification)
                logger.debug(
                    "Deferred notification submitted",
                    extra={"event": "deferred.fired", "retry_count": notification.retry_count},
                )
            except QueueFullError:
                retry_at = self._clock.now() + self._requeue_delay
                logger.warning(
                    "Queue full when deferred notification came due; re-arming",
                    extra={"event": "deferred.requeued", "due_at": retry_at.isoformat()},
                )
                try:
                    self.defer(notification, retry_at)
                except ServiceStoppedError:
                    self._log_dropped()
            except ServiceStoppedError:
                self._log_dropped()
            except Exception as e:
                logger.error(
                    f"Unexpected error submitting deferred notification: {e}",
                    exc_info=True,
                    extra={"event": "deferred.error", "error_type": type(e).__name__},
                )

    def _log_dropped(self) -> None:
        logger.info(
            "Service stopped; deferred notification dropped",
            extra={"event": "deferred.dropped", "dropped": 1},
        )
