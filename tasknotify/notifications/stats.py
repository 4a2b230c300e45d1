"""Thread-safe delivery counters behind NotificationService.get_stats()."""

import threading
from collections import Counter

from .models import Notification, NotificationStats, enum_value


class StatsCollector:
    def __init__(self):
        self._lock = threading.Lock()
        self._totals = Counter()
        self._by_type = Counter()
        self._by_priority = Counter()
        self._by_trigger = Counter()

    def record_sent(self, notification: Notification) -> None:
        with self._lock:
            self._totals["sent"] += 1
            self._by_type[enum_value(notification.type)] += 1
            self._by_priority[enum_value(notification.priority)] += 1
            self._by_trigger[enum_value(notification.trigger)] += 1

    def record_delivered(self, notification: Notification) -> None:
        with self._lock:
            self._totals["delivered"] += 1

    def record_failed(self, notification: Notification, rejected: bool = False) -> None:
        with self._lock:
            self._totals["failed"] += 1
            if rejected:
                self._totals["rejected"] += 1

    def record_retry(self, notification: Notification) -> None:
        with self._lock:
            self._totals["retried"] += 1

    def record_cancelled(self, notification: Notification) -> None:
        with self._lock:
            self._totals["cancelled"] += 1

    def snapshot(self) -> NotificationStats:
        with self._lock:
            return NotificationStats(
                total_sent=self._totals["sent"],
                total_delivered=self._totals["delivered"],
                total_failed=self._totals["failed"],
                total_cancelled=self._totals["cancelled"],
                total_retried=self._totals["retried"],
                total_rejected=self._totals["rejected"],
                by_type=dict(self._by_type),
                by_priority=dict(self._by_priority),
                by_trigger=dict(self._by_trigger),
            )
