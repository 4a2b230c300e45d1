"""Tests for the deferred dispatcher (scheduled and retry re-submission)."""

import threading
import time
from datetime import timedelta

import pytest

from tasknotify.notifications.clock import SystemClock
from tasknotify.notifications.deferred import DeferredDispatcher
from tasknotify.notifications.models import Notification, QueueFullError, ServiceStoppedError

from tests.helpers import FakeClock, wait_until


class Collector:
    """Submit target that records what the dispatcher hands over."""

    def __init__(self):
        self.items = []
        self.fail_with = None
        self._lock = threading.Lock()

    def __call__(self, notification):
        if self.fail_with is not None:
            error, self.fail_with = self.fail_with, None
            raise error
        with self._lock:
            self.items.append(notification)

    def ids(self):
        with self._lock:
            return [n.id for n in self.items]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def collector():
    return Collector()


@pytest.fixture
def dispatcher(clock, collector):
    d = DeferredDispatcher(submit=collector, clock=clock, requeue_delay_seconds=1.0)
    d.start()
    yield d
    d.stop(timeout=2)


def test_item_not_submitted_before_due(dispatcher, clock, collector):
    n = Notification(title="later")
    dispatcher.defer(n, clock.now() + timedelta(minutes=5))

    assert not wait_until(lambda: collector.items, timeout=0.2)
    assert dispatcher.pending_count() == 1


def test_item_submitted_once_due(dispatcher, clock, collector):
    n = Notification(title="soon")
    dispatcher.defer(n, clock.now() + timedelta(minutes=5))

    clock.advance(300)

    assert wait_until(lambda: collector.ids() == [n.id])
    assert dispatcher.pending_count() == 0


def test_advancing_clock_wakes_waiting_dispatcher(dispatcher, clock, collector):
    n = Notification(title="in a minute")
    dispatcher.defer(n, clock.now() + timedelta(seconds=60))
    assert wait_until(lambda: clock.waiter_count() == 1)

    clock.advance(61)

    # Well under the fake clock's real-time cap, so only the notify can explain it
    assert wait_until(lambda: collector.ids() == [n.id], timeout=0.3)


def test_system_clock_wait_returns_on_notify():
    clock = SystemClock()
    condition = threading.Condition()
    started = time.monotonic()

    def notify_soon():
        with condition:
            condition.notify_all()

    timer = threading.Timer(0.05, notify_soon)
    with condition:
        timer.start()
        clock.wait(condition, 5)

    assert time.monotonic() - started < 2
    assert clock.now().tzinfo is not None


def test_items_fire_in_due_order(dispatcher, clock, collector):
    first = Notification(title="first")
    second = Notification(title="second")
    third = Notification(title="third")
    now = clock.now()
    dispatcher.defer(third, now + timedelta(seconds=30))
    dispatcher.defer(first, now + timedelta(seconds=10))
    dispatcher.defer(second, now + timedelta(seconds=20))

    assert dispatcher.next_due_at() == now + timedelta(seconds=10)

    clock.advance(60)

    assert wait_until(lambda: len(collector.items) == 3)
    assert collector.ids() == [first.id, second.id, third.id]


def test_past_due_time_fires_immediately(dispatcher, clock, collector):
    n = Notification(title="overdue")
    dispatcher.defer(n, clock.now() - timedelta(seconds=1))
    assert wait_until(lambda: collector.ids() == [n.id])


def test_cancel_removes_waiting_item(dispatcher, clock, collector):
    keep = Notification(title="keep")
    drop = Notification(title="drop")
    dispatcher.defer(keep, clock.now() + timedelta(seconds=10))
    dispatcher.defer(drop, clock.now() + timedelta(seconds=5))

    cancelled = dispatcher.cancel(drop.id)

    assert cancelled is drop
    assert dispatcher.cancel("missing") is None
    clock.advance(60)
    assert wait_until(lambda: collector.ids() == [keep.id])


def test_queue_full_rearms_item(dispatcher, clock, collector):
    n = Notification(title="busy")
    collector.fail_with = QueueFullError("full")
    dispatcher.defer(n, clock.now())

    # First attempt hits the full queue and is re-armed one second later
    assert wait_until(lambda: collector.fail_with is None)
    assert wait_until(lambda: dispatcher.pending_count() == 1)
    assert dispatcher.next_due_at() == clock.now() + timedelta(seconds=1)
    assert collector.items == []

    clock.advance(1)
    assert wait_until(lambda: collector.ids() == [n.id])


def test_service_stopped_drops_item(dispatcher, clock, collector):
    n = Notification(title="late")
    collector.fail_with = ServiceStoppedError("stopped")
    dispatcher.defer(n, clock.now())

    assert wait_until(lambda: collector.fail_with is None)
    assert dispatcher.pending_count() == 0
    assert collector.items == []


def test_stop_drops_pending_and_refuses_new(clock, collector):
    d = DeferredDispatcher(submit=collector, clock=clock)
    d.start()
    d.defer(Notification(title="a"), clock.now() + timedelta(seconds=1))
    d.defer(Notification(title="b"), clock.now() + timedelta(seconds=2))

    dropped = d.stop(timeout=2)

    assert dropped == 2
    assert not d.is_running
    with pytest.raises(ServiceStoppedError):
        d.defer(Notification(title="c"), clock.now())

    clock.advance(10)
    assert not wait_until(lambda: collector.items, timeout=0.2)


def test_stop_is_idempotent(clock, collector):
    d = DeferredDispatcher(submit=collector, clock=clock)
    d.start()
    assert d.stop(timeout=2) == 0
    assert d.stop(timeout=2) == 0
