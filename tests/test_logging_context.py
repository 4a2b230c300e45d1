"""Tests for logging context propagation."""

import threading

import pytest

from tasknotify.logging.context import (
    clear_log_context,
    get_log_context,
    log_context,
    pop_log_context,
    push_log_context,
)


@pytest.fixture(autouse=True)
def clean_context():
    clear_log_context()
    yield
    clear_log_context()


def test_empty_context():
    assert get_log_context() == {}


def test_push_and_pop():
    token = push_log_context(notification_id="abc123", worker_id=1)
    assert get_log_context() == {"notification_id": "abc123", "worker_id": 1}
    pop_log_context(token)
    assert get_log_context() == {}


def test_nested_context():
    token1 = push_log_context(worker_id=1)
    token2 = push_log_context(notification_id="abc")
    assert get_log_context() == {"worker_id": 1, "notification_id": "abc"}

    pop_log_context(token2)
    assert get_log_context() == {"worker_id": 1}
    pop_log_context(token1)
    assert get_log_context() == {}


def test_inner_value_overrides_outer():
    with log_context(notification_id="outer"):
        with log_context(notification_id="inner"):
            assert get_log_context()["notification_id"] == "inner"
        assert get_log_context()["notification_id"] == "outer"


def test_context_manager_restores_on_exception():
    with pytest.raises(ValueError):
        with log_context(worker_id=2):
            raise ValueError("boom")
    assert get_log_context() == {}


def test_get_returns_copy():
    with log_context(worker_id=1):
        context = get_log_context()
        context["worker_id"] = 99
        assert get_log_context()["worker_id"] == 1


def test_threads_have_isolated_context():
    seen = {}

    def worker(worker_id):
        with log_context(worker_id=worker_id):
            barrier.wait(timeout=2)
            seen[worker_id] = get_log_context()["worker_id"]

    barrier = threading.Barrier(3)
    threads = [threading.Thread(target=worker, args=(i,)) for i in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert seen == {0: 0, 1: 1, 2: 2}
    assert get_log_context() == {}
