"""Tests for the task view used by the sweep."""

from datetime import datetime, timedelta, timezone

import pytest

from tasknotify.domain.models import Task, TaskStatus

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def test_title_is_stripped():
    assert Task(id=1, title="  Taxes  ").title == "Taxes"


def test_empty_title_rejected():
    with pytest.raises(ValueError, match="cannot be empty"):
        Task(id=1, title="   ")


def test_naive_due_date_becomes_utc():
    task = Task(id=1, title="x", due_date=datetime(2025, 1, 15, 12, 0))
    assert task.due_date == NOW
    assert task.due_date.tzinfo == timezone.utc


def test_status_from_string():
    task = Task(id=1, title="x", status="completed")
    assert task.status == TaskStatus.COMPLETED
    assert task.is_completed


def test_is_overdue():
    task = Task(id=1, title="x", due_date=NOW - timedelta(minutes=1))
    assert task.is_overdue(NOW)


@pytest.mark.parametrize(
    "fields",
    [
        {"due_date": None},
        {"due_date": NOW + timedelta(minutes=1)},
        {"due_date": NOW - timedelta(hours=1), "status": TaskStatus.COMPLETED},
        {"due_date": NOW - timedelta(hours=1), "is_archived": True},
    ],
)
def test_not_overdue(fields):
    assert not Task(id=1, title="x", **fields).is_overdue(NOW)
