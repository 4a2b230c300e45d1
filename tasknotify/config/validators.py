"""Soft checks on raw configuration that produce warnings, not errors."""

import warnings
from typing import Any, Dict, List

from .duration import DurationParseError, parse_duration


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """Inspect a raw configuration dictionary for likely mistakes.

    Args:
        config_dict: Raw configuration dictionary (before validation)

    Returns:
        List of warning messages
    """
    warning_messages = []

    notifications = config_dict.get("notifications") or {}
    if isinstance(notifications, dict):
        worker_count = notifications.get("worker_count")
        batch_size = notifications.get("batch_size")
        if isinstance(worker_count, int) and isinstance(batch_size, int) and batch_size < worker_count:
            warning_messages.append(
                f"batch_size ({batch_size}) is smaller than worker_count ({worker_count}); "
                "bursts will be rejected with QueueFull"
            )

        retry_delay = notifications.get("retry_delay_seconds")
        if isinstance(retry_delay, (int, float)) and retry_delay == 0:
            warning_messages.append(
                "retry_delay_seconds is 0; failing channels will be retried back to back"
            )

    scheduler = config_dict.get("scheduler") or {}
    if isinstance(scheduler, dict) and scheduler.get("enabled", True):
        interval = _seconds_or_none(scheduler.get("sweep_interval"))
        renotify = _seconds_or_none(scheduler.get("renotify_interval"))
        if interval is not None and renotify is None and interval < 3600:
            warning_messages.append(
                "Sweep runs more than hourly without renotify_interval; "
                "overdue tasks will be re-notified on every sweep"
            )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit warning messages using Python's warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)


def _seconds_or_none(value: Any):
    if not isinstance(value, str):
        return None
    try:
        return parse_duration(value)
    except DurationParseError:
        return None
