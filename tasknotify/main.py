"""Main entry point for the task notification daemon."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import os
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Optional, Tuple

from tasknotify.channels import build_sender_registry
from tasknotify.config.environment import EnvironmentConfig
from tasknotify.config.exceptions import ConfigurationError
from tasknotify.config.loader import load_config
from tasknotify.config.models import AppConfig
from tasknotify.logging import get_logger
from tasknotify.logging.config import configure_logging
from tasknotify.notifications.service import NotificationService
from tasknotify.persistence import (
    DatabaseNotificationStore,
    DatabaseTaskSource,
    close_database,
    init_database,
)
from tasknotify.scheduler import SweepScheduler

logger = get_logger(__name__, component="cli")

DRAIN_POLL_SECONDS = 0.1


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and settle the effective log level.

    Log level priority: CLI flag, then LOG_LEVEL, then the config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level

    return app_config, env_config


def build_engine(
    app_config: AppConfig, env_config: EnvironmentConfig
) -> Tuple[NotificationService, SweepScheduler]:
    """Wire senders, the delivery service and the sweep over the database."""
    registry = build_sender_registry(app_config, env_config)
    service = NotificationService(
        config=app_config.notifications,
        registry=registry,
        store=DatabaseNotificationStore(),
    )

    scheduler_config = app_config.scheduler
    sweep = SweepScheduler(
        service=service,
        repository=DatabaseTaskSource(),
        interval_seconds=scheduler_config.sweep_interval_seconds,
        due_soon_window_seconds=scheduler_config.due_soon_window_seconds,
        renotify_interval_seconds=scheduler_config.renotify_interval_seconds,
        notification_type=scheduler_config.notification_type,
    )
    return service, sweep


def wait_for_drain(service: NotificationService, timeout_seconds: float) -> bool:
    """
    Block until the queue is empty and no worker is mid-delivery.

    Deferred retries are not waited for.

    Returns:
        True if drained before the timeout
    """
    deadline = time.monotonic() + timeout_seconds
    while time.monotonic() < deadline:
        status = service.get_queue_status()
        if status.queue_length == 0 and status.in_flight == 0:
            return True
        time.sleep(DRAIN_POLL_SECONDS)
    return False


def main(argv=None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    parser = argparse.ArgumentParser(
        description="tasknotify - asynchronous task reminder and notification delivery service"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml or config/config.yaml)",
    )
    parser.add_argument(
        "--sweep-once",
        action="store_true",
        help="Run a single due-date sweep, deliver what it produced, and exit",
    )
    parser.add_argument(
        "--drain-timeout",
        type=float,
        default=30.0,
        help="Seconds to wait for queued deliveries with --sweep-once (default: 30)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )

    args = parser.parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        environment = os.environ.get("ENVIRONMENT", "local")
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=environment,
        )

        logger.info(
            "tasknotify starting",
            extra={
                "event": "app.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "sweep_once": args.sweep_once,
            },
        )

        init_database(env_config.database_url)
        service, sweep = build_engine(app_config, env_config)

        if args.sweep_once:
            result = sweep.trigger_now()
            drained = wait_for_drain(service, args.drain_timeout)
            if not drained:
                logger.warning(
                    "Drain timeout reached; remaining notifications will be dropped",
                    extra={"event": "app.drain_timeout", **service.get_queue_status().to_dict()},
                )
            service.stop()
            close_database()

            logger.info(
                f"Sweep completed: {result.total_sent} notifications submitted",
                extra={
                    "event": "app.sweep_once.completed",
                    "uptime_seconds": round(time.time() - start_time, 2),
                    **service.get_stats().to_dict(),
                },
            )
            had_errors = bool(result.repository_errors or result.submit_errors)
            return 1 if had_errors or not drained else 0

        shutdown_event = threading.Event()

        def signal_handler(signum, frame):
            logger.info(
                f"Received signal {signum}, shutting down",
                extra={"event": "app.signal_received", "signal": signum},
            )
            shutdown_event.set()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        if app_config.scheduler.enabled:
            sweep.start()
        else:
            logger.info("Periodic sweep disabled", extra={"event": "app.sweep_disabled"})

        logger.info(
            "Notification service running. Press Ctrl+C to stop",
            extra={"event": "app.daemon_mode.started"},
        )

        try:
            shutdown_event.wait()
        except KeyboardInterrupt:
            logger.info(
                "Keyboard interrupt received, shutting down",
                extra={"event": "app.keyboard_interrupt"},
            )

        service.stop()
        close_database()

        logger.info(
            "tasknotify stopped",
            extra={"event": "app.stopped", "uptime_seconds": round(time.time() - start_time, 2)},
        )
        return 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            exc_info=True,
            extra={"event": "app.startup.failed", "error_type": type(e).__name__},
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
