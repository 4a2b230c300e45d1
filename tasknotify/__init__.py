"""tasknotify: asynchronous notification delivery for a personal task manager."""

__version__ = "0.1.0"
