"""Channel sender interface and the type -> sender registry.

Workers never branch on notification type; they look the sender up here.
Concrete senders live in ``tasknotify.channels``.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from .models import Notification, NotificationType, enum_value


class ChannelSender(ABC):
    """Delivers notifications of one type.

    Implementations raise SendError (retryable) or a NonRetryableError
    subclass on failure, and return normally on success.
    """

    #: Notification type handled by this sender.
    notification_type: str = ""

    #: When True the worker marks notifications delivered right after sent,
    #: because the channel has no separate delivery confirmation.
    auto_confirm: bool = False

    @abstractmethod
    def send(self, notification: Notification) -> None:
        """Attempt delivery of ``notification``."""

    def has_default_destination(self) -> bool:
        """True if the sender can deliver without recipient/channel on the notification."""
        return False


class SenderRegistry:
    """Thread-safe mapping from notification type to ChannelSender."""

    def __init__(self, senders: Optional[Iterable[ChannelSender]] = None):
        self._senders: Dict[str, ChannelSender] = {}
        self._lock = threading.Lock()
        for sender in senders or []:
            self.register(sender)

    def register(self, sender: ChannelSender, notification_type=None) -> None:
        """Register ``sender`` for its own type, or for ``notification_type`` if given."""
        key = enum_value(notification_type or sender.notification_type)
        if not key:
            raise ValueError(f"{type(sender).__name__} does not declare a notification_type")
        with self._lock:
            self._senders[key] = sender

    def get(self, notification_type) -> Optional[ChannelSender]:
        with self._lock:
            return self._senders.get(enum_value(notification_type))

    def supported_types(self) -> List[str]:
        with self._lock:
            return sorted(self._senders)

    def __contains__(self, notification_type) -> bool:
        return self.get(notification_type) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._senders)


KNOWN_TYPES = frozenset(t.value for t in NotificationType)
