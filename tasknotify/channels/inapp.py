"""In-app channel: notifications land in a per-user inbox held in memory."""

import threading
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from tasknotify.notifications.models import Notification, NotificationType
from tasknotify.notifications.senders import ChannelSender
from tasknotify.utils.timestamps import utc_now


@dataclass
class InboxEntry:
    notification: Notification
    received_at: datetime
    read_at: Optional[datetime] = None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None


class InAppInbox:
    """Thread-safe per-user inbox, newest first."""

    def __init__(self, max_per_user: int = 500):
        self.max_per_user = max_per_user
        self._lock = threading.Lock()
        self._entries: Dict[int, List[InboxEntry]] = defaultdict(list)
        self._index: Dict[str, InboxEntry] = {}

    def add(self, notification: Notification) -> InboxEntry:
        entry = InboxEntry(notification=notification.model_copy(deep=True), received_at=utc_now())
        with self._lock:
            entries = self._entries[notification.user_id]
            entries.insert(0, entry)
            self._index[notification.id] = entry
            # Oldest entries fall off once the inbox is full
            while len(entries) > self.max_per_user:
                evicted = entries.pop()
                self._index.pop(evicted.notification.id, None)
        return entry

    def list_for_user(self, user_id: int, limit: int = 50, offset: int = 0) -> List[InboxEntry]:
        if limit < 0 or offset < 0:
            raise ValueError("limit and offset must be non-negative")
        with self._lock:
            return list(self._entries.get(user_id, [])[offset : offset + limit])

    def unread_count(self, user_id: int) -> int:
        with self._lock:
            return sum(1 for entry in self._entries.get(user_id, []) if not entry.is_read)

    def mark_read(self, notification_id: str) -> bool:
        """Mark one entry read. Returns False if the id is unknown."""
        with self._lock:
            entry = self._index.get(notification_id)
            if entry is None:
                return False
            if entry.read_at is None:
                entry.read_at = utc_now()
            return True


class InAppSender(ChannelSender):
    """Stores notifications in an InAppInbox.

    There is no external provider to confirm receipt, so the notification
    is considered delivered as soon as it is stored.
    """

    notification_type = NotificationType.IN_APP.value
    auto_confirm = True

    def __init__(self, inbox: Optional[InAppInbox] = None):
        self.inbox = inbox or InAppInbox()

    def send(self, notification: Notification) -> None:
        self.inbox.add(notification)
