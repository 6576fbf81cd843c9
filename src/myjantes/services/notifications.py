from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..api import MyJantesApi
from ..domain.aggregates import badge_label
from ..domain.normalize import parse_datetime
from ..errors import MyJantesError
from ..logging import get_logger

LOG = get_logger("notification-poller")

Record = Dict[str, Any]

_CATEGORY_LABELS = {
    "quote": "Devis",
    "invoice": "Facture",
    "reservation": "Reservation",
    "chat": "Message",
    "service": "Service",
}


def category_label(kind: Optional[str]) -> str:
    return _CATEGORY_LABELS.get(str(kind or ""), "MyJantes")


class NotificationPoller:
    """Polls the notification list and reports unread entries newer than the last check.

    The first check only sets the baseline, so a fresh poller never reports
    the backlog.
    """

    def __init__(self, api: MyJantesApi, on_new: Callable[[Record], None]) -> None:
        self.api = api
        self.on_new = on_new
        self.last_checked_at: Optional[datetime] = None
        self.badge_count = 0

    @property
    def badge(self) -> str:
        return badge_label(self.badge_count)

    def check(self) -> List[Record]:
        try:
            notifications = self.api.notifications.list()
        except MyJantesError as e:
            LOG.warning(f"Notification check failed: {e.message}")
            return []

        unread = [n for n in notifications if isinstance(n, Mapping) and not n.get("isRead")]
        fresh: List[Record] = []
        if self.last_checked_at is not None:
            for n in unread:
                created = parse_datetime(n.get("createdAt"))
                if created is not None and created > self.last_checked_at:
                    fresh.append(n)
            for n in fresh:
                LOG.info(f"[{category_label(n.get('type'))}] {n.get('title') or ''}: {n.get('message') or ''}")
                self.on_new(n)

        stamps = [d for d in (parse_datetime(n.get("createdAt")) for n in notifications if isinstance(n, Mapping)) if d]
        if stamps:
            self.last_checked_at = max(stamps)
        elif self.last_checked_at is None:
            self.last_checked_at = datetime.now(timezone.utc)

        self.badge_count = len(unread)
        return fresh

    def run(self, interval: float, stop_event: Optional[threading.Event] = None) -> None:
        stop = stop_event or threading.Event()
        LOG.info(f"Polling notifications every {interval:g}s")
        while not stop.is_set():
            self.check()
            stop.wait(interval)
        LOG.info("Notification polling stopped")
