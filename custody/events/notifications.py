"""Notification channel for committed custody changes.

Notifications are fire-and-forget: a subscriber that raises is logged and skipped, it never
undoes or fails the operation that produced the notification.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

logger = logging.getLogger("custody.events")

NotificationKind = Literal[
    "authorized",
    "revoked",
    "record_added",
    "record_updated",
    "record_transferred",
]


@dataclass(frozen=True)
class Notification:
    """A committed change.

    `actor` is the principal that performed the change (the old custodian for transfers).
    `subject` is the principal the change is about: the authorize/revoke target, or the new
    custodian of a transfer.
    """

    kind: NotificationKind
    occurred_at: datetime
    record_id: int | None = None
    actor: str | None = None
    subject: str | None = None


Subscriber = Callable[[Notification], None]


class NotificationChannel:
    def __init__(self, subscribers: list[Subscriber] | None = None):
        self._subscribers: list[Subscriber] = list(subscribers or [])

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def publish(self, notification: Notification) -> None:
        for subscriber in self._subscribers:
            try:
                subscriber(notification)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Notification subscriber failed (event=%s, error=%s)",
                    notification.kind,
                    exc.__class__.__name__,
                    extra={"event": notification.kind, "record_id": notification.record_id},
                )


def log_notification(notification: Notification) -> None:
    """Subscriber that logs event kind and record id (never principals or record contents)."""
    logger.info(
        "Custody event",
        extra={"event": notification.kind, "record_id": notification.record_id},
    )


class EventOutbox:
    """FIFO of notifications waiting to be written to the durable event ledger.

    `flush_lock` admits one ledger write at a time so rows land in publication order.
    """

    def __init__(self) -> None:
        self._pending: deque[Notification] = deque()
        self.flush_lock = asyncio.Lock()

    def __call__(self, notification: Notification) -> None:
        self._pending.append(notification)

    def __len__(self) -> int:
        return len(self._pending)

    def drain(self) -> list[Notification]:
        drained: list[Notification] = []
        while self._pending:
            drained.append(self._pending.popleft())
        return drained

    def requeue(self, notifications: list[Notification]) -> None:
        """Put notifications back at the front, preserving their order."""
        self._pending.extendleft(reversed(notifications))
