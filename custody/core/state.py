from __future__ import annotations

from typing import Any

from custody.access.registry import AuthorizationRegistry, Clock, utc_now
from custody.core.metrics import count_notification
from custody.events.notifications import EventOutbox, NotificationChannel, log_notification
from custody.records.store import RecordStore


def init_state(*, app: Any, owner: str, clock: Clock = utc_now) -> None:
    """Build the registry, record store and notification channel for one process lifetime."""

    outbox = EventOutbox()
    channel = NotificationChannel([log_notification, count_notification, outbox])
    registry = AuthorizationRegistry(owner=owner, notifications=channel, clock=clock)

    app.state.registry = registry
    app.state.record_store = RecordStore(registry=registry)
    app.state.event_outbox = outbox
