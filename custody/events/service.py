from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from custody.events.cursor_pagination import EventCursor, decode_event_cursor, encode_event_cursor
from custody.events.models import RecordEvent
from custody.events.notifications import EventOutbox

logger = logging.getLogger("custody.events")


async def flush_outbox(*, session: AsyncSession, outbox: EventOutbox) -> int:
    """Write pending notifications to the ledger, oldest first. Returns the number written.

    Only one flush runs at a time: drain, commit and requeue all happen under the outbox
    flush lock, so a later batch can never commit ahead of an earlier one. If the commit
    fails the batch goes back to the front of the outbox.
    """

    async with outbox.flush_lock:
        pending = outbox.drain()
        if not pending:
            return 0

        session.add_all(
            [
                RecordEvent(
                    kind=n.kind,
                    record_id=n.record_id,
                    actor=n.actor,
                    subject=n.subject,
                    occurred_at=n.occurred_at,
                )
                for n in pending
            ]
        )
        try:
            await session.commit()
        except Exception:
            await session.rollback()
            outbox.requeue(pending)
            raise
        return len(pending)


async def try_flush_outbox(*, session: AsyncSession, outbox: EventOutbox) -> int:
    """Flush after a committed operation. Ledger failures are logged, never surfaced.

    Unwritten notifications stay queued and go out with the next successful flush.
    """

    try:
        return await flush_outbox(session=session, outbox=outbox)
    except SQLAlchemyError as exc:
        logger.warning(
            "Event ledger flush failed (pending=%s, error=%s)",
            len(outbox),
            exc.__class__.__name__,
        )
        return 0


async def list_events(
    *,
    session: AsyncSession,
    limit: int,
    cursor: str | None,
    record_id: int | None = None,
) -> tuple[list[RecordEvent], str | None]:
    stmt = select(RecordEvent).order_by(RecordEvent.id.asc())
    if record_id is not None:
        stmt = stmt.where(RecordEvent.record_id == record_id)
    if cursor:
        decoded = decode_event_cursor(raw=cursor)
        stmt = stmt.where(RecordEvent.id > decoded.last_id)
    stmt = stmt.limit(limit + 1)

    fetched = (await session.execute(stmt)).scalars().all()
    has_more = len(fetched) > limit
    items = list(fetched[:limit])

    next_cursor: str | None = None
    if has_more and items:
        next_cursor = encode_event_cursor(cursor=EventCursor(last_id=items[-1].id))

    return items, next_cursor
