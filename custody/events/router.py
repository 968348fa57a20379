from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from custody.access.registry import AuthorizationRegistry, Principal
from custody.api.deps import get_caller, get_event_outbox, get_registry
from custody.core.db import get_session
from custody.core.settings import get_settings
from custody.events.notifications import EventOutbox
from custody.events.schemas import RecordEventListOut, RecordEventOut
from custody.events.service import flush_outbox, list_events

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=RecordEventListOut)
async def get_events(
    limit: int = Query(default=50, ge=1),
    cursor: str | None = Query(
        default=None, description="Cursor for pagination (use `next_cursor` from previous response)"
    ),
    record_id: int | None = Query(default=None, ge=1, description="Only events for this record."),
    caller: Principal = Depends(get_caller),
    registry: AuthorizationRegistry = Depends(get_registry),
    outbox: EventOutbox = Depends(get_event_outbox),
    session: AsyncSession = Depends(get_session),
) -> RecordEventListOut:
    """Read the custody event ledger. Owner only."""

    registry.require_owner(caller)

    page_max = get_settings().events_page_max
    if limit > page_max:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"limit must be at most {page_max}",
        )

    await flush_outbox(session=session, outbox=outbox)
    try:
        items, next_cursor = await list_events(
            session=session, limit=limit, cursor=cursor, record_id=record_id
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return RecordEventListOut(
        items=[RecordEventOut.model_validate(e) for e in items],
        limit=limit,
        next_cursor=next_cursor,
    )
