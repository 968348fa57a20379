from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from custody.access.registry import Principal
from custody.api.deps import get_caller, get_event_outbox, get_record_store
from custody.core.db import get_session
from custody.events.notifications import EventOutbox
from custody.events.service import try_flush_outbox
from custody.records.schemas import (
    RecordCreatedOut,
    RecordFields,
    RecordIdsOut,
    RecordOut,
    RecordTransferIn,
)
from custody.records.store import RecordStore

router = APIRouter(prefix="/records", tags=["records"])


@router.get("", response_model=RecordIdsOut)
async def get_record_ids(
    custodian: str | None = Query(
        default=None,
        min_length=1,
        max_length=128,
        description="Only ids of records currently held by this principal.",
    ),
    caller: Principal = Depends(get_caller),
    store: RecordStore = Depends(get_record_store),
) -> RecordIdsOut:
    if custodian is None:
        return RecordIdsOut(ids=store.list_all_ids(caller))
    return RecordIdsOut(ids=store.list_ids_by_custodian(caller, custodian))


@router.get("/{record_id}", response_model=RecordOut)
async def get_record_by_id(
    record_id: int,
    caller: Principal = Depends(get_caller),
    store: RecordStore = Depends(get_record_store),
) -> RecordOut:
    return RecordOut.model_validate(store.get_record(caller, record_id))


@router.post("", status_code=status.HTTP_201_CREATED, response_model=RecordCreatedOut)
async def create_record(
    payload: RecordFields,
    caller: Principal = Depends(get_caller),
    store: RecordStore = Depends(get_record_store),
    outbox: EventOutbox = Depends(get_event_outbox),
    session: AsyncSession = Depends(get_session),
) -> RecordCreatedOut:
    record_id = store.add_record(caller, **payload.model_dump())
    await try_flush_outbox(session=session, outbox=outbox)
    return RecordCreatedOut(id=record_id)


@router.put("/{record_id}", response_model=RecordOut)
async def update_record_by_id(
    record_id: int,
    payload: RecordFields,
    caller: Principal = Depends(get_caller),
    store: RecordStore = Depends(get_record_store),
    outbox: EventOutbox = Depends(get_event_outbox),
    session: AsyncSession = Depends(get_session),
) -> RecordOut:
    updated = store.update_record(caller, record_id, **payload.model_dump())
    await try_flush_outbox(session=session, outbox=outbox)
    return RecordOut.model_validate(updated)


@router.post("/{record_id}/transfer", response_model=RecordOut)
async def transfer_record_by_id(
    record_id: int,
    payload: RecordTransferIn,
    caller: Principal = Depends(get_caller),
    store: RecordStore = Depends(get_record_store),
    outbox: EventOutbox = Depends(get_event_outbox),
    session: AsyncSession = Depends(get_session),
) -> RecordOut:
    transferred = store.transfer_record(caller, record_id, payload.to)
    await try_flush_outbox(session=session, outbox=outbox)
    return RecordOut.model_validate(transferred)
