from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from custody.access.registry import AuthorizationRegistry, Principal, is_valid_principal
from custody.access.schemas import AuthorizationOut, OwnerOut
from custody.api.deps import get_caller, get_event_outbox, get_registry
from custody.core.db import get_session
from custody.events.notifications import EventOutbox
from custody.events.service import try_flush_outbox

router = APIRouter(prefix="/access", tags=["access"])


def _target_principal(principal: str = Path(min_length=1, max_length=128)) -> Principal:
    if not is_valid_principal(principal):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Malformed principal"
        )
    return principal


@router.get("/owner", response_model=OwnerOut)
async def get_owner(
    caller: Principal = Depends(get_caller),
    registry: AuthorizationRegistry = Depends(get_registry),
) -> OwnerOut:
    registry.require_authorized(caller)
    return OwnerOut(owner=registry.owner)


@router.get("/providers/{principal}", response_model=AuthorizationOut)
async def get_provider_authorization(
    target: Principal = Depends(_target_principal),
    registry: AuthorizationRegistry = Depends(get_registry),
) -> AuthorizationOut:
    """Public lookup: no caller principal is required."""
    return AuthorizationOut(principal=target, authorized=registry.is_authorized(target))


@router.put("/providers/{principal}", response_model=AuthorizationOut)
async def authorize_provider(
    target: Principal = Depends(_target_principal),
    caller: Principal = Depends(get_caller),
    registry: AuthorizationRegistry = Depends(get_registry),
    outbox: EventOutbox = Depends(get_event_outbox),
    session: AsyncSession = Depends(get_session),
) -> AuthorizationOut:
    registry.authorize(caller, target)
    await try_flush_outbox(session=session, outbox=outbox)
    return AuthorizationOut(principal=target, authorized=True)


@router.delete(
    "/providers/{principal}", status_code=status.HTTP_204_NO_CONTENT, response_model=None
)
async def revoke_provider(
    target: Principal = Depends(_target_principal),
    caller: Principal = Depends(get_caller),
    registry: AuthorizationRegistry = Depends(get_registry),
    outbox: EventOutbox = Depends(get_event_outbox),
    session: AsyncSession = Depends(get_session),
) -> None:
    registry.revoke(caller, target)
    await try_flush_outbox(session=session, outbox=outbox)
    return None
