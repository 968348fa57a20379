from __future__ import annotations

from fastapi import HTTPException, Request, status

from custody.access.registry import AuthorizationRegistry, Principal, is_valid_principal
from custody.core.settings import get_settings
from custody.events.notifications import EventOutbox
from custody.records.store import RecordStore


def get_caller(request: Request) -> Principal:
    """
    Return the caller principal supplied by the upstream authentication layer.

    This service trusts the header; it only checks that one is present and well-formed.
    """

    header = get_settings().principal_header
    candidate = request.headers.get(header)
    if not candidate or not is_valid_principal(candidate):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing or malformed {header} header",
        )
    return candidate


def get_registry(request: Request) -> AuthorizationRegistry:
    return request.app.state.registry


def get_record_store(request: Request) -> RecordStore:
    return request.app.state.record_store


def get_event_outbox(request: Request) -> EventOutbox:
    return request.app.state.event_outbox
