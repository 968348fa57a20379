from __future__ import annotations

import base64
import json
from dataclasses import dataclass


@dataclass(frozen=True)
class EventCursor:
    last_id: int


def _b64url_decode(data: str) -> bytes:
    # Accept paddingless cursors too.
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def encode_event_cursor(*, cursor: EventCursor) -> str:
    raw = json.dumps({"v": 1, "last_id": cursor.last_id}, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_event_cursor(*, raw: str) -> EventCursor:
    try:
        payload = json.loads(_b64url_decode(raw))
    except Exception as exc:  # noqa: BLE001
        raise ValueError("Invalid cursor") from exc

    if not isinstance(payload, dict) or payload.get("v") != 1:
        raise ValueError("Invalid cursor version")

    last_id = payload.get("last_id")
    if isinstance(last_id, bool) or not isinstance(last_id, int) or last_id < 1:
        raise ValueError("Invalid cursor payload")
    return EventCursor(last_id=last_id)
