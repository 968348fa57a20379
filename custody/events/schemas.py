from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RecordEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Ledger sequence number (publication order).")
    kind: str = Field(
        description="authorized | revoked | record_added | record_updated | record_transferred",
        examples=["record_transferred"],
    )
    record_id: int | None = Field(default=None, description="Affected record, if any.")
    actor: str | None = Field(default=None, description="Principal that made the change.")
    subject: str | None = Field(
        default=None,
        description="Authorize/revoke target, or the new custodian of a transfer.",
    )
    occurred_at: datetime = Field(description="When the change was committed (UTC).")


class RecordEventListOut(BaseModel):
    items: list[RecordEventOut] = Field(description="Page of ledger events, oldest first.")
    limit: int = Field(description="Page size requested.", examples=[50])
    next_cursor: str | None = Field(
        default=None,
        description="Opaque cursor for the next page. Null when there are no more results.",
    )
