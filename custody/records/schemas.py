from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RecordFields(BaseModel):
    """Clinical fields. Used for both create and update; updates overwrite every field."""

    name: str = Field(max_length=255, description="Patient display name.", examples=["Jane Doe"])
    age: int = Field(ge=0, description="Age in years.", examples=[30])
    sex: str = Field(max_length=32, description="Free-form sex/gender field.", examples=["F"])
    mobile: str = Field(max_length=64, description="Contact phone number.", examples=["555-0100"])
    diagnosis: str = Field(max_length=10_000, description="Free-form diagnosis.", examples=["flu"])
    treatment: str = Field(
        max_length=10_000, description="Free-form treatment plan.", examples=["rest"]
    )


class RecordTransferIn(BaseModel):
    to: str = Field(
        min_length=1,
        max_length=128,
        description="Principal that becomes the record's custodian. Must be authorized.",
        examples=["dr-bob"],
    )


class RecordCreatedOut(BaseModel):
    id: int = Field(description="Sequential record id assigned by the store.", examples=[1])


class RecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Record id.")
    name: str
    age: int
    sex: str
    mobile: str
    diagnosis: str
    treatment: str
    current_custodian: str = Field(description="Provider currently responsible for the record.")
    created_at: datetime = Field(description="Creation timestamp (UTC). Never changes.")
    last_updated: datetime = Field(
        description="Last clinical field update (UTC). Custody transfers do not change it."
    )


class RecordIdsOut(BaseModel):
    ids: list[int] = Field(description="Record ids in creation order.", examples=[[1, 2, 3]])
