from __future__ import annotations

from pydantic import BaseModel, Field


class AuthorizationOut(BaseModel):
    principal: str = Field(description="Provider principal.", examples=["dr-alice"])
    authorized: bool = Field(description="Whether the principal may currently act on records.")


class OwnerOut(BaseModel):
    owner: str = Field(description="Principal that grants and revokes authorization.")
