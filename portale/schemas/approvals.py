from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from portale.schemas.entities import OwnerOut


class PendingItem(BaseModel):
    id: int
    # Discriminator to pass back to /approvals/approve|reject/{type}/{id}.
    type: str
    name: str
    email: str | None
    status: str
    rejection_reason: str | None
    created_at: datetime
    owner: OwnerOut | None


class PendingOut(BaseModel):
    companies: list[PendingItem]
    sportelli: list[PendingItem]
    agenti: list[PendingItem]
    segnalatori: list[PendingItem]
    total: int


class RejectIn(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


class DecisionItem(BaseModel):
    id: int
    type: str
    name: str
    status: str
    reason: str | None = None


class DecisionOut(BaseModel):
    message: str
    item: DecisionItem
