from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from portale.schemas.entities import OwnerOut


class MessageIn(BaseModel):
    recipient_ids: list[int] = Field(min_length=1)
    subject: str = Field(max_length=200)
    body: str


class ReadIn(BaseModel):
    read: bool = True


class MessageOut(BaseModel):
    id: int
    sender: OwnerOut
    recipients: list[OwnerOut]
    subject: str
    body: str
    created_at: datetime
    # Viewer-relative: read state of the caller's own copy (always true for the sender).
    read: bool
    trashed: bool


class MessageStatsOut(BaseModel):
    inbox: int
    unread: int
    sent: int
    trash: int
