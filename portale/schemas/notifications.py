from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from portale.models.notifications import NotificationType


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    message: str
    type: NotificationType
    entity_id: str
    entity_name: str
    created_by_id: int | None
    created_by_name: str
    created_at: datetime


class UnreadCountOut(BaseModel):
    count: int


class MarkAllReadOut(BaseModel):
    message: str
    count: int


class TypeStat(BaseModel):
    type: NotificationType
    count: int
    latest: datetime | None


class NotificationStatsOut(BaseModel):
    total: int
    by_type: list[TypeStat]
    generated_at: datetime
