from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from portale.db.base import Base
from portale.models.mixins import utcnow


class DashboardStats(Base):
    __tablename__ = "dashboard_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True, nullable=False)

    companies: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sportelli: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    agenti: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    segnalatori: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    suppliers: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    employees: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    projects: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unread_notifications: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


COUNTER_FIELDS = frozenset(
    {"companies", "sportelli", "agenti", "segnalatori", "suppliers", "employees", "projects", "unread_notifications"}
)
