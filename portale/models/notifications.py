from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portale.db.base import Base
from portale.models.mixins import enum_column, utcnow
from portale.models.security import User


class NotificationType(str, Enum):
    COMPANY_PENDING = "company_pending"
    SPORTELLO_PENDING = "sportello_pending"
    AGENTE_PENDING = "agente_pending"
    SEGNALATORE_PENDING = "segnalatore_pending"
    USER_PENDING = "user_pending"


notification_recipients = Table(
    "notification_recipients",
    Base.metadata,
    Column("notification_id", ForeignKey("notifications.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[NotificationType] = mapped_column(enum_column(NotificationType), nullable=False, index=True)

    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # NULL once the creator's account is deleted; the name stays.
    created_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_by_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)

    recipients: Mapped[list[User]] = relationship(secondary=notification_recipients)
    reads: Mapped[list["NotificationRead"]] = relationship(
        back_populates="notification",
        cascade="all, delete-orphan",
    )

    def is_read_by(self, user_id: int) -> bool:
        return any(r.user_id == user_id for r in self.reads)


class NotificationRead(Base):
    """Read receipt: one row per (notification, recipient) once read."""

    __tablename__ = "notification_reads"

    notification_id: Mapped[int] = mapped_column(
        ForeignKey("notifications.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    read_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    notification: Mapped[Notification] = relationship(back_populates="reads")
