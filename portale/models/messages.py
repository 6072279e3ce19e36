from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portale.db.base import Base
from portale.models.mixins import utcnow
from portale.models.security import User


class Message(Base):
    """
    Internal user-to-user message.

    One row per message; each recipient gets a `MessageDelivery` carrying their
    own read and trash state. The sender's trash flag lives on the message.
    """

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    sender_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)
    sender_trashed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    sender: Mapped[User] = relationship(foreign_keys=[sender_id], lazy="joined")
    deliveries: Mapped[list["MessageDelivery"]] = relationship(
        back_populates="message",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def delivery_for(self, user_id: int) -> "MessageDelivery | None":
        return next((d for d in self.deliveries if d.recipient_id == user_id), None)


class MessageDelivery(Base):
    __tablename__ = "message_deliveries"

    message_id: Mapped[int] = mapped_column(ForeignKey("messages.id", ondelete="CASCADE"), primary_key=True)
    recipient_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    read_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    trashed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    message: Mapped[Message] = relationship(back_populates="deliveries")
    recipient: Mapped[User] = relationship(lazy="joined")
