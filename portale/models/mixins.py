from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, declared_attr, mapped_column, relationship

if TYPE_CHECKING:
    from portale.models.security import User


def utcnow() -> datetime:
    # Naive UTC; every DateTime column in the schema is timezone-naive.
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def enum_column(enum_cls: type[Enum]) -> SAEnum:
    # Store the enum *values* ("pending"), not the member names.
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
    )


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


class OwnedMixin(TimestampMixin):
    """
    Row-level ownership.

    Every model using this mixin is scoped by `user_id` in db/filters.py when the
    current route asks for owner scoping.
    """

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)

    @declared_attr
    def owner(cls) -> Mapped["User"]:
        return relationship("User", foreign_keys=f"{cls.__name__}.user_id", lazy="joined")


class ApprovalMixin:
    """
    Approval lifecycle as a single tagged state.

    `approval_status` is NULL only for rows created before the column existed;
    those are reported as pending by the approvals query.
    """

    approval_status: Mapped[ApprovalStatus | None] = mapped_column(
        enum_column(ApprovalStatus), nullable=True, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)

    approved_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejected_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    @property
    def is_approved(self) -> bool:
        return self.approval_status == ApprovalStatus.APPROVED

    @property
    def pending_approval(self) -> bool:
        return self.approval_status == ApprovalStatus.PENDING


class DocumentsMixin:
    # slot name -> {filename, original_name, path, mimetype, size}
    documents: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)


class AddressMixin:
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    province: Mapped[str | None] = mapped_column(String(50), nullable=True)
