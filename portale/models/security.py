from __future__ import annotations

from enum import Enum

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portale.db.base import Base
from portale.models.mixins import ApprovalMixin, TimestampMixin, enum_column


class Role(str, Enum):
    SEGNALATORI = "segnalatori"
    SPORTELLO_LAVORO = "sportello_lavoro"
    RESPONSABILE_TERRITORIALE = "responsabile_territoriale"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    @property
    def is_privileged(self) -> bool:
        return self in PRIVILEGED_ROLES


# Low -> high privilege.
_ROLE_RANK = {role: idx for idx, role in enumerate(Role)}

PRIVILEGED_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.SUPER_ADMIN})


class User(ApprovalMixin, TimestampMixin, Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("email", name="uq_users_email"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    organization: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Account switch; rejection turns it off.
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    role: Mapped[Role] = mapped_column(enum_column(Role), default=Role.SEGNALATORI, nullable=False, index=True)

    # Direct superior. Set once at creation; the hierarchy is a forest.
    managed_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)

    # Share of the net ledger amount credited to a responsabile_territoriale (0-100).
    profit_share_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)

    manager: Mapped["User | None"] = relationship(
        "User",
        foreign_keys=[managed_by_id],
        remote_side="User.id",
        back_populates="reports",
    )
    reports: Mapped[list["User"]] = relationship(
        "User",
        foreign_keys=[managed_by_id],
        back_populates="manager",
    )

    @property
    def display_name(self) -> str:
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full or self.username

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role.value}>"
