from __future__ import annotations

from datetime import date
from enum import Enum

from sqlalchemy import Boolean, Date, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from portale.db.base import Base
from portale.models.mixins import OwnedMixin, TimestampMixin, enum_column


class ProjectStatus(str, Enum):
    REQUESTED = "requested"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ProjectTemplate(TimestampMixin, Base):
    """Catalogue entry that projects are stamped from. Not owned: visibility is `is_public` or authorship."""

    __tablename__ = "project_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    min_price: Mapped[float] = mapped_column(Float, nullable=False)
    max_price: Mapped[float] = mapped_column(Float, nullable=False)
    hours: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    category: Mapped[str] = mapped_column(String(100), default="", nullable=False, index=True)
    subcategory: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    type: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    # NULL once the author's account is deleted.
    created_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )


class Project(OwnedMixin, Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    status: Mapped[ProjectStatus] = mapped_column(
        enum_column(ProjectStatus), default=ProjectStatus.REQUESTED, nullable=False, index=True
    )
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    budget: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    hours: Mapped[float] = mapped_column(Float, default=0, nullable=False)

    # Code of the template the project was stamped from, if any.
    template_code: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)

    @property
    def display_name(self) -> str:
        return self.title
