from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import JSON, Date, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from portale.db.base import Base
from portale.models.mixins import AddressMixin, ApprovalMixin, DocumentsMixin, OwnedMixin


class Company(ApprovalMixin, OwnedMixin, Base):
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    business_name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    company_name: Mapped[str] = mapped_column(String(200), nullable=False)
    vat_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)

    fiscal_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    matricola: Mapped[str | None] = mapped_column(String(32), nullable=True)
    inps_code: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Free-form nested blocks, merged key by key on update.
    address: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    contact_info: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    contract_details: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    industry: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    employees: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    signaler: Mapped[str | None] = mapped_column(String(200), nullable=True)
    actuator: Mapped[str | None] = mapped_column(String(200), nullable=True)

    @property
    def display_name(self) -> str:
        return self.business_name or self.company_name or "Unknown Company"


class SportelloLavoro(ApprovalMixin, DocumentsMixin, AddressMixin, OwnedMixin, Base):
    __tablename__ = "sportelli_lavoro"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    agent_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    business_name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    vat_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    agreed_commission: Mapped[float] = mapped_column(Float, nullable=False)
    email: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    pec: Mapped[str] = mapped_column(String(100), default="", nullable=False)

    @property
    def display_name(self) -> str:
        return self.business_name or "Unknown Sportello"


class Agente(ApprovalMixin, DocumentsMixin, AddressMixin, OwnedMixin, Base):
    __tablename__ = "agenti"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    business_name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    vat_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    agreed_commission: Mapped[float] = mapped_column(Float, nullable=False)
    email: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    pec: Mapped[str] = mapped_column(String(100), default="", nullable=False)

    @property
    def display_name(self) -> str:
        return self.business_name or "Unknown Agent"


class Segnalatore(ApprovalMixin, DocumentsMixin, AddressMixin, OwnedMixin, Base):
    __tablename__ = "segnalatori"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Stored without whitespace, upper-cased.
    tax_code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    agreement_percentage: Mapped[float] = mapped_column(Float, nullable=False)
    specialization: Mapped[str | None] = mapped_column(String(200), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def full_address(self) -> str | None:
        if not self.address:
            return None
        return f"{self.address}, {self.city or ''} {self.postal_code or ''} ({self.province or ''})"


class Supplier(OwnedMixin, Base):
    __tablename__ = "suppliers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    vat_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    email: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def display_name(self) -> str:
        return self.name


class Employee(OwnedMixin, Base):
    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    tax_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    email: Mapped[str | None] = mapped_column(String(100), nullable=True)
    position: Mapped[str | None] = mapped_column(String(100), nullable=True)
    hire_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    company_id: Mapped[int | None] = mapped_column(ForeignKey("companies.id"), nullable=True, index=True)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
