from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from portale.db.base import Base
from portale.models.mixins import OwnedMixin, enum_column, utcnow


class AccountType(str, Enum):
    PROSELITISMO = "proselitismo"
    SERVIZI = "servizi"


class TransactionType(str, Enum):
    ENTRATA = "entrata"
    USCITA = "uscita"


class TransactionStatus(str, Enum):
    COMPLETATA = "completata"
    IN_ATTESA = "in_attesa"
    ANNULLATA = "annullata"


class TransactionSource(str, Enum):
    MANUALE = "manuale"
    XLSX = "xlsx"


class ContoTransaction(OwnedMixin, Base):
    __tablename__ = "conto_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    account: Mapped[AccountType] = mapped_column(
        enum_column(AccountType), default=AccountType.PROSELITISMO, nullable=False, index=True
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    raw_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    type: Mapped[TransactionType] = mapped_column(
        enum_column(TransactionType), default=TransactionType.ENTRATA, nullable=False
    )
    status: Mapped[TransactionStatus] = mapped_column(
        enum_column(TransactionStatus), default=TransactionStatus.COMPLETATA, nullable=False
    )
    description: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    category: Mapped[str] = mapped_column(String(100), default="Competenza", nullable=False)
    company_id: Mapped[int | None] = mapped_column(ForeignKey("companies.id"), nullable=True, index=True)
    source: Mapped[TransactionSource] = mapped_column(
        enum_column(TransactionSource), default=TransactionSource.MANUALE, nullable=False
    )
    date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)
