from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from portale.models.conto import AccountType, TransactionSource, TransactionStatus, TransactionType


class CompetenzaIn(BaseModel):
    base_amount: float
    responsabile_id: int
    sportello_id: int
    account: AccountType = AccountType.PROSELITISMO
    company_id: int | None = None
    description: str | None = Field(default=None, max_length=200)
    date: datetime | None = None


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    account: AccountType
    amount: float
    raw_amount: float | None
    type: TransactionType
    status: TransactionStatus
    description: str
    category: str
    company_id: int | None
    source: TransactionSource
    date: datetime


class CompetenzaSplit(BaseModel):
    base_amount: float
    fiacom_amount: float
    responsabile_percent: float
    responsabile_amount: float
    sportello_percent: float
    sportello_amount: float


class CompetenzaOut(BaseModel):
    split: CompetenzaSplit
    transactions: list[TransactionOut]


class AccountSummary(BaseModel):
    account: AccountType
    entrate: float
    uscite: float
    balance: float


class ContoSummaryOut(BaseModel):
    accounts: list[AccountSummary]
    total_balance: float
