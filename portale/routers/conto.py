from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from portale.db.session import get_db
from portale.models.conto import AccountType, ContoTransaction
from portale.schemas.conto import CompetenzaIn, CompetenzaOut, ContoSummaryOut, TransactionOut
from portale.security.context import AuthzContext
from portale.security.dependencies import get_authz
from portale.services import conto

router = APIRouter(prefix="/conto", tags=["conto"])


@router.post("/competenze", response_model=CompetenzaOut, status_code=status.HTTP_201_CREATED)
def create_competenza(
    payload: CompetenzaIn, authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)
) -> dict:
    return conto.create_competenza(db, authz, payload)


@router.get("/transactions", response_model=list[TransactionOut])
def list_transactions(
    user_id: int | None = None,
    account: AccountType | None = None,
    authz: AuthzContext = Depends(get_authz),
    db: Session = Depends(get_db),
) -> list[ContoTransaction]:
    return conto.list_transactions(db, authz, user_id=user_id, account=account)


@router.get("/summary", response_model=ContoSummaryOut)
def summary(authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)) -> dict:
    return conto.summary(db, authz)
