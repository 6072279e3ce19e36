"""
Internal ledger ("conto") and the competenza commission split.

A competenza of `base` is booked as three incoming transactions:

* the creator receives the FIACOM net amount, ``base * 0.8``;
* the responsabile_territoriale receives their profit share of the net amount
  (their own percentage, 20% when unset);
* the sportello_lavoro receives 30% of the net amount.

Amounts are rounded to cents, half up.
"""

from __future__ import annotations

import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from portale.db.filters import SKIP_SCOPE_FILTER
from portale.errors import AuthorizationError, ValidationError
from portale.models.conto import AccountType, ContoTransaction, TransactionStatus, TransactionType
from portale.models.entities import Company
from portale.models.mixins import utcnow
from portale.models.security import Role, User
from portale.schemas.conto import CompetenzaIn
from portale.security.context import AuthzContext

logger = logging.getLogger(__name__)

FIACOM_NET_RATIO = 0.8
DEFAULT_RESPONSABILE_PERCENT = 20.0
SPORTELLO_PERCENT = 30.0
COMPETENZA_CATEGORY = "Competenza"


def round2(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def normalize_percent(value: float | None, default: float = DEFAULT_RESPONSABILE_PERCENT) -> float:
    if value is None or not math.isfinite(value):
        return default
    return min(max(float(value), 0.0), 100.0)


def split_competenza(base_amount: float, responsabile_percent: float | None) -> dict[str, float]:
    fiacom = round2(base_amount * FIACOM_NET_RATIO)
    percent = normalize_percent(responsabile_percent)
    return {
        "base_amount": round2(base_amount),
        "fiacom_amount": fiacom,
        "responsabile_percent": percent,
        "responsabile_amount": round2(fiacom * percent / 100),
        "sportello_percent": SPORTELLO_PERCENT,
        "sportello_amount": round2(fiacom * SPORTELLO_PERCENT / 100),
    }


def _active_user_with_role(db: Session, user_id: int, role: Role) -> User | None:
    user = db.get(User, user_id)
    if user is None or not user.is_active or user.role != role:
        return None
    return user


def create_competenza(db: Session, authz: AuthzContext, payload: CompetenzaIn) -> dict[str, Any]:
    errors = []
    if not math.isfinite(payload.base_amount) or payload.base_amount <= 0:
        errors.append("Importo base must be greater than 0")

    responsabile = _active_user_with_role(db, payload.responsabile_id, Role.RESPONSABILE_TERRITORIALE)
    if responsabile is None:
        errors.append("Responsabile Territoriale non valido o inattivo")

    sportello = _active_user_with_role(db, payload.sportello_id, Role.SPORTELLO_LAVORO)
    if sportello is None:
        errors.append("Sportello Lavoro non valido o inattivo")

    if payload.company_id is not None:
        company = db.scalars(
            select(Company).where(Company.id == payload.company_id).execution_options(**{SKIP_SCOPE_FILTER: True})
        ).first()
        if company is None:
            errors.append("Azienda non valida")

    if errors:
        raise ValidationError(errors)

    split = split_competenza(payload.base_amount, responsabile.profit_share_percentage)
    label = (payload.description or "").strip() or COMPETENZA_CATEGORY
    when = payload.date or utcnow()

    rows = [
        (authz.user_id, split["fiacom_amount"], f"{label} - quota FIACOM"),
        (responsabile.id, split["responsabile_amount"], f"{label} - quota Responsabile Territoriale"),
        (sportello.id, split["sportello_amount"], f"{label} - quota Sportello Lavoro"),
    ]
    transactions = [
        ContoTransaction(
            user_id=owner_id,
            account=payload.account,
            amount=amount,
            raw_amount=split["base_amount"],
            type=TransactionType.ENTRATA,
            status=TransactionStatus.COMPLETATA,
            description=description,
            category=COMPETENZA_CATEGORY,
            company_id=payload.company_id,
            date=when,
        )
        for owner_id, amount, description in rows
    ]
    db.add_all(transactions)
    db.commit()
    for tx in transactions:
        db.refresh(tx)

    logger.info(
        "Competenza booked base=%s responsabile_id=%s sportello_id=%s by user_id=%s",
        split["base_amount"],
        responsabile.id,
        sportello.id,
        authz.user_id,
    )
    return {"split": split, "transactions": transactions}


def list_transactions(
    db: Session,
    authz: AuthzContext,
    *,
    user_id: int | None = None,
    account: AccountType | None = None,
) -> list[ContoTransaction]:
    stmt = select(ContoTransaction).where(authz.scope.clause(ContoTransaction.user_id))
    if user_id is not None:
        if not authz.scope.allows(user_id):
            raise AuthorizationError("Access denied")
        stmt = stmt.where(ContoTransaction.user_id == user_id)
    if account is not None:
        stmt = stmt.where(ContoTransaction.account == account)
    stmt = stmt.order_by(ContoTransaction.date.desc(), ContoTransaction.id.desc())
    return list(db.scalars(stmt).unique().all())


def summary(db: Session, authz: AuthzContext) -> dict[str, Any]:
    """Completed entrate / uscite and balance per account, within the caller's scope."""

    entrate = func.coalesce(
        func.sum(case((ContoTransaction.type == TransactionType.ENTRATA, ContoTransaction.amount), else_=0)), 0
    )
    uscite = func.coalesce(
        func.sum(case((ContoTransaction.type == TransactionType.USCITA, ContoTransaction.amount), else_=0)), 0
    )
    rows = db.execute(
        select(ContoTransaction.account, entrate, uscite)
        .where(
            authz.scope.clause(ContoTransaction.user_id),
            ContoTransaction.status == TransactionStatus.COMPLETATA,
        )
        .group_by(ContoTransaction.account)
    ).all()
    totals = {account: (float(e), float(u)) for account, e, u in rows}

    accounts = []
    for account in AccountType:
        e, u = totals.get(account, (0.0, 0.0))
        accounts.append({"account": account, "entrate": round2(e), "uscite": round2(u), "balance": round2(e - u)})
    return {"accounts": accounts, "total_balance": round2(sum(a["balance"] for a in accounts))}
