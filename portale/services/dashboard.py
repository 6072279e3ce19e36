from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from portale.models.dashboard import DashboardStats
from portale.models.entities import Agente, Company, Employee, Segnalatore, SportelloLavoro, Supplier
from portale.models.mixins import utcnow
from portale.models.projects import Project
from portale.security.context import AuthzContext
from portale.services import conto, notifications

logger = logging.getLogger(__name__)

_COUNTED = {
    "companies": Company,
    "sportelli": SportelloLavoro,
    "agenti": Agente,
    "segnalatori": Segnalatore,
    "suppliers": Supplier,
    "employees": Employee,
    "projects": Project,
}


def _count(db: Session, authz: AuthzContext, model: type) -> int:
    stmt = select(func.count(model.id)).where(authz.scope.clause(model.user_id))
    return int(db.scalar(stmt) or 0)


def stats(db: Session, authz: AuthzContext) -> dict[str, Any]:
    """
    Recompute the caller's dashboard from live data and store it as their snapshot row.

    Counts are limited to the caller's scope; notifications only exist for
    privileged users, so everyone else sees zero unread.
    """

    counts = {field: _count(db, authz, model) for field, model in _COUNTED.items()}
    counts["unread_notifications"] = (
        notifications.count_unread(db, authz.user_id) if authz.is_privileged else 0
    )

    company_employees = db.scalar(
        select(func.coalesce(func.sum(Company.employees), 0)).where(authz.scope.clause(Company.user_id))
    )
    ledger = conto.summary(db, authz)

    snapshot = db.scalars(select(DashboardStats).where(DashboardStats.user_id == authz.user_id)).first()
    if snapshot is None:
        snapshot = DashboardStats(user_id=authz.user_id)
        db.add(snapshot)
    for field, value in counts.items():
        setattr(snapshot, field, value)
    snapshot.updated_at = utcnow()
    db.commit()

    logger.debug("Dashboard refreshed user_id=%s counts=%s", authz.user_id, counts)
    return {
        **counts,
        "company_employees": int(company_employees or 0),
        "ledger": ledger,
        "updated_at": snapshot.updated_at,
    }
