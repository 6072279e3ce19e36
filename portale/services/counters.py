from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from portale.models.dashboard import COUNTER_FIELDS, DashboardStats

logger = logging.getLogger(__name__)


class DashboardCounter(Protocol):
    """Bumps a per-user dashboard counter. Passed into services so tests can swap it."""

    def increment(self, db: Session, user_id: int, field: str, amount: int = 1) -> None: ...


class SqlDashboardCounter:
    """
    Upsert-and-increment on the `dashboard_stats` row of a user.

    Runs inside the caller's session, so the increment commits or rolls back
    together with the entity write that triggered it.
    """

    def increment(self, db: Session, user_id: int, field: str, amount: int = 1) -> None:
        if field not in COUNTER_FIELDS:
            raise ValueError(f"Unknown dashboard counter: {field}")

        stats = db.scalars(select(DashboardStats).where(DashboardStats.user_id == user_id)).first()
        if stats is None:
            stats = DashboardStats(user_id=user_id)
            db.add(stats)
            db.flush()

        setattr(stats, field, (getattr(stats, field) or 0) + amount)
        logger.debug("Dashboard counter user_id=%s field=%s +%s", user_id, field, amount)


def get_dashboard_counter() -> DashboardCounter:
    return SqlDashboardCounter()
