from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from portale.db.base import Base
from portale.db.session import SessionLocal, engine
# Imported to register their tables on Base.metadata.
from portale.models import conto, dashboard, entities, messages, notifications, projects, security  # noqa: F401
from portale.models.mixins import ApprovalStatus, utcnow
from portale.models.security import Role, User
from portale.security.auth import hash_password
from portale.settings import get_settings

logger = logging.getLogger(__name__)


def init_db() -> None:
    """
    Create tables and, on an empty database, the bootstrap super_admin.

    The super_admin is only created when both PORTALE_BOOTSTRAP_ADMIN_EMAIL and
    PORTALE_BOOTSTRAP_ADMIN_PASSWORD are set.
    """

    Base.metadata.create_all(bind=engine)

    with SessionLocal() as db:
        if _has_users(db):
            return
        _bootstrap_admin(db)


def _has_users(db: Session) -> bool:
    return db.execute(select(User.id).limit(1)).first() is not None


def _bootstrap_admin(db: Session) -> None:
    settings = get_settings()
    if not settings.bootstrap_admin_email or not settings.bootstrap_admin_password:
        logger.warning("Empty user table and no bootstrap admin configured")
        return

    email = settings.bootstrap_admin_email.strip().lower()
    admin = User(
        username=email.split("@")[0],
        email=email,
        password_hash=hash_password(settings.bootstrap_admin_password),
        role=Role.SUPER_ADMIN,
        approval_status=ApprovalStatus.APPROVED,
        approved_at=utcnow(),
        is_active=True,
    )
    db.add(admin)
    db.commit()
    logger.info("Bootstrap super_admin created email=%s", email)
