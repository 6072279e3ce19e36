"""
Admin notifications for the approval workflow.

`notify` fans a notification out to every active admin / super_admin. It never
raises: the approval transition or entity creation that triggered it must
succeed even if the notification cannot be written, so the insert runs in a
SAVEPOINT and failures are logged and rolled back on their own.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy import delete, exists, func, select
from sqlalchemy.orm import Session, selectinload

from portale.errors import NotFoundError
from portale.models.mixins import utcnow
from portale.models.notifications import Notification, NotificationRead, NotificationType, notification_recipients
from portale.models.security import PRIVILEGED_ROLES, User

logger = logging.getLogger(__name__)

LIST_LIMIT = 50


def notify(
    db: Session,
    *,
    title: str,
    message: str,
    type: NotificationType,
    entity_id: int | str,
    entity_name: str,
    created_by: int,
    created_by_name: str,
) -> Notification | None:
    try:
        with db.begin_nested():
            admins = list(
                db.scalars(
                    select(User).where(User.role.in_(PRIVILEGED_ROLES), User.is_active.is_(True))
                ).all()
            )
            if not admins:
                logger.warning("No admin users found to notify title=%r", title)
                return None

            notification = Notification(
                title=title,
                message=message,
                type=type,
                entity_id=str(entity_id),
                entity_name=entity_name,
                created_by_id=created_by,
                created_by_name=created_by_name,
                recipients=admins,
            )
            db.add(notification)
            db.flush()
    except Exception:
        logger.exception("Failed to create notification title=%r type=%s", title, type.value)
        return None

    logger.info("Notification created for %s admin(s): %s", len(admins), title)
    return notification


def _recipient_clause(user_id: int):
    return exists().where(
        notification_recipients.c.notification_id == Notification.id,
        notification_recipients.c.user_id == user_id,
    )


def _unread_clause(user_id: int):
    return ~exists().where(
        NotificationRead.notification_id == Notification.id,
        NotificationRead.user_id == user_id,
    )


def list_for_user(db: Session, user_id: int) -> list[Notification]:
    """Unread notifications addressed to the user, newest first."""

    stmt = (
        select(Notification)
        .where(_recipient_clause(user_id), _unread_clause(user_id))
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(LIST_LIMIT)
    )
    return list(db.scalars(stmt).all())


def count_unread(db: Session, user_id: int) -> int:
    stmt = select(func.count(Notification.id)).where(_recipient_clause(user_id), _unread_clause(user_id))
    return int(db.scalar(stmt) or 0)


def mark_read(db: Session, notification_id: int, user_id: int) -> None:
    notification = db.scalars(
        select(Notification)
        .where(Notification.id == notification_id, _recipient_clause(user_id))
        .options(selectinload(Notification.reads))
    ).first()
    if notification is None or notification.is_read_by(user_id):
        raise NotFoundError("Notification not found or already read")

    notification.reads.append(NotificationRead(user_id=user_id, read_at=utcnow()))
    db.commit()


def mark_all_read(db: Session, user_id: int) -> int:
    unread_ids = db.scalars(
        select(Notification.id).where(_recipient_clause(user_id), _unread_clause(user_id))
    ).all()
    now = utcnow()
    db.add_all(NotificationRead(notification_id=nid, user_id=user_id, read_at=now) for nid in unread_ids)
    db.commit()
    return len(unread_ids)


def delete_notification(db: Session, notification_id: int, user_id: int) -> None:
    notification = db.scalars(
        select(Notification).where(Notification.id == notification_id, _recipient_clause(user_id))
    ).first()
    if notification is None:
        raise NotFoundError("Notification not found")

    db.delete(notification)
    db.commit()


def cleanup_older_than(db: Session, days: int) -> int:
    cutoff = utcnow() - timedelta(days=days)
    old_ids = list(db.scalars(select(Notification.id).where(Notification.created_at < cutoff)).all())
    if old_ids:
        db.execute(delete(NotificationRead).where(NotificationRead.notification_id.in_(old_ids)))
        db.execute(
            delete(notification_recipients).where(notification_recipients.c.notification_id.in_(old_ids))
        )
        db.execute(delete(Notification).where(Notification.id.in_(old_ids)))
    db.commit()
    logger.info("Cleaned up %s old notifications (older than %s days)", len(old_ids), days)
    return len(old_ids)


def stats(db: Session) -> dict:
    rows = db.execute(
        select(Notification.type, func.count(Notification.id), func.max(Notification.created_at)).group_by(
            Notification.type
        )
    ).all()
    return {
        "total": int(db.scalar(select(func.count(Notification.id))) or 0),
        "by_type": [{"type": t.value, "count": c, "latest": latest} for t, c, latest in rows],
        "generated_at": utcnow(),
    }
