"""
Internal messages between users.

A user may write to anyone in their own visibility scope, to any admin, and
to their own manager. Admins may write to everyone. Read and trash state is
kept per recipient; the sender has a trash flag of their own on the message.
Deleting removes the caller's copy only, except for the sender, whose delete
removes the message for everybody.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from portale.errors import AuthorizationError, NotFoundError, ValidationError
from portale.models.messages import Message, MessageDelivery
from portale.models.mixins import utcnow
from portale.models.security import User
from portale.schemas.messages import MessageIn
from portale.security.context import AuthzContext

logger = logging.getLogger(__name__)


class Folder(str, Enum):
    INBOX = "inbox"
    SENT = "sent"
    TRASH = "trash"


def _can_reach(db: Session, authz: AuthzContext, target: User) -> bool:
    if authz.is_privileged or authz.scope.allows(target.id) or target.role.is_privileged:
        return True
    sender = db.get(User, authz.user_id)
    return sender is not None and sender.managed_by_id == target.id


def _view(message: Message, user_id: int) -> dict[str, Any]:
    delivery = message.delivery_for(user_id)
    if message.sender_id == user_id:
        read, trashed = True, message.sender_trashed
    else:
        read, trashed = delivery.read_at is not None, delivery.trashed_at is not None
    return {
        "id": message.id,
        "sender": message.sender,
        "recipients": [d.recipient for d in message.deliveries],
        "subject": message.subject,
        "body": message.body,
        "created_at": message.created_at,
        "read": read,
        "trashed": trashed,
    }


def _load(db: Session, user_id: int, message_id: int) -> Message:
    message = db.get(Message, message_id)
    if message is None:
        raise NotFoundError("Message not found")
    if message.sender_id != user_id and message.delivery_for(user_id) is None:
        raise AuthorizationError("Access denied")
    return message


def send(db: Session, authz: AuthzContext, payload: MessageIn) -> dict[str, Any]:
    errors = []
    subject = payload.subject.strip()
    body = payload.body.strip()
    if not subject:
        errors.append("Subject is required")
    if not body:
        errors.append("Message body is required")

    recipient_ids = list(dict.fromkeys(payload.recipient_ids))
    if authz.user_id in recipient_ids:
        errors.append("You cannot send a message to yourself")

    recipients = []
    for recipient_id in recipient_ids:
        if recipient_id == authz.user_id:
            continue
        user = db.get(User, recipient_id)
        if user is None or not user.is_active:
            errors.append(f"Recipient {recipient_id} not found or inactive")
            continue
        recipients.append(user)

    if errors:
        raise ValidationError(errors)

    for user in recipients:
        if not _can_reach(db, authz, user):
            raise AuthorizationError(f"You cannot message user {user.id}")

    message = Message(sender_id=authz.user_id, subject=subject, body=body)
    message.deliveries = [MessageDelivery(recipient_id=user.id) for user in recipients]
    db.add(message)
    db.commit()
    db.refresh(message)
    logger.info(
        "Message sent id=%s sender_id=%s recipients=%s", message.id, authz.user_id, [u.id for u in recipients]
    )
    return _view(message, authz.user_id)


def list_folder(db: Session, authz: AuthzContext, folder: Folder) -> list[dict[str, Any]]:
    user_id = authz.user_id
    delivery = MessageDelivery.recipient_id == user_id

    stmt = select(Message).outerjoin(
        MessageDelivery, and_(MessageDelivery.message_id == Message.id, delivery)
    )
    if folder == Folder.INBOX:
        stmt = stmt.where(delivery, MessageDelivery.trashed_at.is_(None))
    elif folder == Folder.SENT:
        stmt = stmt.where(Message.sender_id == user_id, Message.sender_trashed.is_(False))
    else:
        stmt = stmt.where(
            or_(
                and_(delivery, MessageDelivery.trashed_at.is_not(None)),
                and_(Message.sender_id == user_id, Message.sender_trashed.is_(True)),
            )
        )
    stmt = stmt.order_by(Message.created_at.desc(), Message.id.desc())
    return [_view(m, user_id) for m in db.scalars(stmt).unique().all()]


def get(db: Session, authz: AuthzContext, message_id: int) -> dict[str, Any]:
    """Return a message; opening it marks the caller's copy as read."""

    message = _load(db, authz.user_id, message_id)
    delivery = message.delivery_for(authz.user_id)
    if delivery is not None and delivery.read_at is None:
        delivery.read_at = utcnow()
        db.commit()
        db.refresh(message)
    return _view(message, authz.user_id)


def set_read(db: Session, authz: AuthzContext, message_id: int, read: bool) -> None:
    message = _load(db, authz.user_id, message_id)
    delivery = message.delivery_for(authz.user_id)
    if delivery is None:
        raise ValidationError("Only recipients can change the read state")
    delivery.read_at = utcnow() if read else None
    db.commit()


def trash(db: Session, authz: AuthzContext, message_id: int) -> None:
    message = _load(db, authz.user_id, message_id)
    delivery = message.delivery_for(authz.user_id)
    if delivery is not None:
        delivery.trashed_at = delivery.trashed_at or utcnow()
    if message.sender_id == authz.user_id:
        message.sender_trashed = True
    db.commit()
    logger.info("Message trashed id=%s user_id=%s", message_id, authz.user_id)


def delete(db: Session, authz: AuthzContext, message_id: int) -> None:
    message = _load(db, authz.user_id, message_id)
    if message.sender_id == authz.user_id:
        db.delete(message)
    else:
        message.deliveries.remove(message.delivery_for(authz.user_id))
    db.commit()
    logger.info("Message deleted id=%s user_id=%s", message_id, authz.user_id)


def stats(db: Session, authz: AuthzContext) -> dict[str, int]:
    user_id = authz.user_id
    mine = MessageDelivery.recipient_id == user_id

    def count_deliveries(*criteria) -> int:
        return db.scalar(select(func.count()).select_from(MessageDelivery).where(mine, *criteria)) or 0

    sent = db.scalar(
        select(func.count()).select_from(Message).where(Message.sender_id == user_id, Message.sender_trashed.is_(False))
    )
    sender_trash = db.scalar(
        select(func.count()).select_from(Message).where(Message.sender_id == user_id, Message.sender_trashed.is_(True))
    )
    return {
        "inbox": count_deliveries(MessageDelivery.trashed_at.is_(None)),
        "unread": count_deliveries(MessageDelivery.trashed_at.is_(None), MessageDelivery.read_at.is_(None)),
        "sent": sent or 0,
        "trash": count_deliveries(MessageDelivery.trashed_at.is_not(None)) + (sender_trash or 0),
    }
