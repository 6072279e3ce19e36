"""
Approval lifecycle shared by companies, sportelli, agenti, segnalatori and
segnalatore user accounts.

States are pending -> approved | rejected. Admins may override a decision in
either direction; repeating the current decision changes nothing and sends no
notification.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from portale.db.filters import SKIP_SCOPE_FILTER
from portale.errors import AuthorizationError, NotFoundError, ValidationError
from portale.models.mixins import ApprovalStatus, utcnow
from portale.models.notifications import NotificationType
from portale.models.security import Role, User
from portale.security.context import AuthzContext
from portale.services.kinds import APPROVABLE_KINDS, SEGNALATORE, EntityKind
from portale.services.notifications import notify

logger = logging.getLogger(__name__)

USER_TYPE = "user"


# ---- State transitions -------------------------------------------------------------


def creation_status(kind: EntityKind, role: Role) -> ApprovalStatus:
    """Initial status of a record created by `role`; raises if the role may not create it."""

    if role.is_privileged:
        return ApprovalStatus.APPROVED
    if kind.approval_roles is not None and role in kind.approval_roles:
        return ApprovalStatus.PENDING
    raise AuthorizationError(f"Your role cannot create {kind.label} records")


def apply_creation_state(record: Any, status: ApprovalStatus, actor_id: int) -> None:
    record.approval_status = status
    if status == ApprovalStatus.APPROVED:
        record.is_active = True
        record.approved_by_id = actor_id
        record.approved_at = utcnow()
    else:
        record.is_active = False


def approve(record: Any, actor_id: int) -> bool:
    """Mark the record approved. Returns False when it already was."""

    if record.approval_status == ApprovalStatus.APPROVED:
        return False

    record.approval_status = ApprovalStatus.APPROVED
    record.is_active = True
    record.approved_by_id = actor_id
    record.approved_at = utcnow()
    record.rejection_reason = None
    record.rejected_by_id = None
    record.rejected_at = None
    return True


def reject(record: Any, actor_id: int, reason: str | None) -> bool:
    """Mark the record rejected. Returns False when it already was."""

    if record.approval_status == ApprovalStatus.REJECTED:
        return False

    record.approval_status = ApprovalStatus.REJECTED
    record.is_active = False
    record.rejection_reason = reason or None
    record.rejected_by_id = actor_id
    record.rejected_at = utcnow()
    record.approved_by_id = None
    record.approved_at = None
    return True


# ---- Approvals endpoints -----------------------------------------------------------


def _load(db: Session, model: type, item_id: int) -> Any | None:
    return db.scalars(
        select(model).where(model.id == item_id).execution_options(**{SKIP_SCOPE_FILTER: True})
    ).first()


def _resolve_item(db: Session, item_type: str, item_id: int) -> tuple[str, Any]:
    """
    Find the record behind an (item_type, id) pair.

    "user" first looks for a user account and falls back to the segnalatore
    table, because pending segnalatori are listed from both places.
    """

    if item_type == USER_TYPE:
        user = _load(db, User, item_id)
        if user is not None:
            return USER_TYPE, user
        item_type = SEGNALATORE.name

    kind = APPROVABLE_KINDS.get(item_type)
    if kind is None:
        raise ValidationError("Invalid item type")

    record = _load(db, kind.model, item_id)
    if record is None:
        raise NotFoundError("Item not found")
    return kind.name, record


def _describe(item_type: str, record: Any) -> tuple[str, NotificationType]:
    if item_type == USER_TYPE:
        if record.role == Role.SEGNALATORI:
            return "Segnalatore", NotificationType.SEGNALATORE_PENDING
        return "User", NotificationType.USER_PENDING
    kind = APPROVABLE_KINDS[item_type]
    return kind.label, kind.notification_type


def approve_item(db: Session, authz: AuthzContext, item_type: str, item_id: int) -> dict[str, Any]:
    resolved_type, record = _resolve_item(db, item_type, item_id)
    label, notification_type = _describe(resolved_type, record)
    name = record.display_name

    if approve(record, authz.user_id):
        notify(
            db,
            title=f"{label} Approved: {name}",
            message=f'{label} "{name}" has been approved by {authz.display_name}',
            type=notification_type,
            entity_id=record.id,
            entity_name=name,
            created_by=authz.user_id,
            created_by_name=authz.display_name,
        )
        logger.info("Approved %s id=%s by user_id=%s", resolved_type, record.id, authz.user_id)
    else:
        logger.info("%s id=%s already approved, nothing to do", resolved_type, record.id)
    db.commit()

    return {
        "message": f"{label} approved successfully",
        "item": {"id": record.id, "type": resolved_type, "name": name, "status": ApprovalStatus.APPROVED.value},
    }


def reject_item(
    db: Session, authz: AuthzContext, item_type: str, item_id: int, reason: str | None
) -> dict[str, Any]:
    resolved_type, record = _resolve_item(db, item_type, item_id)
    label, notification_type = _describe(resolved_type, record)
    name = record.display_name

    if reject(record, authz.user_id, reason):
        message = f'{label} "{name}" has been rejected by {authz.display_name}'
        if reason:
            message += f". Reason: {reason}"
        notify(
            db,
            title=f"{label} Rejected: {name}",
            message=message,
            type=notification_type,
            entity_id=record.id,
            entity_name=name,
            created_by=authz.user_id,
            created_by_name=authz.display_name,
        )
        logger.info("Rejected %s id=%s by user_id=%s", resolved_type, record.id, authz.user_id)
    else:
        logger.info("%s id=%s already rejected, nothing to do", resolved_type, record.id)
    db.commit()

    return {
        "message": f"{label} rejected successfully",
        "item": {
            "id": record.id,
            "type": resolved_type,
            "name": name,
            "status": ApprovalStatus.REJECTED.value,
            "reason": record.rejection_reason,
        },
    }


# ---- Pending listing ----------------------------------------------------------------


def _not_approved(model: type):
    # NULL status rows predate the approval columns and count as pending.
    return or_(model.approval_status.is_(None), model.approval_status != ApprovalStatus.APPROVED)


def _status_of(record: Any) -> str:
    return (record.approval_status or ApprovalStatus.PENDING).value


def _owner_summary(record: Any) -> dict[str, Any] | None:
    owner = getattr(record, "owner", None)
    if owner is None:
        return None
    return {
        "id": owner.id,
        "username": owner.username,
        "first_name": owner.first_name,
        "last_name": owner.last_name,
        "role": owner.role,
    }


def _summary(item_type: str, record: Any) -> dict[str, Any]:
    return {
        "id": record.id,
        "type": item_type,
        "name": record.display_name,
        "email": getattr(record, "email", None) or None,
        "status": _status_of(record),
        "rejection_reason": record.rejection_reason,
        "created_at": record.created_at,
        "owner": _owner_summary(record),
    }


_PENDING_GROUPS = {
    "company": "companies",
    "sportello": "sportelli",
    "agente": "agenti",
    "segnalatore": "segnalatori",
}


def pending_items(db: Session) -> dict[str, Any]:
    """Everything not yet approved, grouped by type, newest first."""

    result: dict[str, Any] = {group: [] for group in _PENDING_GROUPS.values()}

    for name, kind in APPROVABLE_KINDS.items():
        model = kind.model
        rows = db.scalars(
            select(model)
            .where(_not_approved(model))
            .order_by(model.created_at.desc(), model.id.desc())
            .execution_options(**{SKIP_SCOPE_FILTER: True})
        ).unique().all()
        result[_PENDING_GROUPS[name]].extend(_summary(name, row) for row in rows)

    users = db.scalars(
        select(User)
        .where(User.role == Role.SEGNALATORI, _not_approved(User))
        .order_by(User.created_at.desc(), User.id.desc())
    ).all()
    result["segnalatori"].extend(_summary(USER_TYPE, user) for user in users)

    result["total"] = sum(len(result[group]) for group in _PENDING_GROUPS.values())
    return result
