"""
User accounts: self-registration, login, managed creation and maintenance.

Users created by a non-privileged user are attached below their creator in the
management forest and wait for admin approval, exactly like approvable
entities. Self-registered users are segnalatori pending approval.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portale.db.base import Base
from portale.db.filters import SKIP_SCOPE_FILTER
from portale.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from portale.models import conto, entities  # noqa: F401  (owned models, see _owned_models)
from portale.models.dashboard import DashboardStats
from portale.models.messages import Message, MessageDelivery
from portale.models.mixins import ApprovalMixin, ApprovalStatus, OwnedMixin, utcnow
from portale.models.notifications import Notification, NotificationRead, NotificationType, notification_recipients
from portale.models.projects import ProjectTemplate
from portale.models.security import Role, User
from portale.schemas.security import PasswordChangeIn, RegisterIn, UserCreateIn, UserUpdateIn
from portale.security.auth import authenticate, create_access_token, hash_password, verify_password
from portale.security.context import AuthzContext
from portale.services.notifications import notify

logger = logging.getLogger(__name__)

_PRIVILEGED_FIELDS = ("role", "is_active", "profit_share_percentage")


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _pending_type(role: Role) -> NotificationType:
    return NotificationType.SEGNALATORE_PENDING if role == Role.SEGNALATORI else NotificationType.USER_PENDING


def _ensure_email_free(db: Session, email: str) -> None:
    if db.scalar(select(exists().where(User.email == email))):
        raise ConflictError("User already exists")


def _flush_new_user(db: Session) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("User already exists") from exc


def register(db: Session, payload: RegisterIn) -> User:
    email = _normalize_email(payload.email)
    _ensure_email_free(db, email)

    user = User(
        username=payload.username.strip(),
        email=email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        organization=payload.organization,
        role=Role.SEGNALATORI,
        approval_status=ApprovalStatus.PENDING,
        is_active=True,
    )
    db.add(user)
    _flush_new_user(db)

    notify(
        db,
        title="New Segnalatore Registration",
        message=f'"{user.display_name}" registered as segnalatore and requires approval',
        type=NotificationType.SEGNALATORE_PENDING,
        entity_id=user.id,
        entity_name=user.display_name,
        created_by=user.id,
        created_by_name=user.display_name,
    )
    db.commit()
    db.refresh(user)
    logger.info("Registered user id=%s role=%s", user.id, user.role.value)
    return user


def login(db: Session, email: str, password: str) -> dict[str, Any]:
    user = authenticate(db, email, password)
    logger.info("Login user_id=%s", user.id)
    return {"token": create_access_token(user), "token_type": "bearer", "user": user}


def create_user(db: Session, authz: AuthzContext, payload: UserCreateIn) -> User:
    """
    Create an account on behalf of the current user.

    Admins create approved accounts of any role under any manager; everyone else
    may only create roles ranked below their own, managed by themselves and
    pending approval.
    """

    role = payload.role
    if authz.is_privileged:
        managed_by_id = payload.managed_by_id
        if managed_by_id is not None and db.get(User, managed_by_id) is None:
            raise ValidationError("Manager not found")
        status = ApprovalStatus.APPROVED
    else:
        if role.rank >= authz.role.rank:
            raise AuthorizationError(f"You cannot create users with role {role.value}")
        managed_by_id = authz.user_id
        status = ApprovalStatus.PENDING

    email = _normalize_email(payload.email)
    _ensure_email_free(db, email)

    user = User(
        username=payload.username.strip(),
        email=email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        organization=payload.organization,
        role=role,
        managed_by_id=managed_by_id,
        profit_share_percentage=payload.profit_share_percentage if authz.is_privileged else None,
        approval_status=status,
        is_active=True,
    )
    if status == ApprovalStatus.APPROVED:
        user.approved_by_id = authz.user_id
        user.approved_at = utcnow()

    db.add(user)
    _flush_new_user(db)

    if status == ApprovalStatus.PENDING:
        notify(
            db,
            title="New User Pending Approval",
            message=(
                f'{authz.display_name} created user "{user.display_name}" ({role.value}) that requires approval'
            ),
            type=_pending_type(role),
            entity_id=user.id,
            entity_name=user.display_name,
            created_by=authz.user_id,
            created_by_name=authz.display_name,
        )

    db.commit()
    db.refresh(user)
    logger.info(
        "Created user id=%s role=%s managed_by_id=%s by user_id=%s",
        user.id,
        role.value,
        managed_by_id,
        authz.user_id,
    )
    return user


def list_users(db: Session, authz: AuthzContext) -> list[User]:
    stmt = select(User).where(authz.scope.clause(User.id)).order_by(User.created_at.desc(), User.id.desc())
    return list(db.scalars(stmt).all())


def get_user(db: Session, authz: AuthzContext, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    if not authz.scope.allows(user.id):
        raise AuthorizationError("Access denied")
    return user


def update_user(db: Session, authz: AuthzContext, user_id: int, payload: UserUpdateIn) -> User:
    if user_id != authz.user_id and not authz.is_privileged:
        raise AuthorizationError("Access denied")
    user = get_user(db, authz, user_id)

    data = payload.model_dump(exclude_unset=True)
    if not authz.is_privileged and any(field in data for field in _PRIVILEGED_FIELDS):
        raise AuthorizationError("Only administrators can change role, status or profit share")

    if "username" in data and not (data["username"] or "").strip():
        raise ValidationError("Username cannot be empty")

    for key, value in data.items():
        if value is None and key in ("username", "role", "is_active"):
            continue
        setattr(user, key, value)

    db.commit()
    db.refresh(user)
    logger.info("Updated user id=%s fields=%s by user_id=%s", user.id, sorted(data), authz.user_id)
    return user


def _owned_models() -> list[type]:
    return [m.class_ for m in Base.registry.mappers if issubclass(m.class_, OwnedMixin)]


def _owns_records(db: Session, user_id: int) -> bool:
    checks = [exists().where(model.user_id == user_id) for model in _owned_models()]
    checks.append(exists().where(Message.sender_id == user_id))
    return any(db.scalar(select(check).execution_options(**{SKIP_SCOPE_FILTER: True})) for check in checks)


def _release_references(db: Session, user_id: int) -> None:
    """Drop per-user bookkeeping rows and clear audit references to `user_id`."""

    db.execute(delete(DashboardStats).where(DashboardStats.user_id == user_id))
    db.execute(delete(NotificationRead).where(NotificationRead.user_id == user_id))
    db.execute(delete(notification_recipients).where(notification_recipients.c.user_id == user_id))
    db.execute(delete(MessageDelivery).where(MessageDelivery.recipient_id == user_id))
    db.execute(update(Notification).where(Notification.created_by_id == user_id).values(created_by_id=None))
    db.execute(update(ProjectTemplate).where(ProjectTemplate.created_by_id == user_id).values(created_by_id=None))

    for mapper in Base.registry.mappers:
        model = mapper.class_
        if issubclass(model, ApprovalMixin):
            db.execute(update(model).where(model.approved_by_id == user_id).values(approved_by_id=None))
            db.execute(update(model).where(model.rejected_by_id == user_id).values(rejected_by_id=None))


def delete_user(db: Session, authz: AuthzContext, user_id: int) -> None:
    """
    Delete an account that no longer owns anything.

    Managed users, owned records and sent messages block the delete. SQLite
    does not enforce foreign keys by default, so this is checked up front rather
    than left to the database. Bookkeeping rows of the user are removed and
    approval and authorship references to them are cleared.
    """

    if user_id == authz.user_id:
        raise ValidationError("You cannot delete your own account")
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    if db.scalar(select(exists().where(User.managed_by_id == user_id))):
        raise ConflictError("User still manages other users")
    if _owns_records(db, user_id):
        raise ConflictError("User still owns records")

    _release_references(db, user_id)
    db.delete(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("User still owns records") from exc
    logger.info("Deleted user id=%s by user_id=%s", user_id, authz.user_id)


def change_password(db: Session, authz: AuthzContext, payload: PasswordChangeIn) -> None:
    user = db.get(User, authz.user_id)
    if user is None:
        raise NotFoundError("User not found")
    if not verify_password(payload.current_password, user.password_hash):
        raise ValidationError("Current password is incorrect")

    user.password_hash = hash_password(payload.new_password)
    db.commit()
    logger.info("Password changed user_id=%s", user.id)
