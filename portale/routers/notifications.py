from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portale.db.session import get_db
from portale.models.notifications import Notification
from portale.schemas.notifications import MarkAllReadOut, NotificationOut, NotificationStatsOut, UnreadCountOut
from portale.security.context import AuthzContext
from portale.security.dependencies import get_authz
from portale.services import notifications

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationOut])
def list_notifications(
    authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)
) -> list[Notification]:
    # Only admins receive notifications.
    if not authz.is_privileged:
        return []
    return notifications.list_for_user(db, authz.user_id)


@router.get("/unread-count", response_model=UnreadCountOut)
def unread_count(authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)) -> dict:
    if not authz.is_privileged:
        return {"count": 0}
    return {"count": notifications.count_unread(db, authz.user_id)}


@router.get("/stats", response_model=NotificationStatsOut)
def stats(db: Session = Depends(get_db)) -> dict:
    return notifications.stats(db)


@router.put("/read-all", response_model=MarkAllReadOut)
def mark_all_read(authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)) -> dict:
    count = notifications.mark_all_read(db, authz.user_id)
    return {"message": "All notifications marked as read", "count": count}


@router.put("/{notification_id}/read")
def mark_read(
    notification_id: int, authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)
) -> dict[str, str]:
    notifications.mark_read(db, notification_id, authz.user_id)
    return {"message": "Notification marked as read"}


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: int, authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)
) -> dict[str, str]:
    notifications.delete_notification(db, notification_id, authz.user_id)
    return {"message": "Notification deleted"}
