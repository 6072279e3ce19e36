from __future__ import annotations

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from portale.db.session import get_db
from portale.models.security import Role
from portale.schemas.approvals import DecisionOut, PendingOut, RejectIn
from portale.security.context import AuthzContext
from portale.security.decorators import require_roles
from portale.security.dependencies import get_authz
from portale.services import approval

router = APIRouter(prefix="/approvals", tags=["approvals"])

ADMINS = [Role.ADMIN, Role.SUPER_ADMIN]


@router.get("/pending", response_model=PendingOut)
@require_roles(ADMINS)
def pending(db: Session = Depends(get_db)) -> dict:
    return approval.pending_items(db)


@router.post("/approve/{item_type}/{item_id}", response_model=DecisionOut)
@require_roles(ADMINS)
def approve(
    item_type: str, item_id: int, authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)
) -> dict:
    return approval.approve_item(db, authz, item_type, item_id)


@router.post("/reject/{item_type}/{item_id}", response_model=DecisionOut)
@require_roles(ADMINS)
def reject(
    item_type: str,
    item_id: int,
    payload: RejectIn | None = Body(default=None),
    authz: AuthzContext = Depends(get_authz),
    db: Session = Depends(get_db),
) -> dict:
    reason = payload.reason if payload is not None else None
    return approval.reject_item(db, authz, item_type, item_id, reason)
