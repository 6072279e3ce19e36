from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portale.db.session import get_db
from portale.schemas.dashboard import DashboardOut
from portale.security.context import AuthzContext
from portale.security.dependencies import get_authz
from portale.services import dashboard

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardOut)
def stats(authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)) -> dict:
    return dashboard.stats(db, authz)
