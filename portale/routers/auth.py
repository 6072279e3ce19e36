from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from portale.db.session import get_db
from portale.models.security import User
from portale.schemas.security import LoginIn, RegisterIn, TokenOut, UserOut
from portale.security.context import AuthzContext
from portale.security.dependencies import get_authz
from portale.services import users

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn, db: Session = Depends(get_db)) -> User:
    return users.register(db, payload)


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, db: Session = Depends(get_db)) -> dict:
    return users.login(db, payload.email, payload.password)


@router.get("/me", response_model=UserOut)
def me(authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)) -> User:
    # request.state.user belongs to the security dependency's (closed) session.
    return users.get_user(db, authz, authz.user_id)
