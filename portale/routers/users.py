from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from portale.db.session import get_db
from portale.models.security import User
from portale.schemas.security import PasswordChangeIn, UserCreateIn, UserOut, UserUpdateIn
from portale.security.context import AuthzContext
from portale.security.dependencies import get_authz
from portale.services import users

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserOut])
def list_users(authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)) -> list[User]:
    return users.list_users(db, authz)


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreateIn, authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)
) -> User:
    return users.create_user(db, authz, payload)


@router.put("/me/password")
def change_password(
    payload: PasswordChangeIn, authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)
) -> dict[str, str]:
    users.change_password(db, authz, payload)
    return {"message": "Password updated successfully"}


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)) -> User:
    return users.get_user(db, authz, user_id)


@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    payload: UserUpdateIn,
    authz: AuthzContext = Depends(get_authz),
    db: Session = Depends(get_db),
) -> User:
    return users.update_user(db, authz, user_id, payload)


@router.delete("/{user_id}")
def delete_user(
    user_id: int, authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)
) -> dict[str, str]:
    # Admin-only, see config/security_config.yaml.
    users.delete_user(db, authz, user_id)
    return {"message": "User deleted successfully"}
