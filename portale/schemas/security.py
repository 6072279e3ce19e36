from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from portale.models.mixins import ApprovalStatus
from portale.models.security import Role


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    first_name: str | None
    last_name: str | None
    organization: str | None
    role: Role
    is_active: bool
    managed_by_id: int | None
    profit_share_percentage: float | None
    approval_status: ApprovalStatus | None
    is_approved: bool
    pending_approval: bool
    created_at: datetime


class RegisterIn(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    email: str = Field(min_length=3, max_length=100)
    password: str = Field(min_length=6)
    first_name: str | None = None
    last_name: str | None = None
    organization: str | None = None


class LoginIn(BaseModel):
    email: str
    password: str


class TokenOut(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserOut


class UserCreateIn(RegisterIn):
    role: Role = Role.SEGNALATORI
    managed_by_id: int | None = None
    profit_share_percentage: float | None = Field(default=None, ge=0, le=100)


class UserUpdateIn(BaseModel):
    username: str | None = Field(default=None, min_length=1, max_length=50)
    first_name: str | None = None
    last_name: str | None = None
    organization: str | None = None
    role: Role | None = None
    is_active: bool | None = None
    profit_share_percentage: float | None = Field(default=None, ge=0, le=100)


class PasswordChangeIn(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)
