from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from fastapi import Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from portale.errors import AuthenticationError
from portale.models.security import User
from portale.security.config import SecurityConfig
from portale.settings import get_settings

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"

_password_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return _password_hasher.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def create_access_token(user: User, *, secret: str | None = None, ttl_minutes: int | None = None) -> str:
    """
    Issue a signed HS256 access token.

    Claims: `sub` (user id as string), `role`, `iat`, `exp`.
    """

    settings = get_settings()
    now = datetime.now(timezone.utc)
    ttl = ttl_minutes if ttl_minutes is not None else settings.jwt_access_ttl_minutes
    payload = {
        "sub": str(user.id),
        "role": user.role.value,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl)).timestamp()),
    }
    return jwt.encode(payload, secret or settings.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str, *, secret: str | None = None) -> int:
    """Validate signature and expiry; return the user id from `sub`."""

    try:
        payload = jwt.decode(
            token,
            secret or get_settings().jwt_secret,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError("Token is not valid") from exc

    try:
        return int(payload["sub"])
    except (TypeError, ValueError) as exc:
        raise AuthenticationError("Token is not valid") from exc


def extract_user_id(request: Request, config: SecurityConfig) -> int | None:
    """
    Extract `Authorization: Bearer <token>` and return the user id it names.

    Returns None when the header is missing; raises AuthenticationError when it
    is present but unusable.
    """

    header_name = config.auth.authorization_header
    bearer_prefix = config.auth.bearer_prefix

    raw = request.headers.get(header_name)
    if not raw:
        logger.info("Missing Authorization header (auth required) path=%s method=%s", request.url.path, request.method)
        return None

    prefix = f"{bearer_prefix} "
    if not raw.startswith(prefix):
        logger.warning("Invalid Authorization header format path=%s method=%s", request.url.path, request.method)
        raise AuthenticationError(f"Invalid {header_name}. Expected '{bearer_prefix} <token>'.")

    token = raw[len(prefix) :].strip()
    if not token:
        logger.warning("Empty bearer token path=%s method=%s", request.url.path, request.method)
        raise AuthenticationError(f"Invalid {header_name}. Missing token after '{bearer_prefix}'.")

    return decode_access_token(token)


def load_user(db: Session, user_id: int) -> User:
    user = db.execute(select(User).where(User.id == user_id)).scalar_one_or_none()

    if user is None or not user.is_active:
        raise AuthenticationError("Invalid or inactive user")

    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """Check credentials. Unknown email and wrong password look the same to the caller."""

    normalized = (email or "").strip().lower()
    user = db.execute(select(User).where(User.email == normalized)).scalar_one_or_none()
    if user is None or not verify_password(password or "", user.password_hash):
        logger.info("Login failed email=%s", normalized)
        raise AuthenticationError("Invalid email or password")
    if not user.is_active:
        raise AuthenticationError("Invalid or inactive user")
    return user
