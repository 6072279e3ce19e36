from __future__ import annotations

import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from portale.db.session import get_db
from portale.errors import AuthenticationError, AuthorizationError
from portale.models.security import User
from portale.security.auth import extract_user_id, load_user
from portale.security.config import SecurityConfig
from portale.security.context import AuthzContext
from portale.security.scope import resolve_scope

logger = logging.getLogger(__name__)


def get_security_config(request: Request) -> SecurityConfig:
    config = getattr(request.app.state, "security_config", None)
    if config is None:
        raise RuntimeError("Security config not loaded. Did app startup run?")
    return config


def get_current_user(request: Request) -> User:
    user = getattr(request.state, "user", None)
    if user is None:
        raise AuthenticationError("User not authenticated")
    return user


def get_authz(request: Request) -> AuthzContext:
    authz = getattr(request.state, "authz", None)
    if authz is None:
        raise AuthenticationError("User not authenticated")
    return authz


def enforce_security(
    request: Request,
    config: SecurityConfig = Depends(get_security_config),
    db: Session = Depends(get_db, use_cache=False),
) -> None:
    """
    Global security dependency, configuration-driven.

    Runs after routing, so it can also read decorator metadata from the endpoint.
    Route handlers never repeat authentication or role checks.
    """

    path = request.url.path
    method = request.method.upper()

    rule = config.match(path, method)

    endpoint = request.scope.get("endpoint")
    decorator_roles = set(getattr(endpoint, "__security_required_roles__", set())) if endpoint else set()
    decorator_scope = bool(getattr(endpoint, "__security_scope_by_owner__", False)) if endpoint else False

    auth_required = rule.auth_required or bool(decorator_roles) or decorator_scope
    if not auth_required:
        return

    user_id = extract_user_id(request, config)
    if user_id is None:
        raise AuthenticationError("No authentication token, access denied")

    user = load_user(db, user_id)
    request.state.user = user

    required_roles = set(rule.required_roles) | decorator_roles
    if required_roles and user.role not in required_roles:
        logger.info(
            "Role check failed user_id=%s role=%s path=%s method=%s",
            user.id,
            user.role.value,
            path,
            method,
        )
        raise AuthorizationError("Access denied, insufficient permissions")

    request.state.authz = AuthzContext(
        user_id=user.id,
        role=user.role,
        display_name=user.display_name,
        scope=resolve_scope(db, user.id, user.role),
        scope_by_owner=rule.scope_by_owner or decorator_scope,
    )


def get_scoped_db(
    db: Session = Depends(get_db),
    authz: AuthzContext = Depends(get_authz),
) -> Session:
    """
    Request session with the caller's AuthzContext bound for db/filters.py.

    FastAPI caches the `get_db` session that `enforce_security` opened before
    the caller was resolved, so `get_db` alone never sees `request.state.authz`.
    Routes whose queries rely on the owner-scope hook take this instead.
    """

    db.info["authz"] = authz
    return db
