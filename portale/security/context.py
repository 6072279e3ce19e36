from __future__ import annotations

from dataclasses import dataclass

from portale.models.security import Role
from portale.security.scope import Scope


@dataclass(frozen=True)
class AuthzContext:
    """
    Per-request authorization context.

    Small and immutable so it can be attached to:
    - request.state (FastAPI request lifetime)
    - Session.info (SQLAlchemy session lifetime)
    """

    user_id: int
    role: Role
    display_name: str

    # Owner ids this user may see (or GLOBAL).
    scope: Scope

    # Scope decision for the current route (config / decorators).
    scope_by_owner: bool = False

    @property
    def is_privileged(self) -> bool:
        return self.role.is_privileged
