"""
Visibility scope resolution.

Given a user and their role, compute whose records they may see:

* ``admin`` / ``super_admin``: everybody (``GLOBAL``, no owner filter).
* everybody else: themselves plus their direct reports (users whose
  ``managed_by_id`` points at them).
* ``responsabile_territoriale`` additionally sees the reports of their direct
  reports.

The depth is fixed at two levels. It is not a general tree walk: a
``sportello_lavoro`` with grandchildren in the hierarchy still only sees one
level down.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select, true
from sqlalchemy.orm import Session

from portale.models.security import Role, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Scope:
    """Either global (``owner_ids is None``) or an explicit, finite owner-id set."""

    owner_ids: frozenset[int] | None

    @property
    def is_global(self) -> bool:
        return self.owner_ids is None

    def allows(self, owner_id: int | None) -> bool:
        if self.owner_ids is None:
            return True
        return owner_id is not None and owner_id in self.owner_ids

    def clause(self, owner_column):
        """SQL condition restricting `owner_column` to this scope."""
        if self.owner_ids is None:
            return true()
        return owner_column.in_(sorted(self.owner_ids))

    @classmethod
    def of(cls, *owner_ids: int) -> Scope:
        return cls(frozenset(owner_ids))


GLOBAL = Scope(None)


def resolve_scope(db: Session, user_id: int, role: Role) -> Scope:
    if role.is_privileged:
        return GLOBAL

    scope = {user_id}

    direct_ids = list(db.scalars(select(User.id).where(User.managed_by_id == user_id)).all())
    scope.update(direct_ids)

    if role == Role.RESPONSABILE_TERRITORIALE and direct_ids:
        second_ids = db.scalars(select(User.id).where(User.managed_by_id.in_(direct_ids))).all()
        scope.update(second_ids)

    logger.debug("Resolved scope user_id=%s role=%s size=%s", user_id, role.value, len(scope))
    return Scope(frozenset(scope))
