from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.orm import Session, with_loader_criteria

from portale.models.mixins import OwnedMixin

# Execution option for statements that must see every row (record-level checks
# load first, then answer 403 instead of hiding the row as 404).
SKIP_SCOPE_FILTER = "skip_scope_filter"


@event.listens_for(Session, "do_orm_execute")
def _apply_owner_scope(execute_state) -> None:
    """
    Transparent owner scoping.

    Keeps list queries unchanged:
        db.scalars(select(Company)).all()
    returns only rows whose `user_id` is in the caller's scope when the route
    asked for owner scoping and the caller is not privileged.
    """

    if not execute_state.is_select:
        return
    if execute_state.execution_options.get(SKIP_SCOPE_FILTER, False):
        return

    authz = execute_state.session.info.get("authz")
    if authz is None or not authz.scope_by_owner or authz.scope.is_global:
        return

    owner_ids = sorted(authz.scope.owner_ids)
    execute_state.statement = execute_state.statement.options(
        with_loader_criteria(
            OwnedMixin,
            lambda cls: cls.user_id.in_(owner_ids),
            include_aliases=True,
        )
    )
