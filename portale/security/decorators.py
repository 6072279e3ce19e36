from __future__ import annotations

from collections.abc import Callable, Iterable

from portale.models.security import Role


def require_roles(roles: Iterable[Role | str]) -> Callable:
    """
    Attach required-role metadata to an endpoint.

    The decorator does not check anything itself; the global security
    dependency reads the metadata after routing and enforces it.
    """

    wanted = {Role(r) for r in roles}

    def decorator(fn: Callable) -> Callable:
        existing = set(getattr(fn, "__security_required_roles__", set()))
        setattr(fn, "__security_required_roles__", existing | wanted)
        return fn

    return decorator


def scope_by_owner() -> Callable:
    """
    Enable transparent owner scoping (db/filters.py) for this endpoint.
    """

    def decorator(fn: Callable) -> Callable:
        setattr(fn, "__security_scope_by_owner__", True)
        return fn

    return decorator
