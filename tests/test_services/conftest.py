from __future__ import annotations

import pytest
from sqlalchemy import func, select

from portale.models.notifications import Notification
from portale.models.security import Role


class RecordingCounter:
    """Stands in for the SQL dashboard counter; remembers every increment."""

    def __init__(self):
        self.calls: list[tuple[int, str, int]] = []

    def increment(self, db, user_id: int, field: str, amount: int = 1) -> None:
        self.calls.append((user_id, field, amount))


@pytest.fixture
def counter():
    return RecordingCounter()


@pytest.fixture
def admin(make_user):
    return make_user(Role.ADMIN, first_name="Ada", last_name="Admin")


@pytest.fixture
def notification_count(db_session):
    def _count() -> int:
        return db_session.scalar(select(func.count(Notification.id)))

    return _count
