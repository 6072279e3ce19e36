"""
The owner-scope hook in db/filters.py, exercised directly on a Session.
"""
from __future__ import annotations

from sqlalchemy import select

from portale.db.filters import SKIP_SCOPE_FILTER
from portale.models.entities import Company, Supplier
from portale.models.security import Role


def _company(db, owner, vat):
    company = Company(business_name=vat, company_name=vat, vat_number=vat, user_id=owner.id)
    db.add(company)
    return company


def test_scoped_select_only_returns_rows_in_scope(db_session, make_user, authz_for):
    rt = make_user(Role.RESPONSABILE_TERRITORIALE)
    sp = make_user(Role.SPORTELLO_LAVORO, managed_by=rt)
    other = make_user(Role.SPORTELLO_LAVORO)
    _company(db_session, rt, "V-RT")
    _company(db_session, sp, "V-SP")
    _company(db_session, other, "V-OTHER")
    db_session.commit()

    db_session.info["authz"] = authz_for(sp, scope_by_owner=True)

    names = {c.vat_number for c in db_session.scalars(select(Company)).all()}
    assert names == {"V-SP"}

    db_session.info["authz"] = authz_for(rt, scope_by_owner=True)
    names = {c.vat_number for c in db_session.scalars(select(Company)).all()}
    assert names == {"V-RT", "V-SP"}


def test_filter_applies_to_every_owned_model(db_session, make_user, authz_for):
    me = make_user(Role.SEGNALATORI)
    other = make_user(Role.SEGNALATORI)
    db_session.add_all([Supplier(name="mine", user_id=me.id), Supplier(name="theirs", user_id=other.id)])
    db_session.commit()

    db_session.info["authz"] = authz_for(me, scope_by_owner=True)

    assert [s.name for s in db_session.scalars(select(Supplier)).all()] == ["mine"]


def test_no_filter_without_route_scoping_or_for_admins(db_session, make_user, authz_for):
    admin = make_user(Role.ADMIN)
    sp = make_user(Role.SPORTELLO_LAVORO)
    _company(db_session, sp, "V-1")
    _company(db_session, admin, "V-2")
    db_session.commit()

    db_session.info["authz"] = authz_for(sp, scope_by_owner=False)
    assert len(db_session.scalars(select(Company)).all()) == 2

    db_session.info["authz"] = authz_for(admin, scope_by_owner=True)
    assert len(db_session.scalars(select(Company)).all()) == 2


def test_skip_option_bypasses_the_filter(db_session, make_user, authz_for):
    sp = make_user(Role.SPORTELLO_LAVORO)
    other = make_user(Role.SPORTELLO_LAVORO)
    _company(db_session, other, "V-X")
    db_session.commit()

    db_session.info["authz"] = authz_for(sp, scope_by_owner=True)

    stmt = select(Company).execution_options(**{SKIP_SCOPE_FILTER: True})
    assert [c.vat_number for c in db_session.scalars(stmt).all()] == ["V-X"]
