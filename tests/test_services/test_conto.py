from __future__ import annotations

import pytest

from portale.errors import AuthorizationError, ValidationError
from portale.models.conto import AccountType, ContoTransaction, TransactionStatus, TransactionType
from portale.models.security import Role
from portale.schemas.conto import CompetenzaIn
from portale.services import conto


@pytest.mark.parametrize(
    ("value", "expected"),
    [(0.125, 0.13), (1.005, 1.01), (2.675, 2.68), (10, 10.0), (-1.255, -1.26)],
)
def test_round2_rounds_half_up(value, expected):
    assert conto.round2(value) == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, 20.0), (float("nan"), 20.0), (35, 35.0), (-5, 0.0), (150, 100.0)],
)
def test_normalize_percent(value, expected):
    assert conto.normalize_percent(value) == expected


def test_split_with_default_percentage():
    split = conto.split_competenza(1000, None)

    assert split["fiacom_amount"] == 800.0
    assert split["responsabile_percent"] == 20.0
    assert split["responsabile_amount"] == 160.0
    assert split["sportello_amount"] == 240.0


def test_split_uses_responsabile_share():
    split = conto.split_competenza(333.33, 35)

    assert split["fiacom_amount"] == 266.66
    assert split["responsabile_amount"] == 93.33
    assert split["sportello_amount"] == 80.0


@pytest.fixture
def parties(make_user):
    rt = make_user(Role.RESPONSABILE_TERRITORIALE, profit_share_percentage=25)
    sp = make_user(Role.SPORTELLO_LAVORO, managed_by=rt)
    return rt, sp


def test_create_competenza_books_three_entries(db_session, admin, authz_for, parties):
    rt, sp = parties

    result = conto.create_competenza(
        db_session,
        authz_for(admin),
        CompetenzaIn(base_amount=1000, responsabile_id=rt.id, sportello_id=sp.id, description="Pratica 12"),
    )

    rows = {tx.user_id: tx for tx in result["transactions"]}
    assert rows[admin.id].amount == 800.0
    assert rows[rt.id].amount == 200.0
    assert rows[sp.id].amount == 240.0
    for tx in rows.values():
        assert tx.type == TransactionType.ENTRATA
        assert tx.status == TransactionStatus.COMPLETATA
        assert tx.raw_amount == 1000.0
        assert tx.category == "Competenza"
        assert tx.account == AccountType.PROSELITISMO
        assert tx.description.startswith("Pratica 12 - ")


def test_create_competenza_validates_parties(db_session, admin, make_user, authz_for, parties):
    rt, sp = parties

    with pytest.raises(ValidationError) as exc_info:
        conto.create_competenza(
            db_session,
            authz_for(admin),
            CompetenzaIn(base_amount=0, responsabile_id=sp.id, sportello_id=rt.id),
        )

    assert exc_info.value.errors == [
        "Importo base must be greater than 0",
        "Responsabile Territoriale non valido o inattivo",
        "Sportello Lavoro non valido o inattivo",
    ]
    assert db_session.query(ContoTransaction).count() == 0


def test_transactions_and_summary_are_scoped(db_session, admin, make_user, authz_for, parties):
    rt, sp = parties
    outsider = make_user(Role.SPORTELLO_LAVORO)
    conto.create_competenza(
        db_session, authz_for(admin), CompetenzaIn(base_amount=1000, responsabile_id=rt.id, sportello_id=sp.id)
    )
    db_session.add(
        ContoTransaction(user_id=sp.id, account=AccountType.SERVIZI, amount=40, type=TransactionType.USCITA)
    )
    db_session.commit()

    sp_rows = conto.list_transactions(db_session, authz_for(sp))
    assert {tx.user_id for tx in sp_rows} == {sp.id}
    assert len(sp_rows) == 2

    rt_rows = conto.list_transactions(db_session, authz_for(rt))
    assert {tx.user_id for tx in rt_rows} == {rt.id, sp.id}

    assert len(conto.list_transactions(db_session, authz_for(admin), user_id=rt.id)) == 1
    with pytest.raises(AuthorizationError):
        conto.list_transactions(db_session, authz_for(outsider), user_id=sp.id)

    summary = conto.summary(db_session, authz_for(sp))
    by_account = {row["account"]: row for row in summary["accounts"]}
    assert by_account[AccountType.PROSELITISMO]["entrate"] == 240.0
    assert by_account[AccountType.SERVIZI]["uscite"] == 40.0
    assert by_account[AccountType.SERVIZI]["balance"] == -40.0
    assert summary["total_balance"] == 200.0
