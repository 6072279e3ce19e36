from __future__ import annotations

import pytest

from portale.errors import AuthorizationError, NotFoundError, ValidationError
from portale.models.messages import Message
from portale.models.security import Role
from portale.schemas.messages import MessageIn
from portale.services import messages
from portale.services.messages import Folder


@pytest.fixture
def team(make_user, admin):
    rt = make_user(Role.RESPONSABILE_TERRITORIALE, first_name="Rita", last_name="Resp")
    sportello = make_user(Role.SPORTELLO_LAVORO, managed_by=rt)
    stranger = make_user(Role.SPORTELLO_LAVORO)
    return admin, rt, sportello, stranger


def _send(db, authz, *recipients, subject="Ciao", body="Come va?"):
    return messages.send(db, authz, MessageIn(recipient_ids=[r.id for r in recipients], subject=subject, body=body))


def test_send_lands_in_inbox_and_sent(db_session, team, authz_for):
    _, rt, sportello, _ = team

    sent = _send(db_session, authz_for(rt), sportello)

    assert sent["read"] is True
    assert [r.id for r in sent["recipients"]] == [sportello.id]
    inbox = messages.list_folder(db_session, authz_for(sportello), Folder.INBOX)
    assert [(m["id"], m["read"]) for m in inbox] == [(sent["id"], False)]
    assert [m["id"] for m in messages.list_folder(db_session, authz_for(rt), Folder.SENT)] == [sent["id"]]
    assert messages.list_folder(db_session, authz_for(rt), Folder.INBOX) == []


def test_send_validates_content_and_recipients(db_session, team, make_user, authz_for):
    _, rt, sportello, _ = team
    inactive = make_user(Role.SPORTELLO_LAVORO, managed_by=rt, is_active=False)

    with pytest.raises(ValidationError) as exc_info:
        _send(db_session, authz_for(rt), sportello, inactive, subject=" ", body="")

    assert exc_info.value.errors == [
        "Subject is required",
        "Message body is required",
        f"Recipient {inactive.id} not found or inactive",
    ]


def test_reachability(db_session, team, authz_for):
    admin, rt, sportello, stranger = team

    with pytest.raises(AuthorizationError, match=f"You cannot message user {stranger.id}"):
        _send(db_session, authz_for(sportello), stranger)

    # own manager and admins are always reachable
    _send(db_session, authz_for(sportello), rt)
    _send(db_session, authz_for(stranger), admin)
    _send(db_session, authz_for(admin), stranger)


def test_opening_marks_read_and_stats_follow(db_session, team, authz_for):
    _, rt, sportello, _ = team
    first = _send(db_session, authz_for(rt), sportello)
    _send(db_session, authz_for(rt), sportello, subject="Secondo")

    opened = messages.get(db_session, authz_for(sportello), first["id"])

    assert opened["read"] is True
    assert messages.stats(db_session, authz_for(sportello)) == {"inbox": 2, "unread": 1, "sent": 0, "trash": 0}

    messages.set_read(db_session, authz_for(sportello), first["id"], False)
    assert messages.stats(db_session, authz_for(sportello))["unread"] == 2
    assert messages.stats(db_session, authz_for(rt)) == {"inbox": 0, "unread": 0, "sent": 2, "trash": 0}


def test_only_participants_can_open(db_session, team, authz_for):
    admin, rt, sportello, _ = team
    sent = _send(db_session, authz_for(rt), sportello)

    with pytest.raises(AuthorizationError):
        messages.get(db_session, authz_for(admin), sent["id"])
    with pytest.raises(NotFoundError):
        messages.get(db_session, authz_for(rt), 999)
    with pytest.raises(ValidationError):
        messages.set_read(db_session, authz_for(rt), sent["id"], True)


def test_trash_is_per_participant(db_session, team, authz_for):
    _, rt, sportello, _ = team
    sent = _send(db_session, authz_for(rt), sportello)

    messages.trash(db_session, authz_for(sportello), sent["id"])

    assert messages.list_folder(db_session, authz_for(sportello), Folder.INBOX) == []
    trash = messages.list_folder(db_session, authz_for(sportello), Folder.TRASH)
    assert [(m["id"], m["trashed"]) for m in trash] == [(sent["id"], True)]
    assert [m["id"] for m in messages.list_folder(db_session, authz_for(rt), Folder.SENT)] == [sent["id"]]

    messages.trash(db_session, authz_for(rt), sent["id"])
    assert messages.stats(db_session, authz_for(rt)) == {"inbox": 0, "unread": 0, "sent": 0, "trash": 1}


def test_recipient_delete_keeps_message_sender_delete_removes_it(db_session, team, authz_for):
    admin, rt, sportello, _ = team
    sent = _send(db_session, authz_for(rt), sportello, admin)

    messages.delete(db_session, authz_for(sportello), sent["id"])

    with pytest.raises(AuthorizationError):
        messages.get(db_session, authz_for(sportello), sent["id"])
    assert [r.id for r in messages.get(db_session, authz_for(admin), sent["id"])["recipients"]] == [admin.id]

    messages.delete(db_session, authz_for(rt), sent["id"])
    assert db_session.get(Message, sent["id"]) is None
