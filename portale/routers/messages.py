from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from portale.db.session import get_db
from portale.schemas.messages import MessageIn, MessageOut, MessageStatsOut, ReadIn
from portale.security.context import AuthzContext
from portale.security.dependencies import get_authz
from portale.services import messages
from portale.services.messages import Folder

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("", response_model=list[MessageOut])
def list_messages(
    folder: Folder = Folder.INBOX, authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)
) -> list[dict]:
    return messages.list_folder(db, authz, folder)


@router.get("/stats", response_model=MessageStatsOut)
def stats(authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)) -> dict:
    return messages.stats(db, authz)


@router.post("", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
def send_message(payload: MessageIn, authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)) -> dict:
    return messages.send(db, authz, payload)


@router.get("/{message_id}", response_model=MessageOut)
def get_message(message_id: int, authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)) -> dict:
    return messages.get(db, authz, message_id)


@router.put("/{message_id}/read")
def set_read(
    message_id: int, payload: ReadIn, authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)
) -> dict[str, str]:
    messages.set_read(db, authz, message_id, payload.read)
    return {"message": "Message updated"}


@router.put("/{message_id}/trash")
def trash_message(
    message_id: int, authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)
) -> dict[str, str]:
    messages.trash(db, authz, message_id)
    return {"message": "Message moved to trash"}


@router.delete("/{message_id}")
def delete_message(
    message_id: int, authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)
) -> dict[str, str]:
    messages.delete(db, authz, message_id)
    return {"message": "Message deleted"}
