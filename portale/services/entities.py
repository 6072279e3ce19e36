"""
CRUD for owned entities.

One service drives every type registered in services/kinds.py. List queries
rely on the owner-scope hook in db/filters.py; single-record reads load the
row unfiltered and check it against the caller's scope so an out-of-scope id
is answered with 403 rather than hidden.
"""

from __future__ import annotations

import logging
import math
from typing import Any, BinaryIO

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portale.db.filters import SKIP_SCOPE_FILTER
from portale.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from portale.models.mixins import ApprovalStatus
from portale.models.security import User
from portale.security.context import AuthzContext
from portale.services import approval
from portale.services.counters import DashboardCounter
from portale.services.files import remove_document, store_document
from portale.services.kinds import EntityKind
from portale.services.notifications import notify

logger = logging.getLogger(__name__)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class EntityService:
    def __init__(self, kind: EntityKind, db: Session, authz: AuthzContext, counter: DashboardCounter):
        self.kind = kind
        self.db = db
        self.authz = authz
        self.counter = counter

    # ---- Reads ---------------------------------------------------------------------

    def list(self) -> list[Any]:
        model = self.kind.model
        stmt = select(model).order_by(model.created_at.desc(), model.id.desc())
        return list(self.db.scalars(stmt).unique().all())

    def get(self, item_id: int) -> Any:
        model = self.kind.model
        record = self.db.scalars(
            select(model).where(model.id == item_id).execution_options(**{SKIP_SCOPE_FILTER: True})
        ).first()
        if record is None:
            raise NotFoundError(f"{self.kind.label} not found")
        if not self.authz.scope.allows(record.user_id):
            logger.info(
                "Out-of-scope access kind=%s id=%s user_id=%s", self.kind.name, item_id, self.authz.user_id
            )
            raise AuthorizationError("Access denied")
        return record

    # ---- Writes --------------------------------------------------------------------

    def create(self, payload: BaseModel) -> Any:
        kind = self.kind
        status = approval.creation_status(kind, self.authz.role) if kind.approvable else None

        data = {k: v for k, v in payload.model_dump().items() if v is not None}
        override = data.pop(kind.owner_override_field, None) if kind.owner_override_field else None
        owner_id = self._resolve_owner(override)

        actor = self.db.get(User, self.authz.user_id)
        if kind.prepare is not None:
            data = kind.prepare(data, actor)
        if kind.normalize is not None:
            data = kind.normalize(data)

        errors = self._creation_errors(data)
        if errors:
            raise ValidationError(errors)

        record = kind.model(**data, user_id=owner_id)
        if status is not None:
            approval.apply_creation_state(record, status, self.authz.user_id)
        self.db.add(record)
        self._flush()

        if kind.counter_field:
            self.counter.increment(self.db, self.authz.user_id, kind.counter_field)

        if status == ApprovalStatus.PENDING:
            name = record.display_name
            notify(
                self.db,
                title=f"New {kind.label} Pending Approval",
                message=(
                    f"{self.authz.display_name} created a new {kind.label.lower()} "
                    f'"{name}" that requires approval'
                ),
                type=kind.notification_type,
                entity_id=record.id,
                entity_name=name,
                created_by=self.authz.user_id,
                created_by_name=self.authz.display_name,
            )

        self.db.commit()
        self.db.refresh(record)
        logger.info(
            "Created %s id=%s owner_id=%s status=%s",
            kind.name,
            record.id,
            owner_id,
            status.value if status else "-",
        )
        return record

    def update(self, item_id: int, payload: BaseModel) -> Any:
        kind = self.kind
        record = self.get(item_id)

        data = payload.model_dump(exclude_unset=True)
        if kind.owner_override_field:
            data.pop(kind.owner_override_field, None)

        errors = [
            f"{label} cannot be empty"
            for field, label in kind.required.items()
            if field in data and _blank(data[field])
        ]
        errors += [
            f"{label} must be a valid number"
            for field, label in kind.numeric.items()
            if field in data and not _is_number(data[field])
        ]
        errors += self._range_errors(data)
        if kind.extra_checks is not None:
            errors += kind.extra_checks(self.db, data, self.authz.scope)
        if errors:
            raise ValidationError(errors)

        if kind.normalize is not None:
            data = kind.normalize(data)

        columns = kind.model.__table__.c
        for key, value in data.items():
            if key in kind.merge_fields:
                if value is not None:
                    setattr(record, key, {**(getattr(record, key) or {}), **value})
            elif value is None and not columns[key].nullable:
                continue
            else:
                setattr(record, key, value)

        self._flush()
        self.db.commit()
        self.db.refresh(record)
        logger.info("Updated %s id=%s fields=%s", kind.name, record.id, sorted(data))
        return record

    def delete(self, item_id: int) -> None:
        record = self.get(item_id)
        documents = dict(getattr(record, "documents", None) or {})

        self.db.delete(record)
        self.db.commit()
        logger.info("Deleted %s id=%s", self.kind.name, item_id)

        # Files go after the row; a missing file never blocks the delete.
        for meta in documents.values():
            remove_document(meta)

    def attach_document(
        self, item_id: int, slot: str, *, filename: str, content_type: str | None, stream: BinaryIO
    ) -> Any:
        if slot not in self.kind.document_slots:
            raise ValidationError(f"Invalid document slot: {slot}")

        record = self.get(item_id)
        meta = store_document(
            folder=self.kind.folder,
            slot=slot,
            original_name=filename,
            content_type=content_type,
            stream=stream,
        )
        previous = (record.documents or {}).get(slot)
        record.documents = {**(record.documents or {}), slot: meta}
        self.db.commit()
        self.db.refresh(record)
        logger.info(
            "Stored document kind=%s id=%s slot=%s file=%s", self.kind.name, item_id, slot, meta["filename"]
        )

        remove_document(previous)
        return record

    # ---- Helpers -------------------------------------------------------------------

    def _resolve_owner(self, override: int | None) -> int:
        """The creator owns the record unless a privileged creator assigns it."""

        if override is None or not self.authz.is_privileged:
            return self.authz.user_id

        target = self.db.get(User, override)
        if target is None or not target.is_active or target.role != self.kind.owner_override_role:
            raise ValidationError("Responsabile Territoriale non valido o inattivo")
        return target.id

    def _creation_errors(self, data: dict[str, Any]) -> list[str]:
        kind = self.kind
        errors = [f"{label} is required" for field, label in kind.required.items() if _blank(data.get(field))]
        errors += [
            f"{label} is required and must be a valid number"
            for field, label in kind.numeric.items()
            if not _is_number(data.get(field))
        ]
        errors += self._range_errors(data)
        if kind.extra_checks is not None:
            errors += kind.extra_checks(self.db, data, self.authz.scope)
        return errors

    def _range_errors(self, data: dict[str, Any]) -> list[str]:
        errors = []
        for field, (low, high) in self.kind.ranges.items():
            value = data.get(field)
            if _is_number(value) and not low <= value <= high:
                label = self.kind.numeric.get(field, field)
                errors.append(f"{label} must be between {low:g} and {high:g}")
        return errors

    def _flush(self) -> None:
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(self._conflict_message(exc)) from exc

    def _conflict_message(self, exc: IntegrityError) -> str:
        detail = str(exc.orig)
        for column, message in self.kind.unique.items():
            if column in detail:
                return message
        logger.warning("Unmapped integrity error kind=%s detail=%s", self.kind.name, detail)
        return "Duplicate value"
