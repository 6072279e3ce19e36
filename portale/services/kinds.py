"""
Per-type configuration of owned entities.

Companies, sportelli lavoro, agenti and segnalatori share one lifecycle
(owned + approvable); suppliers, employees and projects are owned only.
Everything that differs between them lives here so services/entities.py and
the generic router stay type-agnostic.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from portale.db.filters import SKIP_SCOPE_FILTER
from portale.models.entities import Agente, Company, Employee, Segnalatore, SportelloLavoro, Supplier
from portale.models.notifications import NotificationType
from portale.models.projects import Project
from portale.models.security import Role, User
from portale.schemas.entities import (
    AgenteIn,
    AgenteOut,
    CompanyIn,
    CompanyOut,
    EmployeeIn,
    EmployeeOut,
    SegnalatoreIn,
    SegnalatoreOut,
    SportelloIn,
    SportelloOut,
    SupplierIn,
    SupplierOut,
)
from portale.schemas.projects import ProjectIn, ProjectOut
from portale.security.scope import Scope

Prepare = Callable[[dict[str, Any], User], dict[str, Any]]
Normalize = Callable[[dict[str, Any]], dict[str, Any]]
ExtraCheck = Callable[[Session, dict[str, Any], Scope], list[str]]


@dataclass(frozen=True)
class EntityKind:
    name: str
    path: str
    label: str
    model: type
    schema_in: type[BaseModel]
    schema_out: type[BaseModel]

    # field -> human label, for "<label> is required" / "<label> cannot be empty"
    required: Mapping[str, str] = field(default_factory=dict)
    # required fields that must also be finite numbers
    numeric: Mapping[str, str] = field(default_factory=dict)
    ranges: Mapping[str, tuple[float, float]] = field(default_factory=dict)
    # unique column -> conflict message
    unique: Mapping[str, str] = field(default_factory=dict)
    # JSON columns merged key by key on update
    merge_fields: tuple[str, ...] = ()

    # None: the entity has no approval lifecycle.
    approval_roles: frozenset[Role] | None = None
    notification_type: NotificationType | None = None
    counter_field: str | None = None

    document_slots: tuple[str, ...] = ()

    # Payload key a privileged creator may use to assign the record to another
    # user with `owner_override_role`.
    owner_override_field: str | None = None
    owner_override_role: Role | None = None

    # create-only defaults
    prepare: Prepare | None = None
    # applied to create and update payloads
    normalize: Normalize | None = None
    extra_checks: ExtraCheck | None = None

    @property
    def approvable(self) -> bool:
        return self.approval_roles is not None

    @property
    def folder(self) -> str:
        return self.path.strip("/")


# ---- Per-type hooks ----------------------------------------------------------------


def _prepare_company(data: dict[str, Any], actor: User) -> dict[str, Any]:
    if data.get("business_name") and not data.get("company_name"):
        data["company_name"] = data["business_name"]
    for key in ("address", "contact_info", "contract_details"):
        data.setdefault(key, {})
    return data


def _fallback_business_name(actor: User) -> str:
    candidates = [
        actor.organization,
        f"{actor.first_name or ''} {actor.last_name or ''}",
        actor.username,
        actor.email.split("@")[0] if actor.email else "",
    ]
    for value in candidates:
        if value and value.strip():
            return value.strip()
    return ""


def _prepare_sportello(data: dict[str, Any], actor: User) -> dict[str, Any]:
    business_name = (data.get("business_name") or "").strip()
    data["business_name"] = business_name or _fallback_business_name(actor)
    data.setdefault("email", "")
    data.setdefault("pec", "")
    return data


def _prepare_agente(data: dict[str, Any], actor: User) -> dict[str, Any]:
    data.setdefault("email", "")
    data.setdefault("pec", "")
    return data


def _normalize_segnalatore(data: dict[str, Any]) -> dict[str, Any]:
    if data.get("tax_code"):
        data["tax_code"] = "".join(data["tax_code"].split()).upper()
    return data


def _check_company_in_scope(db: Session, data: dict[str, Any], scope: Scope) -> list[str]:
    company_id = data.get("company_id")
    if company_id is None:
        return []
    company = db.scalars(
        select(Company).where(Company.id == company_id).execution_options(**{SKIP_SCOPE_FILTER: True})
    ).first()
    if company is None or not scope.allows(company.user_id):
        return ["Azienda non valida"]
    return []


_ADDRESS_LABELS = {
    "address": "Indirizzo",
    "city": "Città",
    "postal_code": "CAP",
    "province": "Provincia",
}


COMPANY = EntityKind(
    name="company",
    path="/companies",
    label="Company",
    model=Company,
    schema_in=CompanyIn,
    schema_out=CompanyOut,
    required={"business_name": "Ragione Sociale", "vat_number": "Partita IVA"},
    unique={"vat_number": "VAT number already exists"},
    merge_fields=("address", "contact_info", "contract_details"),
    approval_roles=frozenset({Role.RESPONSABILE_TERRITORIALE, Role.SPORTELLO_LAVORO}),
    notification_type=NotificationType.COMPANY_PENDING,
    counter_field="companies",
    prepare=_prepare_company,
)

SPORTELLO = EntityKind(
    name="sportello",
    path="/sportelli",
    label="Sportello Lavoro",
    model=SportelloLavoro,
    schema_in=SportelloIn,
    schema_out=SportelloOut,
    required={"business_name": "Ragione Sociale", "vat_number": "Partita IVA", **_ADDRESS_LABELS},
    numeric={"agreed_commission": "Competenze concordate"},
    unique={"vat_number": "VAT number already exists"},
    approval_roles=frozenset({Role.RESPONSABILE_TERRITORIALE}),
    notification_type=NotificationType.SPORTELLO_PENDING,
    counter_field="sportelli",
    document_slots=("signed_contract", "legal_document"),
    owner_override_field="responsabile_id",
    owner_override_role=Role.RESPONSABILE_TERRITORIALE,
    prepare=_prepare_sportello,
)

AGENTE = EntityKind(
    name="agente",
    path="/agenti",
    label="Agente",
    model=Agente,
    schema_in=AgenteIn,
    schema_out=AgenteOut,
    required={"business_name": "Ragione Sociale", "vat_number": "Partita IVA", **_ADDRESS_LABELS},
    numeric={"agreed_commission": "Competenze concordate"},
    unique={"vat_number": "VAT number already exists"},
    approval_roles=frozenset({Role.RESPONSABILE_TERRITORIALE}),
    notification_type=NotificationType.AGENTE_PENDING,
    counter_field="agenti",
    document_slots=("signed_contract", "legal_document"),
    prepare=_prepare_agente,
)

SEGNALATORE = EntityKind(
    name="segnalatore",
    path="/segnalatori",
    label="Segnalatore",
    model=Segnalatore,
    schema_in=SegnalatoreIn,
    schema_out=SegnalatoreOut,
    required={
        "first_name": "Nome",
        "last_name": "Cognome",
        "email": "Email",
        "tax_code": "Codice Fiscale",
        **_ADDRESS_LABELS,
    },
    numeric={"agreement_percentage": "Percentuale accordo"},
    ranges={"agreement_percentage": (0, 100)},
    unique={"tax_code": "Tax code already exists"},
    approval_roles=frozenset({Role.RESPONSABILE_TERRITORIALE, Role.SPORTELLO_LAVORO}),
    notification_type=NotificationType.SEGNALATORE_PENDING,
    counter_field="segnalatori",
    document_slots=("contract", "id_document"),
    normalize=_normalize_segnalatore,
)

SUPPLIER = EntityKind(
    name="supplier",
    path="/suppliers",
    label="Supplier",
    model=Supplier,
    schema_in=SupplierIn,
    schema_out=SupplierOut,
    required={"name": "Nome fornitore"},
    counter_field="suppliers",
)

EMPLOYEE = EntityKind(
    name="employee",
    path="/employees",
    label="Employee",
    model=Employee,
    schema_in=EmployeeIn,
    schema_out=EmployeeOut,
    required={"first_name": "Nome", "last_name": "Cognome"},
    counter_field="employees",
    extra_checks=_check_company_in_scope,
)

PROJECT = EntityKind(
    name="project",
    path="/projects",
    label="Project",
    model=Project,
    schema_in=ProjectIn,
    schema_out=ProjectOut,
    required={"title": "Titolo", "company_id": "Azienda"},
    counter_field="projects",
    extra_checks=_check_company_in_scope,
)

ENTITY_KINDS: tuple[EntityKind, ...] = (COMPANY, SPORTELLO, AGENTE, SEGNALATORE, SUPPLIER, EMPLOYEE, PROJECT)

APPROVABLE_KINDS: dict[str, EntityKind] = {k.name: k for k in ENTITY_KINDS if k.approvable}
