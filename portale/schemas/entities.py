from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from portale.models.mixins import ApprovalStatus
from portale.models.security import Role


class OwnerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    first_name: str | None
    last_name: str | None
    role: Role


class DocumentOut(BaseModel):
    filename: str
    original_name: str
    path: str
    mimetype: str
    size: int


class OwnedOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    created_at: datetime
    updated_at: datetime


class ApprovalOut(OwnedOut):
    approval_status: ApprovalStatus | None
    is_approved: bool
    pending_approval: bool
    is_active: bool
    approved_by_id: int | None
    approved_at: datetime | None
    rejection_reason: str | None
    rejected_by_id: int | None
    rejected_at: datetime | None


# ---- Company ----------------------------------------------------------------------


class CompanyIn(BaseModel):
    business_name: str | None = None
    company_name: str | None = None
    vat_number: str | None = None
    fiscal_code: str | None = None
    matricola: str | None = None
    inps_code: str | None = None
    address: dict[str, Any] | None = None
    contact_info: dict[str, Any] | None = None
    contract_details: dict[str, Any] | None = None
    industry: str | None = None
    employees: int | None = Field(default=None, ge=0)
    signaler: str | None = None
    actuator: str | None = None


class CompanyOut(ApprovalOut):
    business_name: str
    company_name: str
    vat_number: str
    fiscal_code: str | None
    matricola: str | None
    inps_code: str | None
    address: dict[str, Any]
    contact_info: dict[str, Any]
    contract_details: dict[str, Any]
    industry: str
    employees: int
    signaler: str | None
    actuator: str | None


# ---- Sportello lavoro / Agente -----------------------------------------------------


class SportelloIn(BaseModel):
    agent_name: str | None = None
    business_name: str | None = None
    vat_number: str | None = None
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    province: str | None = None
    agreed_commission: float | None = None
    email: str | None = None
    pec: str | None = None

    # Privileged creators only: the responsabile_territoriale who will own the record.
    responsabile_id: int | None = None


class SportelloOut(ApprovalOut):
    agent_name: str | None
    business_name: str
    vat_number: str
    address: str | None
    city: str | None
    postal_code: str | None
    province: str | None
    agreed_commission: float
    email: str
    pec: str
    documents: dict[str, DocumentOut]


class AgenteIn(BaseModel):
    business_name: str | None = None
    vat_number: str | None = None
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    province: str | None = None
    agreed_commission: float | None = None
    email: str | None = None
    pec: str | None = None


class AgenteOut(ApprovalOut):
    business_name: str
    vat_number: str
    address: str | None
    city: str | None
    postal_code: str | None
    province: str | None
    agreed_commission: float
    email: str
    pec: str
    documents: dict[str, DocumentOut]


# ---- Segnalatore -----------------------------------------------------------------


class SegnalatoreIn(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    province: str | None = None
    tax_code: str | None = None
    agreement_percentage: float | None = None
    specialization: str | None = None
    notes: str | None = None


class SegnalatoreOut(ApprovalOut):
    first_name: str
    last_name: str
    email: str
    phone: str | None
    address: str | None
    city: str | None
    postal_code: str | None
    province: str | None
    tax_code: str
    agreement_percentage: float
    specialization: str | None
    notes: str | None
    full_address: str | None
    documents: dict[str, DocumentOut]


# ---- Supplier / Employee ---------------------------------------------------------


class SupplierIn(BaseModel):
    name: str | None = None
    vat_number: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    notes: str | None = None


class SupplierOut(OwnedOut):
    name: str
    vat_number: str | None
    email: str | None
    phone: str | None
    address: str | None
    notes: str | None


class EmployeeIn(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    tax_code: str | None = None
    email: str | None = None
    position: str | None = None
    hire_date: date | None = None
    company_id: int | None = None


class EmployeeOut(OwnedOut):
    first_name: str
    last_name: str
    tax_code: str | None
    email: str | None
    position: str | None
    hire_date: date | None
    company_id: int | None
