from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from portale.schemas.conto import ContoSummaryOut


class DashboardOut(BaseModel):
    companies: int
    sportelli: int
    agenti: int
    segnalatori: int
    suppliers: int
    employees: int
    projects: int
    company_employees: int
    unread_notifications: int
    ledger: ContoSummaryOut
    updated_at: datetime
