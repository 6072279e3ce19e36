from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from portale.models.projects import ProjectStatus
from portale.schemas.entities import OwnedOut


class ProjectIn(BaseModel):
    title: str | None = None
    description: str | None = None
    company_id: int | None = None
    status: ProjectStatus | None = None
    start_date: date | None = None
    end_date: date | None = None
    budget: float | None = Field(default=None, ge=0)
    hours: float | None = Field(default=None, ge=0)


class ProjectOut(OwnedOut):
    title: str
    description: str
    company_id: int
    status: ProjectStatus
    start_date: date | None
    end_date: date | None
    budget: float
    hours: float
    template_code: str | None


class ProjectTemplateIn(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    min_price: float = Field(ge=0)
    max_price: float = Field(ge=0)
    hours: float = Field(default=0, ge=0)
    category: str = ""
    subcategory: str = ""
    type: str = ""
    is_public: bool = True


class ProjectTemplateUpdateIn(BaseModel):
    code: str | None = Field(default=None, min_length=1, max_length=50)
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    min_price: float | None = Field(default=None, ge=0)
    max_price: float | None = Field(default=None, ge=0)
    hours: float | None = Field(default=None, ge=0)
    category: str | None = None
    subcategory: str | None = None
    type: str | None = None
    is_public: bool | None = None


class ProjectTemplateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    title: str
    description: str
    min_price: float
    max_price: float
    hours: float
    category: str
    subcategory: str
    type: str
    is_public: bool
    created_by_id: int | None
    created_at: datetime
    updated_at: datetime


class TemplateSelection(BaseModel):
    template_id: int
    quantity: int = Field(default=1, ge=1, le=50)


class BulkProjectsIn(BaseModel):
    company_id: int
    templates: list[TemplateSelection] = Field(min_length=1)
