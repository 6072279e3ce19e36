from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from portale.db.session import get_db
from portale.models.projects import Project, ProjectTemplate
from portale.models.security import Role
from portale.schemas.projects import (
    BulkProjectsIn,
    ProjectOut,
    ProjectTemplateIn,
    ProjectTemplateOut,
    ProjectTemplateUpdateIn,
)
from portale.security.context import AuthzContext
from portale.security.decorators import require_roles
from portale.security.dependencies import get_authz
from portale.services import projects
from portale.services.counters import DashboardCounter, get_dashboard_counter

# Included before the generic /projects router so "/projects/templates" is not
# taken for a project id.
router = APIRouter(prefix="/projects", tags=["projects"])

ADMINS = [Role.ADMIN, Role.SUPER_ADMIN]


@router.get("/templates", response_model=list[ProjectTemplateOut])
def list_templates(
    category: str | None = None,
    authz: AuthzContext = Depends(get_authz),
    db: Session = Depends(get_db),
) -> list[ProjectTemplate]:
    return projects.list_templates(db, authz, category=category)


@router.post("/templates", response_model=ProjectTemplateOut, status_code=status.HTTP_201_CREATED)
@require_roles(ADMINS)
def create_template(
    payload: ProjectTemplateIn, authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)
) -> ProjectTemplate:
    return projects.create_template(db, authz, payload)


@router.get("/templates/{template_id}", response_model=ProjectTemplateOut)
def get_template(
    template_id: int, authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)
) -> ProjectTemplate:
    return projects.get_template(db, authz, template_id)


@router.put("/templates/{template_id}", response_model=ProjectTemplateOut)
@require_roles(ADMINS)
def update_template(
    template_id: int,
    payload: ProjectTemplateUpdateIn,
    authz: AuthzContext = Depends(get_authz),
    db: Session = Depends(get_db),
) -> ProjectTemplate:
    return projects.update_template(db, authz, template_id, payload)


@router.delete("/templates/{template_id}")
@require_roles(ADMINS)
def delete_template(
    template_id: int, authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)
) -> dict[str, str]:
    projects.delete_template(db, authz, template_id)
    return {"message": "Project template deleted successfully"}


@router.post("/bulk", response_model=list[ProjectOut], status_code=status.HTTP_201_CREATED)
def create_from_templates(
    payload: BulkProjectsIn,
    authz: AuthzContext = Depends(get_authz),
    db: Session = Depends(get_db),
    counter: DashboardCounter = Depends(get_dashboard_counter),
) -> list[Project]:
    return projects.instantiate(db, authz, counter, payload)
