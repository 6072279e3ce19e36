"""
Project templates and bulk project creation.

Templates are a shared catalogue, maintained by admins. Everyone sees public
templates; a private template is visible to admins and to its author only.

`instantiate` stamps one or more templates onto a company. All projects of a
request are written in one savepoint together with the dashboard counter, so
either every project exists afterwards or none does.
"""

from __future__ import annotations

import logging

from sqlalchemy import exists, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portale.db.filters import SKIP_SCOPE_FILTER
from portale.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from portale.models.entities import Company
from portale.models.projects import Project, ProjectStatus, ProjectTemplate
from portale.schemas.projects import BulkProjectsIn, ProjectTemplateIn, ProjectTemplateUpdateIn
from portale.security.context import AuthzContext
from portale.services.counters import DashboardCounter

logger = logging.getLogger(__name__)


def _visible(authz: AuthzContext, template: ProjectTemplate) -> bool:
    return authz.is_privileged or template.is_public or template.created_by_id == authz.user_id


def _check_prices(min_price: float, max_price: float) -> None:
    if min_price > max_price:
        raise ValidationError("Prezzo minimo cannot exceed prezzo massimo")


def _ensure_code_free(db: Session, code: str, *, exclude_id: int | None = None) -> None:
    stmt = exists().where(ProjectTemplate.code == code)
    if exclude_id is not None:
        stmt = stmt.where(ProjectTemplate.id != exclude_id)
    if db.scalar(select(stmt)):
        raise ConflictError("Template code already exists")


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Template code already exists") from exc


# ---- Templates ---------------------------------------------------------------------


def list_templates(db: Session, authz: AuthzContext, *, category: str | None = None) -> list[ProjectTemplate]:
    stmt = select(ProjectTemplate)
    if not authz.is_privileged:
        stmt = stmt.where(
            or_(ProjectTemplate.is_public.is_(True), ProjectTemplate.created_by_id == authz.user_id)
        )
    if category:
        stmt = stmt.where(ProjectTemplate.category == category)
    stmt = stmt.order_by(ProjectTemplate.category, ProjectTemplate.code)
    return list(db.scalars(stmt).all())


def get_template(db: Session, authz: AuthzContext, template_id: int) -> ProjectTemplate:
    template = db.get(ProjectTemplate, template_id)
    if template is None:
        raise NotFoundError("Project template not found")
    if not _visible(authz, template):
        raise AuthorizationError("Access denied")
    return template


def create_template(db: Session, authz: AuthzContext, payload: ProjectTemplateIn) -> ProjectTemplate:
    code = payload.code.strip()
    _check_prices(payload.min_price, payload.max_price)
    _ensure_code_free(db, code)

    template = ProjectTemplate(**{**payload.model_dump(), "code": code}, created_by_id=authz.user_id)
    db.add(template)
    _commit(db)
    db.refresh(template)
    logger.info("Created project template id=%s code=%s by user_id=%s", template.id, code, authz.user_id)
    return template


def update_template(
    db: Session, authz: AuthzContext, template_id: int, payload: ProjectTemplateUpdateIn
) -> ProjectTemplate:
    template = get_template(db, authz, template_id)
    data = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}

    if "code" in data:
        data["code"] = data["code"].strip()
        _ensure_code_free(db, data["code"], exclude_id=template.id)
    _check_prices(data.get("min_price", template.min_price), data.get("max_price", template.max_price))

    for key, value in data.items():
        setattr(template, key, value)
    _commit(db)
    db.refresh(template)
    logger.info("Updated project template id=%s fields=%s", template.id, sorted(data))
    return template


def delete_template(db: Session, authz: AuthzContext, template_id: int) -> None:
    template = get_template(db, authz, template_id)
    # Projects keep the code they were stamped from.
    db.delete(template)
    db.commit()
    logger.info("Deleted project template id=%s by user_id=%s", template_id, authz.user_id)


# ---- Bulk creation -----------------------------------------------------------------


def instantiate(
    db: Session, authz: AuthzContext, counter: DashboardCounter, payload: BulkProjectsIn
) -> list[Project]:
    """Create `quantity` projects per selected template for one company, all or nothing."""

    errors = []
    company = db.scalars(
        select(Company).where(Company.id == payload.company_id).execution_options(**{SKIP_SCOPE_FILTER: True})
    ).first()
    if company is None or not authz.scope.allows(company.user_id):
        errors.append("Azienda non valida")

    picked: list[tuple[ProjectTemplate, int]] = []
    for selection in payload.templates:
        template = db.get(ProjectTemplate, selection.template_id)
        if template is None or not _visible(authz, template):
            errors.append(f"Template {selection.template_id} non valido")
            continue
        picked.append((template, selection.quantity))

    if errors:
        raise ValidationError(errors)

    projects = [
        Project(
            title=template.title,
            description=template.description,
            company_id=company.id,
            status=ProjectStatus.REQUESTED,
            budget=template.min_price,
            hours=template.hours,
            template_code=template.code,
            user_id=authz.user_id,
        )
        for template, quantity in picked
        for _ in range(quantity)
    ]

    with db.begin_nested():
        db.add_all(projects)
        db.flush()
        counter.increment(db, authz.user_id, "projects", len(projects))
    db.commit()

    for project in projects:
        db.refresh(project)
    logger.info(
        "Created %s projects company_id=%s templates=%s by user_id=%s",
        len(projects),
        company.id,
        [t.code for t, _ in picked],
        authz.user_id,
    )
    return projects
