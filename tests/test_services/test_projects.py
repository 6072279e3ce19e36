from __future__ import annotations

import pytest
from sqlalchemy import func, select

from portale.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from portale.models.entities import Company
from portale.models.projects import Project, ProjectStatus, ProjectTemplate
from portale.models.security import Role
from portale.schemas.projects import (
    BulkProjectsIn,
    ProjectIn,
    ProjectTemplateIn,
    ProjectTemplateUpdateIn,
    TemplateSelection,
)
from portale.services import projects
from portale.services.entities import EntityService
from portale.services.kinds import PROJECT


class FailingCounter:
    def increment(self, db, user_id: int, field: str, amount: int = 1) -> None:
        raise RuntimeError("counter down")


def _company(db, owner, vat: str = "IT1") -> Company:
    company = Company(business_name=vat, company_name=vat, vat_number=vat, user_id=owner.id)
    db.add(company)
    db.flush()
    return company


def _template(db, code: str, **fields) -> ProjectTemplate:
    data = {"title": f"Progetto {code}", "min_price": 100.0, "max_price": 200.0, "hours": 8.0}
    data.update(fields)
    template = ProjectTemplate(code=code, **data)
    db.add(template)
    db.flush()
    return template


def _project_count(db) -> int:
    return db.scalar(select(func.count(Project.id)))


# ---- templates ---------------------------------------------------------------------


def test_create_template_checks_prices_and_code(db_session, admin, authz_for):
    authz = authz_for(admin)
    payload = ProjectTemplateIn(code=" WEB-1 ", title="Sito web", min_price=500, max_price=900)

    template = projects.create_template(db_session, authz, payload)

    assert template.code == "WEB-1"
    assert template.created_by_id == admin.id
    with pytest.raises(ConflictError, match="Template code already exists"):
        projects.create_template(db_session, authz, payload)
    with pytest.raises(ValidationError):
        projects.create_template(
            db_session, authz, ProjectTemplateIn(code="WEB-2", title="Sito", min_price=900, max_price=500)
        )


def test_update_template_rechecks_price_range(db_session, admin, authz_for):
    template = _template(db_session, "SEO")

    with pytest.raises(ValidationError):
        projects.update_template(db_session, authz_for(admin), template.id, ProjectTemplateUpdateIn(min_price=999))

    updated = projects.update_template(
        db_session, authz_for(admin), template.id, ProjectTemplateUpdateIn(max_price=300, category="marketing")
    )
    assert (updated.max_price, updated.category) == (300, "marketing")


def test_private_templates_are_hidden_from_others(db_session, admin, make_user, authz_for):
    sportello = make_user(Role.SPORTELLO_LAVORO)
    public = _template(db_session, "PUB")
    private = _template(db_session, "PRIV", is_public=False, created_by_id=admin.id)

    assert [t.code for t in projects.list_templates(db_session, authz_for(sportello))] == [public.code]
    assert len(projects.list_templates(db_session, authz_for(admin))) == 2
    with pytest.raises(AuthorizationError):
        projects.get_template(db_session, authz_for(sportello), private.id)
    with pytest.raises(NotFoundError):
        projects.get_template(db_session, authz_for(sportello), 999)


# ---- bulk creation -----------------------------------------------------------------


def test_instantiate_creates_every_project(db_session, make_user, authz_for, counter):
    sportello = make_user(Role.SPORTELLO_LAVORO)
    company = _company(db_session, sportello)
    web = _template(db_session, "WEB", min_price=500.0, hours=20.0)
    seo = _template(db_session, "SEO")
    payload = BulkProjectsIn(
        company_id=company.id,
        templates=[TemplateSelection(template_id=web.id, quantity=2), TemplateSelection(template_id=seo.id)],
    )

    created = projects.instantiate(db_session, authz_for(sportello), counter, payload)

    assert [p.template_code for p in created] == ["WEB", "WEB", "SEO"]
    assert all(p.user_id == sportello.id and p.company_id == company.id for p in created)
    assert all(p.status is ProjectStatus.REQUESTED for p in created)
    assert (created[0].budget, created[0].hours) == (500.0, 20.0)
    assert counter.calls == [(sportello.id, "projects", 3)]


def test_instantiate_rejects_company_out_of_scope(db_session, make_user, authz_for, counter):
    sportello = make_user(Role.SPORTELLO_LAVORO)
    stranger = make_user(Role.SPORTELLO_LAVORO)
    company = _company(db_session, stranger)
    web = _template(db_session, "WEB")

    with pytest.raises(ValidationError) as exc_info:
        projects.instantiate(
            db_session,
            authz_for(sportello),
            counter,
            BulkProjectsIn(company_id=company.id, templates=[TemplateSelection(template_id=web.id)]),
        )

    assert exc_info.value.errors == ["Azienda non valida"]
    assert _project_count(db_session) == 0


def test_instantiate_reports_unknown_templates(db_session, admin, authz_for, counter):
    company = _company(db_session, admin)
    web = _template(db_session, "WEB")

    with pytest.raises(ValidationError) as exc_info:
        projects.instantiate(
            db_session,
            authz_for(admin),
            counter,
            BulkProjectsIn(
                company_id=company.id,
                templates=[TemplateSelection(template_id=web.id), TemplateSelection(template_id=404)],
            ),
        )

    assert exc_info.value.errors == ["Template 404 non valido"]
    assert _project_count(db_session) == 0
    assert counter.calls == []


def test_instantiate_is_all_or_nothing(db_session, admin, authz_for):
    company = _company(db_session, admin)
    web = _template(db_session, "WEB")
    payload = BulkProjectsIn(company_id=company.id, templates=[TemplateSelection(template_id=web.id, quantity=3)])

    with pytest.raises(RuntimeError):
        projects.instantiate(db_session, authz_for(admin), FailingCounter(), payload)

    assert _project_count(db_session) == 0


# ---- generic CRUD ------------------------------------------------------------------


def test_project_crud_goes_through_entity_service(db_session, make_user, authz_for, counter):
    sportello = make_user(Role.SPORTELLO_LAVORO)
    company = _company(db_session, sportello)
    service = EntityService(PROJECT, db_session, authz_for(sportello), counter)

    with pytest.raises(ValidationError) as exc_info:
        service.create(ProjectIn(description="senza titolo"))
    assert exc_info.value.errors == ["Titolo is required", "Azienda is required"]

    project = service.create(ProjectIn(title="Audit", company_id=company.id, budget=1500))

    assert project.user_id == sportello.id
    assert project.status is ProjectStatus.REQUESTED
    assert counter.calls == [(sportello.id, "projects", 1)]


def test_project_company_must_be_in_scope(db_session, make_user, authz_for, counter):
    sportello = make_user(Role.SPORTELLO_LAVORO)
    stranger = make_user(Role.SPORTELLO_LAVORO)
    company = _company(db_session, stranger)
    service = EntityService(PROJECT, db_session, authz_for(sportello), counter)

    with pytest.raises(ValidationError) as exc_info:
        service.create(ProjectIn(title="Audit", company_id=company.id))

    assert exc_info.value.errors == ["Azienda non valida"]
