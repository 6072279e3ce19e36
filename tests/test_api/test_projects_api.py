from __future__ import annotations

import pytest

from portale.models.security import Role

TEMPLATE_BODY = {"code": "WEB", "title": "Sito web", "min_price": 500, "max_price": 900, "hours": 20}


@pytest.fixture
def people(create_account):
    admin = create_account(Role.ADMIN, "admin")
    rt = create_account(Role.RESPONSABILE_TERRITORIALE, "rt")
    sportello = create_account(Role.SPORTELLO_LAVORO, "s1", managed_by=rt)
    stranger = create_account(Role.SPORTELLO_LAVORO, "s2")
    return admin, rt, sportello, stranger


def _company(client, owner, vat, auth_headers) -> int:
    response = client.post(
        "/companies", json={"business_name": f"Azienda {vat}", "vat_number": vat}, headers=auth_headers(owner)
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


def test_templates_are_admin_maintained(client, people, auth_headers):
    admin, _, sportello, _ = people

    assert client.post("/projects/templates", json=TEMPLATE_BODY, headers=auth_headers(sportello)).status_code == 403
    created = client.post("/projects/templates", json=TEMPLATE_BODY, headers=auth_headers(admin))
    assert created.status_code == 201, created.text
    template_id = created.json()["id"]

    listed = client.get("/projects/templates", headers=auth_headers(sportello))
    assert [t["code"] for t in listed.json()] == ["WEB"]
    assert client.get(f"/projects/templates/{template_id}", headers=auth_headers(sportello)).status_code == 200
    assert (
        client.put(f"/projects/templates/{template_id}", json={"hours": 1}, headers=auth_headers(sportello)).status_code
        == 403
    )
    assert client.delete(f"/projects/templates/{template_id}", headers=auth_headers(admin)).status_code == 200
    assert client.get(f"/projects/templates/{template_id}", headers=auth_headers(admin)).status_code == 404


def test_duplicate_template_code_is_400(client, people, auth_headers):
    admin = people[0]
    assert client.post("/projects/templates", json=TEMPLATE_BODY, headers=auth_headers(admin)).status_code == 201

    response = client.post("/projects/templates", json=TEMPLATE_BODY, headers=auth_headers(admin))

    assert response.status_code == 400
    assert response.json() == {"error": "Template code already exists"}


def test_bulk_creation_and_scoped_list(client, people, auth_headers):
    admin, rt, sportello, stranger = people
    template_id = client.post("/projects/templates", json=TEMPLATE_BODY, headers=auth_headers(admin)).json()["id"]
    company_id = _company(client, sportello, "IT1", auth_headers)
    _company(client, stranger, "IT2", auth_headers)

    response = client.post(
        "/projects/bulk",
        json={"company_id": company_id, "templates": [{"template_id": template_id, "quantity": 2}]},
        headers=auth_headers(sportello),
    )

    assert response.status_code == 201, response.text
    assert [p["template_code"] for p in response.json()] == ["WEB", "WEB"]
    assert len(client.get("/projects", headers=auth_headers(rt)).json()) == 2
    assert client.get("/projects", headers=auth_headers(stranger)).json() == []
    assert len(client.get("/projects", headers=auth_headers(admin)).json()) == 2
    dashboard = client.get("/dashboard/stats", headers=auth_headers(sportello)).json()
    assert dashboard["projects"] == 2


def test_bulk_for_foreign_company_is_400(client, people, auth_headers):
    admin, _, sportello, stranger = people
    template_id = client.post("/projects/templates", json=TEMPLATE_BODY, headers=auth_headers(admin)).json()["id"]
    company_id = _company(client, stranger, "IT2", auth_headers)

    response = client.post(
        "/projects/bulk",
        json={"company_id": company_id, "templates": [{"template_id": template_id}]},
        headers=auth_headers(sportello),
    )

    assert response.status_code == 400
    assert response.json() == {"errors": ["Azienda non valida"]}
    assert client.get("/projects", headers=auth_headers(admin)).json() == []


def test_single_project_crud(client, people, auth_headers):
    _, _, sportello, stranger = people
    company_id = _company(client, sportello, "IT1", auth_headers)

    created = client.post(
        "/projects", json={"title": "Audit", "company_id": company_id}, headers=auth_headers(sportello)
    )
    assert created.status_code == 201, created.text
    project_id = created.json()["id"]

    updated = client.put(
        f"/projects/{project_id}", json={"status": "in_progress"}, headers=auth_headers(sportello)
    )
    assert updated.json()["status"] == "in_progress"
    assert client.get(f"/projects/{project_id}", headers=auth_headers(stranger)).status_code == 403
