from fastapi import status

import models


def test_job_list_formats_skills_and_hides_deleted(test_client, db_session, factory):
    company = factory.company_owner(company_name="Skillful").company_owner.company
    job = factory.job(company, name="Data apprentice", skills=" Python , SQL,,Pandas ")
    gone = factory.job(company, name="Closed offer")
    gone.deleted_at = models.utcnow()
    db_session.commit()

    response = test_client.get("/api/jobs")

    assert response.status_code == status.HTTP_200_OK
    listed = {item["id"]: item for item in response.json()}
    assert gone.id not in listed
    item = listed[job.id]
    assert item["offerTitle"] == "Data apprentice"
    assert item["companyName"] == "Skillful"
    assert item["skills"] == [
        {"id": "python", "name": "Python"},
        {"id": "sql", "name": "SQL"},
        {"id": "pandas", "name": "Pandas"},
    ]


def test_get_job_distinguishes_missing_from_deleted(test_client, factory):
    company = factory.company_owner().company_owner.company
    job = factory.job(company)

    assert test_client.get(f"/api/jobs/{job.id}").status_code == status.HTTP_200_OK
    assert test_client.delete(f"/api/jobs/{job.id}").status_code == status.HTTP_200_OK

    deleted = test_client.get(f"/api/jobs/{job.id}")
    assert deleted.status_code == status.HTTP_410_GONE
    assert deleted.json()["error"] == "Ce job a été supprimé"
    assert test_client.get("/api/jobs/unknown-job").status_code == status.HTTP_404_NOT_FOUND


def test_create_and_update_job(test_client, factory):
    company = factory.company_owner().company_owner.company

    created = test_client.post(
        "/api/jobs",
        json={"companyId": company.id, "name": "Frontend apprentice", "description": "React", "skills": "React, CSS"},
    )
    job_id = created.json()["id"]
    updated = test_client.put(f"/api/jobs/{job_id}", json={"skills": ["TypeScript", " React "]})

    assert created.status_code == status.HTTP_201_CREATED
    assert created.json()["skills"] == ["React", "CSS"]
    assert updated.json()["skills"] == ["TypeScript", "React"]


def test_create_job_for_unknown_company(test_client):
    response = test_client.post("/api/jobs", json={"companyId": "nope", "name": "Ghost job"})

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_company_jobs_and_soft_delete(test_client, factory):
    owner = factory.company_owner()
    company = owner.company_owner.company
    job = factory.job(company)

    listed = test_client.get(f"/api/companies/{company.id}/jobs")
    mine = test_client.get("/api/company/jobs", headers=factory.auth_headers(owner))
    deleted = test_client.delete(f"/api/companies/{company.id}")

    assert [j["id"] for j in listed.json()] == [job.id]
    assert [j["id"] for j in mine.json()] == [job.id]
    assert deleted.status_code == status.HTTP_200_OK
    assert test_client.get(f"/api/companies/{company.id}").status_code == status.HTTP_404_NOT_FOUND


def test_company_creation_for_user(test_client, factory):
    user = factory.user()

    created = test_client.post("/api/companies", json={"userId": user.id, "name": "Globex"})
    again = test_client.post("/api/companies", json={"userId": user.id, "name": "Globex 2"})

    assert created.status_code == status.HTTP_201_CREATED
    assert again.status_code == status.HTTP_400_BAD_REQUEST
    assert again.json()["error"] == "L'utilisateur a déjà une entreprise"


def test_company_edits_and_withdraws_its_own_job(test_client, factory):
    owner = factory.company_owner()
    job = factory.job(owner.company_owner.company, skills="Go")
    other_job = factory.job(factory.company_owner().company_owner.company)
    headers = factory.auth_headers(owner)

    incomplete = test_client.put(f"/api/company/jobs/{job.id}", json={"name": "Only a name"}, headers=headers)
    updated = test_client.put(
        f"/api/company/jobs/{job.id}",
        json={"name": "Platform apprentice", "description": "Kubernetes", "skills": "Go, Helm"},
        headers=headers,
    )
    foreign = test_client.delete(f"/api/company/jobs/{other_job.id}", headers=headers)
    deleted = test_client.delete(f"/api/company/jobs/{job.id}", headers=headers)

    assert incomplete.status_code == status.HTTP_400_BAD_REQUEST
    assert incomplete.json()["error"] == "Données manquantes"
    assert updated.json()["name"] == "Platform apprentice"
    assert updated.json()["skills"] == ["Go", "Helm"]
    assert foreign.status_code == status.HTTP_403_FORBIDDEN
    assert deleted.status_code == status.HTTP_200_OK
    assert test_client.get(f"/api/jobs/{job.id}").status_code == status.HTTP_410_GONE
    assert test_client.get(f"/api/jobs/{other_job.id}").status_code == status.HTTP_200_OK


def test_company_job_routes_require_session(test_client, factory):
    job = factory.job(factory.company_owner().company_owner.company)

    response = test_client.delete(f"/api/company/jobs/{job.id}")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
