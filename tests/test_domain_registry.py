from unittest.mock import patch

import pytest
from fastapi import status
from sqlalchemy.orm import Session

import crud
import logic
import models
from errors import ValidationFailed


def count_domains(db: Session, domain: str) -> int:
    return db.query(models.AuthorizedSchoolDomain).filter(models.AuthorizedSchoolDomain.domain == domain).count()


def count_schools(db: Session, domain: str) -> int:
    return (
        db.query(models.School)
        .join(models.AuthorizedSchoolDomain)
        .filter(models.AuthorizedSchoolDomain.domain == domain)
        .count()
    )


# --- check ---

def test_check_domain_returns_owning_school(test_client, factory):
    domain = factory.domain_name()
    school = factory.school(domain=domain, name="École Test")

    response = test_client.post("/api/school-domains/check", json={"domain": domain.upper()})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"schoolId": school.id, "schoolName": "École Test"}


def test_check_domain_unknown_is_404(test_client, factory):
    response = test_client.post("/api/school-domains/check", json={"domain": factory.domain_name()})

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"] == "Domaine non reconnu"


def test_check_domain_without_school_is_404(test_client, db_session, factory):
    domain = factory.domain_name()
    db_session.add(models.AuthorizedSchoolDomain(domain=domain))
    db_session.commit()

    response = test_client.post("/api/school-domains/check", json={"domain": domain})

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_check_domain_requires_domain(test_client):
    response = test_client.post("/api/school-domains/check", json={})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "Le domaine est requis"


# --- validate-and-create ---

def test_validate_and_create_provisions_once(test_client, db_session, factory):
    """First call creates one domain and one school; the second creates nothing."""
    domain = factory.domain_name()

    first = test_client.post("/api/school-domains/validate-and-create", json={"email": f"Alice@{domain}"})
    second = test_client.post("/api/school-domains/validate-and-create", json={"email": f"bob@{domain}"})

    assert first.status_code == status.HTTP_200_OK
    assert second.status_code == status.HTTP_200_OK
    body = first.json()
    assert body["success"] is True
    assert body["domain"]["domain"] == domain
    assert body["message"] == "Le domaine a été validé et créé si nécessaire"
    assert second.json()["domain"]["id"] == body["domain"]["id"]

    db_session.commit()
    assert count_domains(db_session, domain) == 1
    assert count_schools(db_session, domain) == 1
    school = db_session.query(models.School).filter(models.School.domain_id == body["domain"]["id"]).one()
    assert school.name == domain.split(".")[0].upper()
    assert school.is_active is True


@pytest.mark.parametrize(
    "email, stray_domain",
    [
        ("not-an-email", "not-an-email"),
        ("x@not a domain!!", "not a domain!!"),
        ("x@a@b.fr", "a@b.fr"),
        ("x@localhost", "localhost"),
    ],
)
def test_validate_and_create_rejects_malformed_email(test_client, db_session, email, stray_domain):
    response = test_client.post("/api/school-domains/validate-and-create", json={"email": email})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "Format d'email invalide"
    db_session.commit()
    assert count_domains(db_session, stray_domain) == 0
    assert count_schools(db_session, stray_domain) == 0


def test_extract_domain_checks_the_domain():
    assert logic.extract_domain(" Eve@Campus.Example-School.FR ") == "campus.example-school.fr"
    with pytest.raises(ValidationFailed):
        logic.extract_domain("x@a@b.fr")


def test_validate_and_create_reuses_row_created_concurrently(db_session, factory):
    """A concurrent creator wins the unique constraint; the loser reuses its row."""
    domain = factory.domain_name()
    school = factory.school(domain=domain)
    real_lookup = crud.get_domain_by_name
    calls = []

    def racing_lookup(db, name):
        calls.append(name)
        # First lookup misses, as if the other request had not committed yet
        return None if len(calls) == 1 else real_lookup(db, name)

    with patch("logic.crud.get_domain_by_name", side_effect=racing_lookup):
        school_domain, created = logic.validate_and_create(db_session, f"carol@{domain}")

    assert created is False
    assert school_domain.id == school.domain_id
    db_session.commit()
    assert count_domains(db_session, domain) == 1
    assert count_schools(db_session, domain) == 1


# --- validate-school-email ---

def test_validate_school_email(test_client, factory):
    domain = factory.domain_name()
    school = factory.school(domain=domain)

    ok = test_client.post("/api/school-domains/validate-school-email", json={"email": f"eve@{domain}"})
    unknown = test_client.post(
        "/api/school-domains/validate-school-email", json={"email": f"eve@{factory.domain_name()}"}
    )

    assert ok.status_code == status.HTTP_200_OK
    assert ok.json() == {"isValid": True, "schoolId": school.id, "schoolName": school.name}
    assert unknown.status_code == status.HTTP_400_BAD_REQUEST


# --- domain CRUD ---

def test_domain_crud(test_client, factory):
    domain = factory.domain_name()

    created = test_client.post("/api/school-domains", json={"domain": domain.upper()})
    assert created.status_code == status.HTTP_201_CREATED
    domain_id = created.json()["id"]
    assert created.json()["domain"] == domain

    duplicate = test_client.post("/api/school-domains", json={"domain": domain})
    assert duplicate.status_code == status.HTTP_400_BAD_REQUEST
    assert duplicate.json()["error"] == "DOMAIN_EXISTS"

    renamed = factory.domain_name()
    updated = test_client.put(f"/api/school-domains/{domain_id}", json={"domain": renamed})
    assert updated.status_code == status.HTTP_200_OK
    assert updated.json()["domain"] == renamed

    deleted = test_client.delete(f"/api/school-domains/{domain_id}")
    assert deleted.status_code == status.HTTP_200_OK
    assert test_client.get(f"/api/school-domains/{domain_id}").status_code == status.HTTP_404_NOT_FOUND


def test_domain_in_use_cannot_be_deleted(test_client, factory):
    school = factory.school()

    response = test_client.delete(f"/api/school-domains/{school.domain_id}")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "Ce domaine est actuellement utilisé par une ou plusieurs écoles"
