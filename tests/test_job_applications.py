from unittest.mock import patch

import pytest
from fastapi import status

import marketplace
import models
import schemas
from errors import AlreadyApplied


def setup_offer(factory):
    owner = factory.company_owner(company_name="Hiring Co")
    job = factory.job(owner.company_owner.company, name="DevOps apprentice")
    return owner, job


def test_student_applies_and_owner_is_notified(test_client, factory, outbox):
    owner, job = setup_offer(factory)
    student = factory.student()

    response = test_client.post(
        "/api/student/job-applications",
        json={"jobId": job.id, "subject": "Candidature", "message": "Bonjour"},
        headers=factory.auth_headers(student),
    )

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["status"] == "PENDING"
    assert body["jobId"] == job.id
    outbox.assert_called_once()
    sent = outbox.call_args.kwargs
    assert sent["to"] == owner.email
    assert "DevOps apprentice" in sent["subject"]
    assert f"/company/applications/{body['id']}" in sent["html"]


def test_second_application_is_409(test_client, factory):
    _, job = setup_offer(factory)
    headers = factory.auth_headers(factory.student())

    first = test_client.post("/api/student/job-applications", json={"jobId": job.id}, headers=headers)
    second = test_client.post("/api/student/job-applications", json={"jobId": job.id}, headers=headers)

    assert first.status_code == status.HTTP_201_CREATED
    assert second.status_code == status.HTTP_409_CONFLICT


def test_duplicate_caught_by_unique_constraint(db_session, factory):
    """Even when the pre-check misses a concurrent insert, the constraint maps to 409."""
    _, job = setup_offer(factory)
    user = factory.student()
    db_session.add(models.JobRequest(student_id=user.student.id, job_id=job.id))
    db_session.commit()

    with patch("marketplace.crud.find_job_request", return_value=None):
        with pytest.raises(AlreadyApplied):
            marketplace.apply_to_job(
                db_session, user, schemas.JobApplicationCreate(job_id=job.id), settings=None
            )


def test_only_students_can_apply(test_client, factory):
    owner, job = setup_offer(factory)

    response = test_client.post(
        "/api/student/job-applications", json={"jobId": job.id}, headers=factory.auth_headers(owner)
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_unknown_or_deleted_job_is_404(test_client, db_session, factory):
    _, job = setup_offer(factory)
    job.deleted_at = models.utcnow()
    db_session.commit()
    headers = factory.auth_headers(factory.student())

    unknown = test_client.post("/api/student/job-applications", json={"jobId": "missing"}, headers=headers)
    deleted = test_client.post("/api/student/job-applications", json={"jobId": job.id}, headers=headers)

    assert unknown.status_code == status.HTTP_404_NOT_FOUND
    assert deleted.status_code == status.HTTP_404_NOT_FOUND


def test_application_requires_session(test_client):
    response = test_client.post("/api/student/job-applications", json={"jobId": "x"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_students_list_their_applications(test_client, factory):
    _, job = setup_offer(factory)
    student = factory.student()
    headers = factory.auth_headers(student)
    test_client.post("/api/student/job-applications", json={"jobId": job.id}, headers=headers)

    response = test_client.get("/api/student/job-applications", headers=headers)

    assert response.status_code == status.HTTP_200_OK
    [application] = response.json()
    assert application["job"]["name"] == "DevOps apprentice"
    assert application["job"]["company"]["name"] == "Hiring Co"
    assert application["student"]["user"]["email"] == student.email


def test_company_reviews_job_requests(test_client, factory):
    owner, job = setup_offer(factory)
    company_id = owner.company_owner.company_id
    student = factory.student()
    created = test_client.post(
        "/api/job-requests", json={"studentId": student.student.id, "jobId": job.id}
    )

    listed = test_client.get(f"/api/companies/{company_id}/job-requests")
    accepted = test_client.put(f"/api/job-requests/{created.json()['id']}", json={"status": "ACCEPTED"})
    invalid = test_client.put(f"/api/job-requests/{created.json()['id']}", json={"status": "MAYBE"})

    assert created.status_code == status.HTTP_201_CREATED
    assert [r["id"] for r in listed.json()] == [created.json()["id"]]
    assert accepted.json()["status"] == "ACCEPTED"
    assert invalid.status_code == status.HTTP_400_BAD_REQUEST


def test_recommendation_and_primary(test_client, factory):
    owner, _ = setup_offer(factory)
    student = factory.student()

    created = test_client.post(
        "/api/recommendations",
        json={"studentId": student.student.id, "recommendation": "Excellent stagiaire"},
        headers=factory.auth_headers(owner),
    )
    primary = test_client.put(
        "/api/recommendations/primary",
        json={"recommendationId": created.json()["id"]},
        headers=factory.auth_headers(student),
    )
    stranger = test_client.put(
        "/api/recommendations/primary",
        json={"recommendationId": created.json()["id"]},
        headers=factory.auth_headers(factory.student()),
    )

    assert created.status_code == status.HTTP_201_CREATED
    assert primary.json()["primaryRecommendationId"] == created.json()["id"]
    assert stranger.status_code == status.HTTP_404_NOT_FOUND


def test_student_can_reapply_after_request_is_deleted(test_client, db_session, factory):
    _, job = setup_offer(factory)
    headers = factory.auth_headers(factory.student())
    first = test_client.post(
        "/api/student/job-applications", json={"jobId": job.id, "subject": "Première"}, headers=headers
    )
    request_id = first.json()["id"]
    test_client.put(f"/api/job-requests/{request_id}", json={"status": "REJECTED"})
    assert test_client.delete(f"/api/job-requests/{request_id}").status_code == status.HTTP_200_OK

    again = test_client.post(
        "/api/student/job-applications", json={"jobId": job.id, "subject": "Seconde"}, headers=headers
    )
    third = test_client.post("/api/student/job-applications", json={"jobId": job.id}, headers=headers)

    assert again.status_code == status.HTTP_201_CREATED
    assert again.json()["id"] == request_id
    assert again.json()["status"] == "PENDING"
    assert again.json()["subject"] == "Seconde"
    assert third.status_code == status.HTTP_409_CONFLICT
    db_session.commit()
    assert db_session.query(models.JobRequest).filter(models.JobRequest.job_id == job.id).count() == 1


def test_student_withdraws_own_application_only(test_client, factory):
    _, job = setup_offer(factory)
    student = factory.student()
    headers = factory.auth_headers(student)
    created = test_client.post("/api/student/job-applications", json={"jobId": job.id}, headers=headers)
    request_id = created.json()["id"]

    stranger = test_client.delete(
        f"/api/student/job-applications/{request_id}", headers=factory.auth_headers(factory.student())
    )
    withdrawn = test_client.delete(f"/api/student/job-applications/{request_id}", headers=headers)
    twice = test_client.delete(f"/api/student/job-applications/{request_id}", headers=headers)
    listed = test_client.get("/api/student/job-applications", headers=headers)

    assert stranger.status_code == status.HTTP_403_FORBIDDEN
    assert withdrawn.json() == {"success": True}
    assert twice.status_code == status.HTTP_404_NOT_FOUND
    assert listed.json() == []


def test_students_job_requests_endpoints(test_client, factory, outbox):
    owner, job = setup_offer(factory)
    student = factory.student()
    headers = factory.auth_headers(student)

    created = test_client.post("/api/students/job-requests", json={"jobId": job.id}, headers=headers)
    duplicate = test_client.post("/api/students/job-requests", json={"jobId": job.id}, headers=headers)
    missing = test_client.post("/api/students/job-requests", json={}, headers=headers)
    not_student = test_client.post(
        "/api/students/job-requests", json={"jobId": job.id}, headers=factory.auth_headers(owner)
    )
    listed = test_client.get("/api/students/job-requests", headers=headers)

    assert created.status_code == status.HTTP_201_CREATED
    assert created.json()["status"] == "PENDING"
    assert duplicate.status_code == status.HTTP_409_CONFLICT
    assert missing.status_code == status.HTTP_400_BAD_REQUEST
    assert not_student.status_code == status.HTTP_403_FORBIDDEN
    assert [r["id"] for r in listed.json()] == [created.json()["id"]]
    assert listed.json()[0]["job"]["company"]["name"] == "Hiring Co"
    outbox.assert_not_called()
    assert test_client.get("/api/students/job-requests").status_code == status.HTTP_401_UNAUTHORIZED
