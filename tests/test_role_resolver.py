from unittest.mock import patch

import pytest
from fastapi import status
from sqlalchemy.exc import SQLAlchemyError

import logic
import models
from errors import ValidationFailed


def test_check_school_owner_endpoint(test_client, factory):
    owner = factory.school_owner()
    student = factory.student()

    def check(email):
        response = test_client.post("/api/auth/check-school-owner", json={"email": email})
        assert response.status_code == status.HTTP_200_OK
        return response.json()["isSchoolOwner"]

    assert check(owner.email) is True
    assert check(owner.email.upper()) is True
    assert check(student.email) is False
    assert check(factory.email("nobody")) is False
    assert check("not-an-email") is False


def test_school_owner_wins_over_admin(db_session, factory):
    owner = factory.school_owner()
    db_session.add(models.Admin(user_id=owner.id))
    db_session.commit()

    resolution = logic.resolve_role(db_session, owner.email)

    assert resolution.role == "school_owner"
    assert resolution.user_id == owner.id


def test_resolve_role_for_each_satellite(db_session, factory):
    company_user = factory.company_owner()
    student_user = factory.student()
    admin_user = factory.user(type="admin")
    db_session.add(models.Admin(user_id=admin_user.id))
    db_session.commit()

    assert logic.resolve_role(db_session, company_user.email).role == "company_owner"
    assert logic.resolve_role(db_session, student_user.email).role == "student"
    assert logic.resolve_role(db_session, admin_user.email).role == "admin"


def test_resolve_role_unregistered(db_session, factory):
    bare_user = factory.user()

    assert logic.resolve_role(db_session, bare_user.email).role == logic.UNREGISTERED
    missing = logic.resolve_role(db_session, factory.email("ghost"))
    assert missing.role == logic.UNREGISTERED
    assert missing.user is None


def test_resolve_role_corrects_stale_type(db_session, factory):
    user = factory.user(type="student")
    company = models.Company(name="Stale Type Inc")
    db_session.add(company)
    db_session.flush()
    db_session.add(models.CompanyOwner(user_id=user.id, company_id=company.id))
    db_session.commit()

    resolution = logic.resolve_role(db_session, user.email)
    db_session.commit()

    db_session.refresh(user)
    assert resolution.role == "company_owner"
    assert user.type == "company_owner"


def test_type_correction_failure_is_not_surfaced(db_session, factory):
    owner = factory.school_owner()
    owner.type = "student"
    db_session.commit()

    with patch.object(db_session, "begin_nested", side_effect=SQLAlchemyError("savepoint failed")):
        resolution = logic.resolve_role(db_session, owner.email)

    assert resolution.role == "school_owner"


def test_callback_url_for_role(settings):
    assert logic.callback_url_for_role("school_owner", settings) == "http://testserver/school/students"
    for role in ("student", "company_owner", "admin", logic.UNREGISTERED):
        assert logic.callback_url_for_role(role, settings) == "http://testserver/select-profile"


@pytest.mark.parametrize("email", ["", "   ", None, "missing-at", "two@@signs"])
def test_normalize_email_rejects_bad_input(email):
    with pytest.raises(ValidationFailed):
        logic.normalize_email(email)


def test_normalize_email_lowercases():
    assert logic.normalize_email("  Jane.Doe@School.FR ") == "jane.doe@school.fr"
