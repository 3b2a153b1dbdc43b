import os
import uuid
from unittest.mock import patch

import pytest
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

# --- Alembic Imports ---
from alembic.config import Config
from alembic import command
# --- End Alembic Imports ---

# Import app and DB dependency function first
from main import app, get_db

# Import database components needed for setup
import auth
import models
from database import Base, build_engine
from settings import Settings, get_settings

TEST_DATABASE_URL = "sqlite:///./studylink-test.db"

test_engine = build_engine(TEST_DATABASE_URL)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def get_test_settings() -> Settings:
    # No Resend key: emails are never sent for real
    return Settings(
        _env_file=None,
        database_url=TEST_DATABASE_URL,
        nextauth_url="http://testserver",
        auth_resend_key=None,
        auth_secret="test-secret",
    )


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create the test database from models and stamp with Alembic head."""
    db_path = TEST_DATABASE_URL.split("///")[-1]
    if os.path.exists(db_path):
        os.unlink(db_path)

    Base.metadata.create_all(bind=test_engine)

    alembic_cfg = Config("alembic.ini")
    alembic_cfg.set_main_option("sqlalchemy.url", TEST_DATABASE_URL)
    command.stamp(alembic_cfg, "head")

    yield  # Tests run here

    test_engine.dispose()
    for suffix in ("", "-wal", "-shm"):
        if os.path.exists(db_path + suffix):
            os.unlink(db_path + suffix)


@pytest.fixture(scope="function")
def db_session(setup_test_database):
    """Yields a SQLAlchemy session directly from the test factory."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def settings() -> Settings:
    return get_test_settings()


@pytest.fixture(scope="function", autouse=True)
def outbox():
    """Capture outgoing emails instead of calling the provider."""
    with patch("email_sender.send_email", return_value=None) as mock_send:
        yield mock_send


# Override the get_db dependency for tests
@pytest.fixture(scope="function")
def override_get_db():
    """Route every request to the test database and test settings.

    A new session is opened per API call so that endpoints commit the way
    they do in production.
    """

    def _override_get_db():
        db = TestSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_settings] = get_test_settings

    yield

    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_settings, None)


@pytest.fixture(scope="function")
def test_client(override_get_db):
    """Provides a test client configured with our test database session."""
    return TestClient(app)


# --- Test data helpers --- #
class Factory:
    """Creates committed rows with unique emails/domains in the shared test DB."""

    def __init__(self, db):
        self.db = db

    @staticmethod
    def email(prefix: str = "user", domain: str = "studylink.fr") -> str:
        return f"{prefix}-{uuid.uuid4().hex[:8]}@{domain}"

    @staticmethod
    def domain_name() -> str:
        return f"school-{uuid.uuid4().hex[:8]}.fr"

    def _save(self, *rows):
        # End any read snapshot left open by attribute loads; API writes may have landed since
        self.db.commit()
        self.db.add_all(rows)
        self.db.commit()
        for row in rows:
            self.db.refresh(row)

    def user(self, email: str = None, type: str = "student", **fields) -> models.User:
        user = models.User(email=email or self.email(), type=type, **fields)
        self._save(user)
        return user

    def school(self, domain: str = None, name: str = "Test School") -> models.School:
        school_domain = models.AuthorizedSchoolDomain(domain=domain or self.domain_name())
        self._save(school_domain)
        school = models.School(name=name, domain_id=school_domain.id, is_active=True)
        self._save(school)
        return school

    def school_owner(self, school: models.School = None, email: str = None) -> models.User:
        school = school or self.school()
        user = self.user(email=email, type="school_owner", first_name="Sam", last_name="Owner")
        self._save(models.SchoolOwner(user_id=user.id, school_id=school.id))
        self.db.refresh(user)
        return user

    def company_owner(self, email: str = None, company_name: str = "Acme") -> models.User:
        company = models.Company(name=company_name)
        self._save(company)
        user = self.user(email=email, type="company_owner", first_name="Cleo", last_name="Boss")
        self._save(models.CompanyOwner(user_id=user.id, company_id=company.id))
        self.db.refresh(user)
        return user

    def student(self, school: models.School = None, email: str = None, student_email: str = None) -> models.User:
        user = self.user(email=email, type="student", first_name="Alex", last_name="Martin")
        student = models.Student(
            user_id=user.id,
            school_id=school.id if school else None,
            student_email=student_email,
        )
        self._save(student)
        self.db.refresh(user)
        return user

    @staticmethod
    def auth_headers(user: models.User) -> dict:
        token = auth.create_session_token(user, get_test_settings())
        return {"Authorization": f"Bearer {token}"}

    def job(self, company: models.Company, name: str = "Backend apprentice", skills: str = "Python, SQL") -> models.Job:
        job = models.Job(company_id=company.id, name=name, description="Build APIs", skills=skills)
        self._save(job)
        return job


@pytest.fixture(scope="function")
def factory(db_session) -> Factory:
    return Factory(db_session)
