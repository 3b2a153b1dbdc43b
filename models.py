import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import relationship
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserType(str, enum.Enum):
    STUDENT = "student"
    COMPANY_OWNER = "company_owner"
    SCHOOL_OWNER = "school_owner"
    ADMIN = "admin"


class RequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


EXPERIENCE_TYPES = ("Stage", "Alternance", "CDI", "CDD", "Autre")


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    type = Column(String, nullable=False, default=UserType.STUDENT.value)
    profile_picture = Column(String, nullable=True)
    profile_completed = Column(Boolean, nullable=False, default=False)
    email_verified = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    # At most one of these is expected; enforced by the application, not the schema.
    admin = relationship("Admin", back_populates="user", uselist=False)
    school_owner = relationship("SchoolOwner", back_populates="user", uselist=False)
    company_owner = relationship("CompanyOwner", back_populates="user", uselist=False)
    student = relationship("Student", back_populates="user", uselist=False)


class Admin(Base):
    __tablename__ = "admins"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)

    user = relationship("User", back_populates="admin")


class AuthorizedSchoolDomain(Base):
    __tablename__ = "authorized_school_domains"

    id = Column(String(36), primary_key=True, default=_uuid)
    domain = Column(String, unique=True, index=True, nullable=False)  # always lowercased
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    schools = relationship("School", back_populates="domain", order_by="School.created_at")


class School(Base):
    __tablename__ = "schools"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    logo = Column(String, nullable=True)
    domain_id = Column(String(36), ForeignKey("authorized_school_domains.id"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    domain = relationship("AuthorizedSchoolDomain", back_populates="schools")
    owners = relationship("SchoolOwner", back_populates="school")
    students = relationship("Student", back_populates="school")


class SchoolOwner(Base):
    __tablename__ = "school_owners"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    school_id = Column(String(36), ForeignKey("schools.id"), nullable=False)

    user = relationship("User", back_populates="school_owner")
    school = relationship("School", back_populates="owners")


class Company(Base):
    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    logo = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    jobs = relationship("Job", back_populates="company")
    owners = relationship("CompanyOwner", back_populates="company")
    recommendations = relationship("Recommendation", back_populates="company")


class CompanyOwner(Base):
    __tablename__ = "company_owners"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False)

    user = relationship("User", back_populates="company_owner")
    company = relationship("Company", back_populates="owners")


class Student(Base):
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    # Nullable: the row may be created lazily before the student picks a school.
    school_id = Column(String(36), ForeignKey("schools.id"), nullable=True)
    student_email = Column(String, unique=True, nullable=True)
    status = Column(String, nullable=False, default="PENDING")
    skills = Column(Text, nullable=False, default="")
    apprenticeship_rhythm = Column(String, nullable=True)
    description = Column(Text, nullable=False, default="")
    curriculum_vitae = Column(String, nullable=True)
    previous_companies = Column(Text, nullable=False, default="")
    availability = Column(Boolean, nullable=False, default=False)
    primary_recommendation_id = Column(
        String(36),
        ForeignKey(
            "recommendations.id",
            use_alter=True,
            name="fk_students_primary_recommendation",
            ondelete="SET NULL",
        ),
        nullable=True,
    )

    user = relationship("User", back_populates="student")
    school = relationship("School", back_populates="students")
    job_requests = relationship("JobRequest", back_populates="student")
    experiences = relationship("Experience", back_populates="student", order_by="Experience.start_date.desc()")
    recommendations = relationship(
        "Recommendation",
        back_populates="student",
        foreign_keys="Recommendation.student_id",
    )
    primary_recommendation = relationship(
        "Recommendation",
        foreign_keys=[primary_recommendation_id],
        post_update=True,
    )


class Job(Base):
    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    skills = Column(Text, nullable=True)  # comma-separated free text
    type = Column(String, nullable=True)
    availability = Column(String, nullable=True)
    featured_image = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    company = relationship("Company", back_populates="jobs")
    requests = relationship("JobRequest", back_populates="job")


class JobRequest(Base):
    __tablename__ = "job_requests"
    __table_args__ = (
        UniqueConstraint("student_id", "job_id", name="uq_job_requests_student_job"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    student_id = Column(String(36), ForeignKey("students.id"), nullable=False, index=True)
    job_id = Column(String(36), ForeignKey("jobs.id"), nullable=False, index=True)
    status = Column(String, nullable=False, default=RequestStatus.PENDING.value)
    subject = Column(String, nullable=True)
    message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    student = relationship("Student", back_populates="job_requests")
    job = relationship("Job", back_populates="requests")


class Recommendation(Base):
    __tablename__ = "recommendations"

    id = Column(String(36), primary_key=True, default=_uuid)
    student_id = Column(String(36), ForeignKey("students.id"), nullable=False, index=True)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False)
    recommendation = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    student = relationship("Student", back_populates="recommendations", foreign_keys=[student_id])
    company = relationship("Company", back_populates="recommendations")


class VerificationToken(Base):
    __tablename__ = "verification_tokens"

    id = Column(String(36), primary_key=True, default=_uuid)
    identifier = Column(String, index=True, nullable=False)  # the email the link was sent to
    token = Column(String, unique=True, nullable=False)  # sha256 of the emailed token
    expires = Column(DateTime(timezone=True), nullable=False)


class Experience(Base):
    __tablename__ = "experiences"

    id = Column(String(36), primary_key=True, default=_uuid)
    student_id = Column(String(36), ForeignKey("students.id"), nullable=False, index=True)
    position = Column(String, nullable=False)
    company = Column(String, nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    type = Column(String, nullable=False)

    student = relationship("Student", back_populates="experiences")
