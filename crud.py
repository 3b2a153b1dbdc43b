from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

import models


# --- User CRUD ---
def get_user_by_id(db: Session, user_id: str, include_deleted: bool = False):
    """Get a user by their primary key ID."""
    query = db.query(models.User).filter(models.User.id == user_id)
    if not include_deleted:
        query = query.filter(models.User.deleted_at.is_(None))
    return query.first()


def get_user_by_email(db: Session, email: str):
    # Soft-deleted rows are returned too: the email stays reserved.
    return db.query(models.User).filter(models.User.email == email).first()


def create_user(
    db: Session,
    email: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    type: str = models.UserType.STUDENT.value,
    profile_completed: bool = False,
    profile_picture: Optional[str] = None,
):
    db_user = models.User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        type=type,
        profile_completed=profile_completed,
        profile_picture=profile_picture,
    )
    db.add(db_user)
    db.flush()  # Assign ID without committing
    return db_user


def list_users(db: Session) -> List[models.User]:
    return (
        db.query(models.User)
        .filter(models.User.deleted_at.is_(None))
        .order_by(models.User.created_at.desc())
        .all()
    )


# --- School domain CRUD ---
def get_domain(db: Session, domain_id: str):
    return db.query(models.AuthorizedSchoolDomain).filter(models.AuthorizedSchoolDomain.id == domain_id).first()


def get_domain_by_name(db: Session, domain: str):
    return (
        db.query(models.AuthorizedSchoolDomain)
        .filter(models.AuthorizedSchoolDomain.domain == domain.lower())
        .first()
    )


def list_domains(db: Session):
    return db.query(models.AuthorizedSchoolDomain).order_by(models.AuthorizedSchoolDomain.domain).all()


# --- School CRUD ---
def get_school(db: Session, school_id: str):
    return (
        db.query(models.School)
        .filter(models.School.id == school_id, models.School.deleted_at.is_(None))
        .first()
    )


def first_school_for_domain(db: Session, domain_id: str):
    return (
        db.query(models.School)
        .filter(models.School.domain_id == domain_id, models.School.deleted_at.is_(None))
        .order_by(models.School.created_at)
        .first()
    )


def count_schools_for_domain(db: Session, domain_id: str) -> int:
    return (
        db.query(func.count(models.School.id))
        .filter(models.School.domain_id == domain_id, models.School.deleted_at.is_(None))
        .scalar()
    )


def create_school(db: Session, name: str, domain_id: str, logo: Optional[str] = None, is_active: bool = True):
    school = models.School(name=name, domain_id=domain_id, logo=logo, is_active=is_active)
    db.add(school)
    db.flush()
    return school


# --- Company CRUD ---
def get_company(db: Session, company_id: str):
    return (
        db.query(models.Company)
        .filter(models.Company.id == company_id, models.Company.deleted_at.is_(None))
        .first()
    )


def list_companies(db: Session):
    return db.query(models.Company).filter(models.Company.deleted_at.is_(None)).order_by(models.Company.name).all()


def get_company_owner_by_user(db: Session, user_id: str):
    return db.query(models.CompanyOwner).filter(models.CompanyOwner.user_id == user_id).first()


# --- Job CRUD ---
def get_job(db: Session, job_id: str):
    """Returns soft-deleted jobs too so callers can tell 404 from 410."""
    return db.query(models.Job).filter(models.Job.id == job_id).first()


def list_jobs(db: Session, company_id: Optional[str] = None):
    query = db.query(models.Job).filter(models.Job.deleted_at.is_(None))
    if company_id:
        query = query.filter(models.Job.company_id == company_id)
    return query.order_by(models.Job.created_at.desc()).all()


# --- Job request CRUD ---
def get_job_request(db: Session, request_id: str):
    return (
        db.query(models.JobRequest)
        .filter(models.JobRequest.id == request_id, models.JobRequest.deleted_at.is_(None))
        .first()
    )


def list_job_requests(
    db: Session,
    student_id: Optional[str] = None,
    company_id: Optional[str] = None,
):
    query = db.query(models.JobRequest).filter(models.JobRequest.deleted_at.is_(None))
    if student_id:
        query = query.filter(models.JobRequest.student_id == student_id)
    if company_id:
        query = query.join(models.Job).filter(
            models.Job.company_id == company_id, models.Job.deleted_at.is_(None)
        )
    return query.order_by(models.JobRequest.created_at.desc()).all()


def find_job_request(db: Session, student_id: str, job_id: str):
    """Includes soft-deleted requests: the pair stays unique across withdrawals."""
    return (
        db.query(models.JobRequest)
        .filter(models.JobRequest.student_id == student_id, models.JobRequest.job_id == job_id)
        .first()
    )


# --- Student CRUD ---
def get_student(db: Session, student_id: str):
    return db.query(models.Student).filter(models.Student.id == student_id).first()


def get_student_by_user(db: Session, user_id: str):
    return db.query(models.Student).filter(models.Student.user_id == user_id).first()


def get_student_by_email(db: Session, student_email: str):
    return db.query(models.Student).filter(models.Student.student_email == student_email).first()


def list_students_for_domain(db: Session, domain: str):
    return (
        db.query(models.Student)
        .filter(models.Student.student_email.endswith(f"@{domain}", autoescape=True))
        .all()
    )


# --- Verification tokens ---
def create_verification_token(db: Session, identifier: str, token_hash: str, expires: datetime):
    token = models.VerificationToken(identifier=identifier, token=token_hash, expires=expires)
    db.add(token)
    db.flush()
    return token


def get_verification_token(db: Session, identifier: str, token_hash: str):
    return (
        db.query(models.VerificationToken)
        .filter(
            models.VerificationToken.identifier == identifier,
            models.VerificationToken.token == token_hash,
        )
        .first()
    )


def delete_verification_tokens(db: Session, identifier: str) -> int:
    return (
        db.query(models.VerificationToken)
        .filter(models.VerificationToken.identifier == identifier)
        .delete(synchronize_session=False)
    )


def paginate(query, page: int, limit: int):
    """Return one page of ``query`` and the total row count."""
    total = query.count()
    return query.offset((page - 1) * limit).limit(limit).all(), total


# --- Owners ---
def get_school_owner(db: Session, owner_id: str):
    return db.query(models.SchoolOwner).filter(models.SchoolOwner.id == owner_id).first()


def get_company_owner(db: Session, owner_id: str):
    return db.query(models.CompanyOwner).filter(models.CompanyOwner.id == owner_id).first()


# --- Experiences ---
def get_experience(db: Session, student_id: str, experience_id: str):
    return (
        db.query(models.Experience)
        .filter(models.Experience.id == experience_id, models.Experience.student_id == student_id)
        .first()
    )
