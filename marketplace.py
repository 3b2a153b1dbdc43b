"""Companies, job offers, applications and recommendations."""
from typing import List, Optional, Tuple

import structlog
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import crud
import email_sender
import models
import schemas
from database import transaction
from errors import AlreadyApplied, EmailDeliveryError, Forbidden, Gone, NotFound, ValidationFailed
from models import UserType, utcnow
from settings import Settings

logger = structlog.get_logger(__name__)

DEFAULT_COMPANY_LOGO = "/placeholder.svg"


def split_skills(skills: Optional[str]) -> List[str]:
    return [skill.strip() for skill in (skills or "").split(",") if skill.strip()]


# --- Companies --- #
def get_company_or_404(db: Session, company_id: str) -> models.Company:
    company = crud.get_company(db, company_id)
    if company is None:
        raise NotFound("Compagnie non trouvée")
    return company


def create_company_for_user(db: Session, payload: schemas.CompanyCreate) -> models.Company:
    user = crud.get_user_by_id(db, payload.user_id)
    if user is None:
        raise NotFound("L'utilisateur n'existe pas")
    if user.company_owner is not None:
        raise ValidationFailed("L'utilisateur a déjà une entreprise")

    with transaction(db):
        company = models.Company(name=payload.name, logo=payload.logo)
        db.add(company)
        db.flush()
        db.add(models.CompanyOwner(user_id=user.id, company_id=company.id))
        user.type = UserType.COMPANY_OWNER.value
        db.flush()
    logger.info("Company created", company_id=company.id, owner_id=user.id)
    return company


def update_company(db: Session, company_id: str, payload: schemas.CompanyUpdate) -> models.Company:
    company = get_company_or_404(db, company_id)
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationFailed("Aucune donnée fournie pour la mise à jour")
    for key, value in changes.items():
        setattr(company, key, value)
    db.flush()
    return company


def delete_company(db: Session, company_id: str) -> None:
    company = get_company_or_404(db, company_id)
    company.deleted_at = utcnow()
    db.flush()


def company_of(user: models.User) -> models.Company:
    if user.company_owner is None:
        raise Forbidden("Non autorisé", "Vous devez être propriétaire d'une entreprise.")
    return user.company_owner.company


def list_company_owners(
    db: Session,
    page: int = 1,
    limit: int = 10,
    order: str = "desc",
    search: Optional[str] = None,
    company_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> Tuple[list, int]:
    query = (
        db.query(models.CompanyOwner)
        .join(models.User, models.CompanyOwner.user_id == models.User.id)
        .join(models.Company, models.CompanyOwner.company_id == models.Company.id)
        .filter(models.User.deleted_at.is_(None))
    )
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                models.User.first_name.ilike(pattern),
                models.User.last_name.ilike(pattern),
                models.User.email.ilike(pattern),
                models.Company.name.ilike(pattern),
            )
        )
    if company_id:
        query = query.filter(models.CompanyOwner.company_id == company_id)
    if user_id:
        query = query.filter(models.CompanyOwner.user_id == user_id)

    column = models.User.created_at.asc() if order == "asc" else models.User.created_at.desc()
    return crud.paginate(query.order_by(column), page, limit)


def get_company_owner_or_404(db: Session, owner_id: str) -> models.CompanyOwner:
    owner = crud.get_company_owner(db, owner_id)
    if owner is None:
        raise NotFound("Propriétaire d'entreprise non trouvé")
    return owner


def _company_owner_errors(
    db: Session, payload: schemas.OwnerWrite, owner: Optional[models.CompanyOwner] = None
) -> List[dict]:
    """Field errors for linking ``payload.user_id`` to ``payload.company_id``.

    On update (``owner`` given) only the fields present are checked.
    """
    errors = []
    if owner is None or payload.user_id is not None:
        if not payload.user_id:
            errors.append({"field": "userId", "message": "L'ID de l'utilisateur est requis"})
        elif crud.get_user_by_id(db, payload.user_id) is None:
            errors.append({"field": "userId", "message": "L'utilisateur spécifié n'existe pas"})
        else:
            clash = crud.get_company_owner_by_user(db, payload.user_id)
            if clash is not None and (owner is None or clash.id != owner.id):
                errors.append({"field": "userId", "message": "Cet utilisateur est déjà propriétaire d'une entreprise"})
    if owner is None or payload.company_id is not None:
        if not payload.company_id:
            errors.append({"field": "companyId", "message": "L'ID de l'entreprise est requis"})
        elif crud.get_company(db, payload.company_id) is None:
            errors.append({"field": "companyId", "message": "L'entreprise spécifiée n'existe pas"})
    return errors


def create_company_owner(db: Session, payload: schemas.OwnerWrite) -> models.CompanyOwner:
    errors = _company_owner_errors(db, payload)
    if errors:
        raise ValidationFailed("Validation échouée", details=errors)
    user = crud.get_user_by_id(db, payload.user_id)
    try:
        with db.begin_nested():
            owner = models.CompanyOwner(user_id=user.id, company_id=payload.company_id)
            db.add(owner)
            user.type = UserType.COMPANY_OWNER.value
    except IntegrityError:
        raise ValidationFailed(
            "Validation échouée",
            details=[{"field": "userId", "message": "Cet utilisateur est déjà propriétaire d'une entreprise"}],
        )
    logger.info("Company owner linked", owner_id=owner.id, user_id=user.id, company_id=owner.company_id)
    return owner


def update_company_owner(db: Session, owner_id: str, payload: schemas.OwnerWrite) -> models.CompanyOwner:
    owner = get_company_owner_or_404(db, owner_id)
    errors = _company_owner_errors(db, payload, owner=owner)
    if errors:
        raise ValidationFailed("Validation échouée", details=errors)
    if payload.user_id:
        owner.user_id = payload.user_id
    if payload.company_id:
        owner.company_id = payload.company_id
    db.flush()
    db.refresh(owner)
    return owner


def delete_company_owner(db: Session, owner_id: str) -> None:
    owner = get_company_owner_or_404(db, owner_id)
    db.delete(owner)
    db.flush()
    logger.info("Company owner unlinked", owner_id=owner_id, user_id=owner.user_id)


# --- Jobs --- #
def get_live_job(db: Session, job_id: str) -> models.Job:
    """Return the job, 404 when unknown and 410 when soft-deleted."""
    job = crud.get_job(db, job_id)
    if job is None:
        raise NotFound("Job non trouvé")
    if job.deleted_at is not None:
        raise Gone("Ce job a été supprimé")
    return job


def job_to_schema(job: models.Job) -> schemas.Job:
    return schemas.Job(
        id=job.id,
        company_id=job.company_id,
        name=job.name,
        description=job.description,
        skills=split_skills(job.skills),
        type=job.type,
        availability=job.availability,
        featured_image=job.featured_image,
        company=schemas.JobCompany.model_validate(job.company) if job.company else None,
        created_at=job.created_at,
        updated_at=job.updated_at,
    )


def job_to_list_item(job: models.Job) -> schemas.JobListItem:
    company = job.company
    return schemas.JobListItem(
        id=job.id,
        offer_title=job.name,
        company_name=company.name if company else "",
        description=job.description,
        logo_url=(company.logo if company and company.logo else DEFAULT_COMPANY_LOGO),
        status=job.type,
        skills=[schemas.Skill(id=skill.lower(), name=skill) for skill in split_skills(job.skills)],
        availability=job.availability,
    )


def create_job(db: Session, payload: schemas.JobCreate) -> models.Job:
    if crud.get_company(db, payload.company_id) is None:
        raise NotFound("Entreprise non trouvée")
    job = models.Job(
        company_id=payload.company_id,
        name=payload.name,
        description=payload.description,
        skills=",".join(split_skills(payload.skills)),
        type=payload.type,
        availability=payload.availability,
        featured_image=payload.featured_image,
    )
    db.add(job)
    db.flush()
    logger.info("Job created", job_id=job.id, company_id=job.company_id)
    return job


def update_job(db: Session, job_id: str, payload: schemas.JobUpdate) -> models.Job:
    job = get_live_job(db, job_id)
    changes = payload.model_dump(exclude_unset=True)
    if "skills" in changes:
        changes["skills"] = ",".join(s.strip() for s in (changes["skills"] or []) if s.strip())
    for key, value in changes.items():
        setattr(job, key, value)
    db.flush()
    return job


def delete_job(db: Session, job_id: str) -> None:
    job = crud.get_job(db, job_id)
    if job is None:
        raise NotFound("Job non trouvé")
    if job.deleted_at is not None:
        raise Gone("Ce job a déjà été supprimé")
    job.deleted_at = utcnow()
    db.flush()


def get_company_job(db: Session, user: models.User, job_id: str) -> models.Job:
    """A live job of the signed-in owner's company."""
    company = company_of(user)
    job = get_live_job(db, job_id)
    if job.company_id != company.id:
        raise Forbidden("Non autorisé", "Cette offre n'appartient pas à votre entreprise")
    return job


def update_company_job(db: Session, user: models.User, job_id: str, payload: schemas.CompanyJobUpdate) -> models.Job:
    if not payload.name or not payload.description:
        raise ValidationFailed("Données manquantes")
    job = get_company_job(db, user, job_id)
    job.name = payload.name
    job.description = payload.description
    if payload.skills is not None:
        job.skills = ",".join(split_skills(payload.skills))
    db.flush()
    return job


def delete_company_job(db: Session, user: models.User, job_id: str) -> models.Job:
    job = get_company_job(db, user, job_id)
    job.deleted_at = utcnow()
    db.flush()
    logger.info("Job withdrawn by company", job_id=job.id, company_id=job.company_id)
    return job


# --- Job requests --- #
def enrich_job_request(request: models.JobRequest) -> schemas.EnrichedJobRequest:
    student, job = request.student, request.job
    return schemas.EnrichedJobRequest(
        id=request.id,
        student_id=request.student_id,
        job_id=request.job_id,
        status=request.status,
        subject=request.subject,
        message=request.message,
        created_at=request.created_at,
        updated_at=request.updated_at,
        student=schemas.ApplicantStudent(
            id=student.id,
            user=schemas.ApplicantUser.model_validate(student.user),
        ),
        job=schemas.JobSummary(
            id=job.id,
            name=job.name,
            company_id=job.company_id,
            company=schemas.JobCompany.model_validate(job.company),
        ),
    )


def _revive_job_request(db: Session, request: models.JobRequest, **fields) -> models.JobRequest:
    """Reopen a withdrawn or deleted request for the same (student, job) pair.

    The update only matches while the row is still deleted, so two students
    racing on the same revival cannot both succeed.
    """
    values = {
        "deleted_at": None,
        "status": fields.get("status") or models.RequestStatus.PENDING.value,
        "subject": fields.get("subject"),
        "message": fields.get("message"),
        "created_at": utcnow(),
        "updated_at": utcnow(),
    }
    revived = (
        db.query(models.JobRequest)
        .filter(models.JobRequest.id == request.id, models.JobRequest.deleted_at.isnot(None))
        .update(values, synchronize_session=False)
    )
    if not revived:
        raise AlreadyApplied("Vous avez déjà postulé à cette offre")
    db.refresh(request)
    logger.info("Job request reopened", request_id=request.id, student_id=request.student_id)
    return request


def _insert_job_request(db: Session, student_id: str, job_id: str, **fields) -> models.JobRequest:
    """Insert under a savepoint; the (student, job) unique constraint maps to 409.

    A soft-deleted request for the same pair is reopened instead.
    """
    existing = crud.find_job_request(db, student_id, job_id)
    if existing is not None:
        if existing.deleted_at is None:
            raise AlreadyApplied("Vous avez déjà postulé à cette offre")
        return _revive_job_request(db, existing, **fields)
    try:
        with db.begin_nested():
            request = models.JobRequest(student_id=student_id, job_id=job_id, **fields)
            db.add(request)
    except IntegrityError:
        logger.info("Duplicate application rejected", student_id=student_id, job_id=job_id)
        raise AlreadyApplied("Vous avez déjà postulé à cette offre")
    return request


def create_job_request(db: Session, payload: schemas.JobRequestCreate) -> models.JobRequest:
    if crud.get_student(db, payload.student_id) is None:
        raise NotFound("Étudiant non trouvé")
    get_live_job(db, payload.job_id)
    return _insert_job_request(db, payload.student_id, payload.job_id, status=payload.status)


def get_job_request_or_404(db: Session, request_id: str) -> models.JobRequest:
    request = crud.get_job_request(db, request_id)
    if request is None:
        raise NotFound("Job request non trouvée")
    return request


def update_job_request_status(db: Session, request_id: str, status: str) -> models.JobRequest:
    request = get_job_request_or_404(db, request_id)
    request.status = status
    db.flush()
    logger.info("Job request status changed", request_id=request.id, status=status)
    return request


def delete_job_request(db: Session, request_id: str) -> None:
    request = get_job_request_or_404(db, request_id)
    request.deleted_at = utcnow()
    db.flush()


def student_of(user: models.User) -> models.Student:
    if user.student is None:
        raise Forbidden("Non autorisé", "Seuls les étudiants peuvent postuler aux offres")
    return user.student


def apply_to_job(
    db: Session, user: models.User, payload: schemas.JobApplicationCreate, settings: Settings
) -> models.JobRequest:
    """Record a student's application and notify the company's owners.

    The application is committed before notifying; a failed notification is
    logged and does not undo it.
    """
    if not payload.job_id:
        raise ValidationFailed("L'identifiant de l'offre est requis")
    student = student_of(user)
    job = crud.get_job(db, payload.job_id)
    if job is None or job.deleted_at is not None:
        raise NotFound("Offre non trouvée")

    request = _insert_job_request(
        db,
        student.id,
        job.id,
        status=models.RequestStatus.PENDING.value,
        subject=payload.subject,
        message=payload.message,
    )
    db.commit()
    logger.info("Student applied to job", student_id=student.id, job_id=job.id, request_id=request.id)

    student_name = " ".join(filter(None, [user.first_name, user.last_name])) or user.email
    application_url = f"{settings.base_url}/company/applications/{request.id}"
    for owner in job.company.owners:
        if owner.user is None or owner.user.deleted_at is not None:
            continue
        try:
            email_sender.send_job_application_email(
                settings,
                owner.user.email,
                company_name=job.company.name,
                job_title=job.name,
                student_name=student_name,
                student_email=student.student_email or user.email,
                subject=payload.subject,
                message=payload.message,
                application_url=application_url,
            )
        except EmailDeliveryError:
            logger.error("Application notification not delivered", request_id=request.id, owner_id=owner.user_id)
    return request


def list_student_applications(db: Session, user: models.User) -> List[models.JobRequest]:
    return crud.list_job_requests(db, student_id=student_of(user).id)


def request_job(db: Session, user: models.User, job_id: Optional[str]) -> models.JobRequest:
    """Plain job request from a student, without a message or notification."""
    if not job_id:
        raise ValidationFailed("L'identifiant de l'offre est requis")
    student = student_of(user)
    job = crud.get_job(db, job_id)
    if job is None or job.deleted_at is not None:
        raise NotFound("Offre non trouvée")
    request = _insert_job_request(db, student.id, job.id, status=models.RequestStatus.PENDING.value)
    logger.info("Student requested job", student_id=student.id, job_id=job.id, request_id=request.id)
    return request


def withdraw_application(db: Session, user: models.User, request_id: str) -> None:
    """Soft-delete one of the student's own requests; applying again reopens it."""
    if user.student is None:
        raise Forbidden("Non autorisé", "Seuls les étudiants peuvent retirer leurs candidatures")
    request = crud.get_job_request(db, request_id)
    if request is None:
        raise NotFound("Candidature non trouvée")
    if request.student_id != user.student.id:
        raise Forbidden("Non autorisé", "Vous ne pouvez retirer que vos propres candidatures")
    request.deleted_at = utcnow()
    db.flush()
    logger.info("Application withdrawn", request_id=request.id, student_id=request.student_id)


# --- Students --- #
def get_student_or_404(db: Session, student_id: str) -> models.Student:
    student = crud.get_student(db, student_id)
    if student is None:
        raise NotFound("Étudiant non trouvé")
    return student


def update_student(db: Session, student_id: str, payload: schemas.StudentUpdate) -> models.Student:
    student = get_student_or_404(db, student_id)
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(student, key, value)
    db.flush()
    return student


def list_school_students(db: Session, user: models.User) -> List[models.Student]:
    """Students whose school email belongs to the owner's school domain."""
    owner = user.school_owner
    if owner is None:
        raise Forbidden("Non autorisé", "Vous devez être un propriétaire d'école.")
    domain = owner.school.domain.domain
    return [s for s in crud.list_students_for_domain(db, domain) if s.user.deleted_at is None]


# --- Experiences --- #
def _check_experience_type(experience_type: str) -> None:
    if experience_type not in models.EXPERIENCE_TYPES:
        raise ValidationFailed(
            "Données invalides",
            details=[{"field": "type", "message": f"Type d'expérience invalide: {experience_type}"}],
        )


def list_experiences(
    db: Session,
    student_id: str,
    page: int = 1,
    limit: int = 10,
    order: str = "desc",
    experience_type: Optional[str] = None,
    company: Optional[str] = None,
    search: Optional[str] = None,
) -> Tuple[list, int]:
    query = db.query(models.Experience).filter(models.Experience.student_id == student_id)
    if experience_type:
        query = query.filter(models.Experience.type == experience_type)
    if company:
        query = query.filter(models.Experience.company.ilike(f"%{company}%"))
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(models.Experience.position.ilike(pattern), models.Experience.company.ilike(pattern)))
    column = models.Experience.start_date.asc() if order == "asc" else models.Experience.start_date.desc()
    return crud.paginate(query.order_by(column), page, limit)


def create_experience(db: Session, student_id: str, payload: schemas.ExperienceWrite) -> models.Experience:
    _check_experience_type(payload.type)
    student = get_student_or_404(db, student_id)
    experience = models.Experience(student_id=student.id, **payload.model_dump())
    db.add(experience)
    db.flush()
    return experience


def get_experience_or_404(db: Session, student_id: str, experience_id: str) -> models.Experience:
    experience = crud.get_experience(db, student_id, experience_id)
    if experience is None:
        raise NotFound("Expérience non trouvée")
    return experience


def update_experience(
    db: Session, student_id: str, experience_id: str, payload: schemas.ExperienceWrite
) -> models.Experience:
    _check_experience_type(payload.type)
    experience = get_experience_or_404(db, student_id, experience_id)
    for key, value in payload.model_dump().items():
        setattr(experience, key, value)
    db.flush()
    return experience


def delete_experience(db: Session, student_id: str, experience_id: str) -> None:
    db.delete(get_experience_or_404(db, student_id, experience_id))
    db.flush()


# --- Recommendations --- #
def create_recommendation(
    db: Session, user: models.User, payload: schemas.RecommendationCreate
) -> models.Recommendation:
    company = company_of(user)
    student = get_student_or_404(db, payload.student_id)
    recommendation = models.Recommendation(
        student_id=student.id,
        company_id=company.id,
        recommendation=payload.recommendation,
    )
    db.add(recommendation)
    db.flush()
    return recommendation


def list_recommendations(db: Session, user: models.User) -> List[models.Recommendation]:
    student = user.student
    if student is None:
        raise Forbidden("Non autorisé", "Vous devez être étudiant.")
    return (
        db.query(models.Recommendation)
        .filter(models.Recommendation.student_id == student.id)
        .order_by(models.Recommendation.created_at.desc())
        .all()
    )


def set_primary_recommendation(db: Session, user: models.User, recommendation_id: str) -> models.Student:
    student = user.student
    if student is None:
        raise Forbidden("Non autorisé", "Vous devez être étudiant.")
    recommendation = db.get(models.Recommendation, recommendation_id)
    if recommendation is None or recommendation.student_id != student.id:
        raise NotFound("Recommandation non trouvée")
    student.primary_recommendation_id = recommendation.id
    db.flush()
    return student
