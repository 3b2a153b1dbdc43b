"""Account, school-domain and authentication flows.

Everything here works on a caller-provided ``Session``. Functions that only
flush leave the commit to the route handler; the multi-step flows
(user deletion, school provisioning) own their transaction.
"""
import re
from dataclasses import dataclass
from typing import Optional, Tuple

import structlog
from email_validator import EmailNotValidError, validate_email
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

import auth
import crud
import models
import schemas
from database import transaction
from errors import Conflict, Forbidden, NotFound, ValidationFailed
from models import UserType, utcnow
from settings import Settings

logger = structlog.get_logger(__name__)

UNREGISTERED = "unregistered"

DOMAIN_RE = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?(\.[a-z0-9]([a-z0-9-]*[a-z0-9])?)+$")

# Probe order matters: the first satellite found decides the role.
ROLE_PROBES = (
    (UserType.SCHOOL_OWNER.value, "school_owner"),
    (UserType.COMPANY_OWNER.value, "company_owner"),
    (UserType.STUDENT.value, "student"),
    (UserType.ADMIN.value, "admin"),
)

LANDING_PATHS = {
    UserType.SCHOOL_OWNER.value: "/school/students",
}
DEFAULT_LANDING_PATH = "/select-profile"


# ---------------------------------------------------------------------------
# Email / domain helpers
# ---------------------------------------------------------------------------
def normalize_email(email: Optional[str]) -> str:
    if not email or not email.strip():
        raise ValidationFailed("L'email est requis")
    try:
        validated = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValidationFailed("Format d'email invalide", details=[{"field": "email", "message": str(exc)}])
    return validated.normalized.lower()


def extract_domain(email: Optional[str]) -> str:
    """Return the domain of a well-formed email, checked as a school domain."""
    _, _, domain = normalize_email(email).rpartition("@")
    return normalize_domain(domain)


def normalize_domain(domain: Optional[str]) -> str:
    if not domain or not domain.strip():
        raise ValidationFailed("Le domaine est requis")
    normalized = domain.strip().lower()
    if not DOMAIN_RE.match(normalized):
        raise ValidationFailed("Format de domaine invalide")
    return normalized


def default_school_name(domain: str) -> str:
    """``ecole-test.fr`` -> ``ECOLE-TEST``."""
    return domain.split(".")[0].upper()


def default_company_name(email: str) -> str:
    """``jane@acme-corp.io`` -> ``Acme-corp``."""
    return extract_domain(email).split(".")[0].capitalize()


def has_satellite(user: models.User) -> bool:
    return any(getattr(user, attr) is not None for _, attr in ROLE_PROBES)


# ---------------------------------------------------------------------------
# Domain registry
# ---------------------------------------------------------------------------
def check_domain(db: Session, domain: Optional[str]) -> models.School:
    if not domain or not domain.strip():
        raise ValidationFailed("Le domaine est requis")
    school_domain = crud.get_domain_by_name(db, domain.strip().lower())
    school = crud.first_school_for_domain(db, school_domain.id) if school_domain else None
    if school is None:
        raise NotFound("Domaine non reconnu")
    return school


def validate_and_create(db: Session, email: Optional[str]) -> Tuple[models.AuthorizedSchoolDomain, bool]:
    """Return the domain of ``email``, provisioning it with a default school if new.

    The second element tells whether rows were created. Concurrent callers
    racing on the same new domain are reconciled by the unique constraint:
    the loser rolls back its savepoint and reuses the winner's row.
    """
    domain = extract_domain(email)
    existing = crud.get_domain_by_name(db, domain)
    if existing is not None:
        return existing, False

    try:
        with db.begin_nested():
            school_domain = models.AuthorizedSchoolDomain(domain=domain)
            db.add(school_domain)
            db.flush()
            crud.create_school(db, name=default_school_name(domain), domain_id=school_domain.id, is_active=True)
    except IntegrityError:
        logger.info("School domain created concurrently, reusing it", domain=domain)
        existing = crud.get_domain_by_name(db, domain)
        if existing is None:
            raise
        return existing, False

    logger.info("Provisioned school domain", domain=domain, domain_id=school_domain.id)
    return school_domain, True


def validate_school_email(db: Session, email: Optional[str]) -> models.School:
    domain = extract_domain(email)
    school = (
        db.query(models.School)
        .join(models.AuthorizedSchoolDomain)
        .filter(
            models.AuthorizedSchoolDomain.domain == domain,
            models.School.deleted_at.is_(None),
        )
        .order_by(models.School.created_at)
        .first()
    )
    if school is None:
        raise ValidationFailed("L'email scolaire doit correspondre à une école enregistrée")
    return school


def create_domain(db: Session, domain: str) -> models.AuthorizedSchoolDomain:
    normalized = normalize_domain(domain)
    if crud.get_domain_by_name(db, normalized):
        raise Conflict("DOMAIN_EXISTS", "Ce domaine est déjà utilisé")
    school_domain = models.AuthorizedSchoolDomain(domain=normalized)
    db.add(school_domain)
    db.flush()
    return school_domain


def get_domain_or_404(db: Session, domain_id: str) -> models.AuthorizedSchoolDomain:
    school_domain = crud.get_domain(db, domain_id)
    if school_domain is None:
        raise NotFound("Domaine non trouvé")
    return school_domain


def update_domain(db: Session, domain_id: str, domain: str) -> models.AuthorizedSchoolDomain:
    school_domain = get_domain_or_404(db, domain_id)
    normalized = normalize_domain(domain)
    clash = crud.get_domain_by_name(db, normalized)
    if clash is not None and clash.id != school_domain.id:
        raise Conflict("DOMAIN_EXISTS", "Ce domaine est déjà utilisé")
    school_domain.domain = normalized
    db.flush()
    return school_domain


def delete_domain(db: Session, domain_id: str) -> None:
    school_domain = get_domain_or_404(db, domain_id)
    if crud.count_schools_for_domain(db, school_domain.id) > 0:
        raise ValidationFailed("Ce domaine est actuellement utilisé par une ou plusieurs écoles")
    db.delete(school_domain)
    db.flush()


# ---------------------------------------------------------------------------
# Role resolver
# ---------------------------------------------------------------------------
@dataclass
class RoleResolution:
    role: str
    user: Optional[models.User] = None

    @property
    def user_id(self) -> Optional[str]:
        return self.user.id if self.user is not None else None


def is_school_owner(db: Session, email: Optional[str]) -> bool:
    """Plain lookup: any non-empty input is answered, malformed ones with False."""
    if not email or not email.strip():
        raise ValidationFailed("L'email est requis")
    user = crud.get_user_by_email(db, email.strip().lower())
    return bool(user and user.school_owner is not None)


def _correct_user_type(db: Session, user: models.User, role: str) -> None:
    previous = user.type
    try:
        with db.begin_nested():
            user.type = role
        logger.info("Corrected user type", user_id=user.id, previous=previous, role=role)
    except SQLAlchemyError as exc:
        logger.warning("Could not correct user type", user_id=user.id, role=role, exc=str(exc))


def resolve_role(db: Session, email: str) -> RoleResolution:
    """Probe the satellites of the user behind ``email``; first match wins."""
    user = crud.get_user_by_email(db, email)
    if user is None:
        return RoleResolution(UNREGISTERED)

    role = next(
        (role for role, attr in ROLE_PROBES if getattr(user, attr) is not None),
        UNREGISTERED,
    )
    if role != UNREGISTERED and user.type != role:
        _correct_user_type(db, user, role)
    return RoleResolution(role, user)


# ---------------------------------------------------------------------------
# Magic-link dispatcher
# ---------------------------------------------------------------------------
def callback_url_for_role(role: str, settings: Settings) -> str:
    return f"{settings.base_url}{LANDING_PATHS.get(role, DEFAULT_LANDING_PATH)}"


def _ensure_active(user: models.User) -> None:
    if user.deleted_at is not None:
        raise Forbidden("ACCOUNT_DELETED", "Ce compte a été supprimé")


def _create_first_time_user(db: Session, email: str) -> Tuple[models.User, bool]:
    try:
        with db.begin_nested():
            user = crud.create_user(
                db,
                email=email,
                type=UserType.STUDENT.value,
                profile_completed=False,
            )
    except IntegrityError:
        logger.info("User created concurrently, reusing it", email=email)
        user = crud.get_user_by_email(db, email)
        if user is None:
            raise
        return user, False
    logger.info("Created user on first authentication", user_id=user.id, email=email)
    return user, True


def authenticate(db: Session, email: Optional[str], settings: Settings) -> Tuple[models.User, bool]:
    """Send a sign-in link, creating a student user for unseen emails.

    Returns the user and whether it was created by this call.
    """
    email = normalize_email(email)
    user = crud.get_user_by_email(db, email)
    is_new = False
    if user is None:
        user, is_new = _create_first_time_user(db, email)
    _ensure_active(user)

    resolution = resolve_role(db, email)
    auth.send_magic_link(
        db,
        email,
        callback_url_for_role(resolution.role, settings),
        settings,
        first_name=user.first_name,
    )
    return user, is_new


def authenticate_school_owner(db: Session, email: Optional[str], settings: Settings) -> RoleResolution:
    """Send a sign-in link to an existing school owner. Never creates users."""
    email = normalize_email(email)
    resolution = resolve_role(db, email)
    if resolution.role != UserType.SCHOOL_OWNER.value:
        logger.info("School owner sign-in refused", email=email, role=resolution.role)
        raise Forbidden("NOT_SCHOOL_OWNER", "Vous n'êtes pas un administrateur d'école")

    auth.send_magic_link(
        db,
        email,
        callback_url_for_role(resolution.role, settings),
        settings,
        first_name=resolution.user.first_name,
    )
    return resolution


# ---------------------------------------------------------------------------
# Session materializer
# ---------------------------------------------------------------------------
def materialize_session(db: Session, email: str) -> models.User:
    """Make sure a user exists for a verified email and mark it verified."""
    email = normalize_email(email)
    user = crud.get_user_by_email(db, email)
    if user is None:
        user, _ = _create_first_time_user(db, email)
    _ensure_active(user)
    if user.email_verified is None:
        user.email_verified = utcnow()
    db.flush()
    return user


def ensure_profile(db: Session, user: models.User) -> models.User:
    """Create the satellite a user's type calls for, if none exists yet.

    Runs on the profile-completion visit, not at sign-in, so users without
    any satellite are a normal state elsewhere.
    """
    if has_satellite(user):
        return user

    if user.type == UserType.STUDENT.value:
        db.add(models.Student(user_id=user.id))
        logger.info("Created student profile lazily", user_id=user.id)
    elif user.type == UserType.COMPANY_OWNER.value:
        company = models.Company(name=default_company_name(user.email))
        db.add(company)
        db.flush()
        db.add(models.CompanyOwner(user_id=user.id, company_id=company.id))
        logger.info("Created company profile lazily", user_id=user.id, company_id=company.id)
    db.flush()
    db.refresh(user)
    return user


def select_profile(db: Session, user: models.User, profile_type: str) -> models.User:
    current_role = next((role for role, attr in ROLE_PROBES if getattr(user, attr) is not None), None)
    if current_role is not None and current_role != profile_type:
        raise ValidationFailed("Vous avez déjà un profil d'un autre type")
    user.type = profile_type
    db.flush()
    return user


def complete_student_profile(db: Session, user: models.User, payload: schemas.StudentProfileCreate) -> models.Student:
    if user.company_owner is not None or user.school_owner is not None:
        raise ValidationFailed("Vous avez déjà un profil d'un autre type")
    student = user.student
    if student is not None and user.profile_completed:
        raise ValidationFailed("Vous avez déjà un profil étudiant.")

    student_email = normalize_email(payload.student_email)
    clash = crud.get_student_by_email(db, student_email)
    if clash is not None and (student is None or clash.id != student.id):
        raise ValidationFailed("Cet email étudiant est déjà utilisé.")
    if crud.get_school(db, payload.school) is None:
        raise NotFound("L'école demandée n'existe pas")

    if student is None:
        student = models.Student(user_id=user.id)
        db.add(student)

    student.school_id = payload.school
    student.student_email = student_email
    student.status = payload.status
    student.skills = payload.skills
    student.description = payload.description
    student.previous_companies = payload.previous_companies or ""
    student.availability = payload.availability
    student.apprenticeship_rhythm = payload.apprenticeship_rhythm
    student.curriculum_vitae = payload.curriculum_vitae

    user.first_name = payload.first_name
    user.last_name = payload.last_name
    user.type = UserType.STUDENT.value
    user.profile_completed = True
    db.flush()
    return student


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
def get_user_or_404(db: Session, user_id: str) -> models.User:
    user = crud.get_user_by_id(db, user_id)
    if user is None:
        raise NotFound("Utilisateur non trouvé")
    return user


def _ensure_email_free(db: Session, email: str) -> None:
    if crud.get_user_by_email(db, email) is not None:
        raise Conflict(
            "USER_EXISTS",
            "Un utilisateur avec cet email existe déjà",
            details=[{"field": "email", "message": "Un utilisateur avec cet email existe déjà"}],
        )


def create_user_account(db: Session, payload: schemas.UserCreate) -> models.User:
    email = normalize_email(payload.email)
    _ensure_email_free(db, email)

    if payload.type == UserType.STUDENT.value and not payload.school_id:
        raise ValidationFailed("ID de l'école requis pour l'inscription")
    if payload.type == UserType.COMPANY_OWNER.value and not payload.company_id:
        raise ValidationFailed("ID de l'entreprise requis pour l'inscription")

    with transaction(db):
        user = crud.create_user(
            db,
            email=email,
            first_name=payload.first_name,
            last_name=payload.last_name,
            type=payload.type or UserType.STUDENT.value,
            profile_picture=payload.profile_picture,
        )
        if payload.type == UserType.STUDENT.value:
            if crud.get_school(db, payload.school_id) is None:
                raise NotFound("L'école demandée n'existe pas")
            db.add(
                models.Student(
                    user_id=user.id,
                    school_id=payload.school_id,
                    student_email=payload.student_email.lower() if payload.student_email else None,
                )
            )
        elif payload.type == UserType.COMPANY_OWNER.value:
            if crud.get_company(db, payload.company_id) is None:
                raise NotFound("Compagnie non trouvée")
            db.add(models.CompanyOwner(user_id=user.id, company_id=payload.company_id))
        db.flush()
    db.refresh(user)
    return user


def update_user(db: Session, user_id: str, payload: schemas.UserUpdate) -> models.User:
    user = get_user_or_404(db, user_id)
    if payload.email is not None:
        email = normalize_email(payload.email)
        if email != user.email:
            _ensure_email_free(db, email)
            user.email = email
    if payload.first_name:
        user.first_name = payload.first_name
    if payload.last_name:
        user.last_name = payload.last_name
    if payload.profile_picture is not None:
        user.profile_picture = payload.profile_picture
    db.flush()
    return user


def signup_student(db: Session, payload: schemas.StudentSignup) -> models.User:
    if not (payload.email and payload.first_name and payload.last_name and payload.type):
        raise ValidationFailed("Email, prénom, nom et type sont requis")
    if payload.type != UserType.STUDENT.value:
        raise ValidationFailed("Seule l'inscription en tant qu'étudiant est autorisée")
    if not payload.school_id:
        raise ValidationFailed("ID de l'école requis pour l'inscription")

    email = normalize_email(payload.email)
    _ensure_email_free(db, email)
    if crud.get_school(db, payload.school_id) is None:
        raise NotFound("L'école demandée n'existe pas")

    with transaction(db):
        user = crud.create_user(
            db,
            email=email,
            first_name=payload.first_name,
            last_name=payload.last_name,
            type=UserType.STUDENT.value,
        )
        db.add(models.Student(user_id=user.id, school_id=payload.school_id, status="PENDING"))
        db.flush()
    return user


def signup_company(db: Session, payload: schemas.CompanySignup) -> models.User:
    if not (payload.email and payload.first_name and payload.last_name and payload.type and payload.company_name):
        raise ValidationFailed("Email, prénom, nom, type et nom de l'entreprise sont requis")
    if payload.type not in ("company-owner", UserType.COMPANY_OWNER.value):
        raise ValidationFailed("Seule l'inscription en tant que propriétaire d'entreprise est autorisée")

    email = normalize_email(payload.email)
    _ensure_email_free(db, email)

    with transaction(db):
        company = models.Company(name=payload.company_name)
        db.add(company)
        user = crud.create_user(
            db,
            email=email,
            first_name=payload.first_name,
            last_name=payload.last_name,
            type=UserType.COMPANY_OWNER.value,
        )
        db.add(models.CompanyOwner(user_id=user.id, company_id=company.id))
        db.flush()
    return user


def delete_user(db: Session, user_id: str) -> None:
    """Remove a user's satellites and activity, then tombstone the user row.

    Satellites, job requests, recommendations and pending sign-in tokens are
    hard-deleted; the user row only gets ``deleted_at``. One transaction.
    """
    user = get_user_or_404(db, user_id)

    with transaction(db):
        student = user.student
        if student is not None:
            rec_filter = models.Recommendation.student_id == student.id
            if student.primary_recommendation_id:
                rec_filter = or_(rec_filter, models.Recommendation.id == student.primary_recommendation_id)
            student.primary_recommendation_id = None
            db.flush()
            removed_recs = db.query(models.Recommendation).filter(rec_filter).delete(synchronize_session=False)
            removed_requests = (
                db.query(models.JobRequest)
                .filter(models.JobRequest.student_id == student.id)
                .delete(synchronize_session=False)
            )
            db.query(models.Experience).filter(models.Experience.student_id == student.id).delete(
                synchronize_session=False
            )
            db.delete(student)
            logger.info(
                "Removed student data",
                user_id=user.id,
                recommendations=removed_recs,
                job_requests=removed_requests,
            )

        for satellite in (user.school_owner, user.company_owner, user.admin):
            if satellite is not None:
                db.delete(satellite)

        crud.delete_verification_tokens(db, user.email)
        user.deleted_at = utcnow()
        db.flush()

    logger.info("User soft-deleted", user_id=user_id)


# ---------------------------------------------------------------------------
# School provisioning
# ---------------------------------------------------------------------------
def create_school_with_domain(
    db: Session, payload: schemas.CreateSchoolWithDomain
) -> Tuple[models.School, models.AuthorizedSchoolDomain, models.User]:
    owner_email = normalize_email(payload.owner.email)
    domain_name = normalize_domain(payload.domain)
    if crud.get_user_by_email(db, owner_email) is not None:
        raise Conflict(
            "USER_EXISTS",
            "Un utilisateur avec cet email existe déjà",
            details=[{"field": "owner.email", "message": "Un utilisateur avec cet email existe déjà"}],
        )

    domain_taken = Conflict(
        "DOMAIN_EXISTS",
        "Ce domaine est déjà utilisé",
        details=[{"field": "domain", "message": "Ce domaine est déjà utilisé"}],
    )
    try:
        with transaction(db):
            if crud.get_domain_by_name(db, domain_name) is not None:
                raise domain_taken
            school_domain = models.AuthorizedSchoolDomain(domain=domain_name)
            db.add(school_domain)
            db.flush()
            school = crud.create_school(
                db, name=payload.school.name, domain_id=school_domain.id, logo=payload.school.logo
            )
            user = crud.create_user(
                db,
                email=owner_email,
                first_name=payload.owner.first_name,
                last_name=payload.owner.last_name,
                type=UserType.SCHOOL_OWNER.value,
            )
            db.add(models.Admin(user_id=user.id))
            db.add(models.SchoolOwner(user_id=user.id, school_id=school.id))
            db.flush()
    except IntegrityError:
        # Lost a race against a concurrent creation; report which side clashed.
        if crud.get_domain_by_name(db, domain_name) is not None:
            raise domain_taken
        raise Conflict("USER_EXISTS", "Un utilisateur avec cet email existe déjà")

    logger.info("School provisioned with domain", school_id=school.id, domain=domain_name, owner_id=user.id)
    return school, school_domain, user


def create_school(db: Session, payload: schemas.SchoolCreate) -> models.School:
    if crud.get_domain(db, payload.domain_id) is None:
        raise NotFound("Domaine non trouvé")
    owner_email = normalize_email(payload.owner.email)
    _ensure_email_free(db, owner_email)

    with transaction(db):
        user = crud.create_user(
            db,
            email=owner_email,
            first_name=payload.owner.first_name,
            last_name=payload.owner.last_name,
            type=UserType.SCHOOL_OWNER.value,
        )
        school = crud.create_school(db, name=payload.name, domain_id=payload.domain_id, logo=payload.logo)
        db.add(models.SchoolOwner(user_id=user.id, school_id=school.id))
        db.flush()
    return school


SCHOOL_ORDER_COLUMNS = {
    "name": models.School.name,
    "createdAt": models.School.created_at,
    "updatedAt": models.School.updated_at,
}


def list_schools(
    db: Session,
    page: int = 1,
    limit: int = 10,
    order_by: str = "name",
    order: str = "asc",
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    domain_id: Optional[str] = None,
) -> Tuple[list, int]:
    query = db.query(models.School).filter(models.School.deleted_at.is_(None))
    if search:
        query = query.filter(models.School.name.ilike(f"%{search}%"))
    if is_active is not None:
        query = query.filter(models.School.is_active.is_(is_active))
    if domain_id:
        query = query.filter(models.School.domain_id == domain_id)

    column = SCHOOL_ORDER_COLUMNS.get(order_by, models.School.name)
    column = column.desc() if order == "desc" else column.asc()
    return crud.paginate(query.order_by(column), page, limit)


def get_school_or_404(db: Session, school_id: str) -> models.School:
    school = crud.get_school(db, school_id)
    if school is None:
        raise NotFound("L'école demandée n'existe pas")
    return school


def update_school(db: Session, school_id: str, payload: schemas.SchoolUpdate) -> models.School:
    school = get_school_or_404(db, school_id)
    changes = payload.model_dump(exclude_unset=True)
    if "domain_id" in changes and crud.get_domain(db, changes["domain_id"]) is None:
        raise NotFound("Domaine non trouvé")
    for key, value in changes.items():
        setattr(school, key, value)
    db.flush()
    return school


def delete_school(db: Session, school_id: str) -> None:
    school = get_school_or_404(db, school_id)
    school.deleted_at = utcnow()
    school.is_active = False
    db.flush()


def toggle_school_status(db: Session, school_id: str) -> models.School:
    school = get_school_or_404(db, school_id)
    school.is_active = not school.is_active
    db.flush()
    return school


# ---------------------------------------------------------------------------
# School owners
# ---------------------------------------------------------------------------
OWNER_TAKEN = "Cet utilisateur est déjà propriétaire d'une école ou cette école a déjà un propriétaire"


def list_school_owners(
    db: Session,
    page: int = 1,
    limit: int = 10,
    order: str = "desc",
    search: Optional[str] = None,
    school_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> Tuple[list, int]:
    query = (
        db.query(models.SchoolOwner)
        .join(models.User, models.SchoolOwner.user_id == models.User.id)
        .join(models.School, models.SchoolOwner.school_id == models.School.id)
        .filter(models.User.deleted_at.is_(None))
    )
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                models.User.first_name.ilike(pattern),
                models.User.last_name.ilike(pattern),
                models.User.email.ilike(pattern),
                models.School.name.ilike(pattern),
            )
        )
    if school_id:
        query = query.filter(models.SchoolOwner.school_id == school_id)
    if user_id:
        query = query.filter(models.SchoolOwner.user_id == user_id)

    column = models.User.created_at.asc() if order == "asc" else models.User.created_at.desc()
    return crud.paginate(query.order_by(column), page, limit)


def get_school_owner_or_404(db: Session, owner_id: str) -> models.SchoolOwner:
    owner = crud.get_school_owner(db, owner_id)
    if owner is None:
        raise NotFound("Propriétaire d'école non trouvé")
    return owner


def _ensure_school_owner_free(db: Session, user_id: str, school_id: str, owner_id: Optional[str] = None) -> None:
    query = db.query(models.SchoolOwner).filter(
        or_(models.SchoolOwner.user_id == user_id, models.SchoolOwner.school_id == school_id)
    )
    if owner_id is not None:
        query = query.filter(models.SchoolOwner.id != owner_id)
    if query.first() is not None:
        raise ValidationFailed("Données invalides", details=[{"field": "userId", "message": OWNER_TAKEN}])


def create_school_owner(db: Session, payload: schemas.OwnerWrite) -> models.SchoolOwner:
    missing = [
        {"field": field, "message": message}
        for field, value, message in (
            ("userId", payload.user_id, "L'ID de l'utilisateur est requis"),
            ("schoolId", payload.school_id, "L'ID de l'école est requis"),
        )
        if not value
    ]
    if missing:
        raise ValidationFailed("Données invalides", details=missing)

    user = crud.get_user_by_id(db, payload.user_id)
    school = crud.get_school(db, payload.school_id)
    if user is None or school is None:
        raise NotFound("L'utilisateur ou l'école n'existe pas")
    _ensure_school_owner_free(db, user.id, school.id)

    try:
        with db.begin_nested():
            owner = models.SchoolOwner(user_id=user.id, school_id=school.id)
            db.add(owner)
            user.type = UserType.SCHOOL_OWNER.value
    except IntegrityError:
        raise ValidationFailed("Données invalides", details=[{"field": "userId", "message": OWNER_TAKEN}])
    logger.info("School owner linked", owner_id=owner.id, user_id=user.id, school_id=school.id)
    return owner


def update_school_owner(db: Session, owner_id: str, payload: schemas.OwnerWrite) -> models.SchoolOwner:
    owner = get_school_owner_or_404(db, owner_id)
    user_id = payload.user_id or owner.user_id
    school_id = payload.school_id or owner.school_id
    if payload.user_id and crud.get_user_by_id(db, payload.user_id) is None:
        raise NotFound("L'utilisateur ou l'école n'existe pas")
    if payload.school_id and crud.get_school(db, payload.school_id) is None:
        raise NotFound("L'utilisateur ou l'école n'existe pas")
    if payload.user_id or payload.school_id:
        _ensure_school_owner_free(db, user_id, school_id, owner_id=owner.id)

    owner.user_id = user_id
    owner.school_id = school_id
    db.flush()
    db.refresh(owner)
    return owner


def delete_school_owner(db: Session, owner_id: str) -> None:
    owner = get_school_owner_or_404(db, owner_id)
    db.delete(owner)
    db.flush()
    logger.info("School owner unlinked", owner_id=owner_id, user_id=owner.user_id)
