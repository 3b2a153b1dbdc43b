from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for every payload: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


RequestStatusLiteral = Literal["PENDING", "ACCEPTED", "REJECTED"]
SelectableProfile = Literal["student", "company_owner"]


# --- Generic ---
class MessageResponse(ApiModel):
    message: str


class SuccessResponse(ApiModel):
    success: bool = True


# --- Auth ---
class EmailRequest(ApiModel):
    # Optional so that a missing email is reported as a 400 with our own message
    email: Optional[str] = None


class AuthenticateResponse(ApiModel):
    message: str
    is_new_user: bool


class IsSchoolOwnerResponse(ApiModel):
    is_school_owner: bool


class UserExistsResponse(ApiModel):
    exists: bool


class StudentSignup(ApiModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    type: Optional[str] = None
    school_id: Optional[str] = None


class CompanySignup(ApiModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    type: Optional[str] = None
    company_name: Optional[str] = None


class SelectProfileRequest(ApiModel):
    type: SelectableProfile


# --- School domains ---
class DomainRequest(ApiModel):
    domain: Optional[str] = None


class SchoolDomain(ApiModel):
    id: str
    domain: str
    created_at: datetime
    updated_at: datetime


class SchoolDomainWrite(ApiModel):
    domain: str = Field(min_length=1)


class DomainCheckResponse(ApiModel):
    school_id: str
    school_name: str


class ValidateAndCreateResponse(ApiModel):
    success: bool = True
    domain: SchoolDomain
    message: str


class ValidateSchoolEmailResponse(ApiModel):
    is_valid: bool
    school_id: str
    school_name: str


# --- Schools ---
class School(ApiModel):
    id: str
    name: str
    logo: Optional[str] = None
    domain_id: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None
    domain: Optional[SchoolDomain] = None


class SchoolInfo(ApiModel):
    name: str = Field(min_length=1)
    logo: Optional[str] = None


class OwnerInfo(ApiModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str = Field(min_length=3)


class OwnerSummary(ApiModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str


class CreateSchoolWithDomain(ApiModel):
    domain: str = Field(min_length=1)
    school: SchoolInfo
    owner: OwnerInfo


class SchoolWithDomainResponse(ApiModel):
    school: School
    domain: SchoolDomain
    owner: OwnerSummary


class SchoolCreate(ApiModel):
    name: str = Field(min_length=1)
    domain_id: str
    logo: Optional[str] = None
    owner: OwnerInfo


class SchoolUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1)
    logo: Optional[str] = None
    domain_id: Optional[str] = None
    is_active: Optional[bool] = None


class SchoolPage(ApiModel):
    items: List[School]
    total: int
    page: int
    limit: int
    total_pages: int


# --- Companies ---
class Company(ApiModel):
    id: str
    name: str
    logo: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CompanyCreate(ApiModel):
    user_id: str
    name: str = Field(min_length=1)
    logo: Optional[str] = None


class CompanyUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1)
    logo: Optional[str] = None


class CompanySummary(ApiModel):
    id: str
    name: str
    logo: Optional[str] = None


# --- Owners ---
class OwnerUser(ApiModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_picture: Optional[str] = None


class SchoolOwner(ApiModel):
    id: str
    user_id: str
    school_id: str
    user: OwnerUser
    school: School


class SchoolOwnerPage(ApiModel):
    items: List[SchoolOwner]
    total: int
    page: int
    limit: int
    total_pages: int


class CompanyOwner(ApiModel):
    id: str
    user_id: str
    company_id: str
    user: OwnerUser
    company: CompanySummary


class CompanyOwnerPage(ApiModel):
    items: List[CompanyOwner]
    total: int
    page: int
    limit: int
    total_pages: int


class OwnerWrite(ApiModel):
    """Links a user to a school (``schoolId``) or a company (``companyId``)."""

    user_id: Optional[str] = None
    school_id: Optional[str] = None
    company_id: Optional[str] = None


# --- Jobs ---
class Skill(ApiModel):
    id: str
    name: str


class JobListItem(ApiModel):
    id: str
    offer_title: str
    company_name: str
    description: str
    logo_url: str
    status: Optional[str] = None
    skills: List[Skill]
    availability: Optional[str] = None


class JobCompany(ApiModel):
    name: str
    logo: Optional[str] = None


class Job(ApiModel):
    id: str
    company_id: str
    name: str
    description: str
    skills: List[str]
    type: Optional[str] = None
    availability: Optional[str] = None
    featured_image: Optional[str] = None
    company: Optional[JobCompany] = None
    created_at: datetime
    updated_at: datetime


class JobCreate(ApiModel):
    company_id: str
    name: str = Field(min_length=1)
    description: str = ""
    skills: Optional[str] = None
    type: Optional[str] = None
    availability: Optional[str] = None
    featured_image: Optional[str] = None


class JobUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    skills: Optional[List[str]] = None
    type: Optional[str] = None
    availability: Optional[str] = None
    featured_image: Optional[str] = None


class CompanyJobUpdate(ApiModel):
    name: Optional[str] = None
    description: Optional[str] = None
    skills: Optional[str] = None


# --- Job requests ---
class JobRequest(ApiModel):
    id: str
    student_id: str
    job_id: str
    status: str
    subject: Optional[str] = None
    message: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class JobRequestCreate(ApiModel):
    student_id: str
    job_id: str
    status: RequestStatusLiteral = "PENDING"


class JobRequestUpdate(ApiModel):
    status: RequestStatusLiteral


class JobApplicationCreate(ApiModel):
    job_id: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None


class ApplicantUser(ApiModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str


class ApplicantStudent(ApiModel):
    id: str
    user: ApplicantUser


class JobSummary(ApiModel):
    id: str
    name: str
    company_id: str
    company: JobCompany


class EnrichedJobRequest(JobRequest):
    student: ApplicantStudent
    job: JobSummary


# --- Students ---
class Student(ApiModel):
    id: str
    user_id: str
    school_id: Optional[str] = None
    student_email: Optional[str] = None
    primary_recommendation_id: Optional[str] = None
    status: str
    skills: str
    apprenticeship_rhythm: Optional[str] = None
    description: str
    curriculum_vitae: Optional[str] = None
    previous_companies: str
    availability: bool


class StudentUpdate(ApiModel):
    status: Optional[str] = None
    skills: Optional[str] = None
    apprenticeship_rhythm: Optional[str] = None
    description: Optional[str] = None
    curriculum_vitae: Optional[str] = None
    previous_companies: Optional[str] = None
    availability: Optional[bool] = None


class StudentProfileCreate(ApiModel):
    first_name: str = Field(min_length=2)
    last_name: str = Field(min_length=2)
    student_email: EmailStr
    school: str = Field(min_length=1)
    status: str = Field(min_length=1)
    skills: str = Field(min_length=2)
    description: str = Field(min_length=10)
    previous_companies: Optional[str] = None
    availability: bool = True
    apprenticeship_rhythm: Optional[str] = None
    curriculum_vitae: Optional[str] = None


class StudentWithUser(Student):
    user: ApplicantUser


class StudentList(ApiModel):
    students: List[StudentWithUser]


# --- Experiences ---
class Experience(ApiModel):
    id: str
    student_id: str
    position: str
    company: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    type: str


class ExperienceWrite(ApiModel):
    position: str = Field(min_length=1)
    company: str = Field(min_length=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    # Checked by the service so the error names the rejected value
    type: str


class ExperiencePage(ApiModel):
    items: List[Experience]
    total: int
    page: int
    limit: int
    total_pages: int


# --- Recommendations ---
class Recommendation(ApiModel):
    id: str
    student_id: str
    company_id: str
    recommendation: str
    created_at: datetime


class RecommendationCreate(ApiModel):
    student_id: str
    recommendation: str = Field(min_length=1)


class PrimaryRecommendationRequest(ApiModel):
    recommendation_id: str


# --- Users ---
class User(ApiModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    type: str
    profile_picture: Optional[str] = None
    profile_completed: bool
    email_verified: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


class SchoolRef(ApiModel):
    id: str
    name: str
    logo: Optional[str] = None


class StudentRef(ApiModel):
    id: str
    school: Optional[SchoolRef] = None


class UserDetail(User):
    student: Optional[StudentRef] = None
    school: Optional[SchoolRef] = None
    company: Optional[SchoolRef] = None
    is_admin: bool = False


class UserCreate(ApiModel):
    email: str = Field(min_length=3)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_picture: Optional[str] = None
    type: Optional[SelectableProfile] = None
    school_id: Optional[str] = None
    student_email: Optional[str] = None
    company_id: Optional[str] = None


class UserUpdate(ApiModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_picture: Optional[str] = None
