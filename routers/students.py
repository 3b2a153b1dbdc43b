import math
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

import logic
import marketplace
import schemas
from auth import CurrentUser
from database import get_db
from errors import NotFound
from routers.schools import MAX_PAGE_SIZE
from settings import Settings, get_settings

router = APIRouter()

# Applications of the signed-in student, under /api/student
applications_router = APIRouter()


@router.get("", response_model=schemas.StudentList)
def list_students(user: CurrentUser, db: Session = Depends(get_db)):
    """Students of the signed-in school owner's domain."""
    return {"students": marketplace.list_school_students(db, user)}


@router.get("/profile", response_model=schemas.Student)
def get_profile(user: CurrentUser, db: Session = Depends(get_db)):
    logic.ensure_profile(db, user)
    db.commit()
    if user.student is None:
        raise NotFound("Profil étudiant non trouvé")
    return user.student


@router.post("/profile", response_model=schemas.Student, status_code=status.HTTP_201_CREATED)
def complete_profile(payload: schemas.StudentProfileCreate, user: CurrentUser, db: Session = Depends(get_db)):
    student = logic.complete_student_profile(db, user, payload)
    db.commit()
    db.refresh(student)
    return student


@router.get("/job-requests", response_model=List[schemas.EnrichedJobRequest])
def my_job_requests(user: CurrentUser, db: Session = Depends(get_db)):
    return [marketplace.enrich_job_request(r) for r in marketplace.list_student_applications(db, user)]


@router.post("/job-requests", response_model=schemas.JobRequest, status_code=status.HTTP_201_CREATED)
def request_job(payload: schemas.JobApplicationCreate, user: CurrentUser, db: Session = Depends(get_db)):
    request = marketplace.request_job(db, user, payload.job_id)
    db.commit()
    db.refresh(request)
    return request


@router.delete("/job-requests/{request_id}", response_model=schemas.SuccessResponse)
def withdraw_job_request(request_id: str, user: CurrentUser, db: Session = Depends(get_db)):
    marketplace.withdraw_application(db, user, request_id)
    db.commit()
    return {"success": True}


@router.get("/{student_id}", response_model=schemas.StudentWithUser)
def get_student(student_id: str, db: Session = Depends(get_db)):
    return marketplace.get_student_or_404(db, student_id)


@router.put("/{student_id}", response_model=schemas.Student)
def update_student(student_id: str, payload: schemas.StudentUpdate, db: Session = Depends(get_db)):
    student = marketplace.update_student(db, student_id, payload)
    db.commit()
    db.refresh(student)
    return student


@router.get("/{student_id}/experiences", response_model=schemas.ExperiencePage)
def list_experiences(
    student_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1),
    order: Literal["asc", "desc"] = "desc",
    type: Optional[str] = None,
    company: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    marketplace.get_student_or_404(db, student_id)
    limit = min(limit, MAX_PAGE_SIZE)
    items, total = marketplace.list_experiences(
        db, student_id, page=page, limit=limit, order=order, experience_type=type, company=company, search=search
    )
    return {
        "items": items,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit),
    }


@router.post("/{student_id}/experiences", response_model=schemas.Experience, status_code=status.HTTP_201_CREATED)
def create_experience(student_id: str, payload: schemas.ExperienceWrite, db: Session = Depends(get_db)):
    experience = marketplace.create_experience(db, student_id, payload)
    db.commit()
    db.refresh(experience)
    return experience


@router.put("/{student_id}/experiences/{experience_id}", response_model=schemas.Experience)
def update_experience(
    student_id: str, experience_id: str, payload: schemas.ExperienceWrite, db: Session = Depends(get_db)
):
    experience = marketplace.update_experience(db, student_id, experience_id, payload)
    db.commit()
    db.refresh(experience)
    return experience


@router.delete("/{student_id}/experiences/{experience_id}", response_model=schemas.MessageResponse)
def delete_experience(student_id: str, experience_id: str, db: Session = Depends(get_db)):
    marketplace.delete_experience(db, student_id, experience_id)
    db.commit()
    return {"message": "Expérience supprimée avec succès"}


@applications_router.post("/job-applications", response_model=schemas.JobRequest, status_code=status.HTTP_201_CREATED)
def apply_to_job(
    payload: schemas.JobApplicationCreate,
    user: CurrentUser,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return marketplace.apply_to_job(db, user, payload, settings)


@applications_router.get("/job-applications", response_model=List[schemas.EnrichedJobRequest])
def my_applications(user: CurrentUser, db: Session = Depends(get_db)):
    return [marketplace.enrich_job_request(r) for r in marketplace.list_student_applications(db, user)]


@applications_router.delete("/job-applications/{request_id}", response_model=schemas.SuccessResponse)
def withdraw_application(request_id: str, user: CurrentUser, db: Session = Depends(get_db)):
    marketplace.withdraw_application(db, user, request_id)
    db.commit()
    return {"success": True}
