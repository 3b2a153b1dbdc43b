from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import crud
import logic
import marketplace
import models
import schemas
from auth import CurrentUser
from database import get_db

router = APIRouter()


def to_user_detail(user: models.User) -> schemas.UserDetail:
    """User record plus a summary of whichever satellite it carries."""
    detail = schemas.UserDetail.model_validate(user)
    update = {"is_admin": user.admin is not None}
    if user.school_owner is not None:
        update["school"] = schemas.SchoolRef.model_validate(user.school_owner.school)
    if user.company_owner is not None:
        update["company"] = schemas.SchoolRef.model_validate(user.company_owner.company)
    return detail.model_copy(update=update)


@router.get("", response_model=List[schemas.UserDetail])
def list_users(db: Session = Depends(get_db)):
    return [to_user_detail(user) for user in crud.list_users(db)]


@router.post("", response_model=schemas.UserDetail, status_code=status.HTTP_201_CREATED)
def create_user(payload: schemas.UserCreate, db: Session = Depends(get_db)):
    return to_user_detail(logic.create_user_account(db, payload))


@router.get("/current", response_model=schemas.UserDetail)
def current_user(user: CurrentUser):
    return to_user_detail(user)


@router.get("/{user_id}", response_model=schemas.UserDetail)
def get_user(user_id: str, db: Session = Depends(get_db)):
    return to_user_detail(logic.get_user_or_404(db, user_id))


@router.put("/{user_id}", response_model=schemas.User)
def update_user(user_id: str, payload: schemas.UserUpdate, db: Session = Depends(get_db)):
    user = logic.update_user(db, user_id, payload)
    db.commit()
    db.refresh(user)
    return user


@router.delete("/{user_id}", response_model=schemas.MessageResponse)
def delete_user(user_id: str, db: Session = Depends(get_db)):
    logic.delete_user(db, user_id)
    return {"message": "Utilisateur supprimé avec succès"}


@router.get("/{user_id}/job-requests", response_model=List[schemas.EnrichedJobRequest])
def user_job_requests(user_id: str, db: Session = Depends(get_db)):
    user = logic.get_user_or_404(db, user_id)
    if user.student is None:
        return []
    return [
        marketplace.enrich_job_request(request)
        for request in crud.list_job_requests(db, student_id=user.student.id)
    ]
