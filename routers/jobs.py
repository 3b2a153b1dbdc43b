from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import crud
import marketplace
import schemas
from database import get_db

router = APIRouter()


@router.get("", response_model=List[schemas.JobListItem])
def list_jobs(db: Session = Depends(get_db)):
    return [marketplace.job_to_list_item(job) for job in crud.list_jobs(db)]


@router.post("", response_model=schemas.Job, status_code=status.HTTP_201_CREATED)
def create_job(payload: schemas.JobCreate, db: Session = Depends(get_db)):
    job = marketplace.create_job(db, payload)
    db.commit()
    db.refresh(job)
    return marketplace.job_to_schema(job)


@router.get("/{job_id}", response_model=schemas.Job)
def get_job(job_id: str, db: Session = Depends(get_db)):
    return marketplace.job_to_schema(marketplace.get_live_job(db, job_id))


@router.put("/{job_id}", response_model=schemas.Job)
def update_job(job_id: str, payload: schemas.JobUpdate, db: Session = Depends(get_db)):
    job = marketplace.update_job(db, job_id, payload)
    db.commit()
    db.refresh(job)
    return marketplace.job_to_schema(job)


@router.delete("/{job_id}", response_model=schemas.MessageResponse)
def delete_job(job_id: str, db: Session = Depends(get_db)):
    marketplace.delete_job(db, job_id)
    db.commit()
    return {"message": "Job supprimé avec succès"}
