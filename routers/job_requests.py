from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

import crud
import marketplace
import schemas
from database import get_db

router = APIRouter()


@router.get("", response_model=List[schemas.EnrichedJobRequest])
def list_job_requests(
    student_id: Optional[str] = Query(default=None, alias="studentId"),
    company_id: Optional[str] = Query(default=None, alias="companyId"),
    db: Session = Depends(get_db),
):
    requests = crud.list_job_requests(db, student_id=student_id, company_id=company_id)
    return [marketplace.enrich_job_request(request) for request in requests]


@router.post("", response_model=schemas.JobRequest, status_code=status.HTTP_201_CREATED)
def create_job_request(payload: schemas.JobRequestCreate, db: Session = Depends(get_db)):
    request = marketplace.create_job_request(db, payload)
    db.commit()
    db.refresh(request)
    return request


@router.get("/{request_id}", response_model=schemas.EnrichedJobRequest)
def get_job_request(request_id: str, db: Session = Depends(get_db)):
    return marketplace.enrich_job_request(marketplace.get_job_request_or_404(db, request_id))


@router.put("/{request_id}", response_model=schemas.JobRequest)
def update_job_request(request_id: str, payload: schemas.JobRequestUpdate, db: Session = Depends(get_db)):
    request = marketplace.update_job_request_status(db, request_id, payload.status)
    db.commit()
    db.refresh(request)
    return request


@router.delete("/{request_id}", response_model=schemas.MessageResponse)
def delete_job_request(request_id: str, db: Session = Depends(get_db)):
    marketplace.delete_job_request(db, request_id)
    db.commit()
    return {"message": "Job request supprimée avec succès"}
