from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import crud
import logic
import marketplace
import schemas
from auth import CurrentUser
from database import get_db

router = APIRouter()

# Routes acting on the signed-in owner's own company
me_router = APIRouter()


@router.get("", response_model=List[schemas.Company])
def list_companies(db: Session = Depends(get_db)):
    return crud.list_companies(db)


@router.post("", response_model=schemas.Company, status_code=status.HTTP_201_CREATED)
def create_company(payload: schemas.CompanyCreate, db: Session = Depends(get_db)):
    return marketplace.create_company_for_user(db, payload)


@router.get("/{company_id}", response_model=schemas.Company)
def get_company(company_id: str, db: Session = Depends(get_db)):
    return marketplace.get_company_or_404(db, company_id)


@router.put("/{company_id}", response_model=schemas.Company)
def update_company(company_id: str, payload: schemas.CompanyUpdate, db: Session = Depends(get_db)):
    company = marketplace.update_company(db, company_id, payload)
    db.commit()
    db.refresh(company)
    return company


@router.delete("/{company_id}", response_model=schemas.MessageResponse)
def delete_company(company_id: str, db: Session = Depends(get_db)):
    marketplace.delete_company(db, company_id)
    db.commit()
    return {"message": "Compagnie supprimée avec succès"}


@router.get("/{company_id}/jobs", response_model=List[schemas.Job])
def company_jobs(company_id: str, db: Session = Depends(get_db)):
    marketplace.get_company_or_404(db, company_id)
    return [marketplace.job_to_schema(job) for job in crud.list_jobs(db, company_id=company_id)]


@router.get("/{company_id}/job-requests", response_model=List[schemas.EnrichedJobRequest])
def company_job_requests(company_id: str, db: Session = Depends(get_db)):
    marketplace.get_company_or_404(db, company_id)
    return [
        marketplace.enrich_job_request(request)
        for request in crud.list_job_requests(db, company_id=company_id)
    ]


@me_router.get("/me", response_model=schemas.Company)
def my_company(user: CurrentUser, db: Session = Depends(get_db)):
    """Company of the signed-in owner, created on first visit if needed."""
    logic.ensure_profile(db, user)
    db.commit()
    return marketplace.company_of(user)


@me_router.get("/jobs", response_model=List[schemas.Job])
def my_company_jobs(user: CurrentUser, db: Session = Depends(get_db)):
    company = marketplace.company_of(user)
    return [marketplace.job_to_schema(job) for job in crud.list_jobs(db, company_id=company.id)]


@me_router.put("/jobs/{job_id}", response_model=schemas.Job)
def update_my_company_job(
    job_id: str, payload: schemas.CompanyJobUpdate, user: CurrentUser, db: Session = Depends(get_db)
):
    job = marketplace.update_company_job(db, user, job_id, payload)
    db.commit()
    db.refresh(job)
    return marketplace.job_to_schema(job)


@me_router.delete("/jobs/{job_id}", response_model=schemas.Job)
def delete_my_company_job(job_id: str, user: CurrentUser, db: Session = Depends(get_db)):
    job = marketplace.delete_company_job(db, user, job_id)
    db.commit()
    db.refresh(job)
    return marketplace.job_to_schema(job)
