from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import crud
import logic
import schemas
from database import get_db

router = APIRouter()


@router.get("", response_model=List[schemas.SchoolDomain])
def list_domains(db: Session = Depends(get_db)):
    return crud.list_domains(db)


@router.post("", response_model=schemas.SchoolDomain, status_code=status.HTTP_201_CREATED)
def create_domain(payload: schemas.SchoolDomainWrite, db: Session = Depends(get_db)):
    school_domain = logic.create_domain(db, payload.domain)
    db.commit()
    db.refresh(school_domain)
    return school_domain


@router.post("/check", response_model=schemas.DomainCheckResponse)
def check_domain(payload: schemas.DomainRequest, db: Session = Depends(get_db)):
    """Which school owns this email domain."""
    school = logic.check_domain(db, payload.domain)
    return {"school_id": school.id, "school_name": school.name}


@router.post("/validate-and-create", response_model=schemas.ValidateAndCreateResponse)
def validate_and_create(payload: schemas.EmailRequest, db: Session = Depends(get_db)):
    school_domain, _ = logic.validate_and_create(db, payload.email)
    db.commit()
    db.refresh(school_domain)
    return {
        "success": True,
        "domain": school_domain,
        "message": "Le domaine a été validé et créé si nécessaire",
    }


@router.post("/validate-school-email", response_model=schemas.ValidateSchoolEmailResponse)
def validate_school_email(payload: schemas.EmailRequest, db: Session = Depends(get_db)):
    school = logic.validate_school_email(db, payload.email)
    return {"is_valid": True, "school_id": school.id, "school_name": school.name}


@router.get("/{domain_id}", response_model=schemas.SchoolDomain)
def get_domain(domain_id: str, db: Session = Depends(get_db)):
    return logic.get_domain_or_404(db, domain_id)


@router.put("/{domain_id}", response_model=schemas.SchoolDomain)
def update_domain(domain_id: str, payload: schemas.SchoolDomainWrite, db: Session = Depends(get_db)):
    school_domain = logic.update_domain(db, domain_id, payload.domain)
    db.commit()
    db.refresh(school_domain)
    return school_domain


@router.delete("/{domain_id}", response_model=schemas.MessageResponse)
def delete_domain(domain_id: str, db: Session = Depends(get_db)):
    logic.delete_domain(db, domain_id)
    db.commit()
    return {"message": "Domaine supprimé avec succès"}
