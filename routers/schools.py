import math
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

import logic
import schemas
from database import get_db

router = APIRouter()

MAX_PAGE_SIZE = 100


@router.get("", response_model=schemas.SchoolPage)
def list_schools(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1),
    order_by: str = Query(default="name", alias="orderBy"),
    order: Literal["asc", "desc"] = "asc",
    search: Optional[str] = None,
    is_active: Optional[bool] = Query(default=None, alias="isActive"),
    domain_id: Optional[str] = Query(default=None, alias="domainId"),
    db: Session = Depends(get_db),
):
    limit = min(limit, MAX_PAGE_SIZE)
    items, total = logic.list_schools(
        db,
        page=page,
        limit=limit,
        order_by=order_by,
        order=order,
        search=search,
        is_active=is_active,
        domain_id=domain_id,
    )
    return {
        "items": items,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit),
    }


@router.post("", response_model=schemas.School, status_code=status.HTTP_201_CREATED)
def create_school(payload: schemas.SchoolCreate, db: Session = Depends(get_db)):
    return logic.create_school(db, payload)


@router.post("/create-with-domain", response_model=schemas.SchoolWithDomainResponse)
def create_school_with_domain(payload: schemas.CreateSchoolWithDomain, db: Session = Depends(get_db)):
    """Provision a school, its email domain and its owner account at once."""
    school, school_domain, owner = logic.create_school_with_domain(db, payload)
    return {"school": school, "domain": school_domain, "owner": owner}


@router.get("/{school_id}", response_model=schemas.School)
def get_school(school_id: str, db: Session = Depends(get_db)):
    return logic.get_school_or_404(db, school_id)


@router.put("/{school_id}", response_model=schemas.School)
def update_school(school_id: str, payload: schemas.SchoolUpdate, db: Session = Depends(get_db)):
    school = logic.update_school(db, school_id, payload)
    db.commit()
    db.refresh(school)
    return school


@router.delete("/{school_id}", response_model=schemas.MessageResponse)
def delete_school(school_id: str, db: Session = Depends(get_db)):
    logic.delete_school(db, school_id)
    db.commit()
    return {"message": "École supprimée avec succès"}


@router.patch("/{school_id}/toggle-status", response_model=schemas.School)
def toggle_school_status(school_id: str, db: Session = Depends(get_db)):
    school = logic.toggle_school_status(db, school_id)
    db.commit()
    db.refresh(school)
    return school
