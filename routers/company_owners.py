import math
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

import marketplace
import schemas
from database import get_db
from routers.schools import MAX_PAGE_SIZE

router = APIRouter()


@router.get("", response_model=schemas.CompanyOwnerPage)
def list_company_owners(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1),
    order: Literal["asc", "desc"] = "desc",
    search: Optional[str] = None,
    company_id: Optional[str] = Query(default=None, alias="companyId"),
    user_id: Optional[str] = Query(default=None, alias="userId"),
    db: Session = Depends(get_db),
):
    limit = min(limit, MAX_PAGE_SIZE)
    items, total = marketplace.list_company_owners(
        db, page=page, limit=limit, order=order, search=search, company_id=company_id, user_id=user_id
    )
    return {
        "items": items,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit),
    }


@router.post("", response_model=schemas.CompanyOwner, status_code=status.HTTP_201_CREATED)
def create_company_owner(payload: schemas.OwnerWrite, db: Session = Depends(get_db)):
    owner = marketplace.create_company_owner(db, payload)
    db.commit()
    db.refresh(owner)
    return owner


@router.get("/{owner_id}", response_model=schemas.CompanyOwner)
def get_company_owner(owner_id: str, db: Session = Depends(get_db)):
    return marketplace.get_company_owner_or_404(db, owner_id)


@router.put("/{owner_id}", response_model=schemas.CompanyOwner)
def update_company_owner(owner_id: str, payload: schemas.OwnerWrite, db: Session = Depends(get_db)):
    owner = marketplace.update_company_owner(db, owner_id, payload)
    db.commit()
    db.refresh(owner)
    return owner


@router.delete("/{owner_id}", response_model=schemas.MessageResponse)
def delete_company_owner(owner_id: str, db: Session = Depends(get_db)):
    marketplace.delete_company_owner(db, owner_id)
    db.commit()
    return {"message": "Propriétaire d'entreprise supprimé avec succès"}
