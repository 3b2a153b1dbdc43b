import math
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

import logic
import schemas
from database import get_db
from routers.schools import MAX_PAGE_SIZE

router = APIRouter()


@router.get("", response_model=schemas.SchoolOwnerPage)
def list_school_owners(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1),
    order: Literal["asc", "desc"] = "desc",
    search: Optional[str] = None,
    school_id: Optional[str] = Query(default=None, alias="schoolId"),
    user_id: Optional[str] = Query(default=None, alias="userId"),
    db: Session = Depends(get_db),
):
    limit = min(limit, MAX_PAGE_SIZE)
    items, total = logic.list_school_owners(
        db, page=page, limit=limit, order=order, search=search, school_id=school_id, user_id=user_id
    )
    return {
        "items": items,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit),
    }


@router.post("", response_model=schemas.SchoolOwner, status_code=status.HTTP_201_CREATED)
def create_school_owner(payload: schemas.OwnerWrite, db: Session = Depends(get_db)):
    owner = logic.create_school_owner(db, payload)
    db.commit()
    db.refresh(owner)
    return owner


@router.get("/{owner_id}", response_model=schemas.SchoolOwner)
def get_school_owner(owner_id: str, db: Session = Depends(get_db)):
    return logic.get_school_owner_or_404(db, owner_id)


@router.put("/{owner_id}", response_model=schemas.SchoolOwner)
def update_school_owner(owner_id: str, payload: schemas.OwnerWrite, db: Session = Depends(get_db)):
    owner = logic.update_school_owner(db, owner_id, payload)
    db.commit()
    db.refresh(owner)
    return owner


@router.delete("/{owner_id}", response_model=schemas.MessageResponse)
def delete_school_owner(owner_id: str, db: Session = Depends(get_db)):
    logic.delete_school_owner(db, owner_id)
    db.commit()
    return {"message": "Propriétaire d'école supprimé avec succès"}
