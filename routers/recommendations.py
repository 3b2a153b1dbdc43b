from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import marketplace
import schemas
from auth import CurrentUser
from database import get_db

router = APIRouter()


@router.get("", response_model=List[schemas.Recommendation])
def my_recommendations(user: CurrentUser, db: Session = Depends(get_db)):
    return marketplace.list_recommendations(db, user)


@router.post("", response_model=schemas.Recommendation, status_code=status.HTTP_201_CREATED)
def create_recommendation(payload: schemas.RecommendationCreate, user: CurrentUser, db: Session = Depends(get_db)):
    recommendation = marketplace.create_recommendation(db, user, payload)
    db.commit()
    db.refresh(recommendation)
    return recommendation


@router.put("/primary", response_model=schemas.Student)
def set_primary(payload: schemas.PrimaryRecommendationRequest, user: CurrentUser, db: Session = Depends(get_db)):
    student = marketplace.set_primary_recommendation(db, user, payload.recommendation_id)
    db.commit()
    db.refresh(student)
    return student
