from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

import auth
import crud
import logic
import schemas
from auth import CurrentUser
from database import get_db
from routers.users import to_user_detail
from settings import Settings, get_settings

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/authenticate", response_model=schemas.AuthenticateResponse)
def authenticate(
    payload: schemas.EmailRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Email a sign-in link, registering the address on first use."""
    _, is_new = logic.authenticate(db, payload.email, settings)
    db.commit()
    return {"message": "Un email de connexion a été envoyé", "is_new_user": is_new}


@router.post("/authenticate-school-owner", response_model=schemas.SuccessResponse)
def authenticate_school_owner(
    payload: schemas.EmailRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    logic.authenticate_school_owner(db, payload.email, settings)
    db.commit()
    return {"success": True}


@router.post("/check-school-owner", response_model=schemas.IsSchoolOwnerResponse)
def check_school_owner(payload: schemas.EmailRequest, db: Session = Depends(get_db)):
    return {"is_school_owner": logic.is_school_owner(db, payload.email)}


@router.post("/check-user", response_model=schemas.UserExistsResponse)
def check_user(payload: schemas.EmailRequest, db: Session = Depends(get_db)):
    user = crud.get_user_by_email(db, logic.normalize_email(payload.email))
    return {"exists": user is not None and user.deleted_at is None}


@router.post("/signup", response_model=schemas.User, status_code=status.HTTP_201_CREATED)
def student_signup(payload: schemas.StudentSignup, db: Session = Depends(get_db)):
    return logic.signup_student(db, payload)


@router.post("/company-signup", response_model=schemas.User, status_code=status.HTTP_201_CREATED)
def company_signup(payload: schemas.CompanySignup, db: Session = Depends(get_db)):
    return logic.signup_company(db, payload)


@router.get("/callback/email", include_in_schema=False)
def email_callback(
    token: str,
    email: str,
    callback_url: Optional[str] = Query(default=None, alias="callbackUrl"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Second leg of the magic link: consume the token and open a session."""
    email = email.strip().lower()
    if not auth.consume_verification_token(db, email, token):
        db.commit()
        return RedirectResponse(f"{settings.base_url}/auth/error?error=Verification", status_code=302)

    user = logic.materialize_session(db, email)
    db.commit()
    logger.info("Session opened", user_id=user.id)

    response = RedirectResponse(auth.safe_redirect_target(callback_url, settings), status_code=302)
    auth.set_session_cookie(response, user, settings)
    return response


@router.post("/signout", response_model=schemas.SuccessResponse)
def signout(response: Response, settings: Settings = Depends(get_settings)):
    auth.clear_session_cookie(response, settings)
    return {"success": True}


@router.get("/me", response_model=schemas.UserDetail)
def me(user: CurrentUser):
    return to_user_detail(user)


@router.post("/select-profile", response_model=schemas.User)
def select_profile(payload: schemas.SelectProfileRequest, user: CurrentUser, db: Session = Depends(get_db)):
    logic.select_profile(db, user, payload.type)
    db.commit()
    db.refresh(user)
    return user
