"""Passwordless (magic link) authentication and session handling.

Sign-in works in two legs:
1. ``send_magic_link`` stores a single-use verification token (hashed) valid
   for ``magic_link_max_age_hours`` and emails a link pointing at
   ``/api/auth/callback/email``. The post-login ``callbackUrl`` embedded in the
   link is chosen by the caller from the resolved role.
2. The callback consumes the token and issues a signed session token
   (HS256 JWT) that is set as an HTTP-only cookie. ``get_current_user`` reads
   that cookie, or an ``Authorization: Bearer <token>`` header, on later calls.
"""
from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional
from urllib.parse import urlencode, urlparse

import structlog
from fastapi import Depends, Request, Response
from jose import JWTError, jwt
from pydantic import BaseModel
from sqlalchemy.orm import Session

import crud
import email_sender
import models
from database import get_db
from errors import Unauthorized
from settings import DEV_AUTH_SECRET, Settings, get_settings

logger = structlog.get_logger(__name__)

SESSION_ALGORITHM = "HS256"
CALLBACK_PATH = "/api/auth/callback/email"


class TokenPayload(BaseModel):
    sub: str
    email: str
    exp: int


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


# --- Magic link leg --- #
def build_magic_link(settings: Settings, email: str, token: str, callback_url: str) -> str:
    query = urlencode({"token": token, "email": email, "callbackUrl": callback_url})
    return f"{settings.base_url}{CALLBACK_PATH}?{query}"


def send_magic_link(
    db: Session,
    email: str,
    callback_url: str,
    settings: Settings,
    first_name: Optional[str] = None,
) -> str:
    """Store a fresh verification token and email the sign-in link.

    Returns the link. The token row is flushed, not committed: the caller
    owns the transaction.
    """
    token = secrets.token_urlsafe(32)
    expires = datetime.now(timezone.utc) + timedelta(hours=settings.magic_link_max_age_hours)
    crud.create_verification_token(db, identifier=email, token_hash=hash_token(token), expires=expires)

    url = build_magic_link(settings, email, token, callback_url)
    email_sender.send_signin_email(settings, to=email, url=url, first_name=first_name)
    logger.info("Magic link dispatched", email=email, callback_url=callback_url)
    return url


def consume_verification_token(db: Session, email: str, token: str) -> bool:
    """Delete the matching token and report whether it was still valid."""
    row = crud.get_verification_token(db, identifier=email, token_hash=hash_token(token))
    if row is None:
        logger.warning("Unknown verification token", email=email)
        return False

    db.delete(row)
    db.flush()
    if as_utc(row.expires) < datetime.now(timezone.utc):
        logger.warning("Expired verification token", email=email)
        return False
    return True


def safe_redirect_target(url: Optional[str], settings: Settings) -> str:
    """Relative targets are anchored on the base URL; foreign origins are dropped."""
    base = settings.base_url
    if url:
        if url.startswith("/") and not url.startswith("//"):
            return f"{base}{url}"
        parsed, expected = urlparse(url), urlparse(base)
        if parsed.scheme in ("http", "https") and parsed.netloc == expected.netloc:
            return url
    return f"{base}/students/profile-info"


# --- Session leg --- #
def create_session_token(user: models.User, settings: Settings) -> str:
    if settings.signing_secret == DEV_AUTH_SECRET:
        logger.warning("AUTH_SECRET not set, signing sessions with the development secret")
    expires = datetime.now(timezone.utc) + timedelta(days=settings.session_max_age_days)
    claims = {"sub": user.id, "email": user.email, "exp": int(expires.timestamp())}
    return jwt.encode(claims, settings.signing_secret, algorithm=SESSION_ALGORITHM)


def set_session_cookie(response: Response, user: models.User, settings: Settings) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        create_session_token(user, settings),
        max_age=settings.session_max_age_days * 24 * 3600,
        httponly=True,
        secure=settings.base_url.startswith("https://"),
        samesite="lax",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(settings.session_cookie_name, httponly=True, samesite="lax")


def verify_session_token(token: str, settings: Settings) -> TokenPayload:
    """Verify a session JWT and return its payload.

    Raises Unauthorized on failure.
    """
    try:
        payload = jwt.decode(token, settings.signing_secret, algorithms=[SESSION_ALGORITHM])
        return TokenPayload.model_validate(payload)
    except (JWTError, ValueError) as exc:
        logger.warning("Session token verification failed", exc=str(exc))
        raise Unauthorized("Non autorisé", "Session invalide ou expirée")


def _extract_token(request: Request, settings: Settings) -> Optional[str]:
    authorization = request.headers.get("Authorization")
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip()
    return request.cookies.get(settings.session_cookie_name)


# --- FastAPI dependency ---
def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> models.User:
    token = _extract_token(request, settings)
    if not token:
        raise Unauthorized("Non autorisé", "Vous devez être connecté.")

    payload = verify_session_token(token, settings)
    user = crud.get_user_by_id(db, payload.sub)
    if user is None:
        logger.warning("Session refers to a missing or deleted user", user_id=payload.sub)
        raise Unauthorized("Non autorisé", "Utilisateur introuvable")
    return user


CurrentUser = Annotated[models.User, Depends(get_current_user)]
