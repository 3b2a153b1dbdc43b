from pathlib import Path
from typing import Optional

import httpx
import structlog
from jinja2 import Environment, FileSystemLoader, select_autoescape

from errors import EmailDeliveryError
from settings import Settings

logger = structlog.get_logger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates" / "emails"

templates = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)

# --- Subjects ---
SUBJECTS = {
    "signin": "Bienvenue sur StudyLink - Votre lien de connexion",
    "job_application": "Nouvelle candidature pour: {job_title}",
}

REQUEST_TIMEOUT = 10


def render_template(name: str, **context) -> str:
    return templates.get_template(name).render(**context)


def send_email(settings: Settings, *, sender: str, to: str, subject: str, html: str) -> Optional[str]:
    """Send one email through the Resend HTTP API.

    Returns the provider message id. When no API key is configured the email
    is logged instead of sent and ``None`` is returned. Provider failures raise
    ``EmailDeliveryError``; there is no retry.
    """
    if not settings.email_delivery_enabled:
        logger.info("Email delivery disabled, not sending", to=to, subject=subject)
        return None

    try:
        resp = httpx.post(
            settings.resend_api_url,
            headers={"Authorization": f"Bearer {settings.auth_resend_key}"},
            json={"from": sender, "to": [to], "subject": subject, "html": html},
            timeout=REQUEST_TIMEOUT,
        )
        resp.raise_for_status()
    except httpx.HTTPError as exc:
        logger.error("Email provider request failed", to=to, subject=subject, exc=str(exc))
        raise EmailDeliveryError() from exc

    message_id = resp.json().get("id")
    logger.info("Email sent", to=to, subject=subject, message_id=message_id)
    return message_id


# --- Specific emails --- #


def send_signin_email(settings: Settings, to: str, url: str, first_name: Optional[str] = None) -> Optional[str]:
    """Send the magic sign-in link."""
    html = render_template("signin.html", url=url, first_name=first_name)
    if not settings.email_delivery_enabled:
        # Local dev: the link is only reachable through the logs
        logger.info("Magic link generated", to=to, url=url)
    return send_email(
        settings,
        sender=settings.email_from,
        to=to,
        subject=SUBJECTS["signin"],
        html=html,
    )


def send_job_application_email(
    settings: Settings,
    to: str,
    *,
    company_name: str,
    job_title: str,
    student_name: str,
    student_email: str,
    subject: Optional[str],
    message: Optional[str],
    application_url: str,
) -> Optional[str]:
    """Notify a company owner that a student applied to one of their jobs."""
    html = render_template(
        "job_application.html",
        company_name=company_name,
        job_title=job_title,
        student_name=student_name,
        student_email=student_email,
        subject=subject,
        message=message,
        application_url=application_url,
    )
    return send_email(
        settings,
        sender=settings.notification_from,
        to=to,
        subject=SUBJECTS["job_application"].format(job_title=job_title),
        html=html,
    )
