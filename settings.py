from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "http://localhost:3000"
DEV_AUTH_SECRET = "studylink-dev-secret-change-me"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # `.env.prod` takes priority over `.env`
        env_file=(".env", ".env.prod"),
        extra="ignore",
    )

    database_url: Optional[str] = None

    # Base URLs used to build magic-link and redirect targets
    nextauth_url: Optional[str] = None
    next_public_main_url: Optional[str] = None

    # Resend settings (email delivery is disabled when the key is missing)
    auth_resend_key: Optional[str] = None
    resend_api_url: str = "https://api.resend.com/emails"
    email_from: str = "StudyLink <onboarding@resend.dev>"
    notification_from: str = "StudyLink <noreply@studylink.space>"

    # Session / magic link settings
    auth_secret: Optional[str] = None
    session_cookie_name: str = "studylink_session"
    magic_link_max_age_hours: int = 24
    session_max_age_days: int = 30

    cors_origins: List[str] = [
        "http://localhost",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @property
    def base_url(self) -> str:
        return (self.nextauth_url or self.next_public_main_url or DEFAULT_BASE_URL).rstrip("/")

    @property
    def email_delivery_enabled(self) -> bool:
        return bool(self.auth_resend_key)

    @property
    def signing_secret(self) -> str:
        return self.auth_secret or DEV_AUTH_SECRET


@lru_cache()
def get_settings() -> Settings:
    return Settings()
