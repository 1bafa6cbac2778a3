"""Application configuration from environment."""
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings
from functools import lru_cache

# Load .env from project root (parent of slotbook/) so env vars are available everywhere
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=_env_path)


class Settings(BaseSettings):
    app_name: str = "Slotbook"
    app_env: str = "development"
    debug: bool = True

    database_url: str = "sqlite:///./slotbook.db"

    jwt_secret_key: str = "jwt-secret-change-me"
    jwt_algorithm: str = "HS256"

    @field_validator("jwt_secret_key")
    @classmethod
    def strip_jwt_secret(cls, v: str) -> str:
        return (v or "").strip()

    # Signed tokens are valid for 24 hours
    jwt_access_token_expire_minutes: int = 1440

    verification_code_ttl_minutes: int = 60
    password_min_length: int = 6

    sendgrid_api_key: str = ""
    sendgrid_from_email: str = "noreply@slotbook.demo"
    sendgrid_from_name: str = "Slotbook"

    mailgun_api_key: str = ""
    mailgun_domain: str = ""
    mailgun_base_url: str = "https://api.mailgun.net"
    mailgun_from_email: str = "noreply@slotbook.demo"
    mailgun_from_name: str = "Slotbook"

    @field_validator("mailgun_api_key", "mailgun_domain", "mailgun_base_url", "mailgun_from_email", mode="before")
    @classmethod
    def strip_mailgun(cls, v: str) -> str:
        return (v or "").strip()

    google_client_id: str = ""
    google_client_secret: str = ""
    google_refresh_token: str = ""
    google_calendar_id: str = "primary"
    google_calendar_time_zone: str = "UTC"

    @field_validator("google_client_id", "google_client_secret", "google_refresh_token", mode="before")
    @classmethod
    def strip_google(cls, v: str) -> str:
        return (v or "").strip()

    # Upper bound on how long a response waits for mail/calendar side effects
    notification_timeout_seconds: float = 10.0

    code_purge_enabled: bool = True
    code_purge_hour: int = 3

    class Config:
        env_file = str(_env_path)
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()
