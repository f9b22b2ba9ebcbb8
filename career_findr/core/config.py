"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017/?replicaSet=rs0"
    mongodb_db: str = "career_findr"

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440
    password_reset_expire_minutes: int = 30

    # Session cookie (impersonation state lives here, never in MongoDB)
    session_cookie_name: str = "career_findr_session"
    admin_home_route: str = "/admin/users"

    # Outgoing mail (unset smtp_host keeps messages in the in-process outbox)
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_timeout_seconds: int = 12
    mail_from: str = "no-reply@careerfindr.local"
    mail_from_name: str = "Career Findr"
    password_reset_url: str = "http://localhost:5173/reset-password"

    # Live feeds
    notification_feed_limit: int = 50
    realtime_poll_interval_ms: int = 1000

    # App
    log_level: str = "INFO"
    debug: bool = True

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
