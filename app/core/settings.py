"""Configuration and environment settings for the Routine Ledger service."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings for the Routine Ledger service."""

    database_url: str = "sqlite:///routine_ledger.db"
    service_role_key: str = "change-me"
    timezone: str = "Asia/Tehran"
    calendar: Literal["gregorian", "jalali"] = "gregorian"
    log_file: str = "logs/routine_ledger.log"
    server_host: str = "127.0.0.1"
    server_port: int = 8000

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


def get_settings() -> "Settings":
    """Return an instance of the application settings."""
    return Settings()
