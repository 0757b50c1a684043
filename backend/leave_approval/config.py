from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Leave Approval"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    database_url: str = "postgresql+asyncpg://leave_approval:leave_approval@db:5432/leave_approval"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8000"]

    # Roles looked up in the user directory.
    admin_role: str = "admin"
    final_approver_role: str = "president"
    hr_observer_role: str = "hr"

    # Attempts at read-apply-write before a concurrent modification is surfaced.
    decide_max_retries: int = 3


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
