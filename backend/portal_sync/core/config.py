# portal_sync/core/config.py
"""
Application configuration using Pydantic Settings
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    """
    Portal settings loaded from environment variables
    """

    # Application
    APP_NAME: str = "Portal Sync"
    LOG_LEVEL: str = "INFO"

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip().upper() or "INFO"
        return v

    # Storage keys (shared between sibling instances)
    STORAGE_KEY: str = "tjsp_system_data"
    LAST_UPDATE_KEY: str = "tjsp_last_update"
    STORAGE_DIR: str = ""  # leave blank for in-memory storage

    # Periodic sync
    SYNC_INTERVAL_SECONDS: int = 30
    SYNC_AUTOSTART: bool = True
    AUTOSAVE: bool = True

    # Notifications
    NOTIFICATION_RETENTION_HOURS: int = 24

    # Auto-distribution
    MAX_PER_CYCLE: int = 5
    MAX_JUDGE_WORKLOAD: int = 10
    JUDGE_MIN_LEVEL: int = 4
    OVERSIGHT_MIN_LEVEL: int = 10

    # Sample data
    SEED_SAMPLE_DATA: bool = True
    COURT_CODE_SUFFIX: str = "8.26.0001"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Create settings instance
settings = Settings()
