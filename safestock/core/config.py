from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_env: str = "local"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Local durable mirror (one SQLite file per client replica)
    mirror_database_url: str = "sqlite:///./safestock_mirror.db"

    # Reference remote store (safestock.hub)
    hub_database_url: str = "sqlite:///./safestock_hub.db"

    # Remote snapshot endpoint. Only used when the mirror has no URL saved yet.
    remote_url: str | None = None
    sync_interval_seconds: float = 15.0
    remote_timeout_seconds: float = 10.0

    # Issuance defaults
    departments: list[str] = [
        "Safety Section",
        "Quality Section",
        "Supply Section",
        "South Team 1",
        "South Team 2",
        "South Team 3",
        "South Team 4",
        "HR / Ethics / Director's Office",
    ]
    restock_department: str = "Maintenance Division, Southern Branch"
    unnamed_person: str = "Not specified"
    organization_name: str = "Maintenance Division, Southern Branch"

    # AI insights
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.0-flash"

    # Pydantic v2 style config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance so the .env is parsed once.
    """
    return Settings()
