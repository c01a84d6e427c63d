"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    session_idle_ms: int = 3_600_000  # 1 hour
    session_id_secret: str = "change-me-in-production"
    session_backend: str = "memory"  # "memory" or "dynamodb"
    dynamodb_table: str = "aiguide_sessions"
    dynamodb_endpoint: str = ""  # For local DynamoDB
    aws_region: str = "ap-southeast-1"
    store_timeout_seconds: float = 10.0
    store_max_attempts: int = 3
    cors_allow_origins: list[str] = ["*"]
    display_utc_offset_minutes: int = 8 * 60
    list_default_limit: int = 50
    list_max_limit: int = 200
    debug_diagnostics: bool = False
    log_level: str = "INFO"

    @property
    def uses_dynamodb(self) -> bool:
        return self.session_backend.lower() == "dynamodb"

    model_config = {"env_prefix": "", "case_sensitive": False}


settings: Settings | None = None


def get_settings() -> Settings:
    global settings
    if settings is None:
        settings = Settings()
    return settings


def override_settings(s: Settings) -> None:
    """For testing: inject a Settings instance."""
    global settings
    settings = s
