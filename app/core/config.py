from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field(alias="DATABASE_URL")

    # JWT verification (tokens are issued by the auth service)
    secret_key: str = Field(alias="SECRET_KEY")
    algorithm: str = Field(default="HS256", alias="ALGORITHM")
    access_token_expire_minutes: int = Field(default=60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Notification sink (optional, falls back to logging)
    notification_webhook_url: str | None = Field(default=None, alias="NOTIFICATION_WEBHOOK_URL")
    notification_timeout_seconds: float = Field(default=5.0, alias="NOTIFICATION_TIMEOUT_SECONDS")

    # Frontend URL for CORS
    frontend_url: str | None = Field(default=None, alias="FRONTEND_URL")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("notification_webhook_url", "frontend_url", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for optional string fields."""
        if v == "":
            return None
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str | None) -> str:
        if not v:
            return "INFO"
        return str(v).upper()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
