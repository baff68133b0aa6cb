"""Application configuration settings."""
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import model_validator
from typing import List

# Get the server directory path
SERVER_DIR = Path(__file__).parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(SERVER_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase
    SUPABASE_URL: str
    SUPABASE_KEY: str

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # CORS — explicit list of allowed origins
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8080",
    ]

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = 60

    # Shared secret for trusted adapters (Telegram bot, web backend).
    # Empty means no bearer token is required.
    SERVICE_TOKEN: str = ""

    # Assistant
    ASSISTANT_NAME: str = "OptiPlan AI"
    REPLY_STEP_DELAY_SECONDS: float = 0.3
    MENU_REDISPLAY_DELAY_SECONDS: float = 0.8

    # Sessions
    SESSION_IDLE_MINUTES: int = 60
    MAX_SESSIONS: int = 10000

    @model_validator(mode="after")
    def _validate(self) -> "Settings":
        if self.REPLY_STEP_DELAY_SECONDS < 0 or self.MENU_REDISPLAY_DELAY_SECONDS < 0:
            raise ValueError("Reply delays must be >= 0")
        if self.SERVICE_TOKEN and len(self.SERVICE_TOKEN) < 8:
            raise ValueError(
                "SERVICE_TOKEN must be at least 8 characters when set."
            )
        return self


# Global settings instance
settings = Settings()
