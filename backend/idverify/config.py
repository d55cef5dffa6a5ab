"""
Application Configuration — Environment & Settings
Centralizes all config from .env with Pydantic Settings for validation.
"""
from pathlib import Path
from functools import lru_cache
from pydantic_settings import BaseSettings

from idverify.errors import ConfigurationError

# Resolve paths relative to backend/ directory
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # --- Core ---
    APP_NAME: str = "Identity Verification Backend"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # --- Database ---
    DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'data' / 'verification.db'}"

    # --- Provider (Stripe Identity) ---
    STRIPE_SECRET_KEY: str = ""
    STRIPE_API_VERSION: str = "2023-10-16"
    STRIPE_WEBHOOK_SECRET: str = ""
    WEBHOOK_TOLERANCE_SECONDS: int = 300
    DEFAULT_VERIFICATION_TYPE: str = "document"
    STATUS_RESYNC: bool = True

    # --- Frontend ---
    FRONTEND_URL: str = "http://localhost:5173"
    RETURN_PATH: str = "/complete"
    CORS_ORIGINS: list[str] = ["*"]

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = str(BASE_DIR / "logs")

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def return_url(self) -> str:
        return f"{self.FRONTEND_URL.rstrip('/')}{self.RETURN_PATH}"

    def validate_required(self) -> None:
        """Raise ConfigurationError if a setting needed to serve traffic is missing."""
        missing = [name for name in ("STRIPE_SECRET_KEY", "FRONTEND_URL") if not getattr(self, name)]
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
