import json
import logging
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_USERS = {"carina": "amore", "gui": "amoreGui", "admin": "password"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_ENV: str = "development"
    SECRET_KEY: str = "changeme-secret-key"
    LOG_LEVEL: str = "info"

    # JSON object mapping usernames to plain text passwords.
    # Example: '{"gui": "senha123", "carina": "senha123"}'
    USERS: Optional[str] = None

    DATA_FILE: str = "database.json"
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # Optional directory with the static itinerary site, served at "/".
    SITE_DIR: Optional[str] = None

    # Comma-separated allowed origins, or "*" to allow all.
    CORS_ORIGINS: str = "http://localhost:8000"
    SESSION_HTTPS_ONLY: bool = False

    # Requests allowed per client IP within the window. 0 disables the limiter.
    RATE_LIMIT_REQUESTS: int = 200
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def users(self) -> dict[str, str]:
        if not self.USERS:
            return dict(DEFAULT_USERS)
        try:
            parsed = json.loads(self.USERS)
        except ValueError:
            logger.warning("Unable to parse USERS, falling back to default users")
            return dict(DEFAULT_USERS)
        if not isinstance(parsed, dict):
            logger.warning("USERS must be a JSON object, falling back to default users")
            return dict(DEFAULT_USERS)
        return {str(k): str(v) for k, v in parsed.items()}

    @property
    def data_path(self) -> Path:
        return Path(self.DATA_FILE)

    @property
    def upload_path(self) -> Path:
        return Path(self.UPLOAD_DIR)


settings = Settings()
